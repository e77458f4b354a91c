"""Pre-submission validation engine for prior-authorization disputes."""

from collections.abc import Iterable
from datetime import datetime, timezone

from ..config import ValidationConfig
from ..schemas.common import CheckStatus, ValidationCheckResult
from ..schemas.dispute import DisputeRecord
from ..schemas.output import ValidationResult
from ..schemas.patient import PatientRecord
from .clinical_checks import check_documentation, check_medical_necessity
from .coding_checks import check_cpt_code, check_icd_code
from .history_checks import check_prior_auth_history
from .patient_checks import check_insurance, check_patient_demographics

__all__ = [
    "aggregate_status",
    "run_pre_submission_validation",
    "check_cpt_code",
    "check_icd_code",
    "check_patient_demographics",
    "check_insurance",
    "check_medical_necessity",
    "check_documentation",
    "check_prior_auth_history",
]


def run_pre_submission_validation(
    dispute: DisputeRecord,
    patient: PatientRecord | None,
    history: Iterable[DisputeRecord] | None = None,
    now: datetime | None = None,
    config: ValidationConfig | None = None,
) -> ValidationResult:
    """Run all seven pre-submission checks and record the verdict on the dispute.

    Checks always run in the same order and never short-circuit each other:
    - CPT/service code format
    - ICD-10 diagnosis code format
    - Patient demographics completeness
    - Insurance verification
    - Medical necessity strength
    - Documentation completeness
    - Prior-authorization history conflicts

    Missing patient data is reported as failed checks, never raised. The
    dispute's stored checks are replaced wholesale; the caller persists.
    """
    now = now or datetime.now(timezone.utc)
    config = config or ValidationConfig()

    checks: list[ValidationCheckResult] = [
        check_cpt_code(dispute, now),
        check_icd_code(dispute, now),
        check_patient_demographics(patient, now),
        check_insurance(patient, now),
        check_medical_necessity(dispute, now),
        check_documentation(
            dispute, patient, now, recent_days=config.recent_documentation_days
        ),
        check_prior_auth_history(
            dispute, history, now, window_days=config.history_window_days
        ),
    ]

    overall = aggregate_status(checks)
    can_submit = overall != CheckStatus.FAILED

    dispute.validation.pre_submission_checks = checks
    dispute.validation.overall_validation_status = overall
    dispute.validation.can_submit = can_submit
    dispute.validation.last_validated = now

    return ValidationResult(
        checks=checks,
        overall_validation_status=overall,
        can_submit=can_submit,
        last_validated=now,
    )


def aggregate_status(checks: list[ValidationCheckResult]) -> CheckStatus:
    """Failures outrank warnings; warnings alone still allow submission."""
    statuses = {check.status for check in checks}
    if CheckStatus.FAILED in statuses:
        return CheckStatus.FAILED
    if CheckStatus.WARNING in statuses:
        return CheckStatus.WARNING
    return CheckStatus.PASSED
