"""Medical necessity and documentation completeness checks."""

import re
from datetime import datetime, timedelta

from ..schemas.common import CheckStatus, CheckType, ValidationCheckResult
from ..schemas.dispute import DisputeRecord
from ..schemas.patient import PatientDocumentType, PatientRecord
from .patient_checks import missing_patient_result

MIN_JUSTIFICATION_LENGTH = 50

# Keyword families a persuasive justification should touch on
NECESSITY_COMPONENTS: list[tuple[str, re.Pattern[str]]] = [
    (
        "patient symptoms/condition description",
        re.compile(r"symptom|pain|dysfunction|impair|limit|restrict", re.IGNORECASE),
    ),
    (
        "proposed treatment description",
        re.compile(r"treat|therapy|intervention|procedure|medication", re.IGNORECASE),
    ),
    (
        "expected outcomes/benefits",
        re.compile(r"improve|resolve|prevent|manage|control", re.IGNORECASE),
    ),
]

CLINICAL_DOCUMENT_TYPES = frozenset(
    {
        PatientDocumentType.EHR,
        PatientDocumentType.LAB_RESULTS,
        PatientDocumentType.IMAGING,
    }
)


def check_medical_necessity(
    dispute: DisputeRecord, now: datetime
) -> ValidationCheckResult:
    """Clinical justification must be substantive and cover symptoms, treatment, outcome."""
    justification = dispute.request_details.clinical_justification or ""

    if len(justification.strip()) < MIN_JUSTIFICATION_LENGTH:
        return ValidationCheckResult(
            check_type=CheckType.MEDICAL_NECESSITY,
            status=CheckStatus.FAILED,
            message=f"Clinical justification must be at least {MIN_JUSTIFICATION_LENGTH} characters and provide detailed medical necessity",
            details={
                "current_length": len(justification),
                "minimum_required": MIN_JUSTIFICATION_LENGTH,
            },
            checked_at=now,
        )

    missing_components = [
        label
        for label, pattern in NECESSITY_COMPONENTS
        if not pattern.search(justification)
    ]

    if len(missing_components) > 1:
        return ValidationCheckResult(
            check_type=CheckType.MEDICAL_NECESSITY,
            status=CheckStatus.WARNING,
            message="Clinical justification could be strengthened",
            details={
                "suggested_additions": missing_components,
                "tip": "Include patient symptoms, proposed treatment, and expected outcomes",
            },
            checked_at=now,
        )

    return ValidationCheckResult(
        check_type=CheckType.MEDICAL_NECESSITY,
        status=CheckStatus.PASSED,
        message="Clinical justification appears comprehensive",
        details={"validated": True},
        checked_at=now,
    )


def check_documentation(
    dispute: DisputeRecord,
    patient: PatientRecord | None,
    now: datetime,
    recent_days: int = 180,
) -> ValidationCheckResult:
    """Denial paperwork is required; supporting clinical records are advisory.

    A missing denial letter fails the check outright and the advisory
    findings are dropped from the result.
    """
    if patient is None:
        return missing_patient_result(CheckType.DOCUMENTATION_COMPLETENESS, now)

    issues: list[str] = []
    warnings: list[str] = []

    denial = dispute.denial
    if not denial.denial_document and not (denial.denial_reason or "").strip():
        issues.append("Denial letter or documentation is missing")

    if not patient.medical_info.diagnosis:
        warnings.append("Patient diagnosis information is missing from medical records")

    if not patient.documents:
        warnings.append("No supporting medical documents uploaded")

    cutoff = now - timedelta(days=recent_days)
    recent_docs = [
        doc
        for doc in patient.documents
        if doc.uploaded_at > cutoff and doc.document_type in CLINICAL_DOCUMENT_TYPES
    ]
    if not recent_docs:
        warnings.append(
            f"No recent medical documentation (within {recent_days} days) found"
        )

    if issues:
        return ValidationCheckResult(
            check_type=CheckType.DOCUMENTATION_COMPLETENESS,
            status=CheckStatus.FAILED,
            message="Critical documentation is missing",
            details={"issues": issues},
            checked_at=now,
        )

    if warnings:
        return ValidationCheckResult(
            check_type=CheckType.DOCUMENTATION_COMPLETENESS,
            status=CheckStatus.WARNING,
            message="Documentation could be more complete",
            details={"warnings": warnings},
            checked_at=now,
        )

    return ValidationCheckResult(
        check_type=CheckType.DOCUMENTATION_COMPLETENESS,
        status=CheckStatus.PASSED,
        message="Documentation appears complete",
        details={"validated": True},
        checked_at=now,
    )
