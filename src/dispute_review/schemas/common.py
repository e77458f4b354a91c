"""Shared types for dispute deadline and validation schemas."""

from enum import Enum
from typing import Any

from pydantic import AwareDatetime, BaseModel


class DisputeStatus(str, Enum):
    """Lifecycle status of a prior-authorization dispute."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    DENIED = "denied"
    WITHDRAWN = "withdrawn"


# Statuses the deadline monitor keeps evaluating
ACTIVE_STATUSES = frozenset(
    {
        DisputeStatus.PENDING,
        DisputeStatus.IN_PROGRESS,
        DisputeStatus.SUBMITTED,
        DisputeStatus.UNDER_REVIEW,
    }
)


class Urgency(str, Enum):
    """Urgency requested for the original service."""

    ROUTINE = "routine"
    URGENT = "urgent"
    EMERGENT = "emergent"


class DenialType(str, Enum):
    """Insurer-stated category of the denial."""

    MEDICAL_NECESSITY = "medical_necessity"
    EXPERIMENTAL = "experimental"
    NOT_COVERED = "not_covered"
    DOCUMENTATION = "documentation"
    OTHER = "other"


class ResolutionOutcome(str, Enum):
    """Final outcome recorded once a dispute is resolved."""

    APPROVED = "approved"
    DENIED = "denied"
    PARTIAL_APPROVAL = "partial_approval"
    WITHDRAWN = "withdrawn"


class FlagType(str, Enum):
    """Time-sensitivity category of a deadline flag."""

    WARNING = "warning"
    URGENT = "urgent"
    OVERDUE = "overdue"


# Lower rank sorts first on dashboards
FLAG_SEVERITY_RANK: dict[FlagType, int] = {
    FlagType.OVERDUE: 0,
    FlagType.URGENT: 1,
    FlagType.WARNING: 2,
}


class DeadlineType(str, Enum):
    """Deadlines that can be edited on a dispute."""

    RESPONSE = "response"
    URGENT_RESPONSE = "urgent_response"
    EXTERNAL_REVIEW = "external_review"


class CheckType(str, Enum):
    """The seven pre-submission checks, in execution order."""

    CPT_CODE = "cpt_code_validation"
    ICD_CODE = "icd_code_validation"
    PATIENT_DEMOGRAPHICS = "patient_demographics"
    INSURANCE_VERIFICATION = "insurance_verification"
    MEDICAL_NECESSITY = "medical_necessity"
    DOCUMENTATION_COMPLETENESS = "documentation_completeness"
    PRIOR_AUTHORIZATION_HISTORY = "prior_authorization_history"


class CheckStatus(str, Enum):
    """Status outcome of a validation check or of the whole battery."""

    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"
    WARNING = "warning"


class ValidationCheckResult(BaseModel):
    """Result of a single pre-submission check."""

    check_type: CheckType
    status: CheckStatus
    message: str
    details: dict[str, Any] = {}
    checked_at: AwareDatetime
