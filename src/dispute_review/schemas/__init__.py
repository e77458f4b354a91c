"""Dispute, patient, and result schemas for deadline tracking and validation."""

from .common import (
    ACTIVE_STATUSES,
    FLAG_SEVERITY_RANK,
    CheckStatus,
    CheckType,
    DeadlineType,
    DenialType,
    DisputeStatus,
    FlagType,
    ResolutionOutcome,
    Urgency,
    ValidationCheckResult,
)
from .dispute import (
    DEFAULT_RESPONSE_WINDOW,
    DeadlineFlag,
    Deadlines,
    Denial,
    DisputeRecord,
    DocumentReference,
    RequestDetails,
    Resolution,
    TimelineEntry,
    ValidationState,
)
from .output import (
    DeadlineDetail,
    DeadlineSummary,
    NotificationEvent,
    NotificationPriority,
    TickReport,
    ValidationResult,
)
from .patient import (
    Diagnosis,
    GroupMember,
    GroupPermission,
    InsuranceInfo,
    MedicalInfo,
    PatientDocument,
    PatientDocumentType,
    PatientRecord,
)

__all__ = [
    # Common
    "ACTIVE_STATUSES",
    "FLAG_SEVERITY_RANK",
    "CheckStatus",
    "CheckType",
    "DeadlineType",
    "DenialType",
    "DisputeStatus",
    "FlagType",
    "ResolutionOutcome",
    "Urgency",
    "ValidationCheckResult",
    # Dispute
    "DEFAULT_RESPONSE_WINDOW",
    "DeadlineFlag",
    "Deadlines",
    "Denial",
    "DisputeRecord",
    "DocumentReference",
    "RequestDetails",
    "Resolution",
    "TimelineEntry",
    "ValidationState",
    # Patient
    "Diagnosis",
    "GroupMember",
    "GroupPermission",
    "InsuranceInfo",
    "MedicalInfo",
    "PatientDocument",
    "PatientDocumentType",
    "PatientRecord",
    # Output
    "DeadlineDetail",
    "DeadlineSummary",
    "NotificationEvent",
    "NotificationPriority",
    "TickReport",
    "ValidationResult",
]
