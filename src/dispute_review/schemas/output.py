"""Output schemas produced by the validation engine and deadline monitor."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from .common import CheckStatus, DisputeStatus, FlagType, ValidationCheckResult


class ValidationResult(BaseModel):
    """Aggregate verdict of one pre-submission validation run."""

    checks: list[ValidationCheckResult] = []
    overall_validation_status: CheckStatus
    can_submit: bool
    last_validated: datetime


class NotificationPriority(str, Enum):
    """Delivery priority signalled to the notification sink."""

    HIGH = "high"
    NORMAL = "normal"


class NotificationEvent(BaseModel):
    """A deadline notification addressed to a single user."""

    dispute_id: str
    recipient_user_id: str
    category: FlagType
    message: str
    priority: NotificationPriority = NotificationPriority.NORMAL
    channels: list[str] = ["in_app"]
    days_remaining: int


class DeadlineDetail(BaseModel):
    """One flagged dispute as shown on the deadline dashboard."""

    dispute_id: str
    patient_name: str | None = None
    service: str
    deadline: datetime
    days_remaining: int
    category: FlagType
    status: DisputeStatus


class DeadlineSummary(BaseModel):
    """Dashboard counts of disputes by deadline category."""

    overdue: int = 0
    urgent: int = 0
    warning: int = 0
    total: int = 0
    details: list[DeadlineDetail] = []


class TickReport(BaseModel):
    """Outcome of one deadline monitor pass over the active disputes."""

    started_at: datetime
    total_checked: int = 0
    flagged_disputes: int = 0
    notifications_sent: int = 0
    failures: int = 0
    skipped_in_flight: int = 0
    aborted: bool = False
