"""Prior-authorization dispute record schema."""

import uuid
from datetime import datetime, timedelta

from pydantic import AwareDatetime, BaseModel, Field, model_validator

from .common import (
    ACTIVE_STATUSES,
    CheckStatus,
    DenialType,
    DisputeStatus,
    FlagType,
    ResolutionOutcome,
    Urgency,
    ValidationCheckResult,
)

# Standard appeal window when no explicit response deadline is given
DEFAULT_RESPONSE_WINDOW = timedelta(days=30)


class RequestDetails(BaseModel):
    """The service originally requested from the insurer."""

    requested_service: str
    service_code: str | None = None
    diagnosis_code: str | None = None
    requested_date: AwareDatetime
    urgency: Urgency = Urgency.ROUTINE
    clinical_justification: str = ""


class DocumentReference(BaseModel):
    """Pointer to a stored file; the file itself lives elsewhere."""

    filename: str
    original_name: str | None = None
    mime_type: str | None = None
    uploaded_at: AwareDatetime | None = None


class Denial(BaseModel):
    """The insurer's denial being disputed."""

    denial_date: AwareDatetime
    denial_reason: str = ""
    denial_code: str | None = None
    denial_document: DocumentReference | None = None
    insurance_reviewer: str | None = None
    denial_type: DenialType = DenialType.OTHER


class Resolution(BaseModel):
    """Outcome recorded when a dispute is closed."""

    outcome: ResolutionOutcome | None = None
    resolution_date: AwareDatetime | None = None
    notes: str | None = None


class DeadlineFlag(BaseModel):
    """Alert raised against the response deadline."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    type: FlagType
    days_remaining: int = Field(ge=0)
    flagged_at: AwareDatetime
    resolved: bool = False
    # Set once the monitor has announced the flag
    notified_at: AwareDatetime | None = None


class Deadlines(BaseModel):
    """Compliance deadlines and the flags raised against them."""

    # Deadline edits are assigned field by field
    model_config = {"validate_assignment": True}

    response_deadline: AwareDatetime | None = None
    urgent_response_deadline: AwareDatetime | None = None
    external_review_deadline: AwareDatetime | None = None
    flags: list[DeadlineFlag] = []


class ValidationState(BaseModel):
    """Latest pre-submission validation verdict stored on the dispute."""

    pre_submission_checks: list[ValidationCheckResult] = []
    overall_validation_status: CheckStatus = CheckStatus.PENDING
    can_submit: bool = False
    last_validated: AwareDatetime | None = None


class TimelineEntry(BaseModel):
    """Audit entry describing an action taken on the dispute."""

    action: str
    date: AwareDatetime
    performed_by: str | None = None
    notes: str | None = None


class DisputeRecord(BaseModel):
    """A prior-authorization denial appeal tracked through its lifecycle."""

    id: str
    patient_id: str
    patient_group_id: str | None = None
    created_by: str
    created_at: AwareDatetime
    is_active: bool = True
    request_details: RequestDetails
    denial: Denial
    status: DisputeStatus = DisputeStatus.PENDING
    resolution: Resolution = Field(default_factory=Resolution)
    deadlines: Deadlines = Field(default_factory=Deadlines)
    validation: ValidationState = Field(default_factory=ValidationState)
    timeline: list[TimelineEntry] = []

    @model_validator(mode="after")
    def _default_response_deadline(self) -> "DisputeRecord":
        if self.deadlines.response_deadline is None:
            self.deadlines.response_deadline = (
                self.denial.denial_date + DEFAULT_RESPONSE_WINDOW
            )
        return self

    @property
    def is_monitored(self) -> bool:
        """Whether the deadline monitor should keep evaluating this dispute."""
        return self.is_active and self.status in ACTIVE_STATUSES

    def add_timeline_entry(
        self,
        action: str,
        when: datetime,
        performed_by: str | None = None,
        notes: str | None = None,
    ) -> None:
        self.timeline.append(
            TimelineEntry(action=action, date=when, performed_by=performed_by, notes=notes)
        )
