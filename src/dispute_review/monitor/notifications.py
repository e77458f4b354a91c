"""Deadline notification building: who hears about a flag, and how loudly."""

from collections.abc import Iterable
from datetime import datetime, timedelta

from ..schemas.common import FlagType
from ..schemas.dispute import DeadlineFlag, DisputeRecord
from ..schemas.output import NotificationEvent, NotificationPriority
from ..schemas.patient import GroupMember, GroupPermission, PatientRecord

OVERDUE_CHANNELS = ["email", "in_app", "push"]
DEFAULT_CHANNELS = ["in_app"]


def is_new_flag(flag: DeadlineFlag, now: datetime, window: timedelta) -> bool:
    """Unresolved, not yet announced, and raised within the window."""
    return (
        not flag.resolved
        and flag.notified_at is None
        and now - flag.flagged_at < window
    )


def build_message(
    dispute: DisputeRecord, flag: DeadlineFlag, patient: PatientRecord | None
) -> str:
    patient_name = (patient.full_name if patient else "") or "Unknown patient"
    subject = f"{patient_name} - {dispute.request_details.requested_service}"

    if flag.type == FlagType.OVERDUE:
        return f"OVERDUE: Response deadline passed {flag.days_remaining} days ago for {subject}"
    if flag.type == FlagType.URGENT:
        return f"URGENT: Response deadline in {flag.days_remaining} days for {subject}"
    return f"Reminder: Response deadline in {flag.days_remaining} days for {subject}"


def select_recipients(
    dispute: DisputeRecord,
    members: Iterable[GroupMember],
    notify_permissions: Iterable[GroupPermission],
) -> list[str]:
    """The dispute creator first, then qualifying group members, each once."""
    allowed = set(notify_permissions)
    recipients = [dispute.created_by]
    for member in members:
        if member.permission in allowed and member.user_id not in recipients:
            recipients.append(member.user_id)
    return recipients


def build_notifications(
    dispute: DisputeRecord,
    flag: DeadlineFlag,
    patient: PatientRecord | None,
    members: Iterable[GroupMember],
    notify_permissions: Iterable[GroupPermission],
) -> list[NotificationEvent]:
    """One notification per recipient; overdue flags go out high priority everywhere."""
    message = build_message(dispute, flag, patient)
    overdue = flag.type == FlagType.OVERDUE

    return [
        NotificationEvent(
            dispute_id=dispute.id,
            recipient_user_id=user_id,
            category=flag.type,
            message=message,
            priority=NotificationPriority.HIGH if overdue else NotificationPriority.NORMAL,
            channels=list(OVERDUE_CHANNELS if overdue else DEFAULT_CHANNELS),
            days_remaining=flag.days_remaining,
        )
        for user_id in select_recipients(dispute, members, notify_permissions)
    ]
