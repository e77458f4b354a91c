"""Deadline flag computation and reconciliation.

Every function here works on an in-memory dispute and never persists it.
A dispute carries at most one unresolved flag; superseded flags are marked
resolved and kept as history.
"""

import logging
import math
from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict

from ..errors import UnknownDeadlineTypeError
from ..schemas.common import DeadlineType, FlagType
from ..schemas.dispute import DeadlineFlag, DisputeRecord

logger = logging.getLogger(__name__)

URGENT_THRESHOLD_DAYS = 3
WARNING_THRESHOLD_DAYS = 7

_DEADLINE_FIELDS: dict[DeadlineType, str] = {
    DeadlineType.RESPONSE: "response_deadline",
    DeadlineType.URGENT_RESPONSE: "urgent_response_deadline",
    DeadlineType.EXTERNAL_REVIEW: "external_review_deadline",
}

_ONE_DAY = timedelta(days=1)


class FlagCategory(BaseModel):
    """The flag a deadline currently calls for."""

    model_config = ConfigDict(frozen=True)

    type: FlagType
    days_remaining: int

    def matches(self, flag: DeadlineFlag) -> bool:
        return flag.type == self.type and flag.days_remaining == self.days_remaining


def days_until(deadline: datetime, now: datetime) -> int:
    """Whole days between now and the deadline, rounded up.

    30 minutes before the deadline is 1 day remaining. Any time past the
    deadline is at least one day overdue, so 30 minutes after it is -1 and
    a day and a half after it is also -1.
    """
    days = (deadline - now) / _ONE_DAY
    whole = math.ceil(days)
    if whole == 0 and days < 0:
        return -1
    return whole


def categorize(days_remaining: int) -> FlagCategory | None:
    """Map days remaining to a flag category; first matching rule wins."""
    if days_remaining < 0:
        return FlagCategory(type=FlagType.OVERDUE, days_remaining=abs(days_remaining))
    if days_remaining <= URGENT_THRESHOLD_DAYS:
        return FlagCategory(type=FlagType.URGENT, days_remaining=days_remaining)
    if days_remaining <= WARNING_THRESHOLD_DAYS:
        return FlagCategory(type=FlagType.WARNING, days_remaining=days_remaining)
    return None


def active_flag(dispute: DisputeRecord) -> DeadlineFlag | None:
    """The dispute's unresolved flag, if it has one."""
    for flag in dispute.deadlines.flags:
        if not flag.resolved:
            return flag
    return None


def update_deadline_flags(dispute: DisputeRecord, now: datetime) -> DeadlineFlag | None:
    """Reconcile the dispute's flags against its response deadline.

    The target category is computed fresh. An unresolved flag that already
    matches it is left untouched, so repeated calls with the same ``now`` do
    not churn flags. Otherwise every unresolved flag is resolved and a new one
    is raised when the deadline is within the warning window.

    Returns the unresolved flag after reconciliation.
    """
    deadline = dispute.deadlines.response_deadline
    target = categorize(days_until(deadline, now)) if deadline else None

    unresolved = [flag for flag in dispute.deadlines.flags if not flag.resolved]
    if target is not None and len(unresolved) == 1 and target.matches(unresolved[0]):
        return unresolved[0]

    for flag in unresolved:
        flag.resolved = True

    if target is None:
        return None

    flag = DeadlineFlag(
        type=target.type,
        days_remaining=target.days_remaining,
        flagged_at=now,
    )
    dispute.deadlines.flags.append(flag)
    logger.debug(
        "Raised %s flag for dispute %s (%d days)",
        flag.type.value,
        dispute.id,
        flag.days_remaining,
    )
    return flag


def set_deadline(
    dispute: DisputeRecord,
    deadline_type: DeadlineType | str,
    new_deadline: datetime,
    now: datetime,
) -> DeadlineFlag | None:
    """Apply a deadline edit and re-evaluate flags against the new date.

    Flags raised against the old date are resolved before reconciliation so
    none can survive the edit.
    """
    try:
        field = _DEADLINE_FIELDS[DeadlineType(deadline_type)]
    except ValueError as exc:
        raise UnknownDeadlineTypeError(f"Unknown deadline type: {deadline_type}") from exc

    setattr(dispute.deadlines, field, new_deadline)

    for flag in dispute.deadlines.flags:
        flag.resolved = True

    logger.info("Updated %s for dispute %s to %s", field, dispute.id, new_deadline.isoformat())
    return update_deadline_flags(dispute, now)


def resolve_flag(dispute: DisputeRecord, flag_id: str) -> bool:
    """Mark one flag resolved; False when it is unknown or already resolved."""
    for flag in dispute.deadlines.flags:
        if flag.id == flag_id:
            if flag.resolved:
                return False
            flag.resolved = True
            logger.info("Resolved deadline flag %s for dispute %s", flag_id, dispute.id)
            return True
    return False
