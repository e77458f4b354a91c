"""Prior-authorization history conflict scan."""

from collections.abc import Iterable
from datetime import datetime, timedelta

from ..schemas.common import (
    CheckStatus,
    CheckType,
    ResolutionOutcome,
    ValidationCheckResult,
)
from ..schemas.dispute import DisputeRecord


def check_prior_auth_history(
    dispute: DisputeRecord,
    history: Iterable[DisputeRecord] | None,
    now: datetime,
    window_days: int = 90,
) -> ValidationCheckResult:
    """Flag recent disputes for the same patient and service code.

    History conflicts are advisory: a recent approval or denial of the same
    service produces a warning, never a failure.
    """
    if history is None:
        return ValidationCheckResult(
            check_type=CheckType.PRIOR_AUTHORIZATION_HISTORY,
            status=CheckStatus.PASSED,
            message="No conflicting prior authorization history found",
            details={"history_checked": False},
            checked_at=now,
        )

    cutoff = now - timedelta(days=window_days)
    similar = [
        other
        for other in history
        if other.id != dispute.id
        and other.patient_id == dispute.patient_id
        and other.request_details.service_code == dispute.request_details.service_code
        and other.created_at >= cutoff
    ]

    approved = [d for d in similar if d.resolution.outcome == ResolutionOutcome.APPROVED]
    if approved:
        return ValidationCheckResult(
            check_type=CheckType.PRIOR_AUTHORIZATION_HISTORY,
            status=CheckStatus.WARNING,
            message="Similar service was recently approved - verify if new request is needed",
            details={
                "recent_approvals": len(approved),
                "last_approval": _latest_resolution_date(approved),
            },
            checked_at=now,
        )

    denied = [d for d in similar if d.resolution.outcome == ResolutionOutcome.DENIED]
    if denied:
        return ValidationCheckResult(
            check_type=CheckType.PRIOR_AUTHORIZATION_HISTORY,
            status=CheckStatus.WARNING,
            message="Similar service was recently denied - ensure new information supports this request",
            details={
                "recent_denials": len(denied),
                "last_denial": _latest_resolution_date(denied),
            },
            checked_at=now,
        )

    return ValidationCheckResult(
        check_type=CheckType.PRIOR_AUTHORIZATION_HISTORY,
        status=CheckStatus.PASSED,
        message="No conflicting prior authorization history found",
        details={"history_checked": True, "similar_requests": len(similar)},
        checked_at=now,
    )


def _latest_resolution_date(disputes: list[DisputeRecord]) -> str | None:
    """Most recent resolution date as ISO text, if any were recorded."""
    dates = [d.resolution.resolution_date for d in disputes if d.resolution.resolution_date]
    if not dates:
        return None
    return max(dates).isoformat()
