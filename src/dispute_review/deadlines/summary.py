"""Deadline dashboard summary computed live from response deadlines."""

from collections.abc import Iterable, Mapping
from datetime import datetime

from ..schemas.common import FLAG_SEVERITY_RANK, FlagType
from ..schemas.dispute import DisputeRecord
from ..schemas.output import DeadlineDetail, DeadlineSummary
from ..schemas.patient import PatientRecord
from .tracker import categorize, days_until


def summarize(
    disputes: Iterable[DisputeRecord],
    now: datetime,
    patients: Mapping[str, PatientRecord] | None = None,
) -> DeadlineSummary:
    """Bucket disputes into overdue, urgent, and warning counts.

    Days remaining are recomputed from each response deadline rather than
    read from stored flags, so the result can run ahead of the last monitor
    pass. Details are ordered overdue, urgent, warning and keep input order
    within each category.
    """
    summary = DeadlineSummary()
    patients = patients or {}

    for dispute in disputes:
        summary.total += 1
        deadline = dispute.deadlines.response_deadline
        if not deadline:
            continue

        category = categorize(days_until(deadline, now))
        if category is None:
            continue

        if category.type == FlagType.OVERDUE:
            summary.overdue += 1
        elif category.type == FlagType.URGENT:
            summary.urgent += 1
        else:
            summary.warning += 1

        patient = patients.get(dispute.patient_id)
        summary.details.append(
            DeadlineDetail(
                dispute_id=dispute.id,
                patient_name=patient.full_name if patient else None,
                service=dispute.request_details.requested_service,
                deadline=deadline,
                days_remaining=category.days_remaining,
                category=category.type,
                status=dispute.status,
            )
        )

    # list.sort is stable, so input order survives within a category
    summary.details.sort(key=lambda d: FLAG_SEVERITY_RANK[d.category])
    return summary
