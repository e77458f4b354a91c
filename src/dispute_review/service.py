"""Request-driven dispute operations.

These back the on-demand endpoints: run validation now, edit a deadline,
resolve a flag, and read the deadline dashboard. They call the same engine
functions as the monitor, record a timeline entry, and save the dispute.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from workflows.resource import ResourceManager

from .clock import Clock, SystemClock
from .config import resolve_validation_config
from .deadlines import resolve_flag, set_deadline, summarize
from .errors import DisputeNotFoundError
from .monitor.guard import InFlightGuard
from .schemas.common import DeadlineType
from .schemas.dispute import Deadlines, DisputeRecord
from .schemas.output import DeadlineSummary, ValidationResult
from .schemas.patient import PatientRecord
from .store import DisputeRepository
from .validators import run_pre_submission_validation

logger = logging.getLogger(__name__)


class DisputeService:
    """On-demand validation and deadline operations for a single dispute."""

    def __init__(
        self,
        repository: DisputeRepository,
        clock: Clock | None = None,
        guard: InFlightGuard | None = None,
        resource_manager: ResourceManager | None = None,
    ):
        self._repository = repository
        self._clock = clock or SystemClock()
        self._guard = guard or InFlightGuard()
        # Share the monitor workflow's manager to see the same settings
        self._resource_manager = resource_manager or ResourceManager()

    async def validate(self, dispute_id: str, user_id: str | None = None) -> ValidationResult:
        """Run pre-submission validation and store the verdict."""
        async with self._guard.claim(dispute_id):
            dispute = await self._load(dispute_id)
            patient = await self._repository.get_patient(dispute.patient_id)
            history = await self._repository.list_patient_disputes(dispute.patient_id)
            now = self._clock.now()
            config = await resolve_validation_config(self._resource_manager)

            result = run_pre_submission_validation(
                dispute, patient, history, now=now, config=config
            )
            dispute.add_timeline_entry(
                "Pre-submission validation completed",
                now,
                performed_by=user_id,
                notes=f"Validation status: {result.overall_validation_status.value}",
            )
            await self._repository.save_dispute(dispute)

        logger.info(
            "Validated dispute %s: %s", dispute_id, result.overall_validation_status.value
        )
        return result

    async def validation_status(self, dispute_id: str) -> dict[str, Any]:
        """Stored validation verdict and deadlines, as a JSON-ready payload."""
        dispute = await self._load(dispute_id)
        return {
            "validation": dispute.validation.model_dump(mode="json"),
            "deadlines": dispute.deadlines.model_dump(mode="json"),
        }

    async def update_deadline(
        self,
        dispute_id: str,
        new_deadline: datetime,
        deadline_type: DeadlineType | str = DeadlineType.RESPONSE,
        user_id: str | None = None,
    ) -> Deadlines:
        """Change a deadline, retire flags raised against the old date, and re-flag."""
        async with self._guard.claim(dispute_id):
            dispute = await self._load(dispute_id)
            now = self._clock.now()

            set_deadline(dispute, deadline_type, new_deadline, now)
            dispute.add_timeline_entry(
                f"{DeadlineType(deadline_type).value} deadline updated",
                now,
                performed_by=user_id,
                notes=f"New deadline: {new_deadline.date().isoformat()}",
            )
            await self._repository.save_dispute(dispute)

        return dispute.deadlines

    async def resolve_flag(
        self, dispute_id: str, flag_id: str, user_id: str | None = None
    ) -> bool:
        """Acknowledge a deadline flag; False if it was unknown or already resolved."""
        async with self._guard.claim(dispute_id):
            dispute = await self._load(dispute_id)
            if not resolve_flag(dispute, flag_id):
                return False

            dispute.add_timeline_entry(
                "Deadline flag resolved", self._clock.now(), performed_by=user_id
            )
            await self._repository.save_dispute(dispute)

        return True

    async def deadline_summary(
        self, user_id: str, group_ids: Iterable[str] | None = None
    ) -> DeadlineSummary:
        """Dashboard summary scoped to the user's groups, or to their own disputes."""
        group_ids = set(group_ids or [])
        disputes = await self._repository.list_active_disputes()

        if group_ids:
            scoped = [d for d in disputes if d.patient_group_id in group_ids]
        else:
            scoped = [d for d in disputes if d.created_by == user_id]

        patients: dict[str, PatientRecord] = {}
        for patient_id in {d.patient_id for d in scoped}:
            patient = await self._repository.get_patient(patient_id)
            if patient is not None:
                patients[patient_id] = patient

        return summarize(scoped, self._clock.now(), patients)

    async def _load(self, dispute_id: str) -> DisputeRecord:
        dispute = await self._repository.get_dispute(dispute_id)
        if dispute is None or not dispute.is_active:
            raise DisputeNotFoundError(dispute_id)
        return dispute
