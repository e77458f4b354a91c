"""Deadline monitor tick as a three-step workflow.

1. Load the active disputes from the repository
2. Reconcile and save each dispute, then announce its newly raised flags
3. Report what the pass did

Failures are isolated per dispute. Only a failure to load the active set
aborts the tick; the scheduler retries on its next pass.
"""

import logging
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel
from workflows import Context, Workflow, step
from workflows.events import Event, StartEvent, StopEvent

from ..config import MONITOR_SETTINGS, MonitorConfig, resolve_monitor_config
from ..deadlines.tracker import update_deadline_flags
from ..schemas.dispute import DeadlineFlag, DisputeRecord
from ..schemas.output import TickReport
from ..schemas.patient import GroupPermission
from ..store import DisputeRepository, NotificationSink
from .guard import InFlightGuard
from .notifications import build_notifications, is_new_flag

logger = logging.getLogger(__name__)


# --- Events ---


class TickStartEvent(StartEvent):
    """Start event carrying the reference instant for this pass."""

    now: datetime


class DisputesLoadedEvent(Event):
    """Emitted once the active dispute set is in memory."""

    now: datetime
    disputes: list[DisputeRecord]


class DisputesProcessedEvent(Event):
    """Emitted after every loaded dispute has been reconciled."""

    now: datetime


# --- Workflow State ---


class TickState(BaseModel):
    """Counters accumulated across the steps of one tick."""

    total_checked: int = 0
    flagged_disputes: int = 0
    notifications_sent: int = 0
    failures: int = 0
    skipped_in_flight: int = 0


# --- Workflow ---


class DeadlineMonitorWorkflow(Workflow):
    """Refresh deadline flags for active disputes and announce new ones."""

    def __init__(
        self,
        repository: DisputeRepository,
        sink: NotificationSink,
        guard: InFlightGuard | None = None,
        **kwargs,
    ):
        # Collaborators own their timeouts; the tick itself never times out
        kwargs.setdefault("timeout", None)
        super().__init__(**kwargs)
        self._dispute_repository = repository
        self._notification_sink = sink
        self._in_flight = guard or InFlightGuard()

    async def monitor_config(self) -> MonitorConfig:
        """Monitor settings as resolved for this workflow's steps."""
        return await resolve_monitor_config(self._resource_manager)

    @step()
    async def load_active_disputes(
        self,
        event: TickStartEvent,
    ) -> DisputesLoadedEvent | StopEvent:
        """Fetch the working set of disputes with an active status."""
        try:
            disputes = await self._dispute_repository.list_active_disputes()
        except Exception:
            logger.exception("Could not load active disputes, deadline check aborted")
            return StopEvent(result=TickReport(started_at=event.now, aborted=True))

        logger.info("Running deadline check over %d active disputes", len(disputes))
        return DisputesLoadedEvent(now=event.now, disputes=disputes)

    @step()
    async def reconcile_disputes(
        self,
        event: DisputesLoadedEvent,
        ctx: Context[TickState],
        monitor_config: Annotated[MonitorConfig, MONITOR_SETTINGS],
    ) -> DisputesProcessedEvent:
        """Update flags, save, and notify for each dispute independently.

        Each dispute is read again once claimed, so an edit saved between
        the load and the claim is not overwritten. A dispute whose save
        fails is not announced this tick. Announced flags are saved again
        with their notified_at marker.
        """
        window = monitor_config.new_flag_window
        checked = flagged = sent = failures = skipped = 0

        for listed in event.disputes:
            async with self._in_flight.claim(listed.id) as acquired:
                if not acquired:
                    logger.info("Dispute %s is being updated elsewhere, skipping", listed.id)
                    skipped += 1
                    continue

                try:
                    dispute = await self._dispute_repository.get_dispute(listed.id)
                except Exception:
                    logger.exception("Failed to reload dispute %s", listed.id)
                    failures += 1
                    continue
                if dispute is None or not dispute.is_monitored:
                    logger.info("Dispute %s is no longer active, skipping", listed.id)
                    continue

                checked += 1
                try:
                    update_deadline_flags(dispute, event.now)
                except Exception:
                    logger.exception("Failed to update deadline flags for dispute %s", dispute.id)
                    failures += 1
                    continue

                if not await self._save(dispute):
                    failures += 1
                    continue

                new_flags = [
                    flag
                    for flag in dispute.deadlines.flags
                    if is_new_flag(flag, event.now, window)
                ]
                if not new_flags:
                    continue

                flagged += 1
                delivered, failed = await self._notify_new_flags(
                    dispute, new_flags, event.now, monitor_config.notify_permissions
                )
                sent += delivered
                failures += failed

                # Record notified_at so the next tick does not announce again
                if delivered and not await self._save(dispute):
                    failures += 1

        async with ctx.store.edit_state() as state:
            state.total_checked += checked
            state.flagged_disputes += flagged
            state.notifications_sent += sent
            state.failures += failures
            state.skipped_in_flight += skipped

        return DisputesProcessedEvent(now=event.now)

    @step()
    async def build_report(
        self,
        event: DisputesProcessedEvent,
        ctx: Context[TickState],
    ) -> StopEvent:
        """Summarize the pass for the scheduler."""
        state = await ctx.store.get_state()

        report = TickReport(
            started_at=event.now,
            total_checked=state.total_checked,
            flagged_disputes=state.flagged_disputes,
            notifications_sent=state.notifications_sent,
            failures=state.failures,
            skipped_in_flight=state.skipped_in_flight,
        )
        logger.info(
            "Deadline check completed. Flagged %d disputes, sent %d notifications, %d failures",
            report.flagged_disputes,
            report.notifications_sent,
            report.failures,
        )
        return StopEvent(result=report)

    async def _save(self, dispute: DisputeRecord) -> bool:
        try:
            await self._dispute_repository.save_dispute(dispute)
        except Exception:
            logger.exception("Failed to save dispute %s", dispute.id)
            return False
        return True

    async def _notify_new_flags(
        self,
        dispute: DisputeRecord,
        flags: list[DeadlineFlag],
        now: datetime,
        permissions: list[GroupPermission],
    ) -> tuple[int, int]:
        """Send every notification for the dispute; returns (sent, failed).

        A flag counts as announced once at least one recipient received it.
        """
        try:
            patient = await self._dispute_repository.get_patient(dispute.patient_id)
            members = (
                await self._dispute_repository.list_group_members(dispute.patient_group_id)
                if dispute.patient_group_id
                else []
            )
        except Exception:
            logger.exception("Could not load recipients for dispute %s", dispute.id)
            return 0, 1

        sent = failed = 0
        for flag in flags:
            delivered = 0
            notifications = build_notifications(
                dispute,
                flag,
                patient,
                members,
                permissions,
            )
            for notification in notifications:
                try:
                    await self._notification_sink.notify(notification)
                    delivered += 1
                except Exception:
                    logger.exception(
                        "Failed to notify user %s about dispute %s",
                        notification.recipient_user_id,
                        dispute.id,
                    )
                    failed += 1
            if delivered:
                flag.notified_at = now
                logger.info(
                    "Deadline notification sent for dispute %s: %s", dispute.id, flag.type.value
                )
            sent += delivered

        return sent, failed
