"""Tests for deadline notifications and the monitor tick workflow."""

from datetime import timedelta

import pytest
from workflows.resource import ResourceManager

from dispute_review.clock import FixedClock
from dispute_review.config import MONITOR_SETTINGS, MonitorConfig
from dispute_review.monitor import (
    DeadlineMonitorWorkflow,
    InFlightGuard,
    TickStartEvent,
    build_message,
    build_notifications,
    is_new_flag,
    select_recipients,
)
from dispute_review.schemas import (
    DeadlineFlag,
    DisputeStatus,
    FlagType,
    GroupMember,
    GroupPermission,
    NotificationPriority,
    TickReport,
)
from dispute_review.service import DisputeService
from dispute_review.store import InMemoryDisputeRepository, InMemoryNotificationSink
from factories import NOW, make_dispute, make_patient

NOTIFY_PERMISSIONS = [GroupPermission.EDIT, GroupPermission.ADMIN]

MEMBERS = [
    GroupMember(user_id="user-editor", permission=GroupPermission.EDIT),
    GroupMember(user_id="user-viewer", permission=GroupPermission.VIEW),
    GroupMember(user_id="user-admin", permission=GroupPermission.ADMIN),
    GroupMember(user_id="user-creator", permission=GroupPermission.ADMIN),
]


def _flag(flag_type: FlagType, days: int, **kwargs) -> DeadlineFlag:
    return DeadlineFlag(type=flag_type, days_remaining=days, flagged_at=NOW, **kwargs)


def _due_in(dispute_id: str = "dispute-1", **kwargs):
    return make_dispute(dispute_id=dispute_id, response_deadline=NOW + timedelta(**kwargs))


def _make_repository(*disputes, groups=None) -> InMemoryDisputeRepository:
    return InMemoryDisputeRepository(
        disputes=list(disputes),
        patients=[make_patient()],
        groups=groups if groups is not None else {"group-1": MEMBERS},
    )


async def _tick(workflow: DeadlineMonitorWorkflow, now=NOW) -> TickReport:
    return await workflow.run(start_event=TickStartEvent(now=now))


# ============================================================================
# NOTIFICATION BUILDING
# ============================================================================


class TestNotificationMessages:
    """Tests for the per-category message templates."""

    def test_overdue_message(self) -> None:
        message = build_message(make_dispute(), _flag(FlagType.OVERDUE, 2), make_patient())
        assert message == "OVERDUE: Response deadline passed 2 days ago for Maria Lopez - MRI lumbar spine"

    def test_urgent_message(self) -> None:
        message = build_message(make_dispute(), _flag(FlagType.URGENT, 1), make_patient())
        assert message == "URGENT: Response deadline in 1 days for Maria Lopez - MRI lumbar spine"

    def test_warning_message(self) -> None:
        message = build_message(make_dispute(), _flag(FlagType.WARNING, 6), make_patient())
        assert message.startswith("Reminder: Response deadline in 6 days")

    def test_unknown_patient(self) -> None:
        message = build_message(make_dispute(), _flag(FlagType.URGENT, 1), None)
        assert "Unknown patient - MRI lumbar spine" in message


class TestRecipients:
    """Tests for recipient selection."""

    def test_creator_first_then_edit_and_admin_members(self) -> None:
        recipients = select_recipients(make_dispute(), MEMBERS, NOTIFY_PERMISSIONS)
        assert recipients == ["user-creator", "user-editor", "user-admin"]

    def test_no_group_members(self) -> None:
        assert select_recipients(make_dispute(), [], NOTIFY_PERMISSIONS) == ["user-creator"]

    def test_view_only_members_excluded(self) -> None:
        members = [GroupMember(user_id="user-viewer", permission=GroupPermission.VIEW)]
        assert select_recipients(make_dispute(), members, NOTIFY_PERMISSIONS) == ["user-creator"]


class TestBuildNotifications:
    """Tests for priority and channel selection."""

    def test_overdue_is_high_priority_on_all_channels(self) -> None:
        events = build_notifications(
            make_dispute(), _flag(FlagType.OVERDUE, 1), make_patient(), MEMBERS, NOTIFY_PERMISSIONS
        )
        assert len(events) == 3
        assert all(e.priority == NotificationPriority.HIGH for e in events)
        assert all(e.channels == ["email", "in_app", "push"] for e in events)

    def test_urgent_is_normal_priority_in_app(self) -> None:
        events = build_notifications(
            make_dispute(), _flag(FlagType.URGENT, 2), make_patient(), [], NOTIFY_PERMISSIONS
        )
        assert len(events) == 1
        assert events[0].priority == NotificationPriority.NORMAL
        assert events[0].channels == ["in_app"]
        assert events[0].days_remaining == 2
        assert events[0].category == FlagType.URGENT


class TestIsNewFlag:
    """Tests for the new-flag window."""

    WINDOW = timedelta(seconds=3660)

    def test_fresh_flag_is_new(self) -> None:
        assert is_new_flag(_flag(FlagType.URGENT, 1), NOW + timedelta(minutes=30), self.WINDOW)

    def test_old_flag_is_not_new(self) -> None:
        assert not is_new_flag(_flag(FlagType.URGENT, 1), NOW + timedelta(hours=2), self.WINDOW)

    def test_announced_flag_is_not_new(self) -> None:
        flag = _flag(FlagType.URGENT, 1, notified_at=NOW)
        assert not is_new_flag(flag, NOW, self.WINDOW)

    def test_resolved_flag_is_not_new(self) -> None:
        assert not is_new_flag(_flag(FlagType.URGENT, 1, resolved=True), NOW, self.WINDOW)


# ============================================================================
# TICK WORKFLOW
# ============================================================================


class FlakyRepository(InMemoryDisputeRepository):
    """Repository whose saves fail for selected disputes."""

    def __init__(self, *args, failing_ids=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.failing_ids = set(failing_ids)

    async def save_dispute(self, dispute):
        if dispute.id in self.failing_ids:
            raise ConnectionError("write timed out")
        await super().save_dispute(dispute)


class UnreachableRepository(InMemoryDisputeRepository):
    """Repository that cannot list disputes."""

    async def list_active_disputes(self):
        raise ConnectionError("database unavailable")


class EditedAfterListingRepository(InMemoryDisputeRepository):
    """A user extends the deadline right after the tick lists disputes."""

    async def list_active_disputes(self):
        listed = await super().list_active_disputes()
        for dispute in listed:
            edited = dispute.model_copy(deep=True)
            edited.deadlines.response_deadline = NOW + timedelta(days=60)
            self.add_dispute(edited)
        return listed


class ClosedAfterListingRepository(InMemoryDisputeRepository):
    """A dispute is closed right after the tick lists disputes."""

    async def list_active_disputes(self):
        listed = await super().list_active_disputes()
        for dispute in listed:
            closed = dispute.model_copy(deep=True)
            closed.is_active = False
            self.add_dispute(closed)
        return listed


class PickySink(InMemoryNotificationSink):
    """Sink that rejects deliveries to selected users."""

    def __init__(self, failing_users=()):
        super().__init__()
        self.failing_users = set(failing_users)

    async def notify(self, event):
        if event.recipient_user_id in self.failing_users:
            raise RuntimeError("delivery rejected")
        await super().notify(event)


class TestDeadlineMonitorWorkflow:
    """Tests for a single monitor pass."""

    @pytest.mark.asyncio
    async def test_flags_and_notifies_due_disputes(self) -> None:
        repository = _make_repository(_due_in("urgent", days=2), _due_in("far", days=20))
        sink = InMemoryNotificationSink()

        report = await _tick(DeadlineMonitorWorkflow(repository, sink))

        assert report.total_checked == 2
        assert report.flagged_disputes == 1
        assert report.notifications_sent == 3
        assert report.failures == 0
        assert report.aborted is False
        assert {e.recipient_user_id for e in sink.sent} == {
            "user-creator",
            "user-editor",
            "user-admin",
        }
        assert sink.for_user("user-viewer") == []

    @pytest.mark.asyncio
    async def test_flag_is_persisted_with_notification_marker(self) -> None:
        repository = _make_repository(_due_in(days=2))
        await _tick(DeadlineMonitorWorkflow(repository, InMemoryNotificationSink()))

        stored = await repository.get_dispute("dispute-1")
        assert len(stored.deadlines.flags) == 1
        assert stored.deadlines.flags[0].type == FlagType.URGENT
        assert stored.deadlines.flags[0].notified_at == NOW

    @pytest.mark.asyncio
    async def test_next_tick_does_not_renotify(self) -> None:
        repository = _make_repository(_due_in(days=2))
        sink = InMemoryNotificationSink()
        workflow = DeadlineMonitorWorkflow(repository, sink)

        await _tick(workflow, NOW)
        report = await _tick(workflow, NOW + timedelta(hours=1))

        assert report.notifications_sent == 0
        assert report.flagged_disputes == 0
        assert len(sink.sent) == 3

    @pytest.mark.asyncio
    async def test_daily_reminder_as_days_count_down(self) -> None:
        repository = _make_repository(_due_in(days=2))
        sink = InMemoryNotificationSink()
        workflow = DeadlineMonitorWorkflow(repository, sink)

        await _tick(workflow, NOW)
        report = await _tick(workflow, NOW + timedelta(days=1))

        assert report.notifications_sent == 3
        assert [e.days_remaining for e in sink.for_user("user-creator")] == [2, 1]

    @pytest.mark.asyncio
    async def test_overdue_notifications_are_high_priority(self) -> None:
        repository = _make_repository(_due_in(days=-1))
        sink = InMemoryNotificationSink()

        await _tick(DeadlineMonitorWorkflow(repository, sink))

        assert all(e.priority == NotificationPriority.HIGH for e in sink.sent)
        assert sink.sent[0].message.startswith("OVERDUE: Response deadline passed 1 days ago")

    @pytest.mark.asyncio
    async def test_flag_raised_by_request_is_announced_next_tick(self) -> None:
        """A deadline edit between ticks is picked up by the following tick."""
        repository = _make_repository(_due_in(days=20))
        sink = InMemoryNotificationSink()
        clock = FixedClock(NOW)
        service = DisputeService(repository, clock=clock)

        await service.update_deadline("dispute-1", NOW + timedelta(days=2))
        report = await _tick(DeadlineMonitorWorkflow(repository, sink), NOW + timedelta(minutes=30))

        assert report.notifications_sent == 3
        stored = await repository.get_dispute("dispute-1")
        assert [f.notified_at for f in stored.deadlines.flags if not f.resolved] == [
            NOW + timedelta(minutes=30)
        ]

    @pytest.mark.asyncio
    async def test_stale_unannounced_flag_is_not_notified(self) -> None:
        """Flags older than interval plus grace were someone else's to announce."""
        dispute = _due_in(days=2)
        dispute.deadlines.flags.append(
            DeadlineFlag(
                type=FlagType.URGENT, days_remaining=2, flagged_at=NOW - timedelta(hours=2)
            )
        )
        repository = _make_repository(dispute)
        sink = InMemoryNotificationSink()

        report = await _tick(DeadlineMonitorWorkflow(repository, sink), NOW)

        assert report.notifications_sent == 0
        assert sink.sent == []

    @pytest.mark.asyncio
    async def test_closed_and_inactive_disputes_are_skipped(self) -> None:
        closed = make_dispute(
            dispute_id="closed",
            status=DisputeStatus.APPROVED,
            response_deadline=NOW + timedelta(days=1),
        )
        inactive = _due_in("inactive", days=1)
        inactive.is_active = False
        repository = _make_repository(closed, inactive)
        sink = InMemoryNotificationSink()

        report = await _tick(DeadlineMonitorWorkflow(repository, sink))

        assert report.total_checked == 0
        assert sink.sent == []

    @pytest.mark.asyncio
    async def test_save_failure_is_isolated(self) -> None:
        repository = FlakyRepository(
            disputes=[_due_in("broken", days=2), _due_in("healthy", days=2)],
            patients=[make_patient()],
            failing_ids={"broken"},
        )
        sink = InMemoryNotificationSink()

        report = await _tick(DeadlineMonitorWorkflow(repository, sink))

        assert report.total_checked == 2
        assert report.failures == 1
        assert {e.dispute_id for e in sink.sent} == {"healthy"}
        stored = await repository.get_dispute("healthy")
        assert len(stored.deadlines.flags) == 1
        assert (await repository.get_dispute("broken")).deadlines.flags == []

    @pytest.mark.asyncio
    async def test_unreachable_store_aborts_tick(self) -> None:
        repository = UnreachableRepository(disputes=[_due_in(days=2)])

        report = await _tick(DeadlineMonitorWorkflow(repository, InMemoryNotificationSink()))

        assert report.aborted is True
        assert report.total_checked == 0
        assert report.started_at == NOW

    @pytest.mark.asyncio
    async def test_delivery_failure_for_one_user(self) -> None:
        repository = _make_repository(_due_in(days=2))
        sink = PickySink(failing_users={"user-editor"})

        report = await _tick(DeadlineMonitorWorkflow(repository, sink))

        assert report.notifications_sent == 2
        assert report.failures == 1
        stored = await repository.get_dispute("dispute-1")
        assert stored.deadlines.flags[0].notified_at == NOW

    @pytest.mark.asyncio
    async def test_undelivered_flag_is_retried_next_tick(self) -> None:
        repository = _make_repository(_due_in(days=2), groups={})
        workflow = DeadlineMonitorWorkflow(repository, PickySink(failing_users={"user-creator"}))

        first = await _tick(workflow, NOW)
        assert first.notifications_sent == 0
        assert first.failures == 1

        sink = InMemoryNotificationSink()
        retry = DeadlineMonitorWorkflow(repository, sink)
        second = await _tick(retry, NOW + timedelta(minutes=30))

        assert second.notifications_sent == 1
        assert len(sink.sent) == 1

    @pytest.mark.asyncio
    async def test_in_flight_dispute_is_skipped(self) -> None:
        guard = InFlightGuard()
        repository = _make_repository(_due_in("busy", days=2), _due_in("idle", days=2))
        sink = InMemoryNotificationSink()
        workflow = DeadlineMonitorWorkflow(repository, sink, guard=guard)

        async with guard.claim("busy"):
            report = await _tick(workflow)

        assert report.skipped_in_flight == 1
        assert report.total_checked == 1
        assert {e.dispute_id for e in sink.sent} == {"idle"}

    @pytest.mark.asyncio
    async def test_custom_notify_permissions(self) -> None:
        repository = _make_repository(_due_in(days=2))
        sink = InMemoryNotificationSink()
        manager = ResourceManager()
        await manager.set(
            MONITOR_SETTINGS.name, MonitorConfig(notify_permissions=[GroupPermission.ADMIN])
        )

        await _tick(DeadlineMonitorWorkflow(repository, sink, resource_manager=manager))

        assert [e.recipient_user_id for e in sink.sent] == ["user-creator", "user-admin"]

    @pytest.mark.asyncio
    async def test_monitor_config_comes_from_config_file(self) -> None:
        workflow = DeadlineMonitorWorkflow(_make_repository(), InMemoryNotificationSink())

        config = await workflow.monitor_config()

        assert config == MonitorConfig()
        assert config.new_flag_window == timedelta(seconds=3660)

    @pytest.mark.asyncio
    async def test_edit_after_listing_is_not_overwritten(self) -> None:
        """A deadline saved between the load and the claim survives the tick."""
        repository = EditedAfterListingRepository(
            disputes=[_due_in(days=2)],
            patients=[make_patient()],
            groups={"group-1": MEMBERS},
        )
        sink = InMemoryNotificationSink()

        report = await _tick(DeadlineMonitorWorkflow(repository, sink))

        stored = await repository.get_dispute("dispute-1")
        assert stored.deadlines.response_deadline == NOW + timedelta(days=60)
        assert stored.deadlines.flags == []
        assert report.total_checked == 1
        assert report.flagged_disputes == 0
        assert sink.sent == []

    @pytest.mark.asyncio
    async def test_dispute_closed_after_listing_is_skipped(self) -> None:
        repository = ClosedAfterListingRepository(
            disputes=[_due_in(days=2)],
            patients=[make_patient()],
            groups={"group-1": MEMBERS},
        )
        sink = InMemoryNotificationSink()

        report = await _tick(DeadlineMonitorWorkflow(repository, sink))

        assert report.total_checked == 0
        assert report.failures == 0
        assert repository.save_count == 0
        assert sink.sent == []


class TestInFlightGuard:
    """Tests for advisory per-dispute claims."""

    @pytest.mark.asyncio
    async def test_claim_and_release(self) -> None:
        guard = InFlightGuard()
        async with guard.claim("d1") as acquired:
            assert acquired is True
            assert guard.is_claimed("d1")
            async with guard.claim("d1") as second:
                assert second is False
            assert guard.is_claimed("d1")
        assert not guard.is_claimed("d1")

    @pytest.mark.asyncio
    async def test_released_on_error(self) -> None:
        guard = InFlightGuard()
        with pytest.raises(ValueError):
            async with guard.claim("d1"):
                raise ValueError("boom")
        assert not guard.is_claimed("d1")
