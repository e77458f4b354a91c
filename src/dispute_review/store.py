"""Collaborator interfaces for persistence and notification delivery.

The engine only talks to storage and delivery through these protocols. The
in-memory implementations back the tests and local runs.
"""

import logging
from collections import defaultdict
from typing import Protocol

from .schemas.dispute import DisputeRecord
from .schemas.output import NotificationEvent
from .schemas.patient import GroupMember, PatientRecord

logger = logging.getLogger(__name__)


class DisputeRepository(Protocol):
    """Loads and saves dispute-related records."""

    async def list_active_disputes(self) -> list[DisputeRecord]: ...

    async def get_dispute(self, dispute_id: str) -> DisputeRecord | None: ...

    async def list_patient_disputes(self, patient_id: str) -> list[DisputeRecord]: ...

    async def get_patient(self, patient_id: str) -> PatientRecord | None: ...

    async def list_group_members(self, group_id: str) -> list[GroupMember]: ...

    async def save_dispute(self, dispute: DisputeRecord) -> None: ...


class NotificationSink(Protocol):
    """Delivers notifications; channels and retries are its own concern."""

    async def notify(self, event: NotificationEvent) -> None: ...


class InMemoryDisputeRepository:
    """Dictionary-backed repository that hands out copies, like a real store.

    Callers must save a dispute for their changes to become visible.
    """

    def __init__(
        self,
        disputes: list[DisputeRecord] | None = None,
        patients: list[PatientRecord] | None = None,
        groups: dict[str, list[GroupMember]] | None = None,
    ):
        self._disputes: dict[str, DisputeRecord] = {
            d.id: d.model_copy(deep=True) for d in disputes or []
        }
        self._patients: dict[str, PatientRecord] = {p.id: p for p in patients or []}
        self._groups: dict[str, list[GroupMember]] = dict(groups or {})
        self.save_count = 0

    async def list_active_disputes(self) -> list[DisputeRecord]:
        return [d.model_copy(deep=True) for d in self._disputes.values() if d.is_monitored]

    async def get_dispute(self, dispute_id: str) -> DisputeRecord | None:
        dispute = self._disputes.get(dispute_id)
        return dispute.model_copy(deep=True) if dispute else None

    async def list_patient_disputes(self, patient_id: str) -> list[DisputeRecord]:
        return [
            d.model_copy(deep=True)
            for d in self._disputes.values()
            if d.patient_id == patient_id and d.is_active
        ]

    async def get_patient(self, patient_id: str) -> PatientRecord | None:
        return self._patients.get(patient_id)

    async def list_group_members(self, group_id: str) -> list[GroupMember]:
        return list(self._groups.get(group_id, []))

    async def save_dispute(self, dispute: DisputeRecord) -> None:
        self._disputes[dispute.id] = dispute.model_copy(deep=True)
        self.save_count += 1

    def add_patient(self, patient: PatientRecord) -> None:
        self._patients[patient.id] = patient

    def add_dispute(self, dispute: DisputeRecord) -> None:
        self._disputes[dispute.id] = dispute.model_copy(deep=True)


class InMemoryNotificationSink:
    """Queues notifications per user and logs each one."""

    def __init__(self):
        self.sent: list[NotificationEvent] = []
        self._by_user: dict[str, list[NotificationEvent]] = defaultdict(list)

    async def notify(self, event: NotificationEvent) -> None:
        self.sent.append(event)
        self._by_user[event.recipient_user_id].append(event)
        logger.info(
            "Notification queued for user %s: %s (%s)",
            event.recipient_user_id,
            event.category.value,
            event.priority.value,
        )

    def for_user(self, user_id: str) -> list[NotificationEvent]:
        return list(self._by_user.get(user_id, []))
