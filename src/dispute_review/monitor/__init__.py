"""Periodic deadline monitoring and notification dispatch."""

from .guard import InFlightGuard
from .notifications import build_message, build_notifications, is_new_flag, select_recipients
from .scheduler import MonitorScheduler
from .tick_workflow import DeadlineMonitorWorkflow, TickStartEvent, TickState

__all__ = [
    "DeadlineMonitorWorkflow",
    "InFlightGuard",
    "MonitorScheduler",
    "TickStartEvent",
    "TickState",
    "build_message",
    "build_notifications",
    "is_new_flag",
    "select_recipients",
]
