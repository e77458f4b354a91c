"""Deadline flag tracking and dashboard summaries."""

from .summary import summarize
from .tracker import (
    FlagCategory,
    active_flag,
    categorize,
    days_until,
    resolve_flag,
    set_deadline,
    update_deadline_flags,
)

__all__ = [
    "FlagCategory",
    "active_flag",
    "categorize",
    "days_until",
    "resolve_flag",
    "set_deadline",
    "summarize",
    "update_deadline_flags",
]
