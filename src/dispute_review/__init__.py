"""Deadline tracking and pre-submission validation for prior-authorization disputes."""

from .deadlines import resolve_flag, set_deadline, summarize, update_deadline_flags
from .service import DisputeService
from .validators import run_pre_submission_validation

__all__ = [
    "DisputeService",
    "resolve_flag",
    "run_pre_submission_validation",
    "set_deadline",
    "summarize",
    "update_deadline_flags",
]
