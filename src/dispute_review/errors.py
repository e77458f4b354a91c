"""Exceptions raised by the dispute review service layer."""


class DisputeReviewError(Exception):
    """Base class for dispute review errors."""


class DisputeNotFoundError(DisputeReviewError):
    """The requested dispute does not exist or is no longer active."""

    def __init__(self, dispute_id: str):
        super().__init__(f"Dispute not found: {dispute_id}")
        self.dispute_id = dispute_id


class UnknownDeadlineTypeError(DisputeReviewError, ValueError):
    """A deadline edit named a deadline the dispute does not carry."""
