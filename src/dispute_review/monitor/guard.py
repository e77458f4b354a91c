"""Advisory per-dispute in-flight tracking."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class InFlightGuard:
    """Tracks disputes currently being worked on by a tick or a request.

    The guard is advisory: it keeps the monitor from sending duplicate
    notifications while a request handler is mid-update. Concurrent writes
    still converge because every engine operation is idempotent.
    """

    def __init__(self):
        self._claimed: set[str] = set()

    def is_claimed(self, dispute_id: str) -> bool:
        return dispute_id in self._claimed

    @asynccontextmanager
    async def claim(self, dispute_id: str) -> AsyncIterator[bool]:
        """Yield True if this caller took the claim, False if someone else holds it."""
        if dispute_id in self._claimed:
            yield False
            return
        self._claimed.add(dispute_id)
        try:
            yield True
        finally:
            self._claimed.discard(dispute_id)
