"""Session Locks — keyed, non-blocking mutual exclusion for per-user mutating calls.

Invariants:
    - At most one guarded call per user id is in flight
    - A second concurrent call for the same user fails fast with ConcurrencyError
    - Different user ids never contend
    - The key is released on every exit path, including exceptions and cancellation

Design Decisions:
    - Reject instead of queue: a user double-submitting should see the conflict,
      not silently reorder answers
    - Single event loop assumption: check-and-set on a set is atomic between awaits
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from goodfaith.core.errors import ConcurrencyError, ErrorContext

logger = logging.getLogger(__name__)


class SessionLockRegistry:
    """Tracks user ids with a mutating call in flight."""

    def __init__(self) -> None:
        self._active: set[str] = set()

    def is_locked(self, user_id: str) -> bool:
        return user_id in self._active

    @asynccontextmanager
    async def hold(self, user_id: str, operation: str = "mutation") -> AsyncGenerator[None, None]:
        if user_id in self._active:
            logger.warning(
                f"Rejected concurrent {operation}",
                extra={"user_id": user_id, "error_code": "CONCURRENCY_CONFLICT"},
            )
            raise ConcurrencyError(
                f"Another {operation} is already in progress for this user",
                context=ErrorContext(user_id=user_id),
            )
        self._active.add(user_id)
        try:
            yield
        finally:
            self._active.discard(user_id)
