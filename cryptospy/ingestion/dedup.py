"""In-flight request deduplication."""

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class RequestDeduplicator:
    """Coalesces concurrent requests for the same key into one call.

    Every caller awaiting a key observes the same outcome. The key is
    released as soon as the call settles, so failures are never cached.
    """

    def __init__(self) -> None:
        self._in_flight: dict[str, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._in_flight)

    def in_flight(self, key: str) -> bool:
        return key in self._in_flight

    async def deduplicate(self, key: str, operation: Callable[[], Awaitable[Any]]) -> Any:
        """Run operation for key, or join the call already in flight.

        Args:
            key: Request identity (cache key or URL)
            operation: Zero-argument callable returning an awaitable

        Returns:
            Result of the single underlying operation
        """
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run(key, operation))
            task.add_done_callback(_retrieve_exception)
            self._in_flight[key] = task
        else:
            logger.debug("Joining in-flight request: %s", key)

        # A cancelled waiter must not cancel the shared call
        return await asyncio.shield(task)

    async def _run(self, key: str, operation: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await operation()
        finally:
            self._in_flight.pop(key, None)


def _retrieve_exception(task: asyncio.Task) -> None:
    # Waiters may all be cancelled before the shared call fails
    if not task.cancelled():
        task.exception()
