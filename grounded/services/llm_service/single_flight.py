"""Single-flight coordination for slot loads.

Concurrent requests for the same key share one in-progress task instead of
starting duplicate work. Waiters that give up only stop awaiting; the shared
task keeps running and its result is visible to later callers.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)


class SingleFlight:
    """Per-key registry of in-flight asyncio tasks."""

    def __init__(self):
        self._inflight: Dict[Hashable, asyncio.Task] = {}

    def get(self, key: Hashable) -> Optional[asyncio.Task]:
        """Return the running task for key, if any."""
        task = self._inflight.get(key)
        if task is None or task.done():
            return None
        return task

    def start(
        self,
        key: Hashable,
        factory: Callable[[], Awaitable[Any]],
    ) -> Tuple[asyncio.Task, bool]:
        """Join the running task for key or start a new one.

        Args:
            key: Flight key (one flight per key at a time)
            factory: Coroutine function producing the work

        Returns:
            (task, created) where created is True for the initiating caller
        """
        existing = self.get(key)
        if existing is not None:
            return existing, False

        task = asyncio.ensure_future(factory())
        self._inflight[key] = task
        task.add_done_callback(lambda t, k=key: self._forget(k, t))
        return task, True

    def _forget(self, key: Hashable, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    @staticmethod
    async def wait(task: asyncio.Task, timeout: Optional[float] = None) -> Any:
        """Await a shared task without letting cancellation or timeout reach it.

        Raises:
            asyncio.TimeoutError: If timeout elapses first; the task keeps running
        """
        if timeout is None:
            return await asyncio.shield(task)
        return await asyncio.wait_for(asyncio.shield(task), timeout)

    def __len__(self) -> int:
        return sum(1 for t in self._inflight.values() if not t.done())
