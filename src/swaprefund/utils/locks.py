"""Concurrency control for scheduled refund cycles.

A cycle that finds another one running is skipped instead of queued.
"""

import asyncio
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class CycleInProgressError(Exception):
    """Raised when a cycle lock is already held."""

    pass


class CycleLock:
    """Non-blocking context manager guarding one cycle at a time.

    Example:
        lock = CycleLock("refund")
        try:
            async with lock:
                await run_cycle()
        except CycleInProgressError:
            pass  # previous cycle still running
    """

    def __init__(self, name: str = "cycle"):
        """Initialize the lock.

        Args:
            name: Name used in log messages
        """
        self.name = name
        self._lock = asyncio.Lock()
        self._acquired = False

    def locked(self) -> bool:
        return self._lock.locked()

    async def __aenter__(self) -> "CycleLock":
        """Acquire the lock or fail immediately."""
        if self._lock.locked():
            logger.debug(f"Lock busy: {self.name}")
            raise CycleInProgressError(f"{self.name} is already running")

        await self._lock.acquire()
        self._acquired = True
        logger.debug(f"Lock acquired: {self.name}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> Optional[bool]:
        """Release the lock."""
        if self._acquired:
            self._acquired = False
            self._lock.release()
            logger.debug(f"Lock released: {self.name}")
        return False
