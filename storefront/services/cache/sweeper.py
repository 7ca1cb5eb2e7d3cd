"""
Background expiry sweeper.

Expired entries are already ignored on read and deleted lazily on
access; the sweeper additionally frees entries nobody reads again.
"""

import asyncio
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

import structlog

if TYPE_CHECKING:
    from .cache_manager import CacheManager

logger = structlog.get_logger(__name__)


class CacheSweeper:
    """Periodically removes expired entries from a cache manager's store."""

    def __init__(self, manager: "CacheManager", interval_seconds: float = 60.0):
        if interval_seconds <= 0:
            raise ValueError("Sweep interval must be positive")
        self.manager = manager
        self.interval_seconds = interval_seconds
        self.last_swept: Optional[str] = None
        self.total_swept = 0
        self._sweep_task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def start(self) -> None:
        """Start background sweeping."""
        if self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._sweep_loop())
            logger.info(
                "Cache sweeper started", interval_seconds=self.interval_seconds
            )

    async def stop(self) -> None:
        """Stop background sweeping."""
        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None
            logger.info("Cache sweeper stopped", total_swept=self.total_swept)

    def run_once(self) -> int:
        """Sweep now; returns the number of entries removed."""
        count = self.manager.sweep_expired()
        self.total_swept += count
        self.last_swept = datetime.now(timezone.utc).isoformat()
        return count

    async def _sweep_loop(self) -> None:
        """Background sweep loop."""
        while True:
            try:
                await asyncio.sleep(self.interval_seconds)
                self.run_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Cache sweep error", error=str(e))
