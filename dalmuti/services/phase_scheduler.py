"""Timed phase advancement.

The tax phase is shown to players for a few seconds and then moves on to
playing by itself. The scheduler owns those timers.
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from dalmuti.errors import DalmutiError

logger = logging.getLogger(__name__)

PhaseCallback = Callable[[str], Awaitable[Any]]


class PhaseScheduler:
    """Runs one delayed callback per room.

    Scheduling a room that already has a pending timer does nothing, and a
    callback that fires after the phase moved on is expected to be a no-op
    on the game side.
    """

    def __init__(self, delay_seconds: float) -> None:
        """Initialize scheduler.

        Args:
            delay_seconds: Time between scheduling and running a callback
        """
        self.delay_seconds = delay_seconds
        self._tasks: dict[str, asyncio.Task[None]] = {}

    def schedule(self, room_id: str, callback: PhaseCallback) -> bool:
        """Schedule ``callback(room_id)`` after the delay.

        Returns:
            True if a new timer was started
        """
        pending = self._tasks.get(room_id)
        if pending is not None and not pending.done():
            return False

        self._tasks[room_id] = asyncio.create_task(self._run(room_id, callback))
        logger.debug("Scheduled phase timer for room %s (%.1fs)", room_id, self.delay_seconds)
        return True

    def is_scheduled(self, room_id: str) -> bool:
        """Check if a room has a pending timer."""
        task = self._tasks.get(room_id)
        return task is not None and not task.done()

    async def _run(self, room_id: str, callback: PhaseCallback) -> None:
        try:
            await asyncio.sleep(self.delay_seconds)
            await callback(room_id)
        except asyncio.CancelledError:
            logger.debug("Phase timer for room %s cancelled", room_id)
            raise
        except DalmutiError as e:
            logger.warning("Phase timer for room %s failed: %s", room_id, e.message)
        except Exception:
            logger.exception("Error in phase timer for room %s", room_id)
        finally:
            if self._tasks.get(room_id) is asyncio.current_task():
                del self._tasks[room_id]

    async def cancel(self, room_id: str) -> bool:
        """Cancel a room's pending timer.

        Returns:
            True if a timer was cancelled
        """
        task = self._tasks.pop(room_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        return True

    async def shutdown(self) -> None:
        """Cancel every pending timer."""
        for room_id in list(self._tasks):
            await self.cancel(room_id)
        logger.info("Phase scheduler stopped")
