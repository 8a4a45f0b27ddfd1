"""
Server-side phase timer.

One timer per room. Starting a new phase cancels whatever was pending, so
at most one "time's up" callback can be in flight per room. The callback
itself re-checks the room's phase version before acting.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


class PhaseTimer:
    """Cancellable one-shot timer for the current phase of a room."""

    def __init__(self) -> None:
        self._active_task: asyncio.Task[None] | None = None
        self._phase_version: int | None = None

    @property
    def phase_version(self) -> int | None:
        """Phase the pending timer was scheduled for, or None when idle."""
        return self._phase_version if self.is_running else None

    @property
    def is_running(self) -> bool:
        return self._active_task is not None and not self._active_task.done()

    def start_fixed_timer(
        self,
        duration: float,
        phase_version: int,
        on_timeout: Callable[[], Awaitable[None]],
    ) -> None:
        """Schedule ``on_timeout`` after ``duration`` seconds, replacing any pending timer."""
        self.cancel()
        self._phase_version = phase_version
        self._active_task = asyncio.create_task(self._run_timer(max(0.0, duration), on_timeout))

    def cancel(self) -> None:
        """Drop the pending timer.

        A callback running inside the timer task may reschedule; its own task
        is detached rather than cancelled so the callback can finish.
        """
        task = self._active_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self._active_task = None
        self._phase_version = None

    async def _run_timer(self, seconds: float, on_timeout: Callable[[], Awaitable[None]]) -> None:
        try:
            await asyncio.sleep(seconds)
            await on_timeout()
        except asyncio.CancelledError:
            pass
        except (RuntimeError, OSError, ConnectionError, ValueError):
            logger.exception("phase timer callback failed")
