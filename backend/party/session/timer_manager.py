"""Manage per-room phase timers when deadlines are enforced."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from party.logic.timer import PhaseTimer

logger = logging.getLogger(__name__)

# Callback type: (room_id, phase_version) -> Awaitable[None]
TimeoutCallback = Callable[[str, int], Awaitable[None]]


class PhaseTimerManager:
    """Keep at most one pending phase timer per room.

    This class only schedules and cancels. It does NOT inspect rooms -- the
    caller (SessionManager) reads phase changes from engine events and
    calls ``schedule`` or ``cancel``.
    """

    def __init__(self, on_timeout: TimeoutCallback) -> None:
        self._timers: dict[str, PhaseTimer] = {}
        self._on_timeout = on_timeout

    def schedule(self, room_id: str, phase_version: int, delay: float | None) -> None:
        """Replace the room's timer with one for ``phase_version``; ``delay=None`` just cancels."""
        if delay is None:
            self.cancel(room_id)
            return
        timer = self._timers.setdefault(room_id, PhaseTimer())
        timer.start_fixed_timer(
            delay,
            phase_version,
            lambda rid=room_id, version=phase_version: self._on_timeout(rid, version),
        )
        logger.debug("phase timer scheduled for %s (phase %d, %.1fs)", room_id, phase_version, delay)

    def cancel(self, room_id: str) -> None:
        timer = self._timers.get(room_id)
        if timer is not None:
            timer.cancel()

    def cleanup_room(self, room_id: str) -> None:
        """Cancel and forget the timer of a removed room."""
        timer = self._timers.pop(room_id, None)
        if timer is not None:
            timer.cancel()

    def cancel_all(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

    def has_timer(self, room_id: str) -> bool:
        timer = self._timers.get(room_id)
        return timer is not None and timer.is_running

    def pending_phase(self, room_id: str) -> int | None:
        timer = self._timers.get(room_id)
        return timer.phase_version if timer is not None else None
