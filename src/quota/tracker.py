"""Global rolling-window quota of inference calls.

The window is rolling, not calendar aligned: a window that opens on a
Wednesday afternoon closes exactly seven days later. The reset is lazy and
happens at the start of every read or write, there is no background timer.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

logger = logging.getLogger(__name__)

WINDOW = timedelta(days=7)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class QuotaSnapshot:
    count: int
    window_start: datetime


class QuotaTracker:
    """Process-wide call counter. Every method is atomic under one lock."""

    def __init__(
        self,
        window: timedelta = WINDOW,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.window = window
        self._clock = clock
        self._count = 0
        self._window_start = clock()
        self._lock = threading.Lock()

    def _reset_if_elapsed(self) -> None:
        now = self._clock()
        if now - self._window_start >= self.window:
            logger.info(
                "Quota window elapsed (started %s, %d call(s) used), resetting",
                self._window_start.isoformat(),
                self._count,
            )
            self._count = 0
            self._window_start = now

    def check_and_reset(self) -> None:
        """Reset the counter if the current window has elapsed."""
        with self._lock:
            self._reset_if_elapsed()

    def remaining(self, maximum: int) -> int:
        with self._lock:
            self._reset_if_elapsed()
            return max(0, maximum - self._count)

    def acquire(self, maximum: int) -> datetime | None:
        """Charge one call against the window if there is room.

        Returns the start of the window the unit was charged to, or None
        when the quota is exhausted. This is the only place that increments
        the counter, so the compare and the increment never interleave with
        another caller.
        """
        with self._lock:
            self._reset_if_elapsed()
            if self._count >= maximum:
                return None
            self._count += 1
            return self._window_start

    def try_consume(self, maximum: int) -> bool:
        return self.acquire(maximum) is not None

    def refund(self, charged_at: datetime) -> None:
        """Give back a unit charged in the window that started at ``charged_at``.

        Ignored when the window has rolled over since, the reset already
        cleared that charge.
        """
        with self._lock:
            if self._window_start != charged_at or self._count == 0:
                return
            self._count -= 1

    def snapshot(self) -> QuotaSnapshot:
        with self._lock:
            self._reset_if_elapsed()
            return QuotaSnapshot(count=self._count, window_start=self._window_start)
