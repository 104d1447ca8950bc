"""Qt implementation of sitright.timers.DelayTimer."""

from __future__ import annotations

from typing import Callable

from PyQt6.QtCore import QTimer


class QtDelayTimer:
    """Single-shot QTimer. Needs a running Qt event loop to fire."""

    def __init__(self, delay_ms: float, callback: Callable[[], None]) -> None:
        self._timer = QTimer()
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(callback)
        self._timer.start(max(0, int(delay_ms)))

    @property
    def active(self) -> bool:
        return self._timer.isActive()

    def cancel(self) -> None:
        self._timer.stop()
