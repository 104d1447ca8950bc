"""One-shot delay timer interface for the reminder state machine.

ReminderManager only needs "call this once after N ms, unless cancelled".
The desktop app supplies a single-shot QTimer (sitright.ui.delay_timer);
tests inject a manual timer instead. Nothing here imports Qt.
"""

from __future__ import annotations

from typing import Callable, Protocol


class DelayTimer(Protocol):
    def cancel(self) -> None: ...


# factory(delay_ms, callback) -> started timer. The callback may run before
# the factory returns, e.g. for a zero delay.
TimerFactory = Callable[[float, Callable[[], None]], DelayTimer]
