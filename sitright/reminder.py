"""Reminder state machine.

Turns sustained bad posture into blur / notification / sound actions:

    IDLE --bad--> DELAYING --timer--> TRIGGERED
      ^              |                   |
      +-----good-----+-------good--------+

Bad posture while TRIGGERED is a no-op; an episode triggers at most once.
Inside an ignore period every update counts as good posture.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Union

from sitright.ignore_periods import IgnorePeriod, is_in_ignore_period
from sitright.rules import PostureStatus, PostureViolation
from sitright.timers import DelayTimer, TimerFactory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReminderConfig:
    blur: bool = True
    notification: bool = True
    sound: bool = False
    delay_ms: float = 5000
    fade_out_duration_ms: float = 1500
    ignore_periods: tuple[IgnorePeriod, ...] = ()
    weekend_ignore: bool = False


DEFAULT_REMINDER_CONFIG = ReminderConfig()


def _noop(*_args) -> None:
    pass


@dataclass
class ReminderCallbacks:
    """Side effects owned by the presentation layer."""

    on_blur_activate: Callable[[], None] = _noop
    on_blur_deactivate: Callable[[], None] = _noop
    on_notify: Callable[[tuple[PostureViolation, ...]], None] = _noop
    on_sound: Callable[[], None] = _noop


class ReminderState(Enum):
    IDLE = "idle"
    DELAYING = "delaying"
    TRIGGERED = "triggered"


# ---------------------------------------------------------------------------
# State payloads: a timer only exists while delaying, violations only while
# delaying or triggered.


@dataclass(frozen=True)
class _Idle:
    kind = ReminderState.IDLE


@dataclass(frozen=True)
class _Delaying:
    episode: object
    violations: tuple[PostureViolation, ...] = field(default=())
    timer: Optional[DelayTimer] = None   # None only while the factory is running
    kind = ReminderState.DELAYING


@dataclass(frozen=True)
class _Triggered:
    violations: tuple[PostureViolation, ...]
    blur_active: bool
    kind = ReminderState.TRIGGERED


_State = Union[_Idle, _Delaying, _Triggered]


class ReminderManager:
    """Not thread-safe: feed it from the same event loop its timers run on.

    Call dispose() before dropping the manager so no delay timer fires late.
    """

    def __init__(
        self,
        config: ReminderConfig = DEFAULT_REMINDER_CONFIG,
        callbacks: Optional[ReminderCallbacks] = None,
        timer_factory: Optional[TimerFactory] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._config = config
        self._callbacks = callbacks if callbacks is not None else ReminderCallbacks()
        if timer_factory is None:
            from sitright.ui.delay_timer import QtDelayTimer

            timer_factory = QtDelayTimer
        self._timer_factory = timer_factory
        self._clock = clock
        self._state: _State = _Idle()

    # ------------------------------------------------------------------
    # Public API

    @property
    def state(self) -> ReminderState:
        return self._state.kind

    @property
    def config(self) -> ReminderConfig:
        return self._config

    @property
    def violations(self) -> tuple[PostureViolation, ...]:
        """Violations of the current episode; empty while idle."""
        if isinstance(self._state, _Idle):
            return ()
        return self._state.violations

    def on_posture_update(self, status: PostureStatus) -> None:
        if self.is_in_ignore_period() or status.is_good:
            self._handle_good_posture()
        else:
            self._handle_bad_posture(tuple(status.violations))

    def update_config(self, **changes) -> None:
        """Replace individual config fields; state and cached violations are kept."""
        self._config = dataclasses.replace(self._config, **changes)

    def is_in_ignore_period(self) -> bool:
        return is_in_ignore_period(
            self._config.ignore_periods, self._config.weekend_ignore, self._clock()
        )

    def dispose(self) -> None:
        """Cancel any pending timer and drop back to idle, lifting an active blur."""
        state = self._state
        self._state = _Idle()
        if isinstance(state, _Delaying):
            _cancel(state)
        elif isinstance(state, _Triggered) and state.blur_active:
            self._invoke("on_blur_deactivate")

    # ------------------------------------------------------------------
    # Transitions

    def _handle_good_posture(self) -> None:
        state = self._state
        if isinstance(state, _Delaying):
            _cancel(state)
            self._transition(_Idle())
        elif isinstance(state, _Triggered):
            self._transition(_Idle())
            if state.blur_active:
                self._invoke("on_blur_deactivate")

    def _handle_bad_posture(self, violations: tuple[PostureViolation, ...]) -> None:
        state = self._state
        if isinstance(state, _Idle):
            self._start_delay(violations)
        elif isinstance(state, _Delaying):
            self._state = dataclasses.replace(state, violations=violations)

    def _start_delay(self, violations: tuple[PostureViolation, ...]) -> None:
        episode = object()

        def current() -> bool:
            return isinstance(self._state, _Delaying) and self._state.episode is episode

        def fire() -> None:
            if current():
                self._trigger()

        # Enter DELAYING before the timer exists so a timer that fires from
        # inside the factory still finds its episode.
        self._transition(_Delaying(episode=episode, violations=violations))
        timer = self._timer_factory(self._config.delay_ms, fire)
        if current():
            self._state = dataclasses.replace(self._state, timer=timer)
        else:
            timer.cancel()

    def _trigger(self) -> None:
        violations = self._state.violations
        config = self._config
        self._transition(_Triggered(violations=violations, blur_active=config.blur))

        if config.blur:
            self._invoke("on_blur_activate")
        if config.notification:
            self._invoke("on_notify", violations)
        if config.sound:
            self._invoke("on_sound")

    def _transition(self, new_state: _State) -> None:
        logger.info("Reminder state %s -> %s", self._state.kind.value, new_state.kind.value)
        self._state = new_state

    def _invoke(self, name: str, *args) -> None:
        try:
            getattr(self._callbacks, name)(*args)
        except Exception:
            logger.exception("Reminder callback %s failed", name)


def _cancel(state: _Delaying) -> None:
    if state.timer is not None:
        state.timer.cancel()
