"""Notification content and rate limiting."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

from sitright.rules import PostureRule, PostureViolation

logger = logging.getLogger(__name__)

DEFAULT_MIN_INTERVAL_MS = 30_000


@dataclass(frozen=True)
class NotificationContent:
    title: str
    body: str


NOTIFICATION_MAP = {
    PostureRule.FORWARD_HEAD: NotificationContent(
        "Head leaning forward", "Tuck your chin back and sit tall."
    ),
    PostureRule.HEAD_TILT: NotificationContent(
        "Head tilted", "Try to keep your head level."
    ),
    PostureRule.TOO_CLOSE: NotificationContent(
        "Too close to the screen", "Sit back a little to rest your eyes."
    ),
    PostureRule.SHOULDER_ASYMMETRY: NotificationContent(
        "Uneven shoulders", "Relax and level your shoulders."
    ),
}

GENERAL_NOTIFICATION = NotificationContent(
    "Posture check", "Take a moment to adjust how you're sitting."
)


class NotificationSink(Protocol):
    def send(self, content: NotificationContent) -> None: ...


def get_notification_content(violations: Sequence[PostureViolation]) -> NotificationContent:
    """Specific text for a single known rule, the general reminder otherwise."""
    if len(violations) == 1:
        return NOTIFICATION_MAP.get(violations[0].rule, GENERAL_NOTIFICATION)
    return GENERAL_NOTIFICATION


class NotificationSender:
    """Sends at most one notification per ``min_interval_ms``.

    This is independent of ReminderManager's once-per-episode rule and guards
    against rapid good/bad flapping.
    """

    def __init__(
        self,
        sink: NotificationSink,
        min_interval_ms: float = DEFAULT_MIN_INTERVAL_MS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sink = sink
        self.min_interval_ms = min_interval_ms
        self._clock = clock
        self._last_sent_ms: float | None = None

    def send(self, violations: Sequence[PostureViolation]) -> bool:
        """Returns False if the notification was dropped by the rate limit."""
        now_ms = self._clock() * 1000.0
        if self._last_sent_ms is not None and now_ms - self._last_sent_ms < self.min_interval_ms:
            logger.debug("Notification suppressed by rate limit")
            return False

        self._sink.send(get_notification_content(violations))
        self._last_sent_ms = now_ms
        return True
