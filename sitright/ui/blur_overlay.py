"""Full-screen frosted overlay shown while a posture reminder is active."""

from __future__ import annotations

from PyQt6.QtCore import QPropertyAnimation, Qt
from PyQt6.QtGui import QColor, QGuiApplication, QPainter
from PyQt6.QtWidgets import QWidget

OVERLAY_OPACITY = 0.85
FADE_IN_MS = 300
MESSAGE = "Sit up straight. The screen clears when your posture recovers."


class BlurOverlay(QWidget):
    """Click-through translucent cover over the primary screen.

    activate() fades in; deactivate() fades out over ``fade_out_duration_ms``.
    """

    def __init__(self, fade_out_duration_ms: float = 1500) -> None:
        super().__init__(
            None,
            Qt.WindowType.FramelessWindowHint
            | Qt.WindowType.WindowStaysOnTopHint
            | Qt.WindowType.Tool,
        )
        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground)
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents)
        self.fade_out_duration_ms = fade_out_duration_ms
        self._animation = QPropertyAnimation(self, b"windowOpacity", self)
        self._animation.finished.connect(self._on_animation_finished)

    def activate(self) -> None:
        screen = QGuiApplication.primaryScreen()
        if screen is not None:
            self.setGeometry(screen.geometry())
        self._animate(OVERLAY_OPACITY, FADE_IN_MS)
        self.show()

    def deactivate(self) -> None:
        if self.isVisible():
            self._animate(0.0, self.fade_out_duration_ms)

    def paintEvent(self, event) -> None:  # noqa: N802
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(40, 40, 48, 220))
        painter.setPen(QColor(235, 235, 235))
        painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, MESSAGE)

    def _animate(self, target: float, duration_ms: float) -> None:
        self._animation.stop()
        self._animation.setDuration(int(duration_ms))
        self._animation.setStartValue(self.windowOpacity() if self.isVisible() else 0.0)
        self._animation.setEndValue(target)
        self._animation.start()

    def _on_animation_finished(self) -> None:
        if self.windowOpacity() == 0.0:
            self.hide()
