"""Calibrate, then monitor posture with live reminders.

Usage:
    python run_monitor.py [--settings settings.json] [--camera 0] [--debug]

The optional settings file is a JSON object with "detection", "reminder" and
"advanced" sections (see sitright.config).
"""

import argparse
import json
import logging
import sys
import time

import cv2
from PyQt6.QtCore import QTimer
from PyQt6.QtWidgets import QApplication, QStyle, QSystemTrayIcon

from sitright.calibration import CalibrationData, CalibrationSession
from sitright.config import APP_NAME, DEFAULT_SETTINGS, Settings, settings_from_dict
from sitright.logging_config import setup_logging
from sitright.monitor import DetectionState, PostureMonitor
from sitright.notifications import NotificationContent, NotificationSender
from sitright.pose_detector import PoseDetector
from sitright.reminder import ReminderCallbacks, ReminderManager
from sitright.ui.blur_overlay import BlurOverlay
from sitright.ui.calibration_view import CalibrationView
from sitright.ui.delay_timer import QtDelayTimer

logger = logging.getLogger(__name__)


class TrayNotificationSink:
    def __init__(self, tray: QSystemTrayIcon) -> None:
        self._tray = tray

    def send(self, content: NotificationContent) -> None:
        self._tray.showMessage(content.title, content.body)


class MonitorController:
    """Owns the camera and the detection tick once calibration is done."""

    def __init__(self, app: QApplication, settings: Settings, camera_index: int) -> None:
        self._app = app
        self._settings = settings
        self._camera_index = camera_index
        self._cap: cv2.VideoCapture | None = None
        self._detector: PoseDetector | None = None
        self._monitor: PostureMonitor | None = None
        self._timer = QTimer()
        self._timer.timeout.connect(self._tick)

        self._tray = QSystemTrayIcon(
            app.style().standardIcon(QStyle.StandardPixmap.SP_ComputerIcon)
        )
        self._tray.setToolTip(APP_NAME)
        self._tray.show()
        self._overlay = BlurOverlay(settings.reminder.fade_out_duration_ms)
        self._notifier = NotificationSender(
            TrayNotificationSink(self._tray), settings.advanced.notification_interval_ms
        )

    def start(self, calibration: CalibrationData) -> None:
        callbacks = ReminderCallbacks(
            on_blur_activate=self._overlay.activate,
            on_blur_deactivate=self._overlay.deactivate,
            on_notify=self._notifier.send,
            on_sound=QApplication.beep,
        )
        reminder = ReminderManager(
            self._settings.reminder.to_config(), callbacks, timer_factory=QtDelayTimer
        )
        self._monitor = PostureMonitor(calibration, reminder, self._settings)
        self._monitor.add_settings_listener(self._apply_settings)
        self._detector = PoseDetector()
        self._cap = cv2.VideoCapture(self._camera_index)
        if not self._cap.isOpened():
            logger.error("Cannot open camera %d", self._camera_index)
            return
        self._monitor.start()
        if self._monitor.state != DetectionState.DETECTING:
            return
        self._timer.start(self._settings.detection.interval_ms)

    def stop(self) -> None:
        self._timer.stop()
        if self._monitor is not None:
            self._monitor.stop()
        if self._cap is not None:
            self._cap.release()
        if self._detector is not None:
            self._detector.close()

    def _apply_settings(self, settings: Settings) -> None:
        self._settings = settings
        self._overlay.fade_out_duration_ms = settings.reminder.fade_out_duration_ms
        self._notifier.min_interval_ms = settings.advanced.notification_interval_ms
        if self._timer.isActive():
            self._timer.setInterval(settings.detection.interval_ms)

    def _tick(self) -> None:
        ret, frame = self._cap.read()
        if not ret:
            return
        detection = self._detector.detect(frame, time.monotonic() * 1000.0)
        result = self._monitor.process_frame(detection)
        if result is not None:
            status = result.status
            self._tray.setToolTip(
                "Good posture" if status.is_good
                else ", ".join(v.message for v in status.violations)
            )


def _load_settings(path: str | None) -> Settings:
    if path is None:
        return DEFAULT_SETTINGS
    with open(path) as fh:
        return settings_from_dict(json.load(fh))


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--settings", help="JSON settings file")
    parser.add_argument("--camera", type=int, default=0, help="camera index")
    parser.add_argument("--debug", action="store_true", help="log per-frame analysis")
    args = parser.parse_args()

    setup_logging(debug_analysis=args.debug)
    settings = _load_settings(args.settings)
    if args.debug:
        advanced = settings.advanced.model_copy(update={"debug_mode": True})
        settings = settings.model_copy(update={"advanced": advanced})

    app = QApplication(sys.argv)
    app.setQuitOnLastWindowClosed(False)
    controller = MonitorController(app, settings, args.camera)

    view = CalibrationView(CalibrationSession(), camera_index=args.camera)
    view.setWindowTitle(f"{APP_NAME} - Calibration")

    def on_calibrated(baseline: CalibrationData) -> None:
        view.close()
        controller.start(baseline)

    view.calibration_complete.connect(on_calibrated)
    view.calibration_cancelled.connect(app.quit)
    app.aboutToQuit.connect(controller.stop)
    view.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
