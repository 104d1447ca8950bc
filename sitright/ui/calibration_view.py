"""Calibration wizard widget.

The preview is skeleton-only: the upper-body landmarks the posture signals are
built from are drawn on a flat grey canvas, and webcam pixels never reach the
screen. Critical landmarks are drawn green when visible enough to be used and
red when a frame would be rejected, so the user can see why samples are not
being collected.

Emits:
    calibration_complete(CalibrationData) - baseline captured and ready.
    calibration_failed(str)               - timed out; the user may retry.
    calibration_cancelled()               - user dismissed without calibrating.
"""

from __future__ import annotations

import time
from typing import Optional

import cv2
import numpy as np
from PyQt6.QtCore import Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QImage, QPixmap
from PyQt6.QtWidgets import QHBoxLayout, QLabel, QProgressBar, QPushButton, QVBoxLayout, QWidget

from sitright.calibration import CalibrationSession, CalibrationState
from sitright.landmarks import CRITICAL_LANDMARKS, MIN_VISIBILITY, DetectionFrame, PoseLandmark
from sitright.pose_detector import PoseDetector

PREVIEW_WIDTH = 640
PREVIEW_HEIGHT = 480
CANVAS_GREY = 136
PREVIEW_INTERVAL_MS = 200  # idle preview rate; collection runs at the session interval

BONE_COLOUR = (235, 235, 235)
VISIBLE_COLOUR = (80, 200, 80)      # BGR
HIDDEN_COLOUR = (60, 60, 220)

SKELETON_BONES = (
    (PoseLandmark.LEFT_EAR, PoseLandmark.LEFT_EYE),
    (PoseLandmark.LEFT_EYE, PoseLandmark.NOSE),
    (PoseLandmark.NOSE, PoseLandmark.RIGHT_EYE),
    (PoseLandmark.RIGHT_EYE, PoseLandmark.RIGHT_EAR),
    (PoseLandmark.MOUTH_LEFT, PoseLandmark.MOUTH_RIGHT),
    (PoseLandmark.LEFT_SHOULDER, PoseLandmark.RIGHT_SHOULDER),
    (PoseLandmark.LEFT_SHOULDER, PoseLandmark.LEFT_ELBOW),
    (PoseLandmark.RIGHT_SHOULDER, PoseLandmark.RIGHT_ELBOW),
    (PoseLandmark.LEFT_SHOULDER, PoseLandmark.LEFT_HIP),
    (PoseLandmark.RIGHT_SHOULDER, PoseLandmark.RIGHT_HIP),
    (PoseLandmark.LEFT_HIP, PoseLandmark.RIGHT_HIP),
)

IDLE_TEXT = (
    "Sit the way you'd like to sit all day, then press <b>Start</b>.\n"
    "Keep your head and both shoulders in view."
)
COLLECTING_TEXT = "Hold that posture. Collecting samples…"


class CalibrationView(QWidget):
    """Drives a CalibrationSession from the webcam.

        view = CalibrationView(CalibrationSession())
        view.calibration_complete.connect(on_baseline_ready)
        view.show()
    """

    calibration_complete = pyqtSignal(object)   # CalibrationData
    calibration_failed = pyqtSignal(str)
    calibration_cancelled = pyqtSignal()

    def __init__(
        self,
        session: CalibrationSession,
        camera_index: int = 0,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._session = session
        self._camera_index = camera_index
        self._cap: cv2.VideoCapture | None = None
        self._detector = PoseDetector()
        self._tick = QTimer(self)
        self._tick.timeout.connect(self._on_tick)
        self._setup_widgets()

    def _setup_widgets(self) -> None:
        self._prompt = QLabel(IDLE_TEXT)
        self._prompt.setWordWrap(True)
        self._prompt.setAlignment(Qt.AlignmentFlag.AlignCenter)

        self._canvas_label = QLabel()
        self._canvas_label.setFixedSize(PREVIEW_WIDTH, PREVIEW_HEIGHT)
        self._show_canvas(render_skeleton(None))

        self._samples = QProgressBar()
        self._samples.setRange(0, self._session.service.total_samples)
        self._samples.setFormat("%v / %m samples")
        self._samples.setVisible(False)

        self._message = QLabel()
        self._message.setAlignment(Qt.AlignmentFlag.AlignCenter)

        self._start_button = QPushButton("Start")
        self._start_button.clicked.connect(self.begin)
        cancel_button = QPushButton("Cancel")
        cancel_button.clicked.connect(self.abort)

        buttons = QHBoxLayout()
        buttons.addWidget(self._start_button)
        buttons.addWidget(cancel_button)

        layout = QVBoxLayout(self)
        layout.setSpacing(12)
        layout.addWidget(self._prompt)
        layout.addWidget(self._canvas_label, alignment=Qt.AlignmentFlag.AlignHCenter)
        layout.addWidget(self._samples)
        layout.addWidget(self._message)
        layout.addLayout(buttons)

    # ------------------------------------------------------------------
    # Qt events: the camera is only held while the widget is on screen

    def showEvent(self, event) -> None:  # noqa: N802
        super().showEvent(event)
        if self._cap is None:
            self._cap = cv2.VideoCapture(self._camera_index)
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, PREVIEW_WIDTH)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, PREVIEW_HEIGHT)
        self._tick.start(PREVIEW_INTERVAL_MS)

    def hideEvent(self, event) -> None:  # noqa: N802
        super().hideEvent(event)
        self._release_camera()

    def closeEvent(self, event) -> None:  # noqa: N802
        self._release_camera()
        self._detector.close()
        super().closeEvent(event)

    def _release_camera(self) -> None:
        self._tick.stop()
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    # ------------------------------------------------------------------
    # Actions

    def begin(self) -> None:
        self._session.start()
        self._tick.start(self._session.interval_ms)
        self._start_button.setEnabled(False)
        self._samples.setValue(0)
        self._samples.setVisible(True)
        self._message.clear()
        self._prompt.setText(COLLECTING_TEXT)

    def abort(self) -> None:
        self._session.cancel()
        self._release_camera()
        self.calibration_cancelled.emit()

    # ------------------------------------------------------------------
    # Frame loop

    def _on_tick(self) -> None:
        # A failed read still counts against the calibration time budget.
        ok, bgr = self._cap.read() if self._cap is not None else (False, None)
        frame = None
        if ok:
            frame = self._detector.detect(bgr, time.monotonic() * 1000.0)
            self._show_canvas(render_skeleton(frame))

        if self._session.state != CalibrationState.COLLECTING:
            return
        state = self._session.add_frame(frame) if ok else self._session.check_timeout()
        self._samples.setValue(self._session.service.sample_count)
        if state == CalibrationState.COMPLETE:
            self._finish(success=True)
        elif state == CalibrationState.FAILED:
            self._finish(success=False)

    def _finish(self, success: bool) -> None:
        self._tick.start(PREVIEW_INTERVAL_MS)
        self._start_button.setEnabled(True)
        if success:
            self._start_button.setText("Recalibrate")
            self._prompt.setText("Baseline captured. This is now your reference posture.")
            self._message.setText("Calibration complete!")
            self.calibration_complete.emit(self._session.baseline)
        else:
            self._samples.setVisible(False)
            self._prompt.setText(IDLE_TEXT)
            self._message.setText(
                "Couldn't see your head and shoulders clearly enough.\n"
                "Check the lighting and camera angle, then try again."
            )
            self.calibration_failed.emit(str(self._session.error))

    def _show_canvas(self, canvas: np.ndarray) -> None:
        rgb = np.ascontiguousarray(canvas[:, :, ::-1])
        h, w, _ = rgb.shape
        image = QImage(rgb.data, w, h, 3 * w, QImage.Format.Format_RGB888)
        self._canvas_label.setPixmap(QPixmap.fromImage(image.copy()))


def render_skeleton(frame: Optional[DetectionFrame]) -> np.ndarray:
    """Upper-body skeleton for ``frame`` on a blank BGR canvas.

    Uses only the normalised landmarks, so no camera pixels can leak into the
    preview. A missing frame yields the empty canvas.
    """
    canvas = np.full((PREVIEW_HEIGHT, PREVIEW_WIDTH, 3), CANVAS_GREY, dtype=np.uint8)
    if frame is None:
        return canvas

    def point(idx: int) -> tuple[int, int]:
        lm = frame.landmarks[idx]
        return int(lm.x * PREVIEW_WIDTH), int(lm.y * PREVIEW_HEIGHT)

    for a, b in SKELETON_BONES:
        cv2.line(canvas, point(a), point(b), BONE_COLOUR, 2, cv2.LINE_AA)
    for idx in CRITICAL_LANDMARKS:
        visible = frame.landmarks[idx].visibility >= MIN_VISIBILITY
        cv2.circle(canvas, point(idx), 6, VISIBLE_COLOUR if visible else HIDDEN_COLOUR, -1)
    return canvas
