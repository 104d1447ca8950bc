"""Live test launcher for the calibration flow.

Runs the CalibrationView widget end-to-end:
  - Opens your webcam
  - Shows the skeleton-only privacy preview
  - Collects samples on "Start Calibration"
  - Prints the resulting baseline

Usage:
    source .venv/bin/activate
    python run_calibration.py
"""

import logging
import sys

from PyQt6.QtWidgets import QApplication, QMainWindow, QStatusBar

from sitright.calibration import CalibrationData, CalibrationSession
from sitright.logging_config import setup_logging
from sitright.ui.calibration_view import CalibrationView

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self, session: CalibrationSession) -> None:
        super().__init__()
        self.setWindowTitle("Posture Calibration - Live Test")

        self._status_bar = QStatusBar()
        self.setStatusBar(self._status_bar)
        self._status_bar.showMessage("Ready. Click 'Start Calibration' to begin.")

        view = CalibrationView(session, parent=self)
        view.calibration_complete.connect(self._on_complete)
        view.calibration_failed.connect(self._on_failed)
        view.calibration_cancelled.connect(self._on_cancelled)
        self.setCentralWidget(view)
        self.adjustSize()

    def _on_complete(self, baseline: CalibrationData) -> None:
        self._status_bar.showMessage(
            f"head forward: {baseline.head_forward_angle:.1f}°  |  "
            f"head tilt: {baseline.head_tilt_angle:.1f}°  |  "
            f"face ratio: {baseline.face_frame_ratio:.3f}"
        )
        print("\n=== Calibration complete ===")
        print(f"  head_forward_angle: {baseline.head_forward_angle:.2f}°")
        print(f"  torso_angle:        {baseline.torso_angle:.2f}°")
        print(f"  head_tilt_angle:    {baseline.head_tilt_angle:.2f}°")
        print(f"  face_frame_ratio:   {baseline.face_frame_ratio:.4f}")
        print(f"  face_y:             {baseline.face_y:.4f}")
        print(f"  nose_to_ear_avg:    {baseline.nose_to_ear_avg:.4f}")
        print(f"  shoulder_diff:      {baseline.shoulder_diff:.2f}°")
        print(f"  screen reference:   {baseline.screen_angle_reference}")

    def _on_failed(self, message: str) -> None:
        self._status_bar.showMessage(message)

    def _on_cancelled(self) -> None:
        logger.info("Calibration cancelled.")
        self.close()


if __name__ == "__main__":
    setup_logging()
    app = QApplication(sys.argv)
    window = MainWindow(CalibrationSession())
    window.show()
    sys.exit(app.exec())
