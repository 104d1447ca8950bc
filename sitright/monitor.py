"""Detection session: analyzer + reminder manager behind start/stop/pause.

The monitor does no scheduling of its own. The host calls process_frame()
at its detection interval with whatever the pose detector produced.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Callable, Optional

from sitright.analyzer import AnalysisResult, PostureAnalyzer
from sitright.calibration import CalibrationData
from sitright.config import (
    DEFAULT_SETTINGS,
    AdvancedSettings,
    DetectionSettings,
    ReminderSettings,
    Settings,
)
from sitright.landmarks import DetectionFrame
from sitright.reminder import ReminderManager
from sitright.rules import PostureStatus

logger = logging.getLogger(__name__)


class DetectionState(Enum):
    IDLE = auto()
    DETECTING = auto()
    PAUSED = auto()


class PostureMonitor:
    def __init__(
        self,
        calibration: CalibrationData,
        reminder: ReminderManager,
        settings: Settings = DEFAULT_SETTINGS,
    ) -> None:
        self.settings = settings
        self.reminder = reminder
        self.analyzer = PostureAnalyzer(
            calibration,
            settings.detection.sensitivity,
            settings.detection.rules.toggles(),
            debug_mode=settings.advanced.debug_mode,
        )
        self.analyzer.update_custom_thresholds(settings.advanced.custom_thresholds)
        self.state = DetectionState.IDLE
        self.last_result: Optional[AnalysisResult] = None
        self._settings_listeners: list[Callable[[Settings], None]] = []

    @property
    def last_status(self) -> Optional[PostureStatus]:
        return self.last_result.status if self.last_result is not None else None

    # ------------------------------------------------------------------
    # Lifecycle

    def start(self) -> None:
        """Begin (or restart) detection with fresh filter and baseline state.

        Does nothing while detection is disabled in the settings.
        """
        if not self.settings.detection.enabled:
            logger.info("Detection is disabled; not starting")
            return
        self.analyzer.reset()
        self.reminder.dispose()
        self.last_result = None
        self.state = DetectionState.DETECTING
        logger.info("Detection started (interval %d ms)", self.settings.detection.interval_ms)

    def stop(self) -> None:
        self.reminder.dispose()
        self.analyzer.reset()
        self.last_result = None
        self.state = DetectionState.IDLE
        logger.info("Detection stopped")

    def pause(self) -> None:
        if self.state != DetectionState.DETECTING:
            return
        self.reminder.dispose()
        self.analyzer.reset()
        self.state = DetectionState.PAUSED
        logger.info("Detection paused")

    def resume(self) -> None:
        if self.state != DetectionState.PAUSED:
            return
        self.state = DetectionState.DETECTING
        logger.info("Detection resumed")

    # ------------------------------------------------------------------
    # Frames

    def process_frame(self, frame: Optional[DetectionFrame]) -> Optional[AnalysisResult]:
        """Analyse one frame and feed the result to the reminder manager.

        Frames are ignored unless detecting; frames without a usable pose
        produce no result and leave the reminder state alone.
        """
        if self.state != DetectionState.DETECTING or frame is None:
            return None
        result = self.analyzer.analyze_detailed(frame)
        if result is None:
            return None
        self.last_result = result
        self.reminder.on_posture_update(result.status)
        return result

    # ------------------------------------------------------------------
    # Settings

    def add_settings_listener(self, listener: Callable[[Settings], None]) -> None:
        """Call ``listener`` with the new Settings after every update."""
        self._settings_listeners.append(listener)

    def update_detection_settings(self, detection: DetectionSettings) -> None:
        self.analyzer.update_sensitivity(detection.sensitivity)
        self.analyzer.update_rule_toggles(detection.rules.toggles())
        self._replace_settings(detection=detection)
        if not detection.enabled and self.state != DetectionState.IDLE:
            self.stop()

    def update_reminder_config(self, **changes) -> None:
        self.reminder.update_config(**changes)
        self._replace_settings(reminder=ReminderSettings.from_config(self.reminder.config))

    def update_advanced_settings(self, advanced: AdvancedSettings) -> None:
        self.analyzer.set_debug_mode(advanced.debug_mode)
        self.analyzer.update_custom_thresholds(advanced.custom_thresholds)
        self._replace_settings(advanced=advanced)

    def update_calibration(self, calibration: CalibrationData) -> None:
        self.analyzer.update_calibration(calibration)

    def _replace_settings(self, **sections) -> None:
        self.settings = self.settings.model_copy(update=sections)
        for listener in self._settings_listeners:
            listener(self.settings)
