"""Slowly drifting, hard-bounded posture baseline.

The baseline follows the user's live posture only after a sustained stretch
of good posture, at a very low learning rate, and never moves further than
MAX_DRIFT from the original calibration. Any bad frame restarts the clock.
"""

from __future__ import annotations

import dataclasses

from sitright.angles import SIGNAL_NAMES, PostureAngles
from sitright.calibration import CalibrationData
from sitright.geometry import clamp

DRIFT_THRESHOLD_S = 30.0
LEARNING_RATE = 0.001

MAX_DRIFT = {
    "head_forward_angle": 8.0,
    "torso_angle": 8.0,
    "head_tilt_angle": 8.0,
    "face_frame_ratio": 0.1,
    "face_y": 0.1,
    "nose_to_ear_avg": 0.1,
    "shoulder_diff": 8.0,
}


class AdaptiveBaseline:
    def __init__(self, original: CalibrationData) -> None:
        self._original = original
        self._current = original
        self._good_posture_duration = 0.0

    @property
    def original(self) -> CalibrationData:
        return self._original

    @property
    def current(self) -> CalibrationData:
        return self._current

    @property
    def good_posture_duration(self) -> float:
        """Seconds of uninterrupted good posture."""
        return self._good_posture_duration

    def update(
        self, is_good_posture: bool, current_angles: PostureAngles, delta_time_s: float
    ) -> CalibrationData:
        if not is_good_posture:
            self._good_posture_duration = 0.0
            return self._current

        previous = self._good_posture_duration
        self._good_posture_duration += delta_time_s

        if self._good_posture_duration <= DRIFT_THRESHOLD_S:
            return self._current

        if previous > DRIFT_THRESHOLD_S:
            effective_drift_time = delta_time_s
        else:
            effective_drift_time = self._good_posture_duration - DRIFT_THRESHOLD_S

        self._current = self._drift_towards(current_angles, effective_drift_time)
        return self._current

    def reset(self) -> None:
        self._current = self._original
        self._good_posture_duration = 0.0

    def _drift_towards(self, target: PostureAngles, drift_time_s: float) -> CalibrationData:
        updated = {}
        for name in SIGNAL_NAMES:
            current = getattr(self._current, name)
            original = getattr(self._original, name)
            drifted = current + (getattr(target, name) - current) * LEARNING_RATE * drift_time_s
            limit = MAX_DRIFT[name]
            updated[name] = original + clamp(drifted - original, -limit, limit)
        return dataclasses.replace(self._current, **updated)
