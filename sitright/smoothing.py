"""Per-signal noise filters.

EMAFilter is a one-pole low-pass; JitterFilter is a dead-zone that holds its
output until the input moves by at least ``threshold``. SignalSmoother chains
one of each for every posture signal.
"""

from __future__ import annotations

from typing import Optional

from sitright.angles import SIGNAL_NAMES, PostureAngles

EMA_ALPHA = 0.5

JITTER_THRESHOLDS = {
    "head_forward_angle": 1.0,
    "torso_angle": 1.0,
    "head_tilt_angle": 1.0,
    "face_frame_ratio": 0.02,
    "face_y": 0.02,
    "nose_to_ear_avg": 0.005,
    "shoulder_diff": 1.0,
}


class EMAFilter:
    """Exponential moving average: ``state = alpha * new + (1 - alpha) * state``.

    The first update seeds the state and is returned unchanged.
    """

    def __init__(self, alpha: float) -> None:
        if not 0.0 <= alpha <= 1.0:
            raise ValueError(f"alpha must be between 0 and 1, got {alpha}")
        self.alpha = alpha
        self._value: Optional[float] = None

    @property
    def value(self) -> Optional[float]:
        return self._value

    def update(self, new_value: float) -> float:
        if self._value is None:
            self._value = new_value
        else:
            self._value = self.alpha * new_value + (1.0 - self.alpha) * self._value
        return self._value

    def reset(self) -> None:
        self._value = None


class JitterFilter:
    """Keeps the previous output unless the input moved by ``threshold`` or more."""

    def __init__(self, threshold: float) -> None:
        if threshold < 0:
            raise ValueError(f"threshold must be non-negative, got {threshold}")
        self.threshold = threshold
        self._value: Optional[float] = None

    @property
    def value(self) -> Optional[float]:
        return self._value

    def update(self, new_value: float) -> float:
        if self._value is None or abs(new_value - self._value) >= self.threshold:
            self._value = new_value
        return self._value

    def reset(self) -> None:
        self._value = None


class SignalSmoother:
    """EMA followed by jitter suppression, one chain per posture signal."""

    def __init__(self, alpha: float = EMA_ALPHA, jitter_thresholds: Optional[dict] = None) -> None:
        thresholds = {**JITTER_THRESHOLDS, **(jitter_thresholds or {})}
        self._ema = {name: EMAFilter(alpha) for name in SIGNAL_NAMES}
        self._jitter = {name: JitterFilter(thresholds[name]) for name in SIGNAL_NAMES}

    def update(self, angles: PostureAngles) -> PostureAngles:
        smoothed = {
            name: self._jitter[name].update(self._ema[name].update(getattr(angles, name)))
            for name in SIGNAL_NAMES
        }
        return PostureAngles(**smoothed)

    def reset(self) -> None:
        for name in SIGNAL_NAMES:
            self._ema[name].reset()
            self._jitter[name].reset()
