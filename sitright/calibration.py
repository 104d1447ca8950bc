"""Calibration: establishing the user's good-posture baseline.

CalibrationService collects a fixed number of PostureAngles samples and
averages them into a CalibrationData baseline. CalibrationSession is the
frame-driven capture flow around it: it extracts angles from each detection
frame, tracks progress, and gives up with a CalibrationTimeoutError when the
samples do not arrive within the time budget (usually because the user is
out of shot or poorly lit).

Usage:
    session = CalibrationSession()
    session.start()

    # In your frame loop:
    state = session.add_frame(frame)
    if state == CalibrationState.COMPLETE:
        baseline = session.baseline
    elif state == CalibrationState.FAILED:
        show_retry(session.error)
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from sitright.angles import SIGNAL_NAMES, PostureAngles, angles_from_frame
from sitright.screen_angle import (
    ScreenAngleReference,
    ScreenAngleSignals,
    extract_screen_angle_signals,
)

logger = logging.getLogger(__name__)

TOTAL_SAMPLES = 30
COLLECT_INTERVAL_MS = 100
TIMEOUT_FACTOR = 3


# ---------------------------------------------------------------------------
# Data classes


@dataclass(frozen=True)
class CalibrationData:
    """Baseline posture signals for the current user.

    Never mutated; recalibration produces a new instance.
    """

    head_forward_angle: float
    torso_angle: float
    head_tilt_angle: float
    face_frame_ratio: float
    face_y: float
    nose_to_ear_avg: float
    shoulder_diff: float
    timestamp: float                     # Unix epoch, milliseconds
    screen_angle_reference: Optional[ScreenAngleReference] = None

    @classmethod
    def from_angles(
        cls,
        angles: PostureAngles,
        timestamp: Optional[float] = None,
        screen_angle_reference: Optional[ScreenAngleReference] = None,
    ) -> "CalibrationData":
        if timestamp is None:
            timestamp = time.time() * 1000.0
        return cls(
            **{name: getattr(angles, name) for name in SIGNAL_NAMES},
            timestamp=timestamp,
            screen_angle_reference=screen_angle_reference,
        )

    @property
    def angles(self) -> PostureAngles:
        return PostureAngles(**{name: getattr(self, name) for name in SIGNAL_NAMES})


@dataclass(frozen=True)
class CalibrationProgress:
    sample_count: int
    total_samples: int
    progress: float        # [0.0, 1.0]
    complete: bool


@dataclass(frozen=True)
class CalibrationResult:
    baseline: CalibrationData
    sample_std_dev: PostureAngles


class CalibrationTimeoutError(RuntimeError):
    """Not enough usable frames arrived within the calibration time budget.

    This is a retryable user-facing failure, not a programming error.
    """

    def __init__(self, collected: int, required: int, elapsed_s: float) -> None:
        super().__init__(
            f"Calibration timed out: collected {collected}/{required} samples "
            f"in {elapsed_s:.1f}s"
        )
        self.collected = collected
        self.required = required
        self.elapsed_s = elapsed_s


# ---------------------------------------------------------------------------
# Sample collector


class CalibrationService:
    """Averages a fixed number of posture samples into a baseline.

    Plain mean, no outlier rejection. Samples offered after the target count
    is reached are ignored.
    """

    def __init__(self, total_samples: int = TOTAL_SAMPLES) -> None:
        if total_samples < 1:
            raise ValueError(f"total_samples must be at least 1, got {total_samples}")
        self.total_samples = total_samples
        self._samples: list[PostureAngles] = []
        self._means: dict[str, float] = {name: 0.0 for name in SIGNAL_NAMES}

    @property
    def sample_count(self) -> int:
        return len(self._samples)

    @property
    def progress(self) -> CalibrationProgress:
        count = len(self._samples)
        return CalibrationProgress(
            sample_count=count,
            total_samples=self.total_samples,
            progress=min(count / self.total_samples, 1.0),
            complete=count >= self.total_samples,
        )

    def add_sample(self, angles: PostureAngles) -> CalibrationProgress:
        if len(self._samples) >= self.total_samples:
            return self.progress

        self._samples.append(angles)
        n = len(self._samples)
        for name in SIGNAL_NAMES:
            self._means[name] += (getattr(angles, name) - self._means[name]) / n
        return self.progress

    def compute_baseline(
        self, screen_angle_reference: Optional[ScreenAngleReference] = None
    ) -> CalibrationResult:
        """Return the mean of all collected samples as a new baseline.

        Raises RuntimeError if fewer than ``total_samples`` were collected.
        """
        if len(self._samples) < self.total_samples:
            raise RuntimeError(
                f"Cannot compute baseline: only {len(self._samples)}/{self.total_samples} "
                "samples collected"
            )
        means = PostureAngles(**self._means)
        baseline = CalibrationData.from_angles(means, screen_angle_reference=screen_angle_reference)
        return CalibrationResult(baseline=baseline, sample_std_dev=self._std_devs())

    def reset(self) -> None:
        self._samples = []
        self._means = {name: 0.0 for name in SIGNAL_NAMES}

    def _std_devs(self) -> PostureAngles:
        n = len(self._samples)
        return PostureAngles(
            **{
                name: math.sqrt(
                    sum((getattr(s, name) - self._means[name]) ** 2 for s in self._samples) / n
                )
                for name in SIGNAL_NAMES
            }
        )


# ---------------------------------------------------------------------------
# Capture flow


class CalibrationState(Enum):
    IDLE = auto()        # Not yet started
    COLLECTING = auto()  # Accepting frames
    COMPLETE = auto()    # Baseline computed
    FAILED = auto()      # Time budget ran out before enough samples arrived


class CalibrationSession:
    """Drives one calibration attempt from a stream of detection frames.

    The time budget is ``timeout_factor * total_samples * interval_ms``: the
    capture loop is expected to deliver a frame every ``interval_ms``, and we
    tolerate up to ``timeout_factor`` times as many ticks for dropped frames.
    """

    def __init__(
        self,
        total_samples: int = TOTAL_SAMPLES,
        interval_ms: int = COLLECT_INTERVAL_MS,
        timeout_factor: float = TIMEOUT_FACTOR,
    ) -> None:
        self.service = CalibrationService(total_samples)
        self.interval_ms = interval_ms
        self.timeout_factor = timeout_factor

        self.state: CalibrationState = CalibrationState.IDLE
        self.result: Optional[CalibrationResult] = None
        self.error: Optional[CalibrationTimeoutError] = None

        self._screen_signals: list[ScreenAngleSignals] = []
        self._start_time: Optional[float] = None

    @property
    def timeout_s(self) -> float:
        return self.timeout_factor * self.service.total_samples * self.interval_ms / 1000.0

    @property
    def baseline(self) -> Optional[CalibrationData]:
        return self.result.baseline if self.result is not None else None

    @property
    def progress(self) -> float:
        """Sample progress in [0.0, 1.0].  1.0 once complete."""
        if self.state == CalibrationState.COMPLETE:
            return 1.0
        return self.service.progress.progress

    def start(self) -> None:
        """Begin (or restart) a calibration attempt."""
        self.service.reset()
        self._screen_signals = []
        self.result = None
        self.error = None
        self._start_time = time.monotonic()
        self.state = CalibrationState.COLLECTING

    def add_frame(self, frame) -> CalibrationState:
        """Feed one DetectionFrame (or None when no pose was found).

        Returns:
            The current CalibrationState after processing.
        """
        if self.state != CalibrationState.COLLECTING:
            return self.state

        angles = angles_from_frame(frame) if frame is not None else None
        if angles is not None:
            self._screen_signals.append(extract_screen_angle_signals(frame.landmarks))
            if self.service.add_sample(angles).complete:
                self._finalize()
                return self.state

        return self.check_timeout()

    def check_timeout(self) -> CalibrationState:
        """Fail the attempt once the time budget has run out.

        Called on every capture tick, including ticks where the camera gave
        no frame at all, so a dead camera still ends in FAILED.
        """
        if self.state != CalibrationState.COLLECTING:
            return self.state

        elapsed = time.monotonic() - self._start_time  # type: ignore[operator]
        if elapsed >= self.timeout_s:
            self.error = CalibrationTimeoutError(
                self.service.sample_count, self.service.total_samples, elapsed
            )
            self.state = CalibrationState.FAILED
            logger.warning("%s", self.error)

        return self.state

    def cancel(self) -> None:
        self.service.reset()
        self._screen_signals = []
        self._start_time = None
        self.state = CalibrationState.IDLE

    def get_result(self) -> CalibrationResult:
        """Return the finished result, raising the timeout error if the attempt failed."""
        if self.error is not None:
            raise self.error
        if self.result is None:
            raise RuntimeError("Calibration has not completed")
        return self.result

    def _finalize(self) -> None:
        self.result = self.service.compute_baseline(_mean_screen_signals(self._screen_signals))
        self.state = CalibrationState.COMPLETE
        logger.info(
            "Calibration complete: head_forward=%.1f° head_tilt=%.1f° face_ratio=%.3f",
            self.result.baseline.head_forward_angle,
            self.result.baseline.head_tilt_angle,
            self.result.baseline.face_frame_ratio,
        )


def _mean_screen_signals(signals: list[ScreenAngleSignals]) -> Optional[ScreenAngleReference]:
    if not signals:
        return None
    n = len(signals)
    return ScreenAngleReference(
        face_y=sum(s.face_y for s in signals) / n,
        nose_chin_ratio=sum(s.nose_chin_ratio for s in signals) / n,
        eye_mouth_ratio=sum(s.eye_mouth_ratio for s in signals) / n,
    )
