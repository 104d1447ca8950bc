"""Per-frame posture analysis.

PostureAnalyzer runs the whole signal chain for one DetectionFrame:

    landmarks -> angles -> EMA + jitter -> screen-angle compensation
              -> adaptive baseline -> deviations -> rules -> PostureStatus

It is synchronous and stateful (filters, baseline, last timestamp), so one
instance must only ever be fed from a single capture loop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sitright.adaptive_baseline import AdaptiveBaseline
from sitright.angles import PostureAngles, angles_from_frame
from sitright.calibration import CalibrationData
from sitright.landmarks import DetectionFrame, landmark_confidence
from sitright.rules import (
    AngleDeviations,
    PostureStatus,
    RuleToggles,
    evaluate_all_rules,
    scaled_thresholds,
)
from sitright.screen_angle import (
    ScreenAngleReference,
    compensate_angles,
    estimate_angle_change,
    extract_screen_angle_signals,
)
from sitright.smoothing import SignalSmoother

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisResult:
    status: PostureStatus
    angles: PostureAngles
    deviations: AngleDeviations


class _AnalyzerState:
    """Everything the analyzer carries from one frame to the next."""

    def __init__(self, calibration: CalibrationData) -> None:
        self.smoother = SignalSmoother()
        self.baseline = AdaptiveBaseline(calibration)
        self.last_timestamp_ms: Optional[float] = None
        self.previous_is_good = True

    def delta_time_s(self, timestamp_ms: float) -> float:
        if self.last_timestamp_ms is None:
            self.last_timestamp_ms = timestamp_ms
            return 0.0
        delta = (timestamp_ms - self.last_timestamp_ms) / 1000.0
        self.last_timestamp_ms = timestamp_ms
        return max(0.0, delta)

    def reset(self) -> None:
        self.smoother.reset()
        self.baseline.reset()
        self.last_timestamp_ms = None
        self.previous_is_good = True


class PostureAnalyzer:
    def __init__(
        self,
        calibration: CalibrationData,
        sensitivity: float,
        rule_toggles: RuleToggles,
        screen_angle_reference: Optional[ScreenAngleReference] = None,
        debug_mode: bool = False,
    ) -> None:
        self._calibration = calibration
        self._sensitivity = sensitivity
        self._rule_toggles = rule_toggles
        self._custom_thresholds: Optional[dict[str, float]] = None
        self._screen_angle_reference = (
            screen_angle_reference
            if screen_angle_reference is not None
            else calibration.screen_angle_reference
        )
        self._debug_mode = debug_mode
        self._state = _AnalyzerState(calibration)

    # ------------------------------------------------------------------
    # Public API

    @property
    def calibration(self) -> CalibrationData:
        return self._calibration

    @property
    def effective_baseline(self) -> CalibrationData:
        return self._state.baseline.current

    def analyze_detailed(self, frame: DetectionFrame) -> Optional[AnalysisResult]:
        """Analyse one frame.

        Returns None, without touching any filter or baseline state, when the
        frame has no usable pose.
        """
        raw = angles_from_frame(frame)
        if raw is None:
            return None

        state = self._state
        smoothed = state.smoother.update(raw)
        smoothed = self._compensate_screen_angle(smoothed, frame)

        baseline = state.baseline.update(
            state.previous_is_good, smoothed, state.delta_time_s(frame.timestamp_ms)
        )
        deviations = AngleDeviations(
            head_forward=smoothed.head_forward_angle - baseline.head_forward_angle,
            torso_slouch=smoothed.torso_angle - baseline.torso_angle,
            head_tilt=smoothed.head_tilt_angle - baseline.head_tilt_angle,
            face_frame_ratio=smoothed.face_frame_ratio - baseline.face_frame_ratio,
            face_y_delta=smoothed.face_y - baseline.face_y,
            nose_to_ear_avg=smoothed.nose_to_ear_avg - baseline.nose_to_ear_avg,
            shoulder_diff=smoothed.shoulder_diff - baseline.shoulder_diff,
        )

        thresholds = scaled_thresholds(self._sensitivity, self._custom_thresholds)
        violations = evaluate_all_rules(deviations, thresholds, self._rule_toggles)
        is_good = not violations

        if self._debug_mode:
            logger.debug(
                "head_fwd %.1f (base %.1f, dev %+.1f / %.1f) | tilt dev %+.1f | "
                "face_ratio dev %+.3f | shoulder dev %+.1f | [%s]",
                smoothed.head_forward_angle,
                baseline.head_forward_angle,
                deviations.head_forward,
                thresholds.forward_head,
                deviations.head_tilt,
                deviations.face_frame_ratio,
                deviations.shoulder_diff,
                ",".join(v.rule.value for v in violations),
            )

        state.previous_is_good = is_good
        status = PostureStatus(
            is_good=is_good,
            violations=violations,
            confidence=landmark_confidence(frame.world_landmarks),
            timestamp=frame.timestamp_ms,
        )
        return AnalysisResult(status=status, angles=smoothed, deviations=deviations)

    def analyze(self, frame: DetectionFrame) -> Optional[PostureStatus]:
        result = self.analyze_detailed(frame)
        return result.status if result is not None else None

    def update_calibration(self, calibration: CalibrationData) -> None:
        """Swap in a new baseline. Smoothing filters keep their history."""
        self._calibration = calibration
        self._state.baseline = AdaptiveBaseline(calibration)
        if calibration.screen_angle_reference is not None:
            self._screen_angle_reference = calibration.screen_angle_reference

    def update_sensitivity(self, sensitivity: float) -> None:
        self._sensitivity = sensitivity

    def update_rule_toggles(self, rule_toggles: RuleToggles) -> None:
        self._rule_toggles = rule_toggles

    def update_custom_thresholds(self, overrides: Optional[dict[str, float]]) -> None:
        self._custom_thresholds = dict(overrides) if overrides else None

    def update_screen_angle_reference(self, reference: Optional[ScreenAngleReference]) -> None:
        self._screen_angle_reference = reference

    def set_debug_mode(self, enabled: bool) -> None:
        self._debug_mode = enabled

    def reset(self) -> None:
        """Forget all filter and baseline history (call whenever detection restarts)."""
        self._state.reset()

    # ------------------------------------------------------------------
    # Internal helpers

    def _compensate_screen_angle(
        self, angles: PostureAngles, frame: DetectionFrame
    ) -> PostureAngles:
        if self._screen_angle_reference is None:
            return angles
        signals = extract_screen_angle_signals(frame.landmarks)
        pitch_delta = estimate_angle_change(signals, self._screen_angle_reference)
        if pitch_delta == 0:
            return angles
        return compensate_angles(angles, pitch_delta)
