"""Posture rules, thresholds and violations."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sitright.geometry import clamp


class PostureRule(str, Enum):
    FORWARD_HEAD = "FORWARD_HEAD"
    SLOUCH = "SLOUCH"
    HEAD_TILT = "HEAD_TILT"
    TOO_CLOSE = "TOO_CLOSE"
    SHOULDER_ASYMMETRY = "SHOULDER_ASYMMETRY"


@dataclass(frozen=True)
class PostureViolation:
    rule: PostureRule
    severity: float   # [0, 1]
    message: str


@dataclass(frozen=True)
class PostureStatus:
    is_good: bool
    violations: tuple[PostureViolation, ...]
    confidence: float
    timestamp: float


@dataclass(frozen=True)
class AngleDeviations:
    """Current smoothed signal minus the effective baseline, per signal."""

    head_forward: float
    torso_slouch: float
    head_tilt: float
    face_frame_ratio: float
    face_y_delta: float
    nose_to_ear_avg: float
    shoulder_diff: float


@dataclass(frozen=True)
class RuleToggles:
    forward_head: bool = True
    slouch: bool = False
    head_tilt: bool = True
    too_close: bool = True
    shoulder_asymmetry: bool = True


@dataclass(frozen=True)
class RuleThresholds:
    forward_head: float
    slouch: float
    head_tilt: float
    too_close: float
    shoulder_asymmetry: float


DEFAULT_THRESHOLDS = RuleThresholds(
    forward_head=15.0,
    slouch=20.0,
    head_tilt=12.0,
    too_close=0.35,
    shoulder_asymmetry=10.0,
)


def threshold_scale(sensitivity: float) -> float:
    """2.0 at sensitivity 0 (lenient) down to 0.5 at sensitivity 1 (strict)."""
    return 2.0 - 1.5 * clamp(sensitivity, 0.0, 1.0)


def scaled_thresholds(
    sensitivity: float, overrides: Optional[dict[str, float]] = None
) -> RuleThresholds:
    """Nominal thresholds (optionally overridden per rule) scaled by sensitivity."""
    nominal = dataclasses.replace(DEFAULT_THRESHOLDS, **(overrides or {}))
    scale = threshold_scale(sensitivity)
    return RuleThresholds(
        **{f.name: getattr(nominal, f.name) * scale for f in dataclasses.fields(RuleThresholds)}
    )


# ---------------------------------------------------------------------------
# Rules


def compute_severity(deviation: float, threshold: float) -> float:
    """0 at the threshold, 1 at twice the threshold, capped."""
    if threshold == 0:
        return 1.0
    return clamp(deviation / threshold - 1.0, 0.0, 1.0)


def _signed_rule(rule: PostureRule, message: str, deviation: float, threshold: float):
    if deviation <= threshold:
        return None
    return PostureViolation(rule, compute_severity(deviation, threshold), message)


def _absolute_rule(rule: PostureRule, message: str, deviation: float, threshold: float):
    return _signed_rule(rule, message, abs(deviation), threshold)


def forward_head_rule(deviation: float, threshold: float) -> Optional[PostureViolation]:
    return _signed_rule(PostureRule.FORWARD_HEAD, "Head is leaning forward", deviation, threshold)


def slouch_rule(deviation: float, threshold: float) -> Optional[PostureViolation]:
    return _signed_rule(PostureRule.SLOUCH, "Slouching detected", deviation, threshold)


def head_tilt_rule(deviation: float, threshold: float) -> Optional[PostureViolation]:
    return _absolute_rule(PostureRule.HEAD_TILT, "Head is tilted", deviation, threshold)


def too_close_rule(deviation: float, threshold: float) -> Optional[PostureViolation]:
    return _signed_rule(PostureRule.TOO_CLOSE, "Too close to screen", deviation, threshold)


def shoulder_asymmetry_rule(deviation: float, threshold: float) -> Optional[PostureViolation]:
    return _absolute_rule(
        PostureRule.SHOULDER_ASYMMETRY, "Shoulders are uneven", deviation, threshold
    )


def evaluate_all_rules(
    deviations: AngleDeviations, thresholds: RuleThresholds, toggles: RuleToggles
) -> tuple[PostureViolation, ...]:
    checks = (
        (toggles.forward_head, forward_head_rule, deviations.head_forward, thresholds.forward_head),
        (toggles.slouch, slouch_rule, deviations.torso_slouch, thresholds.slouch),
        (toggles.head_tilt, head_tilt_rule, deviations.head_tilt, thresholds.head_tilt),
        (toggles.too_close, too_close_rule, deviations.face_frame_ratio, thresholds.too_close),
        (
            toggles.shoulder_asymmetry,
            shoulder_asymmetry_rule,
            deviations.shoulder_diff,
            thresholds.shoulder_asymmetry,
        ),
    )
    violations = []
    for enabled, rule, deviation, threshold in checks:
        if not enabled:
            continue
        result = rule(deviation, threshold)
        if result is not None:
            violations.append(result)
    return tuple(violations)
