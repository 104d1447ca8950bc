"""Unit tests for sitright/analyzer.py."""

from __future__ import annotations

import dataclasses
import logging

import pytest

from _helpers import make_calibration, make_frame, make_landmarks
from sitright.analyzer import PostureAnalyzer
from sitright.rules import PostureRule, RuleToggles
from sitright.screen_angle import extract_screen_angle_signals


def _make_analyzer(sensitivity=1.0, toggles=None, calibration=None, **kwargs) -> PostureAnalyzer:
    return PostureAnalyzer(
        calibration or make_calibration(),
        sensitivity,
        toggles or RuleToggles(),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Rule evaluation through the pipeline


class TestForwardHead:
    def test_neutral_posture_is_good(self):
        status = _make_analyzer().analyze(make_frame())
        assert status.is_good
        assert status.violations == ()

    def test_ten_degrees_at_max_sensitivity_violates(self):
        status = _make_analyzer().analyze(make_frame(head_forward_deg=10.0))
        assert not status.is_good
        assert [v.rule for v in status.violations] == [PostureRule.FORWARD_HEAD]
        # threshold 15 * 0.5 = 7.5
        assert status.violations[0].severity == pytest.approx(1 / 3)

    def test_five_degrees_at_max_sensitivity_is_fine(self):
        assert _make_analyzer().analyze(make_frame(head_forward_deg=5.0)).is_good

    def test_disabled_rule_never_fires(self):
        toggles = dataclasses.replace(RuleToggles(), forward_head=False)
        status = _make_analyzer(toggles=toggles).analyze(make_frame(head_forward_deg=45.0))
        assert status.is_good

    def test_low_sensitivity_is_lenient(self):
        analyzer = _make_analyzer(sensitivity=0.0)
        assert analyzer.analyze(make_frame(head_forward_deg=25.0)).is_good

    def test_is_good_iff_no_violations(self):
        analyzer = _make_analyzer()
        for degrees in (0.0, 20.0, 3.0, 40.0):
            status = analyzer.analyze(make_frame(head_forward_deg=degrees))
            assert status.is_good == (len(status.violations) == 0)


class TestStatusFields:
    def test_confidence_and_timestamp(self):
        status = _make_analyzer().analyze(make_frame(timestamp_ms=1234.0, visibility=0.8))
        assert status.confidence == pytest.approx(0.8)
        assert status.timestamp == 1234.0

    def test_detailed_result_carries_deviations(self):
        result = _make_analyzer().analyze_detailed(make_frame(head_forward_deg=12.0))
        assert result.angles.head_forward_angle == pytest.approx(12.0)
        assert result.deviations.head_forward == pytest.approx(12.0)
        assert result.deviations.face_frame_ratio == pytest.approx(0.0, abs=1e-9)


# ---------------------------------------------------------------------------
# Unusable frames


class TestUnusableFrames:
    def test_low_visibility_returns_none(self):
        assert _make_analyzer().analyze(make_frame(visibility=0.2)) is None

    def test_unusable_frame_leaves_state_untouched(self):
        analyzer = _make_analyzer()
        analyzer.analyze(make_frame(visibility=0.2, head_forward_deg=40.0))
        # First usable frame passes through the filters unchanged
        result = analyzer.analyze_detailed(make_frame(head_forward_deg=4.0))
        assert result.angles.head_forward_angle == pytest.approx(4.0)


# ---------------------------------------------------------------------------
# Smoothing and adaptive baseline


class TestTemporalBehaviour:
    def test_single_spike_is_smoothed(self):
        analyzer = _make_analyzer()
        analyzer.analyze(make_frame(timestamp_ms=0))
        result = analyzer.analyze_detailed(make_frame(timestamp_ms=500, head_forward_deg=12.0))
        assert result.angles.head_forward_angle == pytest.approx(6.0)
        assert result.status.is_good

    def test_good_posture_drifts_baseline(self):
        analyzer = _make_analyzer()
        analyzer.analyze(make_frame(timestamp_ms=0, head_forward_deg=2.0))
        analyzer.analyze(make_frame(timestamp_ms=40_000, head_forward_deg=2.0))
        # 10 s past the drift threshold at 0.001/s towards 2 degrees
        assert analyzer.effective_baseline.head_forward_angle == pytest.approx(0.02)

    def test_bad_posture_blocks_drift(self):
        analyzer = _make_analyzer(sensitivity=0.5)
        analyzer.analyze(make_frame(timestamp_ms=0, head_forward_deg=30.0))
        analyzer.analyze(make_frame(timestamp_ms=40_000, head_forward_deg=30.0))
        assert analyzer.effective_baseline == analyzer.calibration

    def test_backwards_timestamp_does_not_drift(self):
        analyzer = _make_analyzer()
        analyzer.analyze(make_frame(timestamp_ms=100_000, head_forward_deg=2.0))
        analyzer.analyze(make_frame(timestamp_ms=0, head_forward_deg=2.0))
        assert analyzer.effective_baseline == analyzer.calibration

    def test_reset_restores_calibration(self):
        analyzer = _make_analyzer()
        analyzer.analyze(make_frame(timestamp_ms=0, head_forward_deg=2.0))
        analyzer.analyze(make_frame(timestamp_ms=40_000, head_forward_deg=2.0))
        analyzer.reset()
        assert analyzer.effective_baseline == analyzer.calibration
        result = analyzer.analyze_detailed(make_frame(head_forward_deg=30.0))
        assert result.angles.head_forward_angle == pytest.approx(30.0)


# ---------------------------------------------------------------------------
# Runtime updates


class TestUpdates:
    def test_update_calibration_replaces_baseline(self):
        analyzer = _make_analyzer()
        analyzer.update_calibration(make_calibration(head_forward_angle=10.0))
        assert analyzer.effective_baseline.head_forward_angle == 10.0
        analyzer.reset()
        assert analyzer.analyze(make_frame(head_forward_deg=10.0)).is_good

    def test_update_sensitivity(self):
        analyzer = _make_analyzer(sensitivity=0.0)
        analyzer.update_sensitivity(1.0)
        assert not analyzer.analyze(make_frame(head_forward_deg=10.0)).is_good

    def test_update_rule_toggles(self):
        analyzer = _make_analyzer()
        analyzer.update_rule_toggles(dataclasses.replace(RuleToggles(), forward_head=False))
        assert analyzer.analyze(make_frame(head_forward_deg=30.0)).is_good

    def test_custom_thresholds(self):
        analyzer = _make_analyzer(sensitivity=0.5)
        assert analyzer.analyze(make_frame(head_forward_deg=10.0)).is_good
        analyzer.reset()
        analyzer.update_custom_thresholds({"forward_head": 5.0})
        assert not analyzer.analyze(make_frame(head_forward_deg=10.0)).is_good

    def test_debug_mode_logs_each_frame(self, caplog):
        analyzer = _make_analyzer(debug_mode=True)
        with caplog.at_level(logging.DEBUG, logger="sitright.analyzer"):
            analyzer.analyze(make_frame(head_forward_deg=10.0))
        assert "FORWARD_HEAD" in caplog.text

    def test_set_debug_mode_toggles_logging(self, caplog):
        analyzer = _make_analyzer()
        analyzer.set_debug_mode(True)
        with caplog.at_level(logging.DEBUG, logger="sitright.analyzer"):
            analyzer.analyze(make_frame())
        assert "head_fwd" in caplog.text

    def test_debug_mode_off_is_quiet(self, caplog):
        analyzer = _make_analyzer()
        with caplog.at_level(logging.DEBUG, logger="sitright.analyzer"):
            analyzer.analyze(make_frame())
        assert caplog.text == ""


# ---------------------------------------------------------------------------
# Screen-angle compensation


class TestScreenAngle:
    def test_matching_reference_changes_nothing(self):
        reference = extract_screen_angle_signals(make_landmarks())
        calibration = dataclasses.replace(make_calibration(), screen_angle_reference=reference)
        analyzer = _make_analyzer(calibration=calibration)
        result = analyzer.analyze_detailed(make_frame(head_forward_deg=6.0))
        assert result.angles.head_forward_angle == pytest.approx(6.0)

    def test_shifted_reference_compensates_head_forward(self):
        reference = dataclasses.replace(
            extract_screen_angle_signals(make_landmarks()), face_y=0.22
        )
        analyzer = _make_analyzer(screen_angle_reference=reference)
        result = analyzer.analyze_detailed(make_frame(head_forward_deg=6.0))
        # pitch delta 0.1 * 45 = 4.5 degrees, 80% of it removed
        assert result.angles.head_forward_angle == pytest.approx(6.0 - 3.6)

    def test_clearing_reference_disables_compensation(self):
        reference = dataclasses.replace(
            extract_screen_angle_signals(make_landmarks()), face_y=0.22
        )
        analyzer = _make_analyzer(screen_angle_reference=reference)
        analyzer.update_screen_angle_reference(None)
        result = analyzer.analyze_detailed(make_frame(head_forward_deg=6.0))
        assert result.angles.head_forward_angle == pytest.approx(6.0)
