"""Unit tests for sitright/calibration.py.

Tests cover:
- CalibrationService averaging, progress and over-collection
- CalibrationSession state machine transitions
- Frame filtering (missing or low-visibility frames are skipped)
- Screen-angle reference capture
- Edge case: time budget runs out before enough samples → FAILED state
"""

from __future__ import annotations

import time
from unittest.mock import patch

import pytest

from _helpers import make_angles, make_frame
from sitright.calibration import (
    CalibrationData,
    CalibrationService,
    CalibrationSession,
    CalibrationState,
    CalibrationTimeoutError,
)


def _make_session(**kwargs) -> CalibrationSession:
    kwargs.setdefault("total_samples", 3)
    kwargs.setdefault("interval_ms", 100)
    kwargs.setdefault("timeout_factor", 3)
    return CalibrationSession(**kwargs)


# ---------------------------------------------------------------------------
# Service


class TestCalibrationService:
    def test_rejects_zero_samples(self):
        with pytest.raises(ValueError):
            CalibrationService(0)

    def test_progress_tracks_samples(self):
        service = CalibrationService(4)
        progress = service.add_sample(make_angles())
        assert progress.sample_count == 1
        assert progress.progress == pytest.approx(0.25)
        assert not progress.complete

    def test_completes_at_total(self):
        service = CalibrationService(2)
        service.add_sample(make_angles())
        assert service.add_sample(make_angles()).complete

    def test_extra_samples_ignored(self):
        service = CalibrationService(2)
        service.add_sample(make_angles(head_forward_angle=10.0))
        service.add_sample(make_angles(head_forward_angle=20.0))
        progress = service.add_sample(make_angles(head_forward_angle=90.0))
        assert progress.sample_count == 2
        assert progress.progress == 1.0
        assert service.compute_baseline().baseline.head_forward_angle == pytest.approx(15.0)

    def test_baseline_is_mean(self):
        service = CalibrationService(3)
        for value in (10.0, 12.0, 14.0):
            service.add_sample(make_angles(head_forward_angle=value, face_y=value / 100))
        baseline = service.compute_baseline().baseline
        assert baseline.head_forward_angle == pytest.approx(12.0)
        assert baseline.face_y == pytest.approx(0.12)

    def test_std_dev_reported(self):
        service = CalibrationService(2)
        service.add_sample(make_angles(head_forward_angle=10.0))
        service.add_sample(make_angles(head_forward_angle=14.0))
        result = service.compute_baseline()
        assert result.sample_std_dev.head_forward_angle == pytest.approx(2.0)
        assert result.sample_std_dev.torso_angle == pytest.approx(0.0)

    def test_incomplete_baseline_raises(self):
        service = CalibrationService(3)
        service.add_sample(make_angles())
        with pytest.raises(RuntimeError, match="1/3"):
            service.compute_baseline()

    def test_baseline_timestamp_is_recent(self):
        service = CalibrationService(1)
        service.add_sample(make_angles())
        before = time.time() * 1000.0
        baseline = service.compute_baseline().baseline
        after = time.time() * 1000.0
        assert before <= baseline.timestamp <= after

    def test_reset_clears_samples(self):
        service = CalibrationService(2)
        service.add_sample(make_angles(head_forward_angle=40.0))
        service.reset()
        assert service.sample_count == 0
        service.add_sample(make_angles())
        service.add_sample(make_angles())
        assert service.compute_baseline().baseline.head_forward_angle == pytest.approx(0.0)


class TestCalibrationData:
    def test_angles_round_trip(self):
        angles = make_angles(head_forward_angle=7.0)
        data = CalibrationData.from_angles(angles, timestamp=123.0)
        assert data.angles == angles
        assert data.timestamp == 123.0
        assert data.screen_angle_reference is None


# ---------------------------------------------------------------------------
# Session state machine


class TestSessionState:
    def test_initial_state_is_idle(self):
        assert _make_session().state == CalibrationState.IDLE

    def test_start_transitions_to_collecting(self):
        session = _make_session()
        session.start()
        assert session.state == CalibrationState.COLLECTING

    def test_add_frame_before_start_is_noop(self):
        session = _make_session()
        assert session.add_frame(make_frame()) == CalibrationState.IDLE
        assert session.service.sample_count == 0

    def test_completes_after_total_samples(self):
        session = _make_session()
        session.start()
        states = [session.add_frame(make_frame()) for _ in range(3)]
        assert states == [
            CalibrationState.COLLECTING,
            CalibrationState.COLLECTING,
            CalibrationState.COMPLETE,
        ]
        assert session.baseline is not None
        assert session.progress == 1.0

    def test_add_frame_after_complete_is_noop(self):
        session = _make_session(total_samples=1)
        session.start()
        session.add_frame(make_frame())
        previous = session.result
        session.add_frame(make_frame(head_forward_deg=30.0))
        assert session.result is previous

    def test_restart_clears_previous_attempt(self):
        session = _make_session(total_samples=1)
        session.start()
        session.add_frame(make_frame())
        session.start()
        assert session.result is None
        assert session.service.sample_count == 0
        assert session.state == CalibrationState.COLLECTING

    def test_cancel_returns_to_idle(self):
        session = _make_session()
        session.start()
        session.add_frame(make_frame())
        session.cancel()
        assert session.state == CalibrationState.IDLE
        assert session.progress == 0.0

    def test_get_result_before_completion_raises(self):
        session = _make_session()
        session.start()
        with pytest.raises(RuntimeError, match="not completed"):
            session.get_result()


# ---------------------------------------------------------------------------
# Frame filtering


class TestFrameFiltering:
    def test_none_frame_is_skipped(self):
        session = _make_session()
        session.start()
        session.add_frame(None)
        assert session.service.sample_count == 0

    def test_low_visibility_frame_is_skipped(self):
        session = _make_session()
        session.start()
        session.add_frame(make_frame(visibility=0.3))
        assert session.service.sample_count == 0

    def test_visible_frame_is_kept(self):
        session = _make_session()
        session.start()
        session.add_frame(make_frame())
        assert session.service.sample_count == 1
        assert session.progress == pytest.approx(1 / 3)


# ---------------------------------------------------------------------------
# Baseline contents


class TestSessionBaseline:
    def test_baseline_averages_frames(self):
        session = _make_session(total_samples=2)
        session.start()
        session.add_frame(make_frame(head_forward_deg=10.0))
        session.add_frame(make_frame(head_forward_deg=20.0))
        assert session.baseline.head_forward_angle == pytest.approx(15.0)

    def test_screen_reference_captured(self):
        session = _make_session(total_samples=2)
        session.start()
        session.add_frame(make_frame())
        session.add_frame(make_frame())
        reference = session.baseline.screen_angle_reference
        assert reference is not None
        assert reference.face_y == pytest.approx(0.32)
        assert reference.nose_chin_ratio == pytest.approx(0.4)


# ---------------------------------------------------------------------------
# Timeout


class TestTimeout:
    def test_timeout_budget(self):
        assert _make_session().timeout_s == pytest.approx(0.9)

    def test_no_usable_frames_fails_after_budget(self):
        session = _make_session()
        with patch("sitright.calibration.time.monotonic", return_value=100.0):
            session.start()
        with patch("sitright.calibration.time.monotonic", return_value=100.5):
            assert session.add_frame(None) == CalibrationState.COLLECTING
        with patch("sitright.calibration.time.monotonic", return_value=101.0):
            assert session.add_frame(None) == CalibrationState.FAILED
        assert session.baseline is None
        assert isinstance(session.error, CalibrationTimeoutError)
        assert session.error.collected == 0
        assert session.error.required == 3

    def test_get_result_raises_timeout(self):
        session = _make_session()
        with patch("sitright.calibration.time.monotonic", return_value=0.0):
            session.start()
        with patch("sitright.calibration.time.monotonic", return_value=10.0):
            session.add_frame(make_frame())
        with pytest.raises(CalibrationTimeoutError, match="1/3"):
            session.get_result()

    def test_completing_frame_wins_over_timeout(self):
        session = _make_session(total_samples=1)
        with patch("sitright.calibration.time.monotonic", return_value=0.0):
            session.start()
        with patch("sitright.calibration.time.monotonic", return_value=10.0):
            assert session.add_frame(make_frame()) == CalibrationState.COMPLETE

    def test_failed_session_can_retry(self):
        session = _make_session(total_samples=1)
        with patch("sitright.calibration.time.monotonic", return_value=0.0):
            session.start()
        with patch("sitright.calibration.time.monotonic", return_value=10.0):
            session.add_frame(None)
        assert session.state == CalibrationState.FAILED
        session.start()
        assert session.error is None
        assert session.add_frame(make_frame()) == CalibrationState.COMPLETE

    def test_times_out_without_any_frames(self):
        session = _make_session(total_samples=3, interval_ms=100)
        with patch("sitright.calibration.time.monotonic", return_value=0.0):
            session.start()
        with patch("sitright.calibration.time.monotonic", return_value=0.5):
            assert session.check_timeout() == CalibrationState.COLLECTING
        with patch("sitright.calibration.time.monotonic", return_value=999.0):
            assert session.check_timeout() == CalibrationState.FAILED
        assert session.error.collected == 0
        with pytest.raises(CalibrationTimeoutError):
            session.get_result()

    def test_check_timeout_outside_collection_is_noop(self):
        session = _make_session()
        assert session.check_timeout() == CalibrationState.IDLE
