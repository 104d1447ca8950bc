"""Unit tests for sitright/smoothing.py."""

from __future__ import annotations

import pytest

from _helpers import make_angles
from sitright.smoothing import EMAFilter, JitterFilter, SignalSmoother


class TestEMAFilter:
    def test_first_value_passes_through(self):
        f = EMAFilter(0.3)
        assert f.update(42.0) == 42.0

    def test_half_alpha_averages(self):
        f = EMAFilter(0.5)
        f.update(10.0)
        assert f.update(20.0) == pytest.approx(15.0)

    def test_alpha_one_is_passthrough(self):
        f = EMAFilter(1.0)
        for value in (3.0, -7.5, 100.0, 0.0):
            assert f.update(value) == value

    def test_alpha_zero_freezes_first_value(self):
        f = EMAFilter(0.0)
        f.update(5.0)
        for value in (10.0, -3.0, 99.0):
            assert f.update(value) == 5.0

    def test_reset_clears_state(self):
        f = EMAFilter(0.5)
        f.update(10.0)
        f.reset()
        assert f.value is None
        assert f.update(30.0) == 30.0

    @pytest.mark.parametrize("alpha", [-0.1, 1.01])
    def test_out_of_range_alpha_raises(self, alpha):
        with pytest.raises(ValueError, match="alpha"):
            EMAFilter(alpha)


class TestJitterFilter:
    def test_small_change_is_held(self):
        f = JitterFilter(5.0)
        f.update(10.0)
        assert f.update(12.0) == 10.0

    def test_change_at_threshold_updates(self):
        f = JitterFilter(5.0)
        f.update(10.0)
        f.update(12.0)
        assert f.update(15.0) == 15.0

    def test_first_value_accepted(self):
        assert JitterFilter(100.0).update(1.0) == 1.0

    def test_zero_threshold_always_updates(self):
        f = JitterFilter(0.0)
        f.update(1.0)
        assert f.update(1.0001) == 1.0001

    def test_reset_clears_state(self):
        f = JitterFilter(5.0)
        f.update(10.0)
        f.reset()
        assert f.update(11.0) == 11.0

    def test_negative_threshold_raises(self):
        with pytest.raises(ValueError, match="threshold"):
            JitterFilter(-1.0)


class TestSignalSmoother:
    def test_first_update_is_raw(self):
        smoother = SignalSmoother()
        angles = make_angles(head_forward_angle=12.0)
        assert smoother.update(angles) == angles

    def test_ema_then_jitter(self):
        smoother = SignalSmoother()
        smoother.update(make_angles(head_forward_angle=10.0))
        # EMA -> 15.0, jitter step of 5 passes
        assert smoother.update(make_angles(head_forward_angle=20.0)).head_forward_angle == pytest.approx(15.0)
        # EMA -> 15.5, jitter holds 15.0
        assert smoother.update(make_angles(head_forward_angle=16.0)).head_forward_angle == pytest.approx(15.0)

    def test_reset_forgets_history(self):
        smoother = SignalSmoother()
        smoother.update(make_angles(head_forward_angle=40.0))
        smoother.reset()
        assert smoother.update(make_angles()).head_forward_angle == 0.0
