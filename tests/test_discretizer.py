"""
Unit tests for PID discretization.
"""

import pytest
import numpy as np
from scipy import signal
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from lockbox_control.core.discretizer import (
    bilinear,
    continuous_pid,
    discretize_pid,
    pid_polynomials,
)
from lockbox_control.core.filters import RecursiveFilter
from lockbox_control.core.pid_params import PIDSpec
from lockbox_control.utils.validators import InvalidControllerSpec


class TestPIDPolynomials:
    """Tests for the continuous controller."""

    def test_proportional_only(self):
        """Pure P has no dynamics."""
        num, den = pid_polynomials(PIDSpec(kp=2.0, ki=0.0, kd=0.0))
        np.testing.assert_allclose(num, [2.0])
        np.testing.assert_allclose(den, [1.0])

    def test_pi_structure(self):
        """PI adds the pole at the origin."""
        num, den = pid_polynomials(PIDSpec(kp=2.0, ki=5.0, kd=0.0))
        np.testing.assert_allclose(num, [2.0, 5.0])
        np.testing.assert_allclose(den, [1.0, 0.0])

    def test_pid_structure(self):
        """PID with filtered derivative: (Kp + Kd N) s^2 + (Kp N + Ki) s + Ki N over s (s + N)."""
        kp, ki, kd, n = 1.0, 10.0, 0.5, 100.0
        num, den = pid_polynomials(PIDSpec(kp=kp, ki=ki, kd=kd, filter_coefficient=n))
        np.testing.assert_allclose(num, [kp + kd * n, kp * n + ki, ki * n])
        np.testing.assert_allclose(den, [1.0, n, 0.0])

    def test_continuous_matches_formula(self):
        """C(s) = Kp + Ki/s + Kd N s / (s + N) on the imaginary axis."""
        kp, ki, kd, n = 0.3, 40.0, 1e-3, 1e4
        controller = continuous_pid(PIDSpec(kp=kp, ki=ki, kd=kd, filter_coefficient=n))
        s = 1j * np.logspace(0, 5, 20)
        expected = kp + ki / s + kd * n * s / (s + n)
        np.testing.assert_allclose(controller.evaluate(s), expected, rtol=1e-9)


class TestBilinear:
    """Tests for the Tustin transform."""

    def test_proportional_literal(self):
        """Kp = 1 alone yields b = [1], a = [1] exactly."""
        f = discretize_pid(PIDSpec(kp=1.0, ki=0.0, kd=0.0, sample_time=1e-6))
        assert np.array_equal(f.b, np.array([1.0]))
        assert np.array_equal(f.a, np.array([1.0]))
        assert f.order == 0

    @pytest.mark.parametrize("spec", [
        PIDSpec(kp=0.5, ki=200.0, kd=0.0, sample_time=1e-4),
        PIDSpec(kp=1.0, ki=50.0, kd=0.01, filter_coefficient=500.0, sample_time=1e-4),
        PIDSpec(kp=0.0, ki=0.0, kd=0.02, filter_coefficient=1e3, sample_time=1e-3),
        PIDSpec(kp=-0.2, ki=-30.0, kd=0.0, sample_time=1e-3),
    ])
    def test_matches_scipy_bilinear(self, spec):
        """Agrees with scipy.signal.bilinear."""
        num, den = pid_polynomials(spec)
        b_ref, a_ref = signal.bilinear(num, den, fs=1.0 / spec.sample_time)
        f = discretize_pid(spec)
        np.testing.assert_allclose(f.b, b_ref, rtol=1e-9, atol=1e-12)
        np.testing.assert_allclose(f.a, a_ref, rtol=1e-9, atol=1e-12)

    def test_frequency_warping(self):
        """H_d(e^{jwT}) equals C(j (2/T) tan(wT/2))."""
        spec = PIDSpec(kp=1.0, ki=300.0, kd=2e-3, filter_coefficient=2e3, sample_time=1e-4)
        f = discretize_pid(spec)
        w_digital = np.linspace(0.01, 3.0, 40)
        _, h = signal.freqz(f.b, f.a, worN=w_digital)
        analog = (2 / spec.sample_time) * np.tan(w_digital / 2)
        expected = continuous_pid(spec).frequency_response(analog)
        np.testing.assert_allclose(h, expected, rtol=1e-8)

    def test_integrator_pole_at_one(self):
        """The integrator maps to z = 1."""
        f = discretize_pid(PIDSpec(kp=0.1, ki=100.0, kd=0.0, sample_time=1e-6))
        assert np.sum(f.a) == pytest.approx(0.0, abs=1e-12)

    def test_non_positive_sample_time(self):
        """Bilinear rejects Ts <= 0."""
        with pytest.raises(InvalidControllerSpec):
            bilinear([1.0], [1.0, 1.0], 0.0)
        with pytest.raises(InvalidControllerSpec):
            bilinear([1.0], [1.0, 1.0], -1e-6)

    def test_denominator_vanishes(self):
        """A pole at s = 2/Ts cannot be transformed."""
        with pytest.raises(InvalidControllerSpec):
            bilinear([1.0], [1.0, -2.0], 1.0)


class TestIntegratorBehavior:
    """Tests for the discretized integrator in a loop."""

    def test_monotonic_under_constant_error(self):
        """Ki > 0, Kp = Kd = 0: output strictly increases over 1000 unit-error steps."""
        ki, ts = 100.0, 1e-6
        controller = RecursiveFilter(discretize_pid(PIDSpec(kp=0.0, ki=ki, kd=0.0, sample_time=ts)))
        outputs = np.array([controller.update(1.0) for _ in range(1000)])
        assert np.all(np.diff(outputs) > 0)
        assert outputs[-1] == pytest.approx(ki * ts * 999.5)

    def test_block_equals_sample_by_sample(self):
        """Block processing matches per-sample updates."""
        spec = PIDSpec(kp=0.4, ki=1e3, kd=1e-4, filter_coefficient=1e4, sample_time=1e-5)
        x = np.random.default_rng(0).standard_normal(200)
        block = discretize_pid(spec).process(x)
        single = RecursiveFilter(discretize_pid(spec))
        stepped = np.array([single.update(v) for v in x])
        np.testing.assert_allclose(block, stepped)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
