"""
Unit tests for TransferFunction.
"""

import pytest
import numpy as np
from scipy import signal
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from lockbox_control.core.transfer_function import TransferFunction, coefficients


WC = 2 * np.pi * 5e3


@pytest.fixture
def low_pass():
    return TransferFunction(poles=[-WC], gain=WC)


class TestEvaluation:
    """Tests for evaluating H(s)."""

    def test_dc_gain_low_pass(self, low_pass):
        """Unity DC gain for the normalized low-pass."""
        assert low_pass.dc_gain() == pytest.approx(1.0)

    def test_corner_frequency(self, low_pass):
        """-3 dB and -45 degrees at the corner."""
        h = low_pass.frequency_response([WC])[0]
        assert abs(h) == pytest.approx(1 / np.sqrt(2))
        assert np.angle(h) == pytest.approx(-np.pi / 4)

    def test_degree_mismatch(self):
        """More zeros than poles still evaluates."""
        tf = TransferFunction(zeros=[-1.0, -2.0])
        assert complex(tf.evaluate(1.0)) == pytest.approx(6.0)

    def test_shape_preserved(self, low_pass):
        """Output shape follows input shape."""
        s = np.ones((3, 2)) * 1j
        assert low_pass.evaluate(s).shape == (3, 2)

    def test_matches_scipy_freqs(self):
        """Agrees with scipy.signal.freqs on the expanded polynomials."""
        tf = TransferFunction(
            zeros=[-3e3],
            poles=[-1e3 + 4e3j, -1e3 - 4e3j, -2e4],
            gain=5e7
        )
        num, den = coefficients(tf)
        w = np.logspace(1, 6, 50)
        _, h = signal.freqs(num, den, worN=w)
        np.testing.assert_allclose(tf.frequency_response(w), h, rtol=1e-9)

    def test_integrator_dc_gain_infinite(self):
        """Uncancelled pole at the origin gives infinite DC gain."""
        tf = TransferFunction(poles=[0.0], gain=10.0)
        assert tf.dc_gain() == float('inf')


class TestPolynomials:
    """Tests for coefficient expansion."""

    def test_expansion(self):
        """Zeros/poles/gain expand to descending coefficients."""
        tf = TransferFunction(zeros=[-1.0], poles=[-2.0, -3.0], gain=2.0)
        np.testing.assert_allclose(tf.numerator(), [2.0, 2.0])
        np.testing.assert_allclose(tf.denominator(), [1.0, 5.0, 6.0])

    def test_conjugate_pair_is_real(self):
        """Conjugate poles expand to real coefficients."""
        tf = TransferFunction(poles=[-1 + 2j, -1 - 2j])
        num, den = coefficients(tf)
        assert not np.iscomplexobj(den)
        np.testing.assert_allclose(den, [1.0, 2.0, 5.0])

    def test_from_coefficients(self):
        """Roots and gain recovered from polynomials."""
        tf = TransferFunction.from_coefficients([0.0, 4.0, 8.0], [2.0, 6.0, 4.0])
        np.testing.assert_allclose(np.sort(tf.poles.real), [-2.0, -1.0])
        np.testing.assert_allclose(tf.zeros.real, [-2.0])
        assert tf.gain == pytest.approx(2.0)

    def test_zero_denominator_raises(self):
        """Identically zero denominator is rejected."""
        with pytest.raises(ZeroDivisionError):
            TransferFunction.from_coefficients([1.0], [0.0, 0.0])

    def test_is_real(self):
        """Unpaired complex root is detected."""
        assert TransferFunction(poles=[-1 + 1j, -1 - 1j]).is_real()
        assert not TransferFunction(poles=[-1 + 1j]).is_real()

    def test_is_proper(self):
        assert TransferFunction(zeros=[-1.0], poles=[-2.0]).is_proper()
        assert not TransferFunction(zeros=[-1.0, -3.0], poles=[-2.0]).is_proper()


class TestAlgebra:
    """Tests for products, feedback and cancellation."""

    def test_minreal_cancels(self):
        """Coincident pole/zero pair is removed."""
        tf = TransferFunction(zeros=[-1.0], poles=[-1.0, -2.0], gain=3.0)
        reduced = tf.minreal()
        assert reduced.order == 1
        assert reduced.zeros.size == 0
        np.testing.assert_allclose(reduced.poles, [-2.0])

    def test_minreal_nothing_to_cancel(self, low_pass):
        """Returns the same object when nothing cancels."""
        assert low_pass.minreal() is low_pass

    def test_product(self, low_pass):
        """Product concatenates roots and multiplies gains."""
        product = low_pass * TransferFunction(zeros=[-1.0], poles=[-2.0], gain=3.0)
        assert product.order == 2
        assert product.gain == pytest.approx(3 * WC)

    def test_scalar_product(self, low_pass):
        """Scalar scales the gain from either side."""
        assert (2.0 * low_pass).gain == pytest.approx(2 * WC)
        assert (low_pass * 2.0).gain == pytest.approx(2 * WC)

    def test_unity_feedback(self):
        """1/(s+1) in unity negative feedback is 1/(s+2)."""
        closed = TransferFunction(poles=[-1.0]).feedback(1.0)
        np.testing.assert_allclose(closed.poles, [-2.0])
        assert closed.dc_gain() == pytest.approx(0.5)

    def test_feedback_with_integrator(self, low_pass):
        """Integral loop tracks DC exactly."""
        loop = TransferFunction(poles=[0.0], gain=1e4) * low_pass
        closed = loop.feedback()
        assert closed.dc_gain() == pytest.approx(1.0)
        assert np.all(closed.poles.real < 0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
