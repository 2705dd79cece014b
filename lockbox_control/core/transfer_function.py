"""
Continuous-time transfer function in zero/pole/gain form.

H(s) = k * prod(s - z_i) / prod(s - p_j)

The same object describes the mock plant and the continuous PID controller.
Polynomial coefficients follow numpy's convention: descending powers of s.
"""

from typing import Iterable, Tuple, Union
import numbers

import numpy as np
from numpy.typing import ArrayLike


def _as_roots(values: Iterable[complex]) -> np.ndarray:
    roots = np.atleast_1d(np.asarray(list(values), dtype=complex)).ravel()
    roots.setflags(write=False)
    return roots


def _expand(roots: np.ndarray) -> np.ndarray:
    """Expand roots into monic polynomial coefficients."""
    if roots.size == 0:
        return np.array([1.0])
    coeffs = np.atleast_1d(np.poly(roots))
    if np.iscomplexobj(coeffs):
        if np.allclose(coeffs.imag, 0.0, atol=1e-12 * max(1.0, np.max(np.abs(coeffs)))):
            coeffs = coeffs.real
    return coeffs


def has_conjugate_pairs(roots: np.ndarray, tol: float = 1e-9) -> bool:
    """Check that every complex root has its conjugate in the set."""
    remaining = list(roots)
    while remaining:
        root = remaining.pop()
        scale = max(1.0, abs(root))
        if abs(root.imag) <= tol * scale:
            continue
        partner = [i for i, r in enumerate(remaining) if abs(r - np.conj(root)) <= tol * scale]
        if not partner:
            return False
        remaining.pop(partner[0])
    return True


class TransferFunction:
    """
    Immutable rational transfer function H(s).

    Numerator degree above denominator degree is accepted here; components
    that need a proper system (the plant simulator) check it themselves.

    Example:
        >>> plant = TransferFunction(poles=[-2 * np.pi * 5e3], gain=2 * np.pi * 5e3)
        >>> plant.dc_gain()
        1.0
    """

    def __init__(
        self,
        zeros: Iterable[complex] = (),
        poles: Iterable[complex] = (),
        gain: float = 1.0
    ):
        if not isinstance(gain, numbers.Real) or isinstance(gain, bool):
            raise TypeError(f"gain must be a real number, got {type(gain).__name__}")
        self._zeros = _as_roots(zeros)
        self._poles = _as_roots(poles)
        self._gain = float(gain)

    @classmethod
    def from_coefficients(cls, num: ArrayLike, den: ArrayLike) -> 'TransferFunction':
        """
        Build from polynomial coefficients (descending powers of s).

        Args:
            num: Numerator coefficients
            den: Denominator coefficients

        Returns:
            TransferFunction with roots of num/den as zeros/poles
        """
        num = np.trim_zeros(np.atleast_1d(np.asarray(num, dtype=float)), 'f')
        den = np.trim_zeros(np.atleast_1d(np.asarray(den, dtype=float)), 'f')
        if den.size == 0:
            raise ZeroDivisionError("denominator polynomial is identically zero")
        if num.size == 0:
            return cls((), np.roots(den), 0.0)
        return cls(np.roots(num), np.roots(den), num[0] / den[0])

    @property
    def zeros(self) -> np.ndarray:
        return self._zeros

    @property
    def poles(self) -> np.ndarray:
        return self._poles

    @property
    def gain(self) -> float:
        return self._gain

    @property
    def order(self) -> int:
        """Number of poles."""
        return int(self._poles.size)

    def numerator(self) -> np.ndarray:
        """Numerator coefficients, descending powers of s."""
        return self._gain * _expand(self._zeros)

    def denominator(self) -> np.ndarray:
        """Monic denominator coefficients, descending powers of s."""
        return _expand(self._poles)

    def is_proper(self) -> bool:
        return self._zeros.size <= self._poles.size

    def is_real(self, tol: float = 1e-9) -> bool:
        """True if zeros and poles come in conjugate pairs."""
        return has_conjugate_pairs(self._zeros, tol) and has_conjugate_pairs(self._poles, tol)

    def evaluate(self, s: Union[complex, ArrayLike]) -> np.ndarray:
        """
        Evaluate H at one or more complex points.

        Args:
            s: Complex Laplace variable value(s)

        Returns:
            Complex array of the same shape as s
        """
        s_arr = np.asarray(s, dtype=complex)
        flat = np.atleast_1d(s_arr).ravel()
        with np.errstate(divide='ignore', invalid='ignore'):
            num = np.prod(flat[:, None] - self._zeros[None, :], axis=1)
            den = np.prod(flat[:, None] - self._poles[None, :], axis=1)
            values = self._gain * num / den
        return values.reshape(s_arr.shape)

    def frequency_response(self, omega: ArrayLike) -> np.ndarray:
        """Evaluate H(j*omega) for angular frequencies omega (rad/s)."""
        return self.evaluate(1j * np.asarray(omega, dtype=float))

    def dc_gain(self) -> float:
        """Static gain H(0); infinite for an uncancelled pole at the origin."""
        reduced = self.minreal()
        value = complex(reduced.evaluate(0.0))
        if not np.isfinite(value):
            return float('inf')
        return float(value.real)

    def minreal(self, tol: float = 1e-9) -> 'TransferFunction':
        """
        Cancel coincident pole/zero pairs.

        Args:
            tol: Relative distance under which a zero cancels a pole

        Returns:
            Reduced TransferFunction (self if nothing cancels)
        """
        zeros = list(self._zeros)
        poles = []
        for pole in self._poles:
            scale = max(1.0, abs(pole))
            match = next(
                (i for i, zero in enumerate(zeros) if abs(zero - pole) <= tol * scale),
                None
            )
            if match is None:
                poles.append(pole)
            else:
                zeros.pop(match)
        if len(poles) == self._poles.size:
            return self
        return TransferFunction(zeros, poles, self._gain)

    def feedback(self, other: Union['TransferFunction', float] = 1.0, sign: int = -1) -> 'TransferFunction':
        """
        Close a loop around this system: self / (1 - sign * self * other).

        Args:
            other: Feedback path (transfer function or static gain)
            sign: -1 for negative feedback, +1 for positive feedback

        Returns:
            Closed-loop TransferFunction
        """
        if not isinstance(other, TransferFunction):
            other = TransferFunction(gain=float(other))
        n_g, d_g = self.numerator(), self.denominator()
        n_h, d_h = other.numerator(), other.denominator()
        num = np.polymul(n_g, d_h)
        den = np.polyadd(np.polymul(d_g, d_h), -sign * np.polymul(n_g, n_h))
        return TransferFunction.from_coefficients(np.real(num), np.real(den))

    def __mul__(self, other: Union['TransferFunction', float]) -> 'TransferFunction':
        if isinstance(other, TransferFunction):
            return TransferFunction(
                np.concatenate([self._zeros, other.zeros]),
                np.concatenate([self._poles, other.poles]),
                self._gain * other.gain
            )
        if isinstance(other, numbers.Real):
            return TransferFunction(self._zeros, self._poles, self._gain * float(other))
        return NotImplemented

    __rmul__ = __mul__

    def __repr__(self) -> str:
        return (
            f"TransferFunction(zeros={list(np.round(self._zeros, 6))}, "
            f"poles={list(np.round(self._poles, 6))}, gain={self._gain:g})"
        )


def coefficients(tf: TransferFunction) -> Tuple[np.ndarray, np.ndarray]:
    """Real (num, den) coefficient arrays of a real-coefficient transfer function."""
    return np.real(tf.numerator()), np.real(tf.denominator())
