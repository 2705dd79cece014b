"""
Discrete recursive (IIR) filter evaluation.

The controller is a rational filter b(z^-1)/a(z^-1) evaluated in transposed
direct form II. Coefficients and the delay-line state travel together in a
DiscreteFilter owned by exactly one control loop.
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple

import numpy as np
from numpy.typing import ArrayLike

from lockbox_control.utils.validators import DimensionMismatch, InvalidControllerSpec


def _coefficients(b: ArrayLike, a: ArrayLike) -> Tuple[np.ndarray, np.ndarray]:
    """Normalize by a[0] and zero-pad b and a to a common length."""
    b = np.atleast_1d(np.asarray(b, dtype=float))
    a = np.atleast_1d(np.asarray(a, dtype=float))
    if b.ndim != 1 or a.ndim != 1 or b.size == 0 or a.size == 0:
        raise DimensionMismatch("filter coefficients must be non-empty 1-D sequences")
    if a[0] == 0:
        raise InvalidControllerSpec("leading denominator coefficient a[0] must be non-zero")
    if not (np.all(np.isfinite(b)) and np.all(np.isfinite(a))):
        raise InvalidControllerSpec("filter coefficients must be finite")
    n = max(b.size, a.size)
    b = np.pad(b, (0, n - b.size)) / a[0]
    a = np.pad(a, (0, n - a.size)) / a[0]
    return b, a


def lfilter_tdf2(
    b: ArrayLike,
    a: ArrayLike,
    x: ArrayLike,
    zi: Optional[ArrayLike] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Evaluate the difference equation over a block of inputs.

    a[0]*y[k] = b[0]*x[k] + ... + b[m]*x[k-m] - a[1]*y[k-1] - ... - a[n]*y[k-n]

    The state uses the transposed direct form II delay line, the same
    convention as scipy.signal.lfilter's ``zi``/``zf``.

    Args:
        b: Numerator coefficients
        a: Denominator coefficients
        x: Non-empty input block
        zi: Initial state of length max(len(a), len(b)) - 1 (zeros if None)

    Returns:
        Tuple of (outputs with the same length as x, final state)

    Raises:
        DimensionMismatch: On empty input or a state of the wrong length
    """
    b, a = _coefficients(b, a)
    order = b.size - 1

    x = np.atleast_1d(np.asarray(x, dtype=float))
    if x.ndim != 1:
        raise DimensionMismatch(f"input must be 1-D, got shape {x.shape}")
    if x.size == 0:
        raise DimensionMismatch("input block is empty")

    if zi is None:
        z = np.zeros(order)
    else:
        z = np.array(zi, dtype=float).ravel()
        if z.size != order:
            raise DimensionMismatch(
                f"state length {z.size} does not match filter order {order}"
            )

    y = np.empty_like(x)
    if order == 0:
        y[:] = b[0] * x
        return y, z

    b_mid, a_mid = b[1:-1], a[1:-1]
    b_last, a_last = b[-1], a[-1]
    for k, xk in enumerate(x):
        yk = b[0] * xk + z[0]
        z[:-1] = b_mid * xk + z[1:] - a_mid * yk
        z[-1] = b_last * xk - a_last * yk
        y[k] = yk
    return y, z


class DiscreteFilter:
    """
    Coefficients plus delay-line state of a discrete rational filter.

    State length is max(len(b), len(a)) - 1, zero on creation and after
    reset(). Each process() call advances the state; nothing resets it
    implicitly.

    Example:
        >>> f = DiscreteFilter(b=[0.5, 0.5], a=[1.0, -1.0])
        >>> f.process([1.0, 1.0])
        array([0.5, 1.5])
    """

    def __init__(self, b: ArrayLike, a: ArrayLike):
        b_arr = np.atleast_1d(np.asarray(b, dtype=float))
        a_arr = np.atleast_1d(np.asarray(a, dtype=float))
        # Validates shape, finiteness and a[0] before anything is stored
        _coefficients(b_arr, a_arr)
        self._b = b_arr / a_arr[0]
        self._a = a_arr / a_arr[0]
        self._b.setflags(write=False)
        self._a.setflags(write=False)
        self._state = np.zeros(max(self._b.size, self._a.size) - 1)

    @property
    def b(self) -> np.ndarray:
        """Numerator coefficients (normalized, read-only)."""
        return self._b

    @property
    def a(self) -> np.ndarray:
        """Denominator coefficients with a[0] == 1 (read-only)."""
        return self._a

    @property
    def state(self) -> np.ndarray:
        """Copy of the current delay-line state."""
        return self._state.copy()

    @property
    def order(self) -> int:
        """State length."""
        return int(self._state.size)

    def process(self, x: ArrayLike) -> np.ndarray:
        """
        Filter a block of inputs, advancing the internal state.

        Args:
            x: Non-empty input block

        Returns:
            Output block of the same length
        """
        y, zf = lfilter_tdf2(self._b, self._a, x, self._state)
        self._state = zf
        return y

    def evaluate(
        self,
        x: ArrayLike,
        state: Optional[ArrayLike] = None
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Filter a block from an explicit state without touching this filter.

        Args:
            x: Non-empty input block
            state: Starting state (this filter's current state if None)

        Returns:
            Tuple of (outputs, new state)
        """
        return lfilter_tdf2(
            self._b, self._a, x, self._state if state is None else state
        )

    def set_state(self, state: ArrayLike) -> None:
        """Replace the delay-line state; its length must match the order."""
        z = np.array(state, dtype=float).ravel()
        if z.size != self._state.size:
            raise DimensionMismatch(
                f"state length {z.size} does not match filter order {self._state.size}"
            )
        self._state = z

    def reset(self) -> None:
        """Zero the delay-line state."""
        self._state = np.zeros_like(self._state)

    def __repr__(self) -> str:
        return f"DiscreteFilter(b={self._b.tolist()}, a={self._a.tolist()})"


class BaseFilter(ABC):
    """Abstract base class for sample-at-a-time filters."""

    @abstractmethod
    def update(self, value: float) -> float:
        """Update filter with new value and return filtered output."""
        pass

    @abstractmethod
    def reset(self) -> None:
        """Reset filter state."""
        pass

    @property
    @abstractmethod
    def output(self) -> float:
        """Current filter output."""
        pass


class RecursiveFilter(BaseFilter):
    """Sample-at-a-time view onto a DiscreteFilter."""

    def __init__(self, discrete_filter: DiscreteFilter):
        self._filter = discrete_filter
        self._output: float = 0.0

    @property
    def discrete_filter(self) -> DiscreteFilter:
        return self._filter

    def update(self, value: float) -> float:
        self._output = float(self._filter.process([value])[0])
        return self._output

    def process(self, values: ArrayLike) -> np.ndarray:
        y = self._filter.process(values)
        self._output = float(y[-1])
        return y

    def reset(self) -> None:
        self._filter.reset()
        self._output = 0.0

    @property
    def output(self) -> float:
        return self._output
