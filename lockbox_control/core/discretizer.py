"""
Continuous PID to discrete IIR filter via the bilinear (Tustin) transform.

s = (2/Ts) * (z - 1) / (z + 1)

Only gains that are non-zero contribute dynamics: Ki adds the pole at the
origin and Kd adds the derivative filter pole at s = -N.
"""

from typing import Tuple

import numpy as np
from numpy.typing import ArrayLike

from lockbox_control.core.filters import DiscreteFilter
from lockbox_control.core.pid_params import PIDSpec
from lockbox_control.core.transfer_function import TransferFunction
from lockbox_control.utils.validators import InvalidControllerSpec, validate_positive


def pid_polynomials(spec: PIDSpec) -> Tuple[np.ndarray, np.ndarray]:
    """
    Continuous PID numerator and denominator in s (descending powers).

    Args:
        spec: PID specification

    Returns:
        Tuple of (num, den); num is padded to len(den)
    """
    spec.validate()
    integrator = np.array([1.0, 0.0])
    derivative_pole = np.array([1.0, spec.filter_coefficient])

    den = np.array([1.0])
    if spec.has_integral:
        den = np.polymul(den, integrator)
    if spec.has_derivative:
        den = np.polymul(den, derivative_pole)

    num = spec.kp * den
    if spec.has_integral:
        term = np.array([spec.ki])
        if spec.has_derivative:
            term = np.polymul(term, derivative_pole)
        num = np.polyadd(num, term)
    if spec.has_derivative:
        term = np.array([spec.kd * spec.filter_coefficient, 0.0])
        if spec.has_integral:
            term = np.polymul(term, integrator)
        num = np.polyadd(num, term)

    num = np.pad(num, (den.size - num.size, 0))
    return num, den


def continuous_pid(spec: PIDSpec) -> TransferFunction:
    """Continuous PID controller as a TransferFunction."""
    num, den = pid_polynomials(spec)
    return TransferFunction.from_coefficients(num, den)


def bilinear(
    num: ArrayLike,
    den: ArrayLike,
    sample_time: float
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Bilinear transform of a continuous rational function.

    With n = max degree, (z + 1)^n * p(K(z - 1)/(z + 1)) expands to
    sum_k c_k * K^k * (z - 1)^k * (z + 1)^(n - k), K = 2/Ts, where c_k is the
    coefficient of s^k. The result, read as descending powers of z, is the
    z^-1 coefficient sequence of the discrete filter.

    Args:
        num: Numerator coefficients in s (descending powers)
        den: Denominator coefficients in s (descending powers)
        sample_time: Sample period Ts

    Returns:
        Tuple of (b, a) normalized so a[0] == 1

    Raises:
        InvalidControllerSpec: On a non-positive sample period or a
            denominator that vanishes after the transform
    """
    sample_time = validate_positive(sample_time, 'sample_time', InvalidControllerSpec)
    num = np.atleast_1d(np.asarray(num, dtype=float))
    den = np.atleast_1d(np.asarray(den, dtype=float))
    n = max(num.size, den.size) - 1
    k_factor = 2.0 / sample_time

    # Ascending coefficient order: c[k] multiplies s^k
    num_asc = np.pad(num[::-1], (0, n + 1 - num.size))
    den_asc = np.pad(den[::-1], (0, n + 1 - den.size))

    b = np.zeros(n + 1)
    a = np.zeros(n + 1)
    for k in range(n + 1):
        basis = np.polymul(
            np.poly(np.ones(k)) if k else np.array([1.0]),
            np.poly(-np.ones(n - k)) if n - k else np.array([1.0])
        )
        scale = k_factor ** k
        b += num_asc[k] * scale * basis
        a += den_asc[k] * scale * basis

    if a[0] == 0:
        raise InvalidControllerSpec("denominator vanishes under the bilinear transform")
    return b / a[0], a / a[0]


def discretize_pid(spec: PIDSpec) -> DiscreteFilter:
    """
    Discretize a continuous PID specification.

    Args:
        spec: PID gains, derivative filter coefficient and sample period

    Returns:
        DiscreteFilter with zero state

    Raises:
        InvalidControllerSpec: On an invalid or degenerate specification

    Example:
        >>> f = discretize_pid(PIDSpec(kp=1.0, ki=0.0, kd=0.0, sample_time=1e-6))
        >>> f.b, f.a
        (array([1.]), array([1.]))
    """
    num, den = pid_polynomials(spec)
    b, a = bilinear(num, den, spec.sample_time)
    return DiscreteFilter(b, a)
