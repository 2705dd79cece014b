"""
State-space realization and exact zero-order-hold discretization.

Realization (controllable companion form) for
H(s) = (b0 s^n + ... + bn) / (s^n + a1 s^(n-1) + ... + an):

    dx/dt = A x + B u,  y = C x + D u

    A = [[-a1, -a2, ..., -an],      B = [1, 0, ..., 0]^T
         [  1,   0, ...,   0],
         [ ...               ],     C = [b1 - b0*a1, ..., bn - b0*an]
         [  0, ...,   1,   0]]      D = b0
"""

from dataclasses import dataclass

import numpy as np
from scipy.linalg import expm

from lockbox_control.core.transfer_function import TransferFunction, coefficients
from lockbox_control.utils.validators import InvalidPlantSpec


@dataclass(frozen=True)
class StateSpace:
    """Continuous (or, after discretization, discrete) state-space matrices."""
    A: np.ndarray
    B: np.ndarray
    C: np.ndarray
    D: float

    @property
    def order(self) -> int:
        return int(self.A.shape[0])


def realize(tf: TransferFunction) -> StateSpace:
    """
    Companion-form realization of a proper, real transfer function.

    Args:
        tf: Transfer function with len(zeros) <= len(poles)

    Returns:
        Continuous StateSpace

    Raises:
        InvalidPlantSpec: If tf is improper
    """
    if not tf.is_proper():
        raise InvalidPlantSpec(
            f"improper plant ({tf.zeros.size} zeros > {tf.poles.size} poles) "
            "has no state-space realization"
        )
    num, den = coefficients(tf)
    n = den.size - 1
    num = np.pad(num, (n + 1 - num.size, 0))

    d = float(num[0])
    if n == 0:
        return StateSpace(np.zeros((0, 0)), np.zeros((0, 1)), np.zeros((1, 0)), d)

    A = np.zeros((n, n))
    A[0, :] = -den[1:]
    A[1:, :-1] = np.eye(n - 1)
    B = np.zeros((n, 1))
    B[0, 0] = 1.0
    C = (num[1:] - d * den[1:]).reshape(1, n)
    return StateSpace(A, B, C, d)


def discretize_zoh(ss: StateSpace, sample_time: float) -> StateSpace:
    """
    Exact discretization assuming the input is held between samples.

    exp([[A, B], [0, 0]] * Ts) = [[Ad, Bd], [0, I]]

    Args:
        ss: Continuous state space
        sample_time: Sample period Ts

    Returns:
        Discrete StateSpace (Ad, Bd, C, D)
    """
    n = ss.order
    if n == 0:
        return ss
    augmented = np.zeros((n + 1, n + 1))
    augmented[:n, :n] = ss.A * sample_time
    augmented[:n, n:] = ss.B * sample_time
    phi = expm(augmented)
    return StateSpace(phi[:n, :n], phi[:n, n:], ss.C, ss.D)
