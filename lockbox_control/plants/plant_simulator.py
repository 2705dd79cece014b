"""
Continuous plant simulation driven by sampled input sequences.

The plant is realized once at construction; each simulate() call integrates
the realization exactly across every sample period with the input held
constant (zero-order hold). The state returned by one call seeds the next,
so successive short acquisitions behave as one continuous run.
"""

from dataclasses import dataclass
import logging
from typing import Dict, Optional, Tuple

import numpy as np
from numpy.typing import ArrayLike

from lockbox_control.core.transfer_function import TransferFunction
from lockbox_control.plants.state_space import StateSpace, discretize_zoh, realize
from lockbox_control.utils.validators import (
    DimensionMismatch,
    InvalidPlantSpec,
    validate_positive,
)

logger = logging.getLogger(__name__)


@dataclass
class PlantState:
    """Integrator memory of the plant between simulation calls."""
    x: np.ndarray

    @classmethod
    def zeros(cls, order: int) -> 'PlantState':
        return cls(np.zeros(order))

    def copy(self) -> 'PlantState':
        return PlantState(self.x.copy())

    def __len__(self) -> int:
        return int(self.x.size)


class PlantSimulator:
    """
    Zero-order-hold simulator for a TransferFunction plant.

    Example:
        >>> plant = TransferFunction(poles=[-1.0], gain=1.0)
        >>> sim = PlantSimulator(plant, sample_time=0.01)
        >>> y, state = sim.simulate(np.ones(100))
        >>> y1, s1 = sim.simulate(np.ones(50))
        >>> y2, s2 = sim.simulate(np.ones(50), s1)
        >>> np.allclose(np.concatenate([y1, y2]), y)
        True
    """

    def __init__(
        self,
        plant: TransferFunction,
        sample_time: float,
        allow_unstable: bool = False,
        cancel_tolerance: float = 1e-9
    ):
        """
        Initialize simulator.

        Args:
            plant: Continuous plant model
            sample_time: Default sample period in seconds
            allow_unstable: Accept poles in the right half-plane
            cancel_tolerance: Relative distance for pole/zero cancellation

        Raises:
            InvalidPlantSpec: If the plant cannot be realized
        """
        self._sample_time = validate_positive(sample_time, 'sample_time', InvalidPlantSpec)

        roots = np.concatenate([plant.zeros, plant.poles])
        if not (np.all(np.isfinite(roots)) and np.isfinite(plant.gain)):
            raise InvalidPlantSpec("plant zeros, poles and gain must be finite")
        if not plant.is_real():
            raise InvalidPlantSpec("complex zeros and poles must come in conjugate pairs")

        reduced = plant.minreal(cancel_tolerance)
        if reduced.order < plant.order:
            logger.debug(
                "Cancelled %d pole/zero pair(s); simulating order %d",
                plant.order - reduced.order, reduced.order
            )
        unstable = reduced.poles[reduced.poles.real > 0]
        if unstable.size and not allow_unstable:
            raise InvalidPlantSpec(
                f"plant has right half-plane poles {unstable.tolist()}"
            )

        self._plant = plant
        self._reduced = reduced
        self._continuous = realize(reduced)
        self._discrete: Dict[float, StateSpace] = {}
        self._state: Optional[PlantState] = None

    @property
    def plant(self) -> TransferFunction:
        return self._plant

    @property
    def order(self) -> int:
        """State dimension after pole/zero cancellation."""
        return self._continuous.order

    @property
    def sample_time(self) -> float:
        return self._sample_time

    @property
    def continuous(self) -> StateSpace:
        return self._continuous

    @property
    def state(self) -> PlantState:
        """Session state (created on first advance, zero until then)."""
        if self._state is None:
            return PlantState.zeros(self.order)
        return self._state.copy()

    def discrete(self, sample_time: Optional[float] = None) -> StateSpace:
        """Cached ZOH discretization for the given (or default) sample period."""
        ts = self._sample_time if sample_time is None else validate_positive(
            sample_time, 'sample_time', InvalidPlantSpec
        )
        if ts not in self._discrete:
            self._discrete[ts] = discretize_zoh(self._continuous, ts)
        return self._discrete[ts]

    def simulate(
        self,
        inputs: ArrayLike,
        state: Optional[PlantState] = None,
        sample_time: Optional[float] = None
    ) -> Tuple[np.ndarray, PlantState]:
        """
        Simulate the plant for a block of held input samples.

        Args:
            inputs: Input sequence of length L (may be empty)
            state: Starting state (zero state if None); not modified
            sample_time: Override of the default sample period

        Returns:
            Tuple of (outputs of length L, state after the last sample)

        Raises:
            DimensionMismatch: If the state length differs from the plant order
        """
        u = np.atleast_1d(np.asarray(inputs, dtype=float))
        if u.ndim != 1:
            raise DimensionMismatch(f"input must be 1-D, got shape {u.shape}")

        if state is None:
            x = np.zeros(self.order)
        else:
            x = np.array(state.x, dtype=float).ravel()
            if x.size != self.order:
                raise DimensionMismatch(
                    f"state length {x.size} does not match plant order {self.order}"
                )

        ss = self.discrete(sample_time)
        if u.size == 0:
            return np.empty(0), PlantState(x)

        y = np.empty_like(u)
        if self.order == 0:
            y[:] = ss.D * u
            return y, PlantState(x)

        Ad, Bd, C, D = ss.A, ss.B[:, 0], ss.C[0], ss.D
        for k, uk in enumerate(u):
            y[k] = C @ x + D * uk
            x = Ad @ x + Bd * uk
        return y, PlantState(x)

    def advance(self, inputs: ArrayLike, sample_time: Optional[float] = None) -> np.ndarray:
        """
        Simulate from the session state and keep the resulting state.

        Args:
            inputs: Input sequence (may be empty)
            sample_time: Override of the default sample period

        Returns:
            Output sequence
        """
        y, new_state = self.simulate(inputs, self._state, sample_time)
        if y.size or self._state is None:
            self._state = new_state
        return y

    def reset(self) -> None:
        """Zero the session state."""
        self._state = PlantState.zeros(self.order)

    def __repr__(self) -> str:
        return f"PlantSimulator({self._plant!r}, Ts={self._sample_time:g}s, order={self.order})"
