"""
Closed-loop lock scenarios.
Defines setpoint profiles and disturbances added at the plant output.
"""

from typing import Callable, Optional, Dict, Any
from dataclasses import dataclass
from enum import Enum
import numpy as np
from scipy import signal

from lockbox_control.utils.noise import NoiseSource
from lockbox_control.utils.validators import ValidationError, validate_non_negative, validate_positive


class SetpointType(Enum):
    """Types of setpoint profiles."""
    STEP = "step"
    SINE = "sine"
    SQUARE = "square"
    CUSTOM = "custom"


class DisturbanceType(Enum):
    """Types of disturbances at the plant output."""
    NONE = "none"
    STEP = "step"
    SQUARE = "square"
    SINE = "sine"
    RANDOM = "random"
    CUSTOM = "custom"


@dataclass
class SimulationScenario:
    """
    A lock scenario: timing, setpoint profile, output disturbance and
    measurement noise.

    Profiles are evaluated on the whole time grid at once.
    """

    name: str
    duration: float
    sample_time: float = 1e-6

    setpoint_type: SetpointType = SetpointType.STEP
    setpoint_initial: float = 0.0
    setpoint_final: float = 0.1
    setpoint_time: float = 0.0
    setpoint_params: Optional[Dict[str, Any]] = None
    setpoint_function: Optional[Callable[[np.ndarray], np.ndarray]] = None

    disturbance_type: DisturbanceType = DisturbanceType.NONE
    disturbance_magnitude: float = 0.0
    disturbance_time: float = 0.0
    disturbance_params: Optional[Dict[str, Any]] = None
    disturbance_function: Optional[Callable[[np.ndarray], np.ndarray]] = None

    measurement_noise_std: float = 0.0

    def __post_init__(self):
        validate_positive(self.duration, 'duration')
        validate_positive(self.sample_time, 'sample_time')
        validate_non_negative(self.measurement_noise_std, 'measurement_noise_std')
        if self.setpoint_type == SetpointType.CUSTOM and self.setpoint_function is None:
            raise ValidationError("custom setpoint requires setpoint_function")
        if self.disturbance_type == DisturbanceType.CUSTOM and self.disturbance_function is None:
            raise ValidationError("custom disturbance requires disturbance_function")

    @property
    def n_steps(self) -> int:
        return int(round(self.duration / self.sample_time))

    def time_grid(self) -> np.ndarray:
        return np.arange(self.n_steps) * self.sample_time

    def setpoints(self, t: np.ndarray) -> np.ndarray:
        """Setpoint profile on the time grid t."""
        if self.setpoint_function is not None:
            return np.broadcast_to(np.asarray(self.setpoint_function(t), dtype=float), t.shape).copy()

        params = self.setpoint_params or {}
        low, high = self.setpoint_initial, self.setpoint_final

        if self.setpoint_type == SetpointType.STEP:
            return np.where(t < self.setpoint_time, low, high)

        if self.setpoint_type == SetpointType.SINE:
            frequency = params.get('frequency', 1e3)
            return (high + low) / 2 + (high - low) / 2 * np.sin(2 * np.pi * frequency * t)

        if self.setpoint_type == SetpointType.SQUARE:
            frequency = params.get('frequency', 1e3)
            return (high + low) / 2 + (high - low) / 2 * signal.square(2 * np.pi * frequency * t)

        return np.full(t.shape, high)

    def disturbances(self, t: np.ndarray, noise: Optional[NoiseSource] = None) -> np.ndarray:
        """
        Output disturbance on the time grid t.

        Args:
            t: Time grid
            noise: Source for RANDOM disturbances (required for that type)
        """
        if self.disturbance_function is not None:
            return np.broadcast_to(np.asarray(self.disturbance_function(t), dtype=float), t.shape).copy()

        params = self.disturbance_params or {}
        magnitude = self.disturbance_magnitude
        active = t >= self.disturbance_time

        if self.disturbance_type == DisturbanceType.STEP:
            return np.where(active, magnitude, 0.0)

        if self.disturbance_type == DisturbanceType.SQUARE:
            frequency = params.get('frequency', 50.0)
            return magnitude * signal.square(2 * np.pi * frequency * t)

        if self.disturbance_type == DisturbanceType.SINE:
            frequency = params.get('frequency', 50.0)
            return np.where(active, magnitude * np.sin(2 * np.pi * frequency * (t - self.disturbance_time)), 0.0)

        if self.disturbance_type == DisturbanceType.RANDOM:
            if noise is None:
                raise ValidationError("random disturbance requires a noise source")
            return magnitude * noise.gaussian_vector(t.size)

        return np.zeros(t.shape)


class ScenarioLibrary:
    """Pre-defined lock scenarios."""

    @staticmethod
    def step_response(
        setpoint: float = 0.1,
        duration: float = 2e-3,
        sample_time: float = 1e-6
    ) -> SimulationScenario:
        """Setpoint step after 10 % of the run."""
        return SimulationScenario(
            name="Step Response",
            duration=duration,
            sample_time=sample_time,
            setpoint_type=SetpointType.STEP,
            setpoint_initial=0.0,
            setpoint_final=setpoint,
            setpoint_time=duration * 0.1
        )

    @staticmethod
    def disturbance_rejection(
        amplitude: float = 0.05,
        frequency: float = 50.0,
        duration: float = 0.02,
        sample_time: float = 1e-5
    ) -> SimulationScenario:
        """Hold zero against a square disturbance (mains-like pickup)."""
        return SimulationScenario(
            name="Disturbance Rejection",
            duration=duration,
            sample_time=sample_time,
            setpoint_type=SetpointType.STEP,
            setpoint_initial=0.0,
            setpoint_final=0.0,
            disturbance_type=DisturbanceType.SQUARE,
            disturbance_magnitude=amplitude,
            disturbance_params={'frequency': frequency}
        )

    @staticmethod
    def tracking_sine(
        amplitude: float = 0.05,
        frequency: float = 500.0,
        offset: float = 0.0,
        duration: float = 4e-3,
        sample_time: float = 1e-6
    ) -> SimulationScenario:
        """Sinusoidal setpoint tracking."""
        return SimulationScenario(
            name="Sine Tracking",
            duration=duration,
            sample_time=sample_time,
            setpoint_type=SetpointType.SINE,
            setpoint_initial=offset - amplitude,
            setpoint_final=offset + amplitude,
            setpoint_params={'frequency': frequency}
        )

    @staticmethod
    def noisy_lock(
        setpoint: float = 0.1,
        noise_std: float = 1e-3,
        duration: float = 2e-3,
        sample_time: float = 1e-6
    ) -> SimulationScenario:
        """Step with measurement noise."""
        return SimulationScenario(
            name="Noisy Lock",
            duration=duration,
            sample_time=sample_time,
            setpoint_type=SetpointType.STEP,
            setpoint_initial=0.0,
            setpoint_final=setpoint,
            setpoint_time=duration * 0.1,
            measurement_noise_std=noise_std
        )

    @staticmethod
    def custom(
        name: str,
        duration: float,
        setpoint_func: Callable[[np.ndarray], np.ndarray],
        disturbance_func: Optional[Callable[[np.ndarray], np.ndarray]] = None,
        noise_std: float = 0.0,
        sample_time: float = 1e-6
    ) -> SimulationScenario:
        """Scenario with vectorized function-defined profiles."""
        return SimulationScenario(
            name=name,
            duration=duration,
            sample_time=sample_time,
            setpoint_type=SetpointType.CUSTOM,
            setpoint_function=setpoint_func,
            disturbance_type=DisturbanceType.CUSTOM if disturbance_func else DisturbanceType.NONE,
            disturbance_function=disturbance_func,
            measurement_noise_std=noise_std
        )
