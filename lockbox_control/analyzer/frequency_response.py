"""
Frequency response estimation and swept-sine network analysis.

Responses are computed from the plant model, H(j*2*pi*f). Measured
quantities (output amplitude, phase) may carry Gaussian noise drawn from an
injected NoiseSource.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import ArrayLike

from lockbox_control.config import NetworkAnalyzerConfig
from lockbox_control.core.transfer_function import TransferFunction
from lockbox_control.utils.noise import GaussianNoise, NoiseSource
from lockbox_control.utils.validators import (
    DimensionMismatch,
    validate_non_negative,
)


class FrequencyResponse(NamedTuple):
    """One measured point. Phase in radians."""
    frequency: float
    gain: float
    phase: float
    output_amplitude: float


@dataclass
class SweepResult:
    """Swept-sine result, one entry per requested frequency, in request order."""
    frequency: np.ndarray
    gain: np.ndarray
    phase: np.ndarray
    output_amplitude: np.ndarray
    window: str = 'hann'
    excitation_amplitude: float = 1.0
    settling_cycles: int = 0

    def __len__(self) -> int:
        return int(self.frequency.size)

    @property
    def points(self) -> List[FrequencyResponse]:
        return [
            FrequencyResponse(float(f), float(g), float(p), float(a))
            for f, g, p, a in zip(self.frequency, self.gain, self.phase, self.output_amplitude)
        ]

    @property
    def gain_db(self) -> np.ndarray:
        with np.errstate(divide='ignore'):
            return 20 * np.log10(self.gain)

    @property
    def phase_deg(self) -> np.ndarray:
        return np.rad2deg(self.phase)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'frequency': self.frequency.tolist(),
            'gain': self.gain.tolist(),
            'phase': self.phase.tolist(),
            'output_amplitude': self.output_amplitude.tolist(),
            'window': self.window,
            'excitation_amplitude': self.excitation_amplitude,
            'settling_cycles': self.settling_cycles,
        }


def _frequencies(frequencies: ArrayLike) -> np.ndarray:
    f = np.atleast_1d(np.asarray(frequencies, dtype=float))
    if f.ndim != 1:
        raise DimensionMismatch(f"frequencies must be 1-D, got shape {f.shape}")
    if not np.all(np.isfinite(f)) or np.any(f < 0):
        raise ValueError("frequencies must be finite and non-negative")
    return f


class FrequencyResponseEstimator:
    """
    Evaluates a TransferFunction on the imaginary axis.

    output_amplitude = amplitude * |H| + noise_level * n1
    phase            = arg(H) + phase_noise * n2

    with n1, n2 independent draws per measurement. With both noise levels at
    zero (or a ZeroNoise source) results are deterministic.
    """

    def __init__(
        self,
        plant: TransferFunction,
        noise_level: float = 0.0,
        phase_noise: float = float(np.deg2rad(0.2)),
        noise_source: Optional[NoiseSource] = None
    ):
        """
        Initialize estimator.

        Args:
            plant: Transfer function to evaluate
            noise_level: Std of additive output-amplitude noise
            phase_noise: Std of additive phase noise (rad)
            noise_source: Gaussian source (private unseeded generator if None)
        """
        self._plant = plant
        self._noise_level = validate_non_negative(noise_level, 'noise_level')
        self._phase_noise = validate_non_negative(phase_noise, 'phase_noise')
        self._noise = noise_source if noise_source is not None else GaussianNoise()

    @property
    def plant(self) -> TransferFunction:
        return self._plant

    @property
    def noise_level(self) -> float:
        return self._noise_level

    @property
    def phase_noise(self) -> float:
        return self._phase_noise

    def evaluate(self, frequencies: ArrayLike) -> Tuple[np.ndarray, np.ndarray]:
        """
        Noise-free gain and phase.

        Args:
            frequencies: Frequencies in Hz

        Returns:
            Tuple of (gain, phase) arrays; phase is unwrapped across the
            frequencies of this call, in the order given
        """
        f = _frequencies(frequencies)
        response = self._plant.frequency_response(2 * np.pi * f)
        return np.abs(response), np.unwrap(np.angle(response))

    def measure(self, frequency: float, amplitude: float = 1.0) -> FrequencyResponse:
        """
        Measure the response at one frequency with the configured noise.

        Args:
            frequency: Frequency in Hz
            amplitude: Excitation amplitude

        Returns:
            FrequencyResponse
        """
        amplitude = validate_non_negative(amplitude, 'amplitude')
        gain, phase = self.evaluate([frequency])
        return self._perturb(float(frequency), float(gain[0]), float(phase[0]), amplitude)

    def sweep(self, frequencies: Sequence[float], amplitude: float = 1.0) -> SweepResult:
        """
        Measure every frequency; phase is unwrapped across the sweep.

        Args:
            frequencies: Frequencies in Hz, kept in the given order
            amplitude: Excitation amplitude

        Returns:
            SweepResult
        """
        amplitude = validate_non_negative(amplitude, 'amplitude')
        f = _frequencies(frequencies)
        gains, phases = self.evaluate(f)
        points = [
            self._perturb(float(fk), float(gk), float(pk), amplitude)
            for fk, gk, pk in zip(f, gains, phases)
        ]
        return _collect(points, excitation_amplitude=amplitude)

    def _perturb(
        self,
        frequency: float,
        gain: float,
        phase: float,
        amplitude: float
    ) -> FrequencyResponse:
        output_amplitude = amplitude * gain
        if self._noise_level > 0:
            output_amplitude += self._noise_level * self._noise.next_gaussian()
        if self._phase_noise > 0:
            phase += self._phase_noise * self._noise.next_gaussian()
        return FrequencyResponse(frequency, gain, phase, output_amplitude)


def _collect(points: List[FrequencyResponse], **metadata) -> SweepResult:
    if points:
        frequency, gain, phase, amplitude = (np.array(column) for column in zip(*points))
    else:
        frequency = gain = phase = amplitude = np.empty(0)
    return SweepResult(frequency, gain, np.unwrap(phase), amplitude, **metadata)


class NetworkAnalyzer:
    """
    Swept-sine frequency response measurement.

    Drives a hardware client point by point through its
    ``measure_frequency_response(frequency, amplitude)`` method.

    Example:
        >>> na = NetworkAnalyzer(MockRedPitaya(), NetworkAnalyzerConfig())
        >>> result = na.sweep(np.logspace(2, 6, 50))
    """

    def __init__(self, hardware, config: Optional[NetworkAnalyzerConfig] = None):
        self._hardware = hardware
        self._config = config if config is not None else NetworkAnalyzerConfig()
        self._last_result: Optional[SweepResult] = None

    @property
    def config(self) -> NetworkAnalyzerConfig:
        return self._config

    @property
    def last_result(self) -> Optional[SweepResult]:
        return self._last_result

    def sweep(self, frequencies: Sequence[float]) -> SweepResult:
        """
        Perform a frequency sweep.

        Args:
            frequencies: Frequencies in Hz, measured and returned in this order

        Returns:
            SweepResult with gain, phase and output amplitude per frequency
        """
        f = _frequencies(frequencies)
        amplitude = self._config.excitation_amplitude
        points = [self._hardware.measure_frequency_response(float(fk), amplitude) for fk in f]
        result = _collect(
            points,
            window=self._config.window,
            excitation_amplitude=amplitude,
            settling_cycles=self._config.settling_cycles
        )
        self._last_result = result
        return result
