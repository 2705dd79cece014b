"""
Mock Red Pitaya client.

Stands in for the instrument: analog inputs are produced by driving the
configured plant with the configured excitation, analog outputs are stored,
and frequency responses are evaluated on the plant model. No network
protocol is implemented; a non-mock configuration falls back to the mock
backend with a warning.
"""

from dataclasses import dataclass
import logging
from typing import Dict, Optional

import numpy as np

from lockbox_control.analyzer.frequency_response import (
    FrequencyResponse,
    FrequencyResponseEstimator,
)
from lockbox_control.config import HardwareConfig
from lockbox_control.core.transfer_function import TransferFunction
from lockbox_control.plants.plant_simulator import PlantSimulator
from lockbox_control.utils.noise import GaussianNoise, NoiseSource
from lockbox_control.utils.validators import (
    DimensionMismatch,
    validate_channel,
    validate_finite,
    validate_non_negative,
)

DEFAULT_ACQUISITION_LENGTH = 2 ** 14
DEFAULT_EXCITATION = (0.1, 10e3)  # amplitude (V), frequency (Hz)
PICKUP = (0.02, 2e3)  # extra tone on input 2


@dataclass(frozen=True)
class SineOutput:
    """Sine excitation configured on one analog output."""
    amplitude: float
    frequency: float
    offset: float = 0.0


class MockRedPitaya:
    """
    Simulated Red Pitaya/STEMlab board.

    Channels are 1-based (IN1/IN2, OUT1/OUT2).

    Example:
        >>> hw = MockRedPitaya(HardwareConfig(noise_level=0.0))
        >>> hw.connect()
        >>> data = hw.acquire_analog_in(1, 1024)
        >>> hw.set_analog_out(1, 0.25)
    """

    def __init__(
        self,
        config: Optional[HardwareConfig] = None,
        noise_source: Optional[NoiseSource] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the mock backend.

        Args:
            config: Hardware configuration (defaults if None)
            noise_source: Gaussian source for measurement noise
            logger: Notification path (module logger if None)
        """
        self._config = config if config is not None else HardwareConfig()
        self._noise = noise_source if noise_source is not None else GaussianNoise()
        self._log = logger if logger is not None else logging.getLogger(__name__)

        self._mock = self._config.mock
        self._connected = False
        self._analog_out = np.zeros(self._config.analog_out_channels)
        self._sine: Dict[int, SineOutput] = {}

        self._plant_model = self._config.plant.to_transfer_function()
        self._plant = PlantSimulator(self._plant_model, self._config.sample_time)
        self._estimator = FrequencyResponseEstimator(
            self._plant_model,
            noise_level=self._config.noise_level,
            phase_noise=self._config.phase_noise,
            noise_source=self._noise
        )

    @property
    def config(self) -> HardwareConfig:
        return self._config

    @property
    def sample_rate(self) -> float:
        return self._config.sample_rate

    @property
    def sample_time(self) -> float:
        return self._config.sample_time

    @property
    def analog_in_channels(self) -> int:
        return self._config.analog_in_channels

    @property
    def analog_out_channels(self) -> int:
        return self._config.analog_out_channels

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def mock_mode(self) -> bool:
        return self._mock

    @property
    def analog_out(self) -> np.ndarray:
        """Copy of the DC values held on the analog outputs."""
        return self._analog_out.copy()

    @property
    def plant_simulator(self) -> PlantSimulator:
        return self._plant

    def get_mock_plant(self) -> TransferFunction:
        """The simulated plant model."""
        return self._plant_model

    def connect(self) -> None:
        """Prepare the backend; only the mock backend exists."""
        if self._connected:
            return
        if not self._mock and self._config.hostname:
            self._log.warning(
                "No hardware protocol for %s:%d; falling back to mock mode.",
                self._config.hostname, self._config.port
            )
            self._mock = True
        self._log.debug("MockRedPitaya operating in mock mode.")
        self._connected = True

    def disconnect(self) -> None:
        self._connected = False

    def set_analog_out(self, channel: int, value: float) -> None:
        """
        Set the DC value of an analog output.

        Raises:
            ChannelOutOfRange: If channel is not 1..analog_out_channels
        """
        channel = validate_channel(channel, self.analog_out_channels, 'output')
        self._analog_out[channel - 1] = validate_finite(value, 'value')

    def configure_sine_output(
        self,
        channel: int,
        amplitude: float,
        frequency: float,
        offset: float = 0.0
    ) -> None:
        """Configure a sine excitation on an analog output."""
        channel = validate_channel(channel, self.analog_out_channels, 'output')
        self._sine[channel] = SineOutput(
            validate_non_negative(amplitude, 'amplitude'),
            validate_non_negative(frequency, 'frequency'),
            validate_finite(offset, 'offset')
        )

    def clear_sine_output(self, channel: int) -> None:
        channel = validate_channel(channel, self.analog_out_channels, 'output')
        self._sine.pop(channel, None)

    def acquire_analog_in(
        self,
        channel: int,
        count: int = DEFAULT_ACQUISITION_LENGTH
    ) -> np.ndarray:
        """
        Capture analog input samples.

        The plant is driven by the configured sine outputs (or the default
        10 kHz excitation when none is configured) plus the DC outputs; its
        state carries over between acquisitions.

        Args:
            channel: Input channel (1-based)
            count: Number of samples; 0 returns an empty array

        Returns:
            Array of count samples

        Raises:
            ChannelOutOfRange: If channel is not 1..analog_in_channels
            DimensionMismatch: If count is negative or not an integer
        """
        channel = validate_channel(channel, self.analog_in_channels, 'input')
        if isinstance(count, bool) or not isinstance(count, (int, np.integer)) or count < 0:
            raise DimensionMismatch(f"sample count must be a non-negative integer, got {count!r}")
        if count == 0:
            return np.empty(0)

        t = np.arange(count) / self.sample_rate
        drive = np.full(count, float(np.sum(self._analog_out)))
        if self._sine:
            for sine in self._sine.values():
                drive += sine.amplitude * np.sin(2 * np.pi * sine.frequency * t) + sine.offset
        else:
            amplitude, frequency = DEFAULT_EXCITATION
            drive += amplitude * np.sin(2 * np.pi * frequency * t)

        data = self._plant.advance(drive)
        if self._config.noise_level > 0:
            data = data + self._config.noise_level * self._noise.gaussian_vector(count)
        if channel == 2:
            amplitude, frequency = PICKUP
            data = data + amplitude * np.sin(2 * np.pi * frequency * t)
        return data

    def measure_frequency_response(
        self,
        frequency: float,
        amplitude: float = 1.0
    ) -> FrequencyResponse:
        """Estimate the plant response at one frequency (Hz)."""
        return self._estimator.measure(frequency, amplitude)

    def reset_plant(self) -> None:
        """Zero the simulated plant state."""
        self._plant.reset()

    def __repr__(self) -> str:
        return f"MockRedPitaya(fs={self.sample_rate:g}Hz, plant={self._plant_model!r})"
