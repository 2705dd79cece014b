"""
Configuration structures for the mock instrument and its modules.

Values arrive as plain dictionaries from whatever loader the application
uses; each structure validates its own ranges on construction.
"""

from dataclasses import dataclass, field, asdict, fields
from typing import Any, Dict, List, Optional, Sequence, Union
import json

import numpy as np

from lockbox_control.core.pid_params import PIDSpec, DEFAULT_SAMPLE_RATE
from lockbox_control.core.transfer_function import TransferFunction
from lockbox_control.utils.validators import (
    ValidationError,
    validate_count,
    validate_finite,
    validate_non_negative,
    validate_positive,
)

RootLike = Union[float, complex, str, Sequence[float]]


def _parse_root(value: RootLike) -> complex:
    """Accept 3.0, 1+2j, "1+2j" or a [re, im] pair."""
    if isinstance(value, str):
        return complex(value.replace(' ', ''))
    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            raise ValidationError(f"root pair must be [re, im], got {value!r}")
        return complex(float(value[0]), float(value[1]))
    return complex(value)


def _from_dict(cls, data: Dict[str, Any]):
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValidationError(f"unknown {cls.__name__} keys: {sorted(unknown)}")
    return cls(**data)


@dataclass
class PlantConfig:
    """Mock plant in zero/pole/gain form. Default: 5 kHz first-order low-pass."""
    zeros: List[complex] = field(default_factory=list)
    poles: List[complex] = field(default_factory=lambda: [complex(-2 * np.pi * 5e3)])
    gain: float = 2 * np.pi * 5e3

    def __post_init__(self):
        self.zeros = [_parse_root(z) for z in self.zeros]
        self.poles = [_parse_root(p) for p in self.poles]
        self.gain = float(self.gain)
        if not np.isfinite(self.gain):
            raise ValidationError(f"plant gain must be finite, got {self.gain}")

    def to_transfer_function(self) -> TransferFunction:
        return TransferFunction(self.zeros, self.poles, self.gain)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'zeros': [[z.real, z.imag] for z in self.zeros],
            'poles': [[p.real, p.imag] for p in self.poles],
            'gain': self.gain,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlantConfig':
        return _from_dict(cls, data)


@dataclass
class HardwareConfig:
    """Red Pitaya connection and mock backend settings."""
    hostname: str = ''
    port: int = 5000
    timeout: float = 5.0
    sample_rate: float = DEFAULT_SAMPLE_RATE
    analog_in_channels: int = 2
    analog_out_channels: int = 2
    mock: bool = True
    noise_level: float = 0.0
    phase_noise: float = float(np.deg2rad(0.2))
    plant: PlantConfig = field(default_factory=PlantConfig)

    def __post_init__(self):
        if isinstance(self.plant, dict):
            self.plant = PlantConfig.from_dict(self.plant)
        validate_count(self.port, 'port', minimum=0)
        validate_positive(self.timeout, 'timeout')
        validate_positive(self.sample_rate, 'sample_rate')
        validate_count(self.analog_in_channels, 'analog_in_channels')
        validate_count(self.analog_out_channels, 'analog_out_channels')
        validate_non_negative(self.noise_level, 'noise_level')
        validate_non_negative(self.phase_noise, 'phase_noise')

    @property
    def sample_time(self) -> float:
        return 1.0 / self.sample_rate

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['plant'] = self.plant.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HardwareConfig':
        return _from_dict(cls, data)


@dataclass
class SearchConfig:
    """Coarse actuator scan settings."""
    strategy: str = 'raster'
    range: float = 0.5
    speed: float = 0.05
    points: int = 200

    def __post_init__(self):
        validate_positive(self.range, 'search.range')
        validate_positive(self.speed, 'search.speed')
        validate_count(self.points, 'search.points', minimum=2)


@dataclass
class SimulationConfig:
    """Closed-loop lock simulation settings."""
    duration: float = 0.02
    disturbance_amplitude: float = 0.05
    disturbance_frequency: float = 50.0
    sample_time: Optional[float] = 1e-6  # None: use the lockbox sample period

    def __post_init__(self):
        validate_positive(self.duration, 'simulation.duration')
        validate_non_negative(self.disturbance_amplitude, 'simulation.disturbance_amplitude')
        validate_positive(self.disturbance_frequency, 'simulation.disturbance_frequency')
        if self.sample_time is not None:
            validate_positive(self.sample_time, 'simulation.sample_time')


@dataclass
class LockboxConfig:
    """Lockbox module settings. Channels are 1-based."""
    input_channel: int = 1
    output_channel: int = 1
    setpoint: float = 0.0
    controller: PIDSpec = field(default_factory=PIDSpec)
    search: SearchConfig = field(default_factory=SearchConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)

    def __post_init__(self):
        if isinstance(self.controller, dict):
            self.controller = PIDSpec.from_dict(self.controller)
        if isinstance(self.search, dict):
            self.search = _from_dict(SearchConfig, self.search)
        if isinstance(self.simulation, dict):
            self.simulation = _from_dict(SimulationConfig, self.simulation)
        validate_count(self.input_channel, 'input_channel')
        validate_count(self.output_channel, 'output_channel')
        validate_finite(self.setpoint, 'setpoint')

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LockboxConfig':
        return _from_dict(cls, data)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> 'LockboxConfig':
        return cls.from_dict(json.loads(json_str))


@dataclass
class NetworkAnalyzerConfig:
    """Swept-sine measurement settings."""
    window: str = 'hann'
    settling_cycles: int = 10
    excitation_amplitude: float = 0.1
    output_channel: int = 1
    input_channel: int = 1

    def __post_init__(self):
        validate_count(self.settling_cycles, 'settling_cycles', minimum=0)
        validate_non_negative(self.excitation_amplitude, 'excitation_amplitude')
        validate_count(self.output_channel, 'output_channel')
        validate_count(self.input_channel, 'input_channel')

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NetworkAnalyzerConfig':
        return _from_dict(cls, data)


@dataclass
class SpectrumAnalyzerConfig:
    """Averaged PSD settings."""
    input_channel: int = 1
    fft_length: int = 4096
    window: str = 'hann'
    averages: int = 4
    refresh_rate: float = 5.0

    def __post_init__(self):
        validate_count(self.input_channel, 'input_channel')
        validate_count(self.fft_length, 'fft_length', minimum=2)
        if self.fft_length % 2:
            raise ValidationError(f"fft_length must be even, got {self.fft_length}")
        validate_count(self.averages, 'averages')
        validate_positive(self.refresh_rate, 'refresh_rate')

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SpectrumAnalyzerConfig':
        return _from_dict(cls, data)
