"""
PID Controller Specification.
Continuous-time PID gains plus the sample period used for discretization.
"""

from dataclasses import dataclass, asdict, replace
from typing import Dict, Any
import json

from lockbox_control.utils.validators import (
    InvalidControllerSpec,
    validate_finite,
    validate_positive,
)

DEFAULT_SAMPLE_RATE = 125e6


@dataclass
class PIDSpec:
    """
    Continuous PID specification.

    C(s) = Kp + Ki/s + Kd*N*s/(s + N)

    Gains may be negative (inverting lock); a lock needs at least one
    non-zero gain.
    """

    kp: float = 0.1  # Proportional gain
    ki: float = 100.0  # Integral gain (1/s)
    kd: float = 0.0  # Derivative gain (s)
    filter_coefficient: float = 100.0  # N, pseudo-derivative pole (rad/s)
    sample_time: float = 1.0 / DEFAULT_SAMPLE_RATE  # Ts in seconds

    def __post_init__(self):
        """Validate parameters after initialization."""
        self.validate()

    def validate(self) -> None:
        """
        Validate all parameters.

        Raises:
            InvalidControllerSpec: On a non-positive sample period,
                non-finite gains or all-zero gains
        """
        for name in ('kp', 'ki', 'kd'):
            validate_finite(getattr(self, name), name, InvalidControllerSpec)
        validate_positive(self.sample_time, 'sample_time', InvalidControllerSpec)

        if self.kp == 0 and self.ki == 0 and self.kd == 0:
            raise InvalidControllerSpec(
                "all PID gains are zero; the controller would never act"
            )
        if self.kd != 0:
            validate_positive(
                self.filter_coefficient, 'filter_coefficient', InvalidControllerSpec
            )

    @property
    def has_integral(self) -> bool:
        return self.ki != 0

    @property
    def has_derivative(self) -> bool:
        return self.kd != 0

    def copy(self, **changes) -> 'PIDSpec':
        """
        Create a copy with optional parameter changes.

        Args:
            **changes: Parameters to override

        Returns:
            New, validated PIDSpec instance
        """
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PIDSpec':
        """
        Create from dictionary.

        Args:
            data: Dictionary of parameters; unknown keys are rejected

        Returns:
            PIDSpec instance
        """
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise InvalidControllerSpec(f"unknown controller keys: {sorted(unknown)}")
        return cls(**{k: float(v) for k, v in data.items()})

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> 'PIDSpec':
        """Create from JSON string."""
        return cls.from_dict(json.loads(json_str))

    def __str__(self) -> str:
        return (
            f"PIDSpec(Kp={self.kp:g}, Ki={self.ki:g}, Kd={self.kd:g}, "
            f"N={self.filter_coefficient:g}, Ts={self.sample_time:g}s, "
            f"fs={1.0 / self.sample_time:g}Hz)"
        )
