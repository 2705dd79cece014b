"""
Validation utilities and error taxonomy.
Provides input validation with clear error messages for every engine entry point.
"""

from typing import Type
import numbers

import numpy as np


class ValidationError(ValueError):
    """Custom exception for configuration validation failures."""
    pass


class LockboxError(ValueError):
    """Base class for errors raised by the numeric engine."""
    pass


class InvalidControllerSpec(LockboxError):
    """Non-positive sample period or degenerate PID gains."""
    pass


class InvalidPlantSpec(LockboxError):
    """Pole/zero configuration that cannot be realized as a simulator."""
    pass


class ChannelOutOfRange(LockboxError):
    """Channel index outside the configured bounds."""
    pass


class DimensionMismatch(LockboxError):
    """Input or state length incompatible with the requested operation."""
    pass


def validate_positive(
    value: float,
    name: str,
    error: Type[ValueError] = ValidationError
) -> float:
    """
    Validate that a value is strictly positive and finite.

    Args:
        value: The value to validate
        name: Parameter name for error messages
        error: Exception class to raise

    Returns:
        The validated value

    Raises:
        error: If value is not positive
    """
    if not isinstance(value, numbers.Real):
        raise error(f"{name} must be a real number, got {type(value).__name__}")
    if not np.isfinite(value) or value <= 0:
        raise error(f"{name} must be positive, got {value}")
    return float(value)


def validate_finite(
    value: float,
    name: str,
    error: Type[ValueError] = ValidationError
) -> float:
    """Validate that a value is a finite real number."""
    if not isinstance(value, numbers.Real):
        raise error(f"{name} must be a real number, got {type(value).__name__}")
    if not np.isfinite(value):
        raise error(f"{name} must be finite, got {value}")
    return float(value)


def validate_non_negative(value: float, name: str) -> float:
    """
    Validate that a value is non-negative (>= 0).

    Args:
        value: The value to validate
        name: Parameter name for error messages

    Returns:
        The validated value

    Raises:
        ValidationError: If value is negative
    """
    if not isinstance(value, numbers.Real):
        raise ValidationError(f"{name} must be a real number, got {type(value).__name__}")
    if not np.isfinite(value) or value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")
    return float(value)


def validate_count(
    value: int,
    name: str,
    minimum: int = 1,
    error: Type[ValueError] = ValidationError
) -> int:
    """
    Validate an integer count against a lower bound.

    Args:
        value: The count to validate
        name: Parameter name for error messages
        minimum: Smallest accepted value
        error: Exception class to raise

    Returns:
        The validated count as int
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise error(f"{name} must be an integer, got {type(value).__name__}")
    if value < minimum:
        raise error(f"{name} must be >= {minimum}, got {value}")
    return int(value)


def validate_channel(
    channel: int,
    limit: int,
    label: str = "input"
) -> int:
    """
    Validate a 1-based channel index.

    Args:
        channel: Channel number (1..limit)
        limit: Number of available channels
        label: Channel direction for error messages

    Returns:
        The validated channel

    Raises:
        ChannelOutOfRange: If channel is outside 1..limit
    """
    if isinstance(channel, bool) or not isinstance(channel, numbers.Integral):
        raise ChannelOutOfRange(
            f"Analog {label} channel must be an integer, got {type(channel).__name__}"
        )
    if channel < 1 or channel > limit:
        raise ChannelOutOfRange(
            f"Analog {label} channel {channel} out of range 1..{limit}."
        )
    return int(channel)

