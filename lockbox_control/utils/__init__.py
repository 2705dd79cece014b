"""Validation helpers, the engine error taxonomy and noise sources."""

from lockbox_control.utils.validators import (
    ValidationError,
    LockboxError,
    InvalidControllerSpec,
    InvalidPlantSpec,
    ChannelOutOfRange,
    DimensionMismatch,
    validate_positive,
    validate_finite,
    validate_non_negative,
    validate_count,
    validate_channel,
)
from lockbox_control.utils.noise import GaussianNoise, NoiseSource, ZeroNoise

__all__ = [
    "ValidationError",
    "LockboxError",
    "InvalidControllerSpec",
    "InvalidPlantSpec",
    "ChannelOutOfRange",
    "DimensionMismatch",
    "validate_positive",
    "validate_finite",
    "validate_non_negative",
    "validate_count",
    "validate_channel",
    "GaussianNoise",
    "NoiseSource",
    "ZeroNoise",
]
