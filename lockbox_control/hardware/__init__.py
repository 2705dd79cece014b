"""Mock instrument backend. Noise sources are re-exported from utils.noise."""

from lockbox_control.utils.noise import GaussianNoise, NoiseSource, ZeroNoise
from lockbox_control.hardware.mock_client import MockRedPitaya

__all__ = [
    "GaussianNoise",
    "NoiseSource",
    "ZeroNoise",
    "MockRedPitaya",
]
