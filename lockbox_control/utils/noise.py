"""
Injectable noise sources.

Every component that perturbs a measurement draws from a NoiseSource handed
to it, so tests can pin the stream with a seed or silence it entirely.
"""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np


class NoiseSource(ABC):
    """Source of standard normal samples."""

    @abstractmethod
    def next_gaussian(self) -> float:
        """Draw one sample from N(0, 1)."""
        pass

    def gaussian_vector(self, count: int) -> np.ndarray:
        """Draw count samples, in stream order."""
        return np.fromiter(
            (self.next_gaussian() for _ in range(count)), dtype=float, count=count
        )


class GaussianNoise(NoiseSource):
    """Normal samples from a private numpy Generator."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = np.random.default_rng(seed)

    def next_gaussian(self) -> float:
        return float(self._rng.standard_normal())

    def gaussian_vector(self, count: int) -> np.ndarray:
        return self._rng.standard_normal(count)


class ZeroNoise(NoiseSource):
    """Always returns 0.0."""

    def next_gaussian(self) -> float:
        return 0.0

    def gaussian_vector(self, count: int) -> np.ndarray:
        return np.zeros(count)
