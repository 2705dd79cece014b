"""
Averaged one-sided power spectral density.

For each of K acquisitions of N samples:

    X   = FFT(x * w)
    PSD = |X[0..N/2]|^2 / (sum(w^2) * fs),  bins 1..N/2-1 doubled

and the K periodograms are averaged.
"""

from dataclasses import dataclass
import logging
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import numpy as np

from lockbox_control.config import SpectrumAnalyzerConfig
from lockbox_control.utils.validators import (
    DimensionMismatch,
    ValidationError,
    validate_count,
    validate_positive,
)

SampleSource = Callable[[int, int], Sequence[float]]

RECTANGULAR = 'rectangular'


def _rectangular(n: int) -> np.ndarray:
    return np.ones(n)


def _cosine_sum(n: int, coefficients: Sequence[float]) -> np.ndarray:
    """Periodic generalized cosine window: sum_k (-1)^k c_k cos(2*pi*k*i/N)."""
    phase = 2 * np.pi * np.arange(n) / n
    w = np.zeros(n)
    for k, c in enumerate(coefficients):
        w += (-1) ** k * c * np.cos(k * phase)
    return w


WINDOWS: Dict[str, Callable[[int], np.ndarray]] = {
    RECTANGULAR: _rectangular,
    'hann': lambda n: _cosine_sum(n, (0.5, 0.5)),
    'hamming': lambda n: _cosine_sum(n, (0.54, 0.46)),
    'blackman': lambda n: _cosine_sum(n, (0.42, 0.5, 0.08)),
}


def create_window(name: str, n: int) -> Tuple[np.ndarray, str]:
    """
    Periodic window of length n.

    Args:
        name: Window name (case-insensitive)
        n: Window length

    Returns:
        Tuple of (window, name of the window actually generated); unknown
        names yield the rectangular window
    """
    key = str(name).strip().lower()
    if key not in WINDOWS:
        key = RECTANGULAR
    return WINDOWS[key](n), key


def periodogram(data: np.ndarray, window: np.ndarray, sample_rate: float) -> np.ndarray:
    """One-sided PSD of one windowed block of even length."""
    n = window.size
    spectrum = np.fft.rfft(data * window)
    psd = np.abs(spectrum) ** 2 / (np.sum(window ** 2) * sample_rate)
    psd[1:n // 2] *= 2
    return psd


@dataclass
class SpectrumResult:
    """Averaged one-sided PSD, bins 0, fs/N, ..., fs/2."""
    frequency: np.ndarray
    psd: np.ndarray
    window: str
    requested_window: str
    fft_length: int
    averages: int
    window_substituted: bool = False

    def __len__(self) -> int:
        return int(self.psd.size)

    @property
    def resolution(self) -> float:
        """Bin spacing in Hz."""
        return float(self.frequency[1] - self.frequency[0]) if self.frequency.size > 1 else 0.0

    @property
    def amplitude_spectral_density(self) -> np.ndarray:
        return np.sqrt(self.psd)

    def total_power(self) -> float:
        """Integrated power (sum of PSD times bin width)."""
        return float(np.sum(self.psd) * self.resolution)

    def peak(self) -> Tuple[float, float]:
        """(frequency, psd) of the largest bin."""
        k = int(np.argmax(self.psd))
        return float(self.frequency[k]), float(self.psd[k])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'frequency': self.frequency.tolist(),
            'psd': self.psd.tolist(),
            'window': self.window,
            'requested_window': self.requested_window,
            'fft_length': self.fft_length,
            'averages': self.averages,
            'window_substituted': self.window_substituted,
        }


class SpectrumEstimator:
    """
    Averaged periodogram over repeated fixed-size acquisitions.

    Example:
        >>> est = SpectrumEstimator(hw.acquire_analog_in, sample_rate=125e6,
        ...                         fft_length=4096, window='hann', averages=4)
        >>> result = est.acquire()
    """

    def __init__(
        self,
        source: SampleSource,
        sample_rate: float,
        fft_length: int = 4096,
        window: str = 'hann',
        averages: int = 4,
        channel: int = 1,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize estimator.

        Args:
            source: Blocking acquire(channel, count) sample source
            sample_rate: Sample rate in Hz
            fft_length: Samples per acquisition (positive, even)
            window: rectangular, hann, hamming or blackman
            averages: Number of acquisitions K
            channel: Channel passed to the source
            logger: Notification path for window substitution
        """
        self._source = source
        self._sample_rate = validate_positive(sample_rate, 'sample_rate')
        self._fft_length = validate_count(fft_length, 'fft_length', minimum=2)
        if self._fft_length % 2:
            raise ValidationError(f"fft_length must be even, got {fft_length}")
        self._averages = validate_count(averages, 'averages')
        self._window = window
        self._channel = channel
        self._log = logger if logger is not None else logging.getLogger(__name__)

    @property
    def fft_length(self) -> int:
        return self._fft_length

    @property
    def averages(self) -> int:
        return self._averages

    @property
    def sample_rate(self) -> float:
        return self._sample_rate

    def frequencies(self) -> np.ndarray:
        """Bin centers 0..fs/2 in steps of fs/N."""
        n = self._fft_length
        return np.arange(n // 2 + 1) * (self._sample_rate / n)

    def acquire(self) -> SpectrumResult:
        """
        Compute an averaged power spectrum.

        Returns:
            SpectrumResult with N/2 + 1 bins

        Raises:
            DimensionMismatch: If the source returns a block of the wrong size
        """
        n = self._fft_length
        window, applied = create_window(self._window, n)
        substituted = applied != str(self._window).strip().lower()
        if substituted:
            self._log.warning(
                "Unknown window %r, using rectangular.", self._window
            )

        acc = np.zeros(n // 2 + 1)
        for _ in range(self._averages):
            data = np.asarray(self._source(self._channel, n), dtype=float).ravel()
            if data.size != n:
                raise DimensionMismatch(
                    f"sample source returned {data.size} samples, expected {n}"
                )
            acc += periodogram(data, window, self._sample_rate)

        return SpectrumResult(
            frequency=self.frequencies(),
            psd=acc / self._averages,
            window=applied,
            requested_window=str(self._window),
            fft_length=n,
            averages=self._averages,
            window_substituted=substituted
        )


class SpectrumAnalyzer:
    """Spectrum analyzer module reading from a hardware client."""

    def __init__(
        self,
        hardware,
        config: Optional[SpectrumAnalyzerConfig] = None,
        logger: Optional[logging.Logger] = None
    ):
        self._hardware = hardware
        self._config = config if config is not None else SpectrumAnalyzerConfig()
        self._log = logger
        self._last_spectrum: Optional[SpectrumResult] = None

    @property
    def config(self) -> SpectrumAnalyzerConfig:
        return self._config

    @property
    def last_spectrum(self) -> Optional[SpectrumResult]:
        return self._last_spectrum

    def acquire(self) -> SpectrumResult:
        """Acquire and average config.averages spectra from the input channel."""
        estimator = SpectrumEstimator(
            self._hardware.acquire_analog_in,
            sample_rate=self._hardware.sample_rate,
            fft_length=self._config.fft_length,
            window=self._config.window,
            averages=self._config.averages,
            channel=self._config.input_channel,
            logger=self._log
        )
        self._last_spectrum = estimator.acquire()
        return self._last_spectrum
