"""Network analyzer, spectrum analyzer and loop analysis components."""

from lockbox_control.analyzer.frequency_response import (
    FrequencyResponse,
    FrequencyResponseEstimator,
    NetworkAnalyzer,
    SweepResult,
)
from lockbox_control.analyzer.spectrum import (
    SpectrumAnalyzer,
    SpectrumEstimator,
    SpectrumResult,
    create_window,
)
from lockbox_control.analyzer.control_analysis import ControlSystemAnalyzer
from lockbox_control.analyzer.plots import LockboxPlotter

__all__ = [
    "FrequencyResponse",
    "FrequencyResponseEstimator",
    "NetworkAnalyzer",
    "SweepResult",
    "SpectrumAnalyzer",
    "SpectrumEstimator",
    "SpectrumResult",
    "create_window",
    "ControlSystemAnalyzer",
    "LockboxPlotter",
]
