"""
Lockbox Control
===============

Simulated instrument feedback loop:
- Continuous PID discretized with the bilinear transform and run as an IIR filter
- Continuous-time plant simulation with carried-over state
- Swept-sine network analyzer and averaged PSD spectrum analyzer
- Mock Red Pitaya backend
"""

from lockbox_control.core.transfer_function import TransferFunction
from lockbox_control.core.pid_params import PIDSpec
from lockbox_control.core.discretizer import discretize_pid
from lockbox_control.core.lockbox import Lockbox, LockboxState
from lockbox_control.plants.plant_simulator import PlantSimulator
from lockbox_control.hardware.mock_client import MockRedPitaya
from lockbox_control.analyzer.frequency_response import NetworkAnalyzer, FrequencyResponseEstimator
from lockbox_control.analyzer.spectrum import SpectrumAnalyzer, SpectrumEstimator
from lockbox_control.simulation.simulator import ClosedLoopSimulator
from lockbox_control.config import HardwareConfig, LockboxConfig

__version__ = "1.0.0"
__all__ = [
    "TransferFunction",
    "PIDSpec",
    "discretize_pid",
    "Lockbox",
    "LockboxState",
    "PlantSimulator",
    "MockRedPitaya",
    "NetworkAnalyzer",
    "FrequencyResponseEstimator",
    "SpectrumAnalyzer",
    "SpectrumEstimator",
    "ClosedLoopSimulator",
    "HardwareConfig",
    "LockboxConfig",
]
