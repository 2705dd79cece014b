"""Core lockbox components: transfer functions, PID discretization, filters."""

from lockbox_control.core.transfer_function import TransferFunction
from lockbox_control.core.pid_params import PIDSpec
from lockbox_control.core.filters import DiscreteFilter, RecursiveFilter, lfilter_tdf2
from lockbox_control.core.discretizer import bilinear, continuous_pid, discretize_pid
from lockbox_control.core.lockbox import Lockbox, LockboxState, LockSimulation, SearchProfile

__all__ = [
    "TransferFunction",
    "PIDSpec",
    "DiscreteFilter",
    "RecursiveFilter",
    "lfilter_tdf2",
    "bilinear",
    "continuous_pid",
    "discretize_pid",
    "Lockbox",
    "LockboxState",
    "LockSimulation",
    "SearchProfile",
]
