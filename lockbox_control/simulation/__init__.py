"""Closed-loop lock simulation."""

from lockbox_control.simulation.simulator import ClosedLoopSimulator, SimulationResult
from lockbox_control.simulation.scenarios import (
    DisturbanceType,
    ScenarioLibrary,
    SetpointType,
    SimulationScenario,
)

__all__ = [
    "ClosedLoopSimulator",
    "SimulationResult",
    "DisturbanceType",
    "ScenarioLibrary",
    "SetpointType",
    "SimulationScenario",
]
