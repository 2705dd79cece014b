"""Continuous-time plant simulation."""

from lockbox_control.plants.state_space import StateSpace, discretize_zoh, realize
from lockbox_control.plants.plant_simulator import PlantSimulator, PlantState

__all__ = [
    "StateSpace",
    "discretize_zoh",
    "realize",
    "PlantSimulator",
    "PlantState",
]
