"""
Closed-loop lock simulation.
Steps the discretized PID against the plant simulator one sample at a time.
"""

from typing import Dict, Any, List, Optional
from dataclasses import dataclass
import logging
import time

import numpy as np

from lockbox_control.core.discretizer import discretize_pid
from lockbox_control.core.filters import RecursiveFilter
from lockbox_control.core.pid_params import PIDSpec
from lockbox_control.core.transfer_function import TransferFunction
from lockbox_control.logging.csv_logger import CSVLogger
from lockbox_control.plants.plant_simulator import PlantSimulator
from lockbox_control.simulation.scenarios import SimulationScenario
from lockbox_control.utils.noise import GaussianNoise, NoiseSource

logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    """Container for simulation results."""
    timestamps: np.ndarray
    setpoints: np.ndarray
    measurements: np.ndarray
    outputs: np.ndarray
    errors: np.ndarray
    disturbances: np.ndarray

    scenario_name: str = ""
    controller_params: Optional[Dict[str, Any]] = None
    plant_info: Optional[Dict[str, Any]] = None
    execution_time: float = 0.0

    def __len__(self) -> int:
        return int(self.timestamps.size)

    def to_dict(self) -> Dict[str, np.ndarray]:
        return {
            'time': self.timestamps,
            'setpoint': self.setpoints,
            'measurement': self.measurements,
            'output': self.outputs,
            'error': self.errors,
            'disturbance': self.disturbances,
        }

    def rms_error(self, settle_fraction: float = 0.0) -> float:
        """RMS error, skipping the first settle_fraction of the run."""
        start = int(len(self) * settle_fraction)
        tail = self.errors[start:]
        return float(np.sqrt(np.mean(tail ** 2))) if tail.size else 0.0

    def steady_state_error(self, window: float = 0.1) -> float:
        """Mean error over the last fraction of the run."""
        n = max(1, int(len(self) * window))
        return float(np.mean(self.errors[-n:]))


class ClosedLoopSimulator:
    """
    Discrete lock simulation engine.

    Per step: error = setpoint - measurement, output = PID(error), then the
    plant advances one sample on output and the next measurement is its
    response plus disturbance plus measurement noise.

    Example:
        >>> plant = TransferFunction(poles=[-2 * np.pi * 5e3], gain=2 * np.pi * 5e3)
        >>> sim = ClosedLoopSimulator(plant, PIDSpec(kp=0.5, ki=2e4))
        >>> result = sim.run(ScenarioLibrary.step_response())
    """

    def __init__(
        self,
        plant: TransferFunction,
        pid_spec: Optional[PIDSpec] = None,
        csv_log_path: Optional[str] = None,
        noise_source: Optional[NoiseSource] = None
    ):
        """
        Initialize simulator.

        Args:
            plant: Continuous plant model
            pid_spec: Controller parameters (sample_time is taken from the scenario)
            csv_log_path: Optional path for per-step CSV logging
            noise_source: Gaussian source for noise and random disturbances
        """
        self._plant = plant
        self._spec = pid_spec if pid_spec is not None else PIDSpec()
        self._csv_path = csv_log_path
        self._noise = noise_source if noise_source is not None else GaussianNoise()
        self._results: List[SimulationResult] = []

    def run(self, scenario: SimulationScenario) -> SimulationResult:
        """
        Run a scenario.

        Args:
            scenario: Scenario to run

        Returns:
            SimulationResult containing all data
        """
        start_time = time.perf_counter()

        spec = self._spec.copy(sample_time=scenario.sample_time)
        controller = RecursiveFilter(discretize_pid(spec))
        plant = PlantSimulator(self._plant, scenario.sample_time)

        t = scenario.time_grid()
        setpoints = scenario.setpoints(t)
        disturbances = scenario.disturbances(t, self._noise)
        if scenario.measurement_noise_std > 0:
            noise = scenario.measurement_noise_std * self._noise.gaussian_vector(t.size)
        else:
            noise = np.zeros(t.size)

        measurements = np.zeros(t.size)
        outputs = np.zeros(t.size)
        errors = np.zeros(t.size)

        csv = CSVLogger(self._csv_path) if self._csv_path else None
        measurement = 0.0
        try:
            for i in range(t.size):
                error = setpoints[i] - measurement
                output = controller.update(error)
                response = plant.advance([output])[0]
                measurement = response + disturbances[i] + noise[i]

                errors[i] = error
                outputs[i] = output
                measurements[i] = measurement
                if csv is not None:
                    csv.log({
                        'step': i,
                        'time': t[i],
                        'setpoint': setpoints[i],
                        'measurement': measurement,
                        'error': error,
                        'output': output,
                    })
        finally:
            if csv is not None:
                csv.close()

        execution_time = time.perf_counter() - start_time
        logger.debug("Scenario '%s': %d steps in %.3fs", scenario.name, t.size, execution_time)

        result = SimulationResult(
            timestamps=t,
            setpoints=setpoints,
            measurements=measurements,
            outputs=outputs,
            errors=errors,
            disturbances=disturbances,
            scenario_name=scenario.name,
            controller_params=spec.to_dict(),
            plant_info={
                'zeros': self._plant.zeros.tolist(),
                'poles': self._plant.poles.tolist(),
                'gain': self._plant.gain,
                'order': plant.order,
            },
            execution_time=execution_time
        )
        self._results.append(result)
        return result

    def run_comparison(
        self,
        scenario: SimulationScenario,
        specs: Dict[str, PIDSpec]
    ) -> Dict[str, SimulationResult]:
        """Run one scenario with several controllers."""
        original = self._spec
        results = {}
        try:
            for name, spec in specs.items():
                self._spec = spec
                result = self.run(scenario)
                result.scenario_name = f"{scenario.name} - {name}"
                results[name] = result
        finally:
            self._spec = original
        return results

    def set_spec(self, spec: PIDSpec) -> None:
        self._spec = spec

    @property
    def spec(self) -> PIDSpec:
        return self._spec

    @property
    def results(self) -> List[SimulationResult]:
        return self._results

    @property
    def last_result(self) -> Optional[SimulationResult]:
        return self._results[-1] if self._results else None

    def clear_results(self) -> None:
        self._results.clear()
