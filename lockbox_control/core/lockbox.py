"""
Digital lockbox: discrete PID control loop around a hardware client.

State machine:

    UNCONFIGURED --configure--> CONFIGURED --start--> RUNNING --stop--> STOPPED
                                               ^                          |
                                               +----------start-----------+

Each control step is an explicit call (update or lock_step); the lockbox
never runs on its own.
"""

from dataclasses import dataclass, replace
from enum import Enum
import logging
from typing import Any, Dict, Optional

import numpy as np
from scipy import signal

from lockbox_control.analyzer.control_analysis import ControlSystemAnalyzer
from lockbox_control.config import LockboxConfig
from lockbox_control.core.discretizer import continuous_pid, discretize_pid
from lockbox_control.core.filters import RecursiveFilter
from lockbox_control.core.pid_params import PIDSpec
from lockbox_control.core.transfer_function import TransferFunction
from lockbox_control.logging.csv_logger import CSVLogger
from lockbox_control.plants.plant_simulator import PlantSimulator
from lockbox_control.utils.validators import validate_channel, validate_finite, validate_positive


class LockboxState(Enum):
    UNCONFIGURED = 'unconfigured'
    CONFIGURED = 'configured'
    RUNNING = 'running'
    STOPPED = 'stopped'


@dataclass
class LockSimulation:
    """Closed-loop response of feedback(C*G, 1) to a square disturbance."""
    time: np.ndarray
    disturbance: np.ndarray
    output: np.ndarray
    controller: TransferFunction
    plant: TransferFunction
    closed_loop: TransferFunction

    @property
    def error(self) -> np.ndarray:
        """Residual: disturbance not followed by the loop."""
        return self.disturbance - self.output

    def rms_error(self) -> float:
        return float(np.sqrt(np.mean(self.error ** 2))) if self.error.size else 0.0


@dataclass
class SearchProfile:
    """Expected static measurement over a linear actuator scan."""
    actuator: np.ndarray
    measurement: np.ndarray
    dc_gain: float


class Lockbox:
    """
    PID lock of one analog input onto one analog output.

    The hardware client must provide ``acquire_analog_in(channel, count)``,
    ``set_analog_out(channel, value)``, ``get_mock_plant()``, ``sample_rate``
    and the analog channel counts.

    Example:
        >>> hw = MockRedPitaya()
        >>> lockbox = Lockbox(hw, LockboxConfig(setpoint=0.1))
        >>> lockbox.start()
        >>> out = lockbox.update(0.05)
    """

    def __init__(
        self,
        hardware,
        config: Optional[LockboxConfig] = None,
        csv_path: Optional[str] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize lockbox (UNCONFIGURED until configure() or start()).

        Args:
            hardware: Sample source and actuator sink
            config: Lockbox settings (defaults if None)
            csv_path: Optional path for per-step CSV logging
            logger: Notification path (module logger if None)
        """
        self._hardware = hardware
        self._config = config if config is not None else LockboxConfig()
        self._log = logger if logger is not None else logging.getLogger(__name__)
        self._csv = CSVLogger(csv_path) if csv_path else None

        self._state = LockboxState.UNCONFIGURED
        self._filter: Optional[RecursiveFilter] = None
        self._controller: Optional[TransferFunction] = None
        self._spec: Optional[PIDSpec] = None
        self._output = 0.0
        self._steps = 0
        self._last_simulation: Optional[LockSimulation] = None

    @property
    def state(self) -> LockboxState:
        return self._state

    @property
    def config(self) -> LockboxConfig:
        return self._config

    @property
    def sample_time(self) -> float:
        return 1.0 / self._hardware.sample_rate

    @property
    def controller_spec(self) -> Optional[PIDSpec]:
        """Controller as discretized: config.controller at the hardware rate."""
        return self._spec

    @property
    def discrete_filter(self):
        return self._filter.discrete_filter if self._filter is not None else None

    @property
    def continuous_controller(self) -> Optional[TransferFunction]:
        return self._controller

    @property
    def output(self) -> float:
        """Last actuator value."""
        return self._output

    @property
    def step_count(self) -> int:
        return self._steps

    @property
    def last_simulation(self) -> Optional[LockSimulation]:
        return self._last_simulation

    def configure(self, config: Optional[LockboxConfig] = None) -> None:
        """
        Validate channels and discretize the controller.

        On failure the previous configuration, filter and state are kept.
        Reconfiguring while RUNNING swaps the filter (zero state) and keeps
        running.

        Args:
            config: New settings (current settings if None)

        Raises:
            ChannelOutOfRange: If a channel does not exist on the hardware
            InvalidControllerSpec: If the controller cannot be discretized
        """
        config = config if config is not None else self._config
        validate_channel(config.input_channel, self._hardware.analog_in_channels, 'input')
        validate_channel(config.output_channel, self._hardware.analog_out_channels, 'output')
        spec = config.controller.copy(sample_time=self.sample_time)
        discrete = discretize_pid(spec)
        controller = continuous_pid(spec)

        self._config = config
        self._spec = spec
        self._filter = RecursiveFilter(discrete)
        self._controller = controller
        if self._state is not LockboxState.RUNNING:
            self._state = LockboxState.CONFIGURED
        self._log.info("Lockbox configured: %s", spec)

    def set_controller(self, spec: PIDSpec) -> None:
        """Replace the PID parameters (see configure)."""
        self.configure(replace(self._config, controller=spec))

    def set_setpoint(self, setpoint: float) -> None:
        self._config = replace(self._config, setpoint=setpoint)

    def start(self) -> None:
        """Enter RUNNING with zero filter state; ignored while RUNNING."""
        if self._state is LockboxState.RUNNING:
            self._log.debug("Lockbox already running.")
            return
        if self._state is LockboxState.UNCONFIGURED:
            self.configure()
        self._filter.reset()
        self._steps = 0
        self._state = LockboxState.RUNNING
        self._log.info("Lockbox started.")

    def stop(self) -> None:
        """Halt evaluation; the last actuator value stays on the output."""
        if self._state is LockboxState.RUNNING:
            self._state = LockboxState.STOPPED
            self._log.info("Lockbox stopped at output %.6g.", self._output)

    def update(self, measurement: float) -> float:
        """
        Run one control step for a measurement.

        error = setpoint - measurement, output = PID(error). Outside RUNNING
        nothing is evaluated and the last output is returned.

        Args:
            measurement: Sampled plant output

        Returns:
            Actuator value

        Raises:
            ValidationError: If measurement is not finite; the filter is untouched
        """
        if self._state is not LockboxState.RUNNING:
            self._log.debug("update() ignored in state %s.", self._state.value)
            return self._output

        measurement = validate_finite(measurement, 'measurement')
        error = self._config.setpoint - measurement
        self._output = self._filter.update(error)
        try:
            self._hardware.set_analog_out(self._config.output_channel, self._output)
        except Exception as e:
            self._log.warning("Lockbox output dispatch skipped: %s", e)

        if self._csv is not None:
            try:
                self._csv.log({
                    'step': self._steps,
                    'time': self._steps * self.sample_time,
                    'setpoint': self._config.setpoint,
                    'measurement': measurement,
                    'error': error,
                    'output': self._output,
                })
            except RuntimeError as e:
                self._log.warning("Lockbox step log skipped: %s", e)
        self._steps += 1
        return self._output

    def lock_step(self) -> float:
        """
        Acquire one sample from the input channel and run update() on it.

        Returns:
            Actuator value (the last one if acquisition fails)
        """
        if self._state is not LockboxState.RUNNING:
            return self._output
        try:
            sample = self._hardware.acquire_analog_in(self._config.input_channel, 1)
            measurement = validate_finite(float(sample[-1]), 'measurement')
        except Exception as e:
            self._log.warning("Lockbox acquisition failed: %s", e)
            return self._output
        return self.update(measurement)

    def simulate_lock(self, duration: Optional[float] = None) -> LockSimulation:
        """
        Simulate the closed loop feedback(C*G, 1) on the mock plant.

        The loop is driven by a square disturbance of the configured amplitude
        and frequency, sampled on 0, Ts, ..., duration.

        Args:
            duration: Simulated time in seconds (config value if None)

        Returns:
            LockSimulation
        """
        sim_cfg = self._config.simulation
        duration = sim_cfg.duration if duration is None else validate_positive(duration, 'duration')
        ts = sim_cfg.sample_time if sim_cfg.sample_time is not None else self.sample_time
        if self._controller is None:
            self.configure()

        plant = self._hardware.get_mock_plant()
        closed_loop = (self._controller * plant).feedback(1.0)
        t = np.arange(int(np.floor(duration / ts + 1e-9)) + 1) * ts
        disturbance = sim_cfg.disturbance_amplitude * signal.square(
            2 * np.pi * sim_cfg.disturbance_frequency * t
        )
        y, _ = PlantSimulator(closed_loop, ts, allow_unstable=True).simulate(disturbance)

        self._last_simulation = LockSimulation(
            time=t,
            disturbance=disturbance,
            output=y,
            controller=self._controller,
            plant=plant,
            closed_loop=closed_loop
        )
        return self._last_simulation

    def search(self, range: Optional[float] = None) -> SearchProfile:
        """
        Coarse scan over the actuator output using the plant DC gain.

        Args:
            range: Half-width of the scan (config value if None)

        Returns:
            SearchProfile over config.search.points actuator values
        """
        search = self._config.search
        span = search.range if range is None else validate_positive(range, 'range')
        actuator = np.linspace(-span, span, search.points)
        dc_gain = self._hardware.get_mock_plant().dc_gain()
        return SearchProfile(actuator, actuator * dc_gain, dc_gain)

    def analyze_loop(self) -> Dict[str, Any]:
        """Margins and closed-loop stability of the current controller on the mock plant."""
        if self._spec is None:
            self.configure()
        return ControlSystemAnalyzer.analyze_loop(self._hardware.get_mock_plant(), self._spec)

    def close(self) -> None:
        """Flush and close the step log."""
        if self._csv is not None:
            self._csv.close()

    def __repr__(self) -> str:
        return f"Lockbox(state={self._state.value}, in={self._config.input_channel}, out={self._config.output_channel})"
