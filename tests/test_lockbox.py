"""
Unit tests for the Lockbox control loop.
"""

import csv
import logging

import pytest
import numpy as np
from scipy import signal
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from lockbox_control.config import HardwareConfig, LockboxConfig, SearchConfig, SimulationConfig
from lockbox_control.core.discretizer import discretize_pid
from lockbox_control.core.lockbox import Lockbox, LockboxState
from lockbox_control.core.pid_params import PIDSpec
from lockbox_control.core.transfer_function import coefficients
from lockbox_control.hardware.mock_client import MockRedPitaya
from lockbox_control.logging.csv_logger import STEP_COLUMNS
from lockbox_control.utils.validators import ChannelOutOfRange, ValidationError


SPEC = PIDSpec(kp=0.5, ki=2e4, kd=0.0)


@pytest.fixture
def hardware():
    hw = MockRedPitaya(HardwareConfig(sample_rate=1e6, noise_level=0.0))
    hw.connect()
    return hw


@pytest.fixture
def lockbox(hardware):
    return Lockbox(hardware, LockboxConfig(setpoint=0.1, controller=SPEC))


class FailingHardware:
    """Hardware whose sink and source always fail."""

    sample_rate = 1e6
    analog_in_channels = 2
    analog_out_channels = 2

    def set_analog_out(self, channel, value):
        raise RuntimeError("output stage offline")

    def acquire_analog_in(self, channel, count):
        raise RuntimeError("acquisition timeout")


class NaNHardware(FailingHardware):
    """Hardware whose source returns NaN samples."""

    def set_analog_out(self, channel, value):
        self.last = value

    def acquire_analog_in(self, channel, count):
        return np.full(count, np.nan)


class TestStateMachine:
    """Tests for lockbox state transitions."""

    def test_initial_state(self, lockbox):
        assert lockbox.state is LockboxState.UNCONFIGURED
        assert lockbox.discrete_filter is None

    def test_configure(self, lockbox, hardware):
        lockbox.configure()
        assert lockbox.state is LockboxState.CONFIGURED
        assert lockbox.controller_spec.sample_time == pytest.approx(hardware.sample_time)

    def test_start_configures(self, lockbox):
        lockbox.start()
        assert lockbox.state is LockboxState.RUNNING

    def test_stop(self, lockbox):
        lockbox.start()
        lockbox.stop()
        assert lockbox.state is LockboxState.STOPPED

    def test_bad_channel_leaves_state(self, lockbox):
        """Failed configure keeps the previous configuration and state."""
        lockbox.configure()
        original = lockbox.config
        with pytest.raises(ChannelOutOfRange):
            lockbox.configure(LockboxConfig(output_channel=3, controller=SPEC))
        assert lockbox.state is LockboxState.CONFIGURED
        assert lockbox.config is original

    def test_bad_channel_unconfigured(self, hardware):
        lockbox = Lockbox(hardware, LockboxConfig(input_channel=5))
        with pytest.raises(ChannelOutOfRange):
            lockbox.start()
        assert lockbox.state is LockboxState.UNCONFIGURED

    def test_reconfigure_while_running(self, lockbox):
        lockbox.start()
        lockbox.set_controller(PIDSpec(kp=1.0, ki=0.0, kd=0.0))
        assert lockbox.state is LockboxState.RUNNING
        assert lockbox.update(0.0) == pytest.approx(0.1)


class TestUpdate:
    """Tests for control steps."""

    def test_matches_discrete_filter(self, lockbox, hardware):
        """Outputs equal the discretized PID applied to setpoint - measurement."""
        measurements = np.linspace(0.0, 0.2, 25)
        lockbox.start()
        outputs = [lockbox.update(m) for m in measurements]
        reference = discretize_pid(SPEC.copy(sample_time=hardware.sample_time))
        np.testing.assert_allclose(outputs, reference.process(0.1 - measurements))

    def test_output_written_to_sink(self, lockbox, hardware):
        lockbox.start()
        value = lockbox.update(0.0)
        assert hardware.analog_out[0] == pytest.approx(value)

    def test_ignored_when_not_running(self, lockbox):
        """No evaluation outside RUNNING."""
        assert lockbox.update(0.0) == 0.0
        lockbox.configure()
        assert lockbox.update(0.0) == 0.0
        assert lockbox.step_count == 0

    def test_stop_keeps_last_output(self, lockbox, hardware):
        lockbox.start()
        for _ in range(5):
            last = lockbox.update(0.05)
        lockbox.stop()
        assert lockbox.update(1.0) == last
        assert lockbox.output == last
        assert hardware.analog_out[0] == pytest.approx(last)

    def test_restart_resets_filter(self, lockbox, hardware):
        lockbox.start()
        first = lockbox.update(0.0)
        for _ in range(10):
            lockbox.update(0.0)
        lockbox.stop()
        lockbox.start()
        assert lockbox.update(0.0) == pytest.approx(first)

    def test_start_while_running_ignored(self, lockbox):
        lockbox.start()
        lockbox.update(0.0)
        state = lockbox.discrete_filter.state
        lockbox.start()
        assert np.array_equal(lockbox.discrete_filter.state, state)
        assert lockbox.step_count == 1

    def test_sink_failure_logged(self, caplog):
        lockbox = Lockbox(FailingHardware(), LockboxConfig(setpoint=1.0, controller=SPEC))
        lockbox.start()
        with caplog.at_level(logging.WARNING):
            value = lockbox.update(0.0)
        assert value != 0.0
        assert any('output dispatch skipped' in r.getMessage() for r in caplog.records)

    def test_source_failure_returns_last_output(self, caplog):
        lockbox = Lockbox(FailingHardware(), LockboxConfig(setpoint=1.0, controller=SPEC))
        lockbox.start()
        with caplog.at_level(logging.WARNING):
            previous = lockbox.update(0.0)
            assert lockbox.lock_step() == previous
        assert any('acquisition failed' in r.getMessage() for r in caplog.records)

    def test_lock_step_reads_source(self, lockbox):
        lockbox.start()
        lockbox.lock_step()
        lockbox.lock_step()
        assert lockbox.step_count == 2

    def test_lock_step_not_running(self, lockbox):
        assert lockbox.lock_step() == 0.0

    @pytest.mark.parametrize("bad", [float('nan'), float('inf'), -float('inf')])
    def test_non_finite_measurement_rejected(self, lockbox, bad):
        """A non-finite sample raises and leaves the integrator untouched."""
        lockbox.start()
        lockbox.update(0.05)
        state = lockbox.discrete_filter.state.copy()
        output = lockbox.output
        with pytest.raises(ValidationError):
            lockbox.update(bad)
        np.testing.assert_array_equal(lockbox.discrete_filter.state, state)
        assert lockbox.output == output
        assert lockbox.step_count == 1
        assert np.isfinite(lockbox.update(0.05))

    def test_non_finite_sample_skipped(self, caplog):
        """lock_step treats a NaN acquisition as a failed read."""
        hw = NaNHardware()
        lockbox = Lockbox(hw, LockboxConfig(setpoint=1.0, controller=SPEC))
        lockbox.start()
        previous = lockbox.update(0.0)
        with caplog.at_level(logging.WARNING):
            assert lockbox.lock_step() == previous
        assert np.all(np.isfinite(lockbox.discrete_filter.state))
        assert any('acquisition failed' in r.getMessage() for r in caplog.records)

    def test_closed_log_does_not_abort_step(self, hardware, tmp_path, caplog):
        """Once the step log is closed, steps still complete and warn."""
        lockbox = Lockbox(hardware, LockboxConfig(controller=SPEC),
                          csv_path=str(tmp_path / "lock.csv"))
        lockbox.start()
        lockbox.update(0.0)
        lockbox.close()
        with caplog.at_level(logging.WARNING):
            value = lockbox.update(0.0)
        assert lockbox.step_count == 2
        assert hardware.analog_out[0] == pytest.approx(value)
        assert any('step log skipped' in r.getMessage() for r in caplog.records)

    def test_csv_logging(self, hardware, tmp_path):
        path = tmp_path / "lock.csv"
        lockbox = Lockbox(hardware, LockboxConfig(controller=SPEC), csv_path=str(path))
        lockbox.start()
        for m in (0.0, 0.01, 0.02):
            lockbox.update(m)
        lockbox.close()
        with open(path, newline='') as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 3
        assert list(rows[0].keys()) == STEP_COLUMNS
        assert float(rows[2]['measurement']) == pytest.approx(0.02)


class TestLockSimulation:
    """Tests for simulate_lock, search and analyze_loop."""

    @pytest.fixture
    def sim_lockbox(self, hardware):
        config = LockboxConfig(
            controller=SPEC,
            simulation=SimulationConfig(duration=0.02, sample_time=1e-5)
        )
        return Lockbox(hardware, config)

    def test_time_grid_and_disturbance(self, sim_lockbox):
        sim = sim_lockbox.simulate_lock()
        assert sim.time.size == 2001
        assert sim.time[-1] == pytest.approx(0.02)
        assert set(np.unique(sim.disturbance)) <= {-0.05, 0.05}
        assert sim_lockbox.last_simulation is sim

    def test_closed_loop_stable(self, sim_lockbox):
        sim = sim_lockbox.simulate_lock()
        assert np.all(sim.closed_loop.poles.real < 0)
        assert sim.closed_loop.dc_gain() == pytest.approx(1.0)

    def test_matches_scipy_dlsim(self, sim_lockbox):
        """Response equals scipy's ZOH simulation of the same closed loop."""
        sim = sim_lockbox.simulate_lock(0.005)
        num, den = coefficients(sim.closed_loop)
        ts = 1e-5
        numd, dend, _ = signal.cont2discrete((num, den), ts, method='zoh')
        _, y = signal.dlsim((np.ravel(numd), dend, ts), sim.disturbance)
        np.testing.assert_allclose(sim.output, y.ravel(), atol=1e-9)

    def test_tracks_disturbance(self, sim_lockbox):
        """The loop follows the slow square wave; residual is small."""
        sim = sim_lockbox.simulate_lock()
        assert sim.rms_error() < 0.25 * 0.05
        np.testing.assert_allclose(sim.error, sim.disturbance - sim.output)

    def test_default_sample_time(self, hardware):
        """Default simulation grid is 1 us, not the 125 MHz hardware period."""
        config = LockboxConfig(controller=SPEC, simulation=SimulationConfig(duration=0.002))
        sim = Lockbox(hardware, config).simulate_lock()
        assert sim.time.size == 2001
        assert sim.time[1] == pytest.approx(1e-6)

    def test_search_profile(self, hardware):
        lockbox = Lockbox(hardware, LockboxConfig(controller=SPEC, search=SearchConfig(range=0.4)))
        profile = lockbox.search()
        assert profile.actuator.size == 200
        assert profile.actuator[0] == pytest.approx(-0.4)
        assert profile.actuator[-1] == pytest.approx(0.4)
        np.testing.assert_allclose(profile.measurement, profile.actuator * profile.dc_gain)
        assert profile.dc_gain == pytest.approx(1.0)

    def test_search_explicit_range(self, lockbox):
        assert lockbox.search(0.1).actuator[-1] == pytest.approx(0.1)

    def test_analyze_loop(self, lockbox):
        analysis = lockbox.analyze_loop()
        assert analysis['is_stable']
        assert analysis['dc_gain'] == pytest.approx(1.0)
        assert analysis['margins']['phase_margin_deg'] > 30


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
