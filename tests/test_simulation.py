"""
Unit tests for closed-loop scenario simulation.
"""

import csv

import pytest
import numpy as np
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from lockbox_control.core.pid_params import PIDSpec
from lockbox_control.core.transfer_function import TransferFunction
from lockbox_control.plants.plant_simulator import PlantSimulator
from lockbox_control.simulation.scenarios import (
    DisturbanceType,
    ScenarioLibrary,
    SetpointType,
    SimulationScenario,
)
from lockbox_control.simulation.simulator import ClosedLoopSimulator
from lockbox_control.utils.noise import GaussianNoise
from lockbox_control.utils.validators import ValidationError


WC = 2 * np.pi * 5e3
PLANT = TransferFunction(poles=[-WC], gain=WC)
SPEC = PIDSpec(kp=0.5, ki=2e4)


class TestScenarios:
    """Tests for setpoint and disturbance profiles."""

    def test_step_setpoint(self):
        scenario = SimulationScenario("step", duration=1e-3, setpoint_final=0.2, setpoint_time=5e-4)
        t = scenario.time_grid()
        sp = scenario.setpoints(t)
        assert t.size == 1000
        assert sp[0] == 0.0
        assert sp[-1] == 0.2

    def test_sine_setpoint(self):
        scenario = ScenarioLibrary.tracking_sine(amplitude=0.05, offset=0.1)
        sp = scenario.setpoints(scenario.time_grid())
        assert sp.max() == pytest.approx(0.15, abs=1e-3)
        assert sp.min() == pytest.approx(0.05, abs=1e-3)

    def test_square_setpoint(self):
        scenario = SimulationScenario(
            "square", duration=2e-3, setpoint_type=SetpointType.SQUARE,
            setpoint_initial=-1.0, setpoint_final=1.0, setpoint_params={'frequency': 1e3}
        )
        assert set(np.unique(scenario.setpoints(scenario.time_grid()))) == {-1.0, 1.0}

    def test_square_disturbance(self):
        scenario = ScenarioLibrary.disturbance_rejection(amplitude=0.05)
        d = scenario.disturbances(scenario.time_grid())
        assert set(np.unique(d)) == {-0.05, 0.05}

    def test_step_disturbance(self):
        scenario = SimulationScenario(
            "load", duration=1e-3, disturbance_type=DisturbanceType.STEP,
            disturbance_magnitude=0.3, disturbance_time=5e-4
        )
        d = scenario.disturbances(scenario.time_grid())
        assert d[0] == 0.0
        assert d[-1] == 0.3

    def test_random_disturbance_requires_noise(self):
        scenario = SimulationScenario(
            "random", duration=1e-4, disturbance_type=DisturbanceType.RANDOM,
            disturbance_magnitude=0.1
        )
        with pytest.raises(ValidationError):
            scenario.disturbances(scenario.time_grid())
        d = scenario.disturbances(scenario.time_grid(), GaussianNoise(seed=0))
        assert d.shape == (100,)

    def test_custom_requires_function(self):
        with pytest.raises(ValidationError):
            SimulationScenario("bad", duration=1e-3, setpoint_type=SetpointType.CUSTOM)

    def test_custom_profiles(self):
        scenario = ScenarioLibrary.custom(
            "ramp", duration=1e-4, setpoint_func=lambda t: 1e3 * t,
            disturbance_func=lambda t: 0.01
        )
        t = scenario.time_grid()
        np.testing.assert_allclose(scenario.setpoints(t), 1e3 * t)
        np.testing.assert_allclose(scenario.disturbances(t), np.full(t.size, 0.01))

    def test_invalid_timing(self):
        with pytest.raises(ValidationError):
            SimulationScenario("bad", duration=0.0)
        with pytest.raises(ValidationError):
            SimulationScenario("bad", duration=1.0, sample_time=-1e-6)


class TestClosedLoopSimulator:
    """Tests for ClosedLoopSimulator."""

    def test_step_response_settles(self):
        sim = ClosedLoopSimulator(PLANT, SPEC)
        result = sim.run(ScenarioLibrary.step_response(setpoint=0.1))
        assert len(result) == 2000
        assert abs(result.steady_state_error()) < 1e-4
        assert result.measurements[-1] == pytest.approx(0.1, abs=1e-4)

    def test_first_step(self):
        """Measurement lags the controller by one plant sample."""
        sim = ClosedLoopSimulator(PLANT, SPEC)
        scenario = SimulationScenario("step", duration=1e-5, setpoint_final=1.0)
        result = sim.run(scenario)
        assert result.errors[0] == 1.0
        assert result.measurements[0] == 0.0
        assert result.outputs[0] > 0.0

    def test_disturbance_rejection(self):
        sim = ClosedLoopSimulator(PLANT, SPEC)
        result = sim.run(ScenarioLibrary.disturbance_rejection(amplitude=0.05))
        assert result.rms_error() < 0.5 * 0.05
        assert np.max(np.abs(result.errors[-50:])) < 0.01

    def test_seeded_noise_reproducible(self):
        scenario = ScenarioLibrary.noisy_lock(duration=2e-4)
        a = ClosedLoopSimulator(PLANT, SPEC, noise_source=GaussianNoise(seed=3)).run(scenario)
        b = ClosedLoopSimulator(PLANT, SPEC, noise_source=GaussianNoise(seed=3)).run(scenario)
        np.testing.assert_array_equal(a.measurements, b.measurements)
        np.testing.assert_array_equal(a.outputs, b.outputs)

    def test_sample_time_from_scenario(self):
        sim = ClosedLoopSimulator(PLANT, SPEC)
        result = sim.run(ScenarioLibrary.step_response(duration=1e-4, sample_time=1e-6))
        assert result.controller_params['sample_time'] == 1e-6
        assert result.plant_info['order'] == 1

    def test_csv_log(self, tmp_path):
        path = tmp_path / "sim.csv"
        sim = ClosedLoopSimulator(PLANT, SPEC, csv_log_path=str(path))
        sim.run(ScenarioLibrary.step_response(duration=5e-5))
        with open(path, newline='') as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 50
        assert rows[-1]['step'] == '49'

    def test_csv_log_closed_on_failure(self, tmp_path, monkeypatch):
        """A failing step still closes the log with every row written so far."""
        original = PlantSimulator.advance
        calls = []

        def failing_advance(self, inputs):
            calls.append(1)
            if len(calls) > 5:
                raise RuntimeError("plant diverged")
            return original(self, inputs)

        monkeypatch.setattr(PlantSimulator, "advance", failing_advance)
        path = tmp_path / "sim.csv"
        sim = ClosedLoopSimulator(PLANT, SPEC, csv_log_path=str(path))
        with pytest.raises(RuntimeError):
            sim.run(ScenarioLibrary.step_response(duration=5e-5))
        with open(path, newline='') as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 5

    def test_run_comparison_restores_spec(self):
        sim = ClosedLoopSimulator(PLANT, SPEC)
        results = sim.run_comparison(
            ScenarioLibrary.step_response(duration=1e-4),
            {'soft': PIDSpec(kp=0.1, ki=5e3), 'firm': PIDSpec(kp=1.0, ki=4e4)}
        )
        assert set(results) == {'soft', 'firm'}
        assert results['soft'].scenario_name.endswith('soft')
        assert sim.spec is SPEC
        assert len(sim.results) == 2

    def test_to_dict(self):
        result = ClosedLoopSimulator(PLANT, SPEC).run(ScenarioLibrary.step_response(duration=1e-5))
        assert set(result.to_dict()) == {
            'time', 'setpoint', 'measurement', 'output', 'error', 'disturbance'
        }


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
