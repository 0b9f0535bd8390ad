"""
Test suite for Tractor propagation.

Tests cover:
- Propagation interface (input/output types, time handling)
- Physical behavior (engine governor, forward and reverse travel,
  tire slip bounds, tillage depth)
- Multi-segment schedules
- Error handling
"""

import pytest
import numpy as np
from helkos import (Trajectory, TractorState, DriverCommand, DriverSchedule,
                    Scenario, CLAYEY_SOIL, temp_config)
from helkos.state import N_STATES
from helkos.utils import rpm2rad


class TestPropagationInterface:
    """Test basic propagation interface contracts."""

    def test_returns_trajectory(self, tractor, scenario, tillage_command):
        state = tractor.initial_state(tillage_command)
        traj = tractor.propagate(state, 0.0, 0.5, tillage_command, scenario)
        assert isinstance(traj, Trajectory)
        assert traj.t0 == 0.0
        assert traj.tf == 0.5

    def test_accepts_numpy_array(self, tractor, scenario, tillage_command):
        state = tractor.initial_state(tillage_command).values
        traj = tractor.propagate(np.array(state), 0, 0.5, tillage_command, scenario)
        assert isinstance(traj.state_at(0.5), TractorState)

    def test_initial_state_reproduced(self, tractor, scenario, tillage_command):
        state = tractor.initial_state(tillage_command)
        traj = tractor.propagate(state, 0.0, 0.5, tillage_command, scenario)
        np.testing.assert_allclose(traj.state_at_raw(0.0), state.values)

    def test_nonzero_start_time(self, tractor, scenario, tillage_command):
        state = tractor.initial_state(tillage_command)
        traj = tractor.propagate(state, 10.0, 10.5, tillage_command, scenario)
        assert traj.t0 == 10.0
        assert traj.duration == pytest.approx(0.5)


class TestErrors:
    """Test rejected inputs."""

    def test_backward_time(self, tractor, scenario, tillage_command):
        state = tractor.initial_state()
        with pytest.raises(ValueError, match="must be > t_start"):
            tractor.propagate(state, 1.0, 0.0, tillage_command, scenario)

    def test_bad_state_shape(self, tractor, scenario, tillage_command):
        with pytest.raises(ValueError, match="shape"):
            tractor.propagate(np.zeros(5), 0.0, 1.0, tillage_command, scenario)

    def test_nan_state(self, tractor, scenario, tillage_command):
        state = np.full(N_STATES, np.nan)
        with pytest.raises(ValueError, match="NaN"):
            tractor.propagate(state, 0.0, 1.0, tillage_command, scenario)

    def test_wrong_command_type(self, tractor, scenario):
        with pytest.raises(TypeError, match="DriverCommand"):
            tractor.propagate(tractor.initial_state(), 0.0, 1.0, 2000, scenario)

    def test_wrong_scenario_type(self, tractor, tillage_command):
        with pytest.raises(TypeError, match="Scenario"):
            tractor.propagate(tractor.initial_state(), 0.0, 1.0, tillage_command, 'field')

    def test_engine_speed_out_of_range(self, tractor, scenario):
        cmd = DriverCommand(3000, displacement=0.5)
        with pytest.raises(ValueError, match="governed range"):
            tractor.propagate(tractor.initial_state(), 0.0, 1.0, cmd, scenario)

    def test_depth_beyond_implement(self, tractor, scenario):
        cmd = DriverCommand(2000, displacement=0.5, depth=1.0)
        with pytest.raises(ValueError, match="exceeds implement maximum"):
            tractor.propagate(tractor.initial_state(), 0.0, 1.0, cmd, scenario)

    def test_depth_beyond_implement_lenient(self, tractor, scenario):
        cmd = DriverCommand(2000, displacement=0.0, depth=0.4)
        with temp_config(STRICT_VALIDATION=False):
            with pytest.warns(UserWarning, match="exceeds"):
                tractor.propagate(tractor.initial_state(), 0.0, 0.1, cmd, scenario)


class TestPhysicalBehavior:
    """Test that the simulated tractor behaves physically."""

    def test_engine_reaches_command(self, tractor, scenario):
        """Governor brings the engine from idle to the commanded speed."""
        cmd = DriverCommand(2000, displacement=0.0)
        traj = tractor.propagate(tractor.initial_state(), 0.0, 2.0, cmd, scenario)
        omega = traj.state_at(2.0).engine_speed
        assert omega == pytest.approx(float(rpm2rad(2000)), rel=1e-3)

    def test_stands_still_at_zero_displacement(self, tractor, scenario):
        cmd = DriverCommand(1500, displacement=0.0)
        traj = tractor.propagate(tractor.initial_state(cmd), 0.0, 1.0, cmd, scenario)
        assert abs(traj.state_at(1.0).velocity) < 1e-3

    def test_forward_travel(self, tillage_traj):
        end = tillage_traj.state_at(tillage_traj.tf)
        assert end.velocity > 0.5
        assert end.position > 0.0
        assert end.p_A > end.p_B

    def test_speed_below_hydraulic_limit(self, tractor, tillage_traj):
        """Ground speed cannot exceed the no-slip speed set by the pump."""
        end = tillage_traj.state_at(tillage_traj.tf)
        trans = tractor.transmission
        pump_flow = end.displacement * trans.pump.max_displacement_si * end.engine_speed
        motor_speed = pump_flow / (trans.front_motor.displacement_si
                                   + trans.rear_motor.displacement_si)
        wheel_speed = motor_speed / tractor.vehicle.rear_axle.final_drive_ratio
        assert end.velocity < wheel_speed * tractor.rear_tire.radius

    def test_slip_bounded_and_driving(self, tillage_traj):
        """Slip stays within [-1, 1] and is positive once pulling."""
        states = tillage_traj.sample_raw(200)
        names = tillage_traj.tractor.state_names
        slips = states[:, [names.index(f'slip_{pos}') for pos in ('FL', 'FR', 'RL', 'RR')]]
        assert np.all(np.abs(slips) <= 1.0)
        assert np.all(tillage_traj.state_at(tillage_traj.tf).slips > 0)

    def test_depth_follows_command(self, tillage_traj, tillage_command):
        depth = tillage_traj.state_at(tillage_traj.tf).depth
        assert depth == pytest.approx(tillage_command.depth, rel=0.1)

    def test_reverse_travel(self, tractor, scenario):
        cmd = DriverCommand(1800, displacement=-0.5)
        traj = tractor.propagate(tractor.initial_state(cmd), 0.0, 3.0, cmd, scenario)
        end = traj.state_at(3.0)
        assert end.velocity < -0.3
        assert end.p_B > end.p_A

    def test_softer_soil_more_slip(self, tractor, scenario, tillage_command):
        """
        Clay has less shear strength, so the tractor slips more overall.

        The lightly loaded front axle saturates first and spins; the rear
        tires, limited to the same hydraulic pressure, mobilize the stiffer
        clay shear curve (smaller K) at lower slip.
        """
        clay = Scenario(CLAYEY_SOIL)
        state = tractor.initial_state(tillage_command)
        loam_end = tractor.propagate(state, 0.0, 3.0, tillage_command, scenario).state_at(3.0)
        clay_end = tractor.propagate(state, 0.0, 3.0, tillage_command, clay).state_at(3.0)
        assert clay_end.slip_FL > loam_end.slip_FL
        assert clay_end.slips.mean() > loam_end.slips.mean()

    def test_uphill_is_slower(self, tractor, scenario, tillage_command):
        state = tractor.initial_state(tillage_command)
        level = tractor.propagate(state, 0.0, 3.0, tillage_command, scenario)
        uphill = tractor.propagate(state, 0.0, 3.0, tillage_command, scenario.with_grade(8.0))
        assert uphill.state_at(3.0).velocity < level.state_at(3.0).velocity


@pytest.fixture(scope='module')
def schedule_traj(tractor, scenario):
    schedule = DriverSchedule([
        (0.0, DriverCommand(2000, displacement=0.6)),
        (1.5, DriverCommand(2000, displacement=0.6, depth=0.1)),
        (3.0, DriverCommand(2000, displacement=-0.4)),
    ])
    return tractor.simulate(schedule, scenario, t_end=5.0)


class TestSchedules:
    """Test multi-segment simulation."""

    def test_one_segment_per_interval(self, schedule_traj):
        assert len(schedule_traj.segments) == 3
        assert schedule_traj.t0 == 0.0
        assert schedule_traj.tf == 5.0

    def test_continuous_at_switches(self, schedule_traj):
        for prev, nxt in zip(schedule_traj.segments[:-1], schedule_traj.segments[1:]):
            np.testing.assert_allclose(prev.final_state(), nxt.state_raw(nxt.t0),
                                       rtol=1e-12, atol=1e-9)

    def test_commands_applied(self, schedule_traj):
        assert schedule_traj.state_at(1.0).depth == pytest.approx(0.0, abs=1e-9)
        assert schedule_traj.state_at(3.0).depth > 0.05
        assert schedule_traj.state_at(5.0).velocity < schedule_traj.state_at(3.0).velocity

    def test_single_command_accepted(self, tractor, scenario):
        traj = tractor.simulate(DriverCommand(1500), scenario, t_end=0.2)
        assert len(traj.segments) == 1

    def test_default_end_holds_last_command(self, tractor, scenario):
        """Without t_end the last command is held for DEFAULT_HOLD_TIME."""
        schedule = DriverSchedule([
            (0.0, DriverCommand(1500)),
            (0.1, DriverCommand(1600)),
        ])
        with temp_config(DEFAULT_HOLD_TIME=0.2):
            traj = tractor.simulate(schedule, scenario)
        assert traj.tf == pytest.approx(0.3)
        assert len(traj.segments) == 2

    def test_default_end_single_command(self, tractor, scenario):
        with temp_config(DEFAULT_HOLD_TIME=0.25):
            traj = tractor.simulate(DriverCommand(1500), scenario)
        assert traj.tf == pytest.approx(0.25)

    def test_rejects_bad_schedule(self, tractor, scenario):
        with pytest.raises(TypeError, match="DriverSchedule"):
            tractor.simulate([(0.0, 1500)], scenario, t_end=1.0)
