"""
Test suite for Trajectory class.

Tests cover:
- Named and raw state access
- Measured signals and DataFrame export
- Trajectory-specific methods (extend, slice, get_times, __call__)
- String representations
- Plotting functions (smoke tests)
"""

import pytest
import numpy as np
import pandas as pd
import plotly.graph_objects as go
from helkos import Trajectory, TractorState, DriverCommand, STATE_NAMES
from helkos.state import N_STATES


class TestStateAccess:
    """Test state output methods."""

    def test_state_at_returns_named_state(self, tillage_traj):
        state = tillage_traj.state_at(1.0)
        assert isinstance(state, TractorState)
        assert state.time == 1.0

    def test_state_at_raw_shape(self, tillage_traj):
        assert tillage_traj.state_at_raw(1.0).shape == (N_STATES,)

    def test_state_at_raw_is_copy(self, tillage_traj):
        """Later queries do not overwrite earlier results."""
        a = tillage_traj.state_at_raw(1.0)
        saved = a.copy()
        tillage_traj.state_at_raw(2.0)
        np.testing.assert_array_equal(a, saved)

    def test_evaluate_scalar_and_array(self, tillage_traj):
        assert isinstance(tillage_traj.evaluate(1.0), TractorState)
        states = tillage_traj.evaluate([0.5, 1.0, 1.5])
        assert len(states) == 3
        assert states[1].time == 1.0

    def test_evaluate_numpy_scalars(self, tillage_traj):
        """Zero-dimensional numpy times behave like floats."""
        assert isinstance(tillage_traj.evaluate(np.float64(1.0)), TractorState)
        assert isinstance(tillage_traj.evaluate(np.array(1.0)), TractorState)
        raw = tillage_traj.evaluate_raw(np.int64(1))
        assert raw.shape == (N_STATES,)
        np.testing.assert_allclose(raw, tillage_traj.state_at_raw(1.0))

    def test_evaluate_raw_matches_state_at(self, tillage_traj):
        times = np.array([0.25, 1.0, 2.75])
        raw = tillage_traj.evaluate_raw(times)
        assert raw.shape == (3, N_STATES)
        np.testing.assert_allclose(raw[1], tillage_traj.state_at_raw(1.0))

    def test_sample(self, tillage_traj):
        assert len(tillage_traj.sample(10)) == 10
        assert tillage_traj.sample_raw(10).shape == (10, N_STATES)

    def test_sample_too_few_points(self, tillage_traj):
        with pytest.raises(ValueError, match="at least 2"):
            tillage_traj.sample(1)

    def test_time_outside_bounds(self, tillage_traj):
        with pytest.raises(ValueError, match="outside trajectory bounds"):
            tillage_traj.state_at(5.0)
        with pytest.raises(ValueError, match="outside trajectory bounds"):
            tillage_traj.evaluate_raw([0.0, 4.0])

    def test_call_syntax(self, tillage_traj):
        assert tillage_traj(1.0) == tillage_traj.state_at(1.0)

    def test_contains_time(self, tillage_traj):
        assert tillage_traj.contains_time(1.0)
        assert not tillage_traj.contains_time(-1.0)

    def test_get_times(self, tillage_traj):
        times = tillage_traj.get_times(5)
        assert times[0] == tillage_traj.t0
        assert times[-1] == tillage_traj.tf


class TestSignals:
    """Test measured signals."""

    def test_signals_contain_states_and_outputs(self, tillage_traj):
        data = tillage_traj.signals([1.0, 2.0])
        for name in STATE_NAMES:
            assert name in data
        for name in ('engine_torque', 'pump_flow', 'load_RL', 'sinkage_FL',
                     'net_thrust_RR', 'draft', 'vertical_force', 'power_engine'):
            assert data[name].shape == (2,)

    def test_acceleration_is_velocity_derivative(self, tillage_traj):
        data = tillage_traj.signals([0.5, 1.5])
        np.testing.assert_allclose(data['acceleration'], data['d_velocity'])

    def test_engine_power(self, tillage_traj):
        data = tillage_traj.signals([2.0])
        expected = data['engine_torque'] * data['engine_speed']
        np.testing.assert_allclose(data['power_engine'], expected)

    def test_power_is_energy_rate(self, tillage_traj):
        """Instantaneous power matches the slope of the energy state."""
        t, h = 2.0, 1e-4
        e0 = tillage_traj.state_at(t - h).E_engine
        e1 = tillage_traj.state_at(t + h).E_engine
        power = tillage_traj.signal('power_engine', [t])[0]
        assert (e1 - e0) / (2 * h) == pytest.approx(power, rel=1e-4)

    def test_loads_sum_to_weight(self, tractor, tillage_traj):
        """Tire loads carry the weight plus the implement pull-down."""
        data = tillage_traj.signals([2.5])
        total = sum(data[f'load_{pos}'] for pos in ('FL', 'FR', 'RL', 'RR'))
        expected = tractor.vehicle.weight - data['vertical_force']
        np.testing.assert_allclose(total, expected, rtol=1e-4)

    def test_unknown_signal(self, tillage_traj):
        with pytest.raises(KeyError, match="Unknown signal"):
            tillage_traj.signal('fuel_rate', [1.0])


class TestDataFrameExport:
    """Test pandas export."""

    def test_to_dataframe(self, tillage_traj):
        df = tillage_traj.to_dataframe(n_points=20)
        assert isinstance(df, pd.DataFrame)
        assert len(df) == 20
        assert 'time' in df.columns
        assert 'velocity' in df.columns
        assert 'pump_flow' in df.columns

    def test_to_dataframe_states_only(self, tillage_traj):
        df = tillage_traj.to_dataframe(times=[0.0, 1.0, 2.0], include_signals=False)
        assert list(df.columns) == ['time'] + list(STATE_NAMES)


class TestTrajectoryOperations:
    """Test extend and slice."""

    def test_extend_continues(self, tillage_traj):
        longer = tillage_traj.extend(3.5)
        assert isinstance(longer, Trajectory)
        assert longer.t0 == tillage_traj.t0
        assert longer.tf == 3.5
        assert len(longer.segments) == len(tillage_traj.segments) + 1
        np.testing.assert_allclose(longer.state_at_raw(3.0),
                                   tillage_traj.state_at_raw(3.0), rtol=1e-12)

    def test_extend_with_new_command(self, tillage_traj):
        stop = DriverCommand(2000, displacement=0.0, depth=0.0)
        longer = tillage_traj.extend(4.0, command=stop)
        assert longer.commands[-1] == stop
        assert longer.state_at(4.0).velocity < tillage_traj.state_at(3.0).velocity

    def test_extend_leaves_original(self, tillage_traj):
        tillage_traj.extend(3.2)
        assert tillage_traj.tf == 3.0

    def test_extend_backwards_rejected(self, tillage_traj):
        with pytest.raises(ValueError, match="must be > current tf"):
            tillage_traj.extend(2.0)

    def test_slice(self, tillage_traj):
        part = tillage_traj.slice(1.0, 2.0)
        assert part.t0 == 1.0
        assert part.tf == 2.0
        np.testing.assert_array_equal(part.state_at_raw(1.5),
                                      tillage_traj.state_at_raw(1.5))

    def test_slice_energy_window(self, tillage_traj):
        """Energy of a slice is the difference of cumulative energies."""
        part = tillage_traj.slice(1.0, 2.0)
        expected = tillage_traj.state_at(2.0).E_engine - tillage_traj.state_at(1.0).E_engine
        assert part.energy()['engine'] == pytest.approx(expected)

    def test_slice_bounds(self, tillage_traj):
        with pytest.raises(ValueError, match="outside trajectory"):
            tillage_traj.slice(-1.0, 1.0)
        with pytest.raises(ValueError, match="must be < t_end"):
            tillage_traj.slice(2.0, 1.0)


class TestRepresentation:
    """Test string output."""

    def test_repr(self, tillage_traj):
        assert 'Trajectory(segments=1' in repr(tillage_traj)

    def test_str(self, tillage_traj):
        assert 'segment' in str(tillage_traj)


class TestPlotting:
    """Smoke tests for plotly output."""

    def test_plot_states(self, tillage_traj):
        fig = tillage_traj.plot(n_points=50)
        assert isinstance(fig, go.Figure)
        assert len(fig.data) == 5

    def test_plot_signals(self, tillage_traj):
        fig = tillage_traj.plot(('velocity', 'draft', 'power_engine'), n_points=50)
        assert len(fig.data) == 3

    def test_add_to_plot(self, tillage_traj):
        quantities = ('velocity', 'slip_RL')
        fig = tillage_traj.plot(quantities, n_points=50)
        tillage_traj.slice(1.0, 2.0).add_to_plot(fig, quantities, n_points=20,
                                                 color='green')
        assert len(fig.data) == 4
        assert fig.data[-1].name == 'Trajectory 2'

    def test_plot_unknown_quantity(self, tillage_traj):
        with pytest.raises(KeyError, match="Unknown quantities"):
            tillage_traj.plot(('velocity', 'warp_factor'), n_points=10)
