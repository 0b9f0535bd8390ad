"""
Test suite for tractor operating regimes beyond steady tillage.

Tests cover:
- Traction stall on weak soil (front axle spins, tractor held by draft)
- Custom draft law implement
- Tractor without implement
- Relief valve limiting the loop pressure at a hydraulic stall
"""

import dataclasses

import pytest
import numpy as np
from helkos import (Tractor, DriverCommand, Scenario, ImplementParams,
                    ReliefValveParams, CLAYEY_SOIL, default_tractor)
from helkos.defaults import (DEFAULT_VEHICLE, DEFAULT_ENGINE, DEFAULT_TRANSMISSION,
                             FRONT_TIRE, REAR_TIRE)

BALANCE_RTOL = 1e-4
STALL_SPEED = 0.02
RELIEF_PRESSURE = 20e6


def custom_draft(speed, depth):
    return 1.5e5 * depth * (1.0 + 0.2 * speed)


def relative_residual(report):
    return abs(report.balance_residual) / abs(report['engine'])


@pytest.fixture(scope='module')
def custom_tractor():
    """Tractor pulling a custom-draft tool, relief set to 20 MPa."""
    implement = ImplementParams(draft_function=custom_draft,
                                vertical_ratio=0.0, hitch_height=0.0)
    transmission = dataclasses.replace(
        DEFAULT_TRANSMISSION,
        relief=ReliefValveParams(set_pressure=RELIEF_PRESSURE),
    )
    return Tractor(DEFAULT_VEHICLE, DEFAULT_ENGINE, transmission,
                   FRONT_TIRE, REAR_TIRE, implement=implement)


@pytest.fixture(scope='module')
def bare_tractor():
    return default_tractor(implement=None)


@pytest.fixture(scope='module')
def clay_stall_traj(tractor, tillage_command):
    return tractor.simulate(tillage_command, Scenario(CLAYEY_SOIL), t_end=5.0)


@pytest.fixture(scope='module')
def shallow_traj(custom_tractor, scenario):
    cmd = DriverCommand(2000, displacement=0.6, depth=0.02)
    return custom_tractor.simulate(cmd, scenario, t_end=3.0)


@pytest.fixture(scope='module')
def transport_traj(bare_tractor, scenario):
    cmd = DriverCommand(2000, displacement=0.6)
    return bare_tractor.simulate(cmd, scenario, t_end=3.0)


@pytest.fixture(scope='module')
def relief_stall_traj(custom_tractor, scenario):
    cmd = DriverCommand(2000, displacement=0.6, depth=0.3)
    return custom_tractor.simulate(cmd, scenario, t_end=4.0)


class TestTractionStall:
    """Chisel plow on clay asks for more thrust than the soil can carry."""

    def test_tractor_stalls(self, clay_stall_traj):
        end = clay_stall_traj.state_at(clay_stall_traj.tf)
        assert abs(end.velocity) < STALL_SPEED
        assert abs(end.position) < 0.2

    def test_front_axle_spins(self, clay_stall_traj):
        end = clay_stall_traj.state_at(clay_stall_traj.tf)
        assert end.slip_FL > 0.9
        assert end.slip_FR > 0.9

    def test_rear_wheels_still_driving(self, tractor, clay_stall_traj):
        end = clay_stall_traj.state_at(clay_stall_traj.tf)
        assert end.slip_RL > 0
        assert end.omega_RL * tractor.rear_tire.radius > end.velocity

    def test_draft_balances_thrust(self, clay_stall_traj):
        """At the stall the implement absorbs the net tractive force."""
        data = clay_stall_traj.signals([clay_stall_traj.tf])
        assert data['tractive_force'][0] > 0
        assert data['tractive_force'][0] == pytest.approx(-data['draft_force'][0],
                                                          rel=0.05)

    def test_energy_goes_to_slip(self, clay_stall_traj):
        report = clay_stall_traj.energy()
        assert report['tire_slip_loss'] > report['implement']
        assert relative_residual(report) < BALANCE_RTOL


class TestCustomDraft:
    """Shallow work with a user draft law."""

    def test_moves(self, shallow_traj):
        assert shallow_traj.state_at(3.0).velocity > 0.5

    def test_draft_follows_law(self, shallow_traj):
        data = shallow_traj.signals(np.linspace(2.0, 3.0, 5))
        expected = custom_draft(np.abs(data['velocity']), data['depth'])
        np.testing.assert_allclose(data['draft'], expected, rtol=1e-4)

    def test_no_weight_transfer(self, shallow_traj):
        """Zero hitch height and vertical ratio leave the axle loads static."""
        data = shallow_traj.signals(np.linspace(0.5, 3.0, 4))
        np.testing.assert_allclose(data['vertical_force'], 0.0, atol=1e-9)

    def test_balance(self, shallow_traj):
        report = shallow_traj.energy()
        assert report['implement'] > 0
        assert relative_residual(report) < BALANCE_RTOL


class TestNoImplement:
    """Tractor driving without a hitched implement."""

    def test_moves(self, transport_traj):
        assert transport_traj.state_at(3.0).velocity > 0.5

    def test_depth_stays_zero(self, transport_traj):
        depths = transport_traj.signal('depth', np.linspace(0.0, 3.0, 7))
        np.testing.assert_allclose(depths, 0.0, atol=1e-12)

    def test_no_implement_energy(self, transport_traj):
        report = transport_traj.energy()
        assert report['implement'] == 0.0
        assert relative_residual(report) < BALANCE_RTOL

    def test_depth_command_ignored(self, bare_tractor, scenario):
        cmd = DriverCommand(2000, displacement=0.6, depth=0.2)
        with pytest.warns(UserWarning, match="ignored"):
            traj = bare_tractor.simulate(cmd, scenario, t_end=0.5)
        assert traj.state_at(0.5).depth == 0.0


class TestReliefStall:
    """Deep work overloads the loop; the relief valve caps the pressure."""

    def test_pressure_above_set_point(self, relief_stall_traj):
        end = relief_stall_traj.state_at(relief_stall_traj.tf)
        assert end.p_A > RELIEF_PRESSURE
        assert end.p_A < 1.5 * RELIEF_PRESSURE

    def test_pump_flow_through_relief(self, relief_stall_traj):
        data = relief_stall_traj.signals([relief_stall_traj.tf])
        assert data['relief_flow'][0] > 0.5 * data['pump_flow'][0]

    def test_tractor_held(self, relief_stall_traj):
        end = relief_stall_traj.state_at(relief_stall_traj.tf)
        assert abs(end.velocity) < STALL_SPEED

    def test_front_axle_keeps_grip(self, relief_stall_traj):
        end = relief_stall_traj.state_at(relief_stall_traj.tf)
        assert end.slip_FL < 0.9

    def test_relief_loss_in_balance(self, relief_stall_traj):
        report = relief_stall_traj.energy()
        assert report['relief_loss'] > 0
        assert relative_residual(report) < BALANCE_RTOL
