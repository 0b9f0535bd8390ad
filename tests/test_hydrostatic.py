"""
Test suite for the hydrostatic transmission model.

Tests cover:
- Component parameter validation
- Pump and motor flow/torque relations
- Relief and check valve behavior
- Power bookkeeping of the closed loop
"""

import pytest
import numpy as np
from dataclasses import replace
from helkos import (PumpParams, MotorParams, PipeParams,
                    ReliefValveParams, ChargePumpParams, SAE_5W30)
from helkos.defaults import DEFAULT_TRANSMISSION as HST
from helkos.hydrostatic import transmission_model, stored_energy, swashplate_rate
from helkos.utils import cc2si


def run(omega_e=200.0, x_p=0.6, p_a=20e6, p_b=2.5e6, omega_mf=70.0, omega_mr=70.0,
        trans=HST):
    return transmission_model(omega_e, x_p, p_a, p_b, omega_mf, omega_mr,
                              trans, pressure_eps=1e5)


class TestParams:
    """Test parameter validation and derived properties."""

    def test_dynamic_viscosity(self):
        assert SAE_5W30.dynamic_viscosity == pytest.approx(860.0 * 3e-5)

    def test_pipe_resistance_hagen_poiseuille(self):
        pipe = PipeParams(length=3.0, diameter=0.019)
        expected = 128 * SAE_5W30.dynamic_viscosity * 3.0 / (np.pi * 0.019**4)
        assert pipe.resistance(SAE_5W30) == pytest.approx(expected)

    def test_branch_resistance_counts_both_lines(self):
        assert HST.front_branch_resistance == pytest.approx(
            2 * HST.front_pipe.resistance(SAE_5W30))

    def test_displacement_conversion(self):
        """1 cc/rev is 1e-6/(2 pi) m^3/rad."""
        assert cc2si(1.0) == pytest.approx(1e-6 / (2 * np.pi))
        assert HST.pump.max_displacement_si == pytest.approx(100e-6 / (2 * np.pi))

    def test_relief_must_exceed_charge(self):
        with pytest.raises(ValueError, match="must exceed"):
            replace(HST, relief=ReliefValveParams(set_pressure=1e6))

    def test_rejects_nonpositive_displacement(self):
        with pytest.raises(ValueError, match="displacement"):
            PumpParams(max_displacement=0.0)
        with pytest.raises(ValueError, match="displacement"):
            MotorParams(displacement=-5.0)
        with pytest.raises(ValueError, match="displacement"):
            ChargePumpParams(displacement=0.0, pressure=2e6)


class TestFlowsAndTorques:
    """Test pump and motor relations."""

    def test_pump_flow(self):
        out = run()
        assert out['pump_flow'] == pytest.approx(0.6 * HST.pump.max_displacement_si * 200.0)

    def test_reverse_pump_flow(self):
        """Negative displacement moves fluid from A to B."""
        assert run(x_p=-0.5)['pump_flow'] < 0

    def test_pump_torque(self):
        out = run()
        D = HST.pump.max_displacement_si
        expected = 0.6 * D * 17.5e6 + HST.pump.viscous_friction * 200.0
        assert out['pump_torque'] == pytest.approx(expected)

    def test_motor_pressure_reduced_by_pipe(self):
        out = run()
        flow = out['front_motor_flow']
        expected = 17.5e6 - HST.front_branch_resistance * flow
        assert out['front_motor_pressure_drop'] == pytest.approx(expected)
        assert out['front_motor_pressure_drop'] < 17.5e6

    def test_motor_torque(self):
        out = run()
        D = HST.front_motor.displacement_si
        expected = D * out['front_motor_pressure_drop'] - HST.front_motor.viscous_friction * 70.0
        assert out['front_motor_torque'] == pytest.approx(expected)

    def test_pump_output_below_input(self):
        out = run()
        assert 0 < out['pump_power_out'] < out['pump_power_in']

    def test_swashplate_lag(self):
        assert swashplate_rate(0.0, 1.0, HST) == pytest.approx(1.0 / HST.pump.swashplate_time_constant)


class TestValves:
    """Test relief and check valves."""

    def test_relief_closed_below_set_pressure(self):
        out = run(p_a=20e6)
        assert out['relief_flow'] < 1e-6

    def test_relief_opens_above_set_pressure(self):
        out = run(p_a=45e6)
        expected = HST.relief.conductance * 3e6
        assert out['relief_flow'] == pytest.approx(expected, rel=1e-3)

    def test_check_feeds_low_line(self):
        """A line below charge pressure is fed by the check valve."""
        out = run(p_b=1.0e6)
        expected = HST.check.conductance * 1.0e6
        assert out['check_flow'] == pytest.approx(expected, rel=1e-2)

    def test_charge_pump(self):
        out = run()
        assert out['charge_flow'] == pytest.approx(HST.charge_pump.displacement_si * 200.0)
        assert out['charge_torque'] == pytest.approx(
            HST.charge_pump.displacement_si * HST.charge_pump.pressure)


class TestLoopPowerBalance:
    """Test that loop powers close against the compression energy rate."""

    @pytest.mark.parametrize('p_a, p_b, x_p', [
        (20e6, 2.5e6, 0.6),
        (44e6, 1.5e6, 0.9),
        (2.2e6, 15e6, -0.4),
    ])
    def test_stored_energy_rate(self, p_a, p_b, x_p):
        """d/dt(1/2 C (pA^2 + pB^2)) = pump out - motor in - pipe - relief + check."""
        out = run(p_a=p_a, p_b=p_b, x_p=x_p)
        C = HST.line_capacitance
        rate = C * (p_a * out['dp_a'] + p_b * out['dp_b'])
        balance = (out['pump_power_out']
                   - out['front_motor_power_in'] - out['rear_motor_power_in']
                   - out['front_pipe_loss'] - out['rear_pipe_loss']
                   - out['relief_loss'] + out['check_power'])
        assert rate == pytest.approx(balance, rel=1e-9, abs=1e-6)

    def test_stored_energy_value(self):
        C = HST.line_capacitance
        assert stored_energy(10e6, 2e6, HST) == pytest.approx(0.5 * C * (1e14 + 4e12))
