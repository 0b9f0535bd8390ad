'''Hydrostatic CVT model for the tractor powertrain
Closed hydraulic loop: one variable-displacement pump, two fixed-displacement
motors (front and rear axle) in parallel, pipe resistance, relief valves,
an engine-driven charge pump with check valves, and case-drain leakage.'''

import numpy as np
from dataclasses import dataclass
from typing import Optional
from .utils import cc2si, smooth_ramp, NUMERIC

"""
Immutable dataclasses for the hydraulic components.
Displacements are given in cc/rev and pressures in Pa; the model works in
SI units internally (m^3/rad, m^3/s, Pa).
"""
@dataclass(frozen=True)
class FluidParams:
    """
    Immutable hydraulic fluid properties.

    Attributes
    ----------
    density : float
        Fluid density [kg/m^3]
    kinematic_viscosity : float
        Kinematic viscosity [m^2/s]
    bulk_modulus : float
        Effective bulk modulus of fluid and hoses [Pa]
    """
    density: float
    kinematic_viscosity: float
    bulk_modulus: float
    name: Optional[str] = None

    def __post_init__(self):
        if self.density <= 0:
            raise ValueError(f"Density must be positive, got {self.density}")
        if self.kinematic_viscosity <= 0:
            raise ValueError(
                f"Kinematic viscosity must be positive, got {self.kinematic_viscosity}"
            )
        if self.bulk_modulus <= 0:
            raise ValueError(f"Bulk modulus must be positive, got {self.bulk_modulus}")

    @property
    def dynamic_viscosity(self) -> float:
        """Dynamic viscosity [Pa*s]"""
        return self.density * self.kinematic_viscosity


@dataclass(frozen=True)
class PumpParams:
    """
    Variable-displacement transmission pump.

    Attributes
    ----------
    max_displacement : float
        Displacement at full swashplate stroke [cc/rev]
    leakage_coeff : float
        Case-drain leakage per line pressure [m^3/(s*Pa)]
    viscous_friction : float
        Shaft viscous friction [N*m*s/rad]
    swashplate_time_constant : float
        Displacement actuator lag [s]
    """
    max_displacement: float
    leakage_coeff: float = 1e-12
    viscous_friction: float = 0.05
    swashplate_time_constant: float = 0.3

    def __post_init__(self):
        if self.max_displacement <= 0:
            raise ValueError(
                f"Pump displacement must be positive, got {self.max_displacement}"
            )
        if self.leakage_coeff < 0:
            raise ValueError(f"Leakage coefficient must be >= 0, got {self.leakage_coeff}")
        if self.viscous_friction < 0:
            raise ValueError(f"Viscous friction must be >= 0, got {self.viscous_friction}")
        if self.swashplate_time_constant <= 0:
            raise ValueError(
                f"Swashplate time constant must be positive, "
                f"got {self.swashplate_time_constant}"
            )

    @property
    def max_displacement_si(self) -> float:
        """Displacement at full stroke [m^3/rad]"""
        return cc2si(self.max_displacement)


@dataclass(frozen=True)
class MotorParams:
    """
    Fixed-displacement hydraulic motor.

    Attributes
    ----------
    displacement : float
        Motor displacement [cc/rev]
    leakage_coeff : float
        Case-drain leakage per line pressure [m^3/(s*Pa)]
    viscous_friction : float
        Shaft viscous friction [N*m*s/rad]
    """
    displacement: float
    leakage_coeff: float = 1e-12
    viscous_friction: float = 0.02

    def __post_init__(self):
        if self.displacement <= 0:
            raise ValueError(
                f"Motor displacement must be positive, got {self.displacement}"
            )
        if self.leakage_coeff < 0:
            raise ValueError(f"Leakage coefficient must be >= 0, got {self.leakage_coeff}")
        if self.viscous_friction < 0:
            raise ValueError(f"Viscous friction must be >= 0, got {self.viscous_friction}")

    @property
    def displacement_si(self) -> float:
        """Displacement [m^3/rad]"""
        return cc2si(self.displacement)


@dataclass(frozen=True)
class PipeParams:
    """
    Circular hydraulic pipe with laminar (Hagen-Poiseuille) resistance.

    Attributes
    ----------
    length : float
        Pipe length [m]
    diameter : float
        Inner diameter [m]
    """
    length: float
    diameter: float

    def __post_init__(self):
        if self.length <= 0:
            raise ValueError(f"Pipe length must be positive, got {self.length}")
        if self.diameter <= 0:
            raise ValueError(f"Pipe diameter must be positive, got {self.diameter}")

    def resistance(self, fluid: FluidParams) -> float:
        """Laminar resistance R = 128 μ L / (π d^4) [Pa*s/m^3]."""
        return (128.0 * fluid.dynamic_viscosity * self.length
                / (np.pi * self.diameter**4))


@dataclass(frozen=True)
class ReliefValveParams:
    """
    Line pressure-relief valve discharging to tank.

    Attributes
    ----------
    set_pressure : float
        Cracking pressure [Pa]
    conductance : float
        Flow gain above cracking pressure [m^3/(s*Pa)]
    """
    set_pressure: float
    conductance: float = 1e-9

    def __post_init__(self):
        if self.set_pressure <= 0:
            raise ValueError(f"Set pressure must be positive, got {self.set_pressure}")
        if self.conductance <= 0:
            raise ValueError(f"Conductance must be positive, got {self.conductance}")


@dataclass(frozen=True)
class CheckValveParams:
    """
    Check valve from the charge circuit into a loop line.

    Attributes
    ----------
    conductance : float
        Flow gain when the line is below charge pressure [m^3/(s*Pa)]
    """
    conductance: float = 1e-9

    def __post_init__(self):
        if self.conductance <= 0:
            raise ValueError(f"Conductance must be positive, got {self.conductance}")


@dataclass(frozen=True)
class ChargePumpParams:
    """
    Fixed-displacement charge pump driven by the engine.

    The charge relief valve holds the charge circuit at ``pressure``; flow
    not taken by the check valves returns to tank.

    Attributes
    ----------
    displacement : float
        Charge pump displacement [cc/rev]
    pressure : float
        Regulated charge pressure [Pa]
    """
    displacement: float
    pressure: float

    def __post_init__(self):
        if self.displacement <= 0:
            raise ValueError(
                f"Charge pump displacement must be positive, got {self.displacement}"
            )
        if self.pressure <= 0:
            raise ValueError(f"Charge pressure must be positive, got {self.pressure}")

    @property
    def displacement_si(self) -> float:
        """Displacement [m^3/rad]"""
        return cc2si(self.displacement)


@dataclass(frozen=True)
class HydrostaticParams:
    """
    Complete hydrostatic CVT circuit.

    Attributes
    ----------
    pump : PumpParams
        Transmission pump
    front_motor, rear_motor : MotorParams
        Axle motors, hydraulically in parallel
    front_pipe, rear_pipe : PipeParams
        Pipe of each motor branch; supply and return lines are identical
    relief : ReliefValveParams
        Relief valve on each loop line
    check : CheckValveParams
        Check valve on each loop line
    charge_pump : ChargePumpParams
        Make-up circuit
    line_volume : float
        Fluid volume of each loop line [m^3]
    fluid : FluidParams
        Transmission fluid
    """
    pump: PumpParams
    front_motor: MotorParams
    rear_motor: MotorParams
    front_pipe: PipeParams
    rear_pipe: PipeParams
    relief: ReliefValveParams
    check: CheckValveParams
    charge_pump: ChargePumpParams
    line_volume: float
    fluid: FluidParams

    def __post_init__(self):
        if self.line_volume <= 0:
            raise ValueError(f"Line volume must be positive, got {self.line_volume}")
        if self.relief.set_pressure <= self.charge_pump.pressure:
            raise ValueError(
                f"Relief set pressure ({self.relief.set_pressure} Pa) must exceed "
                f"charge pressure ({self.charge_pump.pressure} Pa)"
            )

    @property
    def line_capacitance(self) -> float:
        """Hydraulic capacitance V/β of each line [m^3/Pa]"""
        return self.line_volume / self.fluid.bulk_modulus

    @property
    def front_branch_resistance(self) -> float:
        """Supply plus return pipe resistance of the front branch [Pa*s/m^3]"""
        return 2.0 * self.front_pipe.resistance(self.fluid)

    @property
    def rear_branch_resistance(self) -> float:
        """Supply plus return pipe resistance of the rear branch [Pa*s/m^3]"""
        return 2.0 * self.rear_pipe.resistance(self.fluid)


# ========== MODEL EQUATIONS ==========
def swashplate_rate(x_p, command, trans: HydrostaticParams):
    """Time derivative of the normalized pump displacement [1/s]."""
    return (command - x_p) / trans.pump.swashplate_time_constant


def _motor_branch(omega_m, dp, motor: MotorParams, resistance, p_a, p_b):
    """Flow, pressure and power terms of one motor branch."""
    D_m = motor.displacement_si
    flow = D_m * omega_m
    # Pipe pressure drop taken off the loop pressure difference
    dp_motor = dp - resistance * flow
    torque = D_m * dp_motor - motor.viscous_friction * omega_m
    leak_a = motor.leakage_coeff * p_a
    leak_b = motor.leakage_coeff * p_b
    leak_power = p_a * leak_a + p_b * leak_b
    return {
        'flow': flow,
        'pressure_drop': dp_motor,
        'torque': torque,
        'leak_a': leak_a,
        'leak_b': leak_b,
        'power_in': flow * dp_motor + leak_power,
        'power_out': torque * omega_m,
        'pipe_loss': resistance * flow * flow,
    }


def transmission_model(omega_e, x_p, p_a, p_b, omega_mf, omega_mr,
                       trans: HydrostaticParams, pressure_eps: float,
                       m=NUMERIC):
    """
    Evaluate the hydrostatic loop.

    Parameters
    ----------
    omega_e : pump shaft speed [rad/s]
    x_p : normalized pump displacement [-1, 1]
    p_a, p_b : loop line pressures [Pa]
    omega_mf, omega_mr : front and rear motor speeds [rad/s]
    trans : HydrostaticParams
    pressure_eps : float
        Opening width of relief and check valves [Pa]
    m : Backend
        Expression backend (SYMBOLIC or NUMERIC)

    Returns
    -------
    dict
        Flows [m^3/s], torques [N*m], powers [W] and the line pressure
        derivatives 'dp_a', 'dp_b' [Pa/s]. A positive pump displacement
        moves fluid from line B to line A.
    """
    dp = p_a - p_b

    # Transmission pump
    pump = trans.pump
    pump_flow = x_p * pump.max_displacement_si * omega_e
    pump_torque = x_p * pump.max_displacement_si * dp + pump.viscous_friction * omega_e
    pump_leak_a = pump.leakage_coeff * p_a
    pump_leak_b = pump.leakage_coeff * p_b

    # Motors
    front = _motor_branch(omega_mf, dp, trans.front_motor,
                          trans.front_branch_resistance, p_a, p_b)
    rear = _motor_branch(omega_mr, dp, trans.rear_motor,
                         trans.rear_branch_resistance, p_a, p_b)

    # Relief valves to tank, check valves from the charge circuit
    p_set = trans.relief.set_pressure
    p_ch = trans.charge_pump.pressure
    relief_a = trans.relief.conductance * smooth_ramp(p_a - p_set, pressure_eps, m)
    relief_b = trans.relief.conductance * smooth_ramp(p_b - p_set, pressure_eps, m)
    check_a = trans.check.conductance * smooth_ramp(p_ch - p_a, pressure_eps, m)
    check_b = trans.check.conductance * smooth_ramp(p_ch - p_b, pressure_eps, m)

    # Charge pump at regulated pressure
    charge_flow = trans.charge_pump.displacement_si * omega_e
    charge_torque = trans.charge_pump.displacement_si * p_ch

    # Line continuity
    q_a = (pump_flow - front['flow'] - rear['flow']
           - pump_leak_a - front['leak_a'] - rear['leak_a']
           - relief_a + check_a)
    q_b = (-pump_flow + front['flow'] + rear['flow']
           - pump_leak_b - front['leak_b'] - rear['leak_b']
           - relief_b + check_b)
    inv_cap = 1.0 / trans.line_capacitance

    return {
        'pump_flow': pump_flow,
        'pump_torque': pump_torque,
        'pump_power_in': pump_torque * omega_e,
        'pump_power_out': pump_flow * dp - (p_a * pump_leak_a + p_b * pump_leak_b),
        'pump_leakage': pump_leak_a + pump_leak_b,
        'front_motor_flow': front['flow'],
        'front_motor_pressure_drop': front['pressure_drop'],
        'front_motor_torque': front['torque'],
        'front_motor_power_in': front['power_in'],
        'front_motor_power_out': front['power_out'],
        'front_pipe_loss': front['pipe_loss'],
        'rear_motor_flow': rear['flow'],
        'rear_motor_pressure_drop': rear['pressure_drop'],
        'rear_motor_torque': rear['torque'],
        'rear_motor_power_in': rear['power_in'],
        'rear_motor_power_out': rear['power_out'],
        'rear_pipe_loss': rear['pipe_loss'],
        'relief_flow': relief_a + relief_b,
        'relief_loss': p_a * relief_a + p_b * relief_b,
        'check_flow': check_a + check_b,
        'check_power': p_a * check_a + p_b * check_b,
        'charge_flow': charge_flow,
        'charge_torque': charge_torque,
        'dp_a': inv_cap * q_a,
        'dp_b': inv_cap * q_b,
    }


def stored_energy(p_a, p_b, trans: HydrostaticParams):
    """Compression energy held in the two loop lines [J]."""
    return 0.5 * trans.line_capacitance * (p_a * p_a + p_b * p_b)
