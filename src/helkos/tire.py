'''Tire-soil interaction model
Longitudinal Bekker/Wong model: pressure-sinkage under the normal load,
compaction and flexing rolling resistance, and Janosi-Hanamoto shear
thrust as a function of slip. Slip is carried as a lagged state with a
relaxation length, which keeps the equations regular at standstill.'''

import math
from dataclasses import dataclass
from typing import Optional
from .utils import (smooth_abs, smooth_max, smooth_sign, positive_power,
                    NUMERIC)

TIRE_POSITIONS = ('FL', 'FR', 'RL', 'RR')


@dataclass(frozen=True)
class SoilParams:
    """
    Immutable terrain parameters for the Bekker tire-soil model.

    The pressure-sinkage relation is p = (k_c/b + k_phi) z^n and the
    shear strength follows Mohr-Coulomb with the Janosi-Hanamoto
    shear deformation modulus K.

    Attributes
    ----------
    kc : float
        Cohesive modulus of sinkage [N/m^(n+1)]
    kphi : float
        Frictional modulus of sinkage [N/m^(n+2)]
    n : float
        Sinkage exponent [-]
    c : float
        Cohesion of the terrain [Pa]
    phi : float
        Angle of internal shearing resistance [deg]
    K : float
        Shear deformation parameter [m]
    """
    kc: float
    kphi: float
    n: float
    c: float
    phi: float
    K: float
    name: Optional[str] = None

    def __post_init__(self):
        if self.kphi <= 0:
            raise ValueError(f"Frictional modulus must be positive, got {self.kphi}")
        if self.kc < 0:
            raise ValueError(f"Cohesive modulus must be >= 0, got {self.kc}")
        if not (0 < self.n < 3):
            raise ValueError(f"Sinkage exponent must lie in (0, 3), got {self.n}")
        if self.c < 0:
            raise ValueError(f"Cohesion must be >= 0, got {self.c}")
        if not (0 <= self.phi < 90):
            raise ValueError(f"Shearing angle must lie in [0, 90) deg, got {self.phi}")
        if self.K <= 0:
            raise ValueError(f"Shear deformation parameter must be positive, got {self.K}")

    @property
    def tan_phi(self) -> float:
        """Tangent of the internal shearing angle"""
        return math.tan(math.radians(self.phi))


@dataclass(frozen=True)
class TireParams:
    """
    Immutable parameters for one tire.

    Attributes
    ----------
    radius : float
        Rolling radius [m]
    width : float
        Section width b [m]
    inertia : float
        Tire and rim polar inertia [kg*m^2]
    flexing_coefficient : float
        Flexing resistance per unit normal load [-]
    relaxation_length : float
        Rolling distance for slip to build up [m]
    include_inertia : bool
        Add the tire inertia to the wheel dynamics. When False only the
        reflected axle inertia acts on the wheel.
    """
    radius: float
    width: float
    inertia: float
    flexing_coefficient: float = 0.02
    relaxation_length: float = 0.25
    include_inertia: bool = True
    name: Optional[str] = None

    def __post_init__(self):
        if self.radius <= 0:
            raise ValueError(f"Tire radius must be positive, got {self.radius}")
        if self.width <= 0:
            raise ValueError(f"Tire width must be positive, got {self.width}")
        if self.width >= 2 * self.radius:
            raise ValueError(
                f"Tire width ({self.width} m) must be smaller than its "
                f"diameter ({2 * self.radius} m)"
            )
        if self.inertia < 0:
            raise ValueError(f"Tire inertia must be >= 0, got {self.inertia}")
        if self.flexing_coefficient < 0:
            raise ValueError(
                f"Flexing coefficient must be >= 0, got {self.flexing_coefficient}"
            )
        if self.relaxation_length <= 0:
            raise ValueError(
                f"Relaxation length must be positive, got {self.relaxation_length}"
            )

    @property
    def diameter(self) -> float:
        """Tire diameter D [m]"""
        return 2.0 * self.radius

    @property
    def effective_inertia(self) -> float:
        """Inertia contributed to the wheel dynamics [kg*m^2]"""
        return self.inertia if self.include_inertia else 0.0


# ========== BEKKER RELATIONS ==========
# `soil` only needs attributes kc, kphi, n, c, tan_phi and K, so the same
# functions accept a SoilParams or the runtime-parameter view of a Tractor.
def sinkage(load, tire: TireParams, soil, m=NUMERIC):
    """
    Static sinkage z0 [m] of a wheel under normal load W [N].

    z0 = [3W / ((3 - n)(k_c + b k_phi) sqrt(D))]^(2/(2n + 1))
    """
    k_eq = soil.kc + tire.width * soil.kphi
    base = 3.0 * load / ((3.0 - soil.n) * k_eq * math.sqrt(tire.diameter))
    return positive_power(base, 2.0 / (2.0 * soil.n + 1.0), m)


def compaction_resistance(z, tire: TireParams, soil, m=NUMERIC):
    """Compaction resistance R_c = b (k_c/b + k_phi) z^(n+1)/(n+1) [N]."""
    n1 = soil.n + 1.0
    return tire.width * (soil.kc / tire.width + soil.kphi) * positive_power(z, n1, m) / n1


def flexing_resistance(load, tire: TireParams):
    """Tire carcass flexing resistance [N]."""
    return tire.flexing_coefficient * load


def contact_length(z, tire: TireParams, m=NUMERIC):
    """Contact patch length sqrt(D z) [m]."""
    return m.sqrt(tire.diameter * z)


def shear_capacity(load, length, tire: TireParams, soil):
    """Mohr-Coulomb shear limit A c + W tan(phi) [N]."""
    return tire.width * length * soil.c + load * soil.tan_phi


def slip_factor(slip, length, soil, slip_eps: float, m=NUMERIC):
    """
    Janosi-Hanamoto mobilized fraction of the shear limit.

    f(s) = sgn(s) [1 - K/(|s| l) (1 - exp(-|s| l / K))]

    |s| l / K is regularized with slip_eps so that f is smooth and odd,
    vanishing at zero slip.
    """
    u = slip * length / soil.K
    a = smooth_abs(u, slip_eps, m)
    return (u / a) * (1.0 - (1.0 - m.exp(-a)) / a)


def slip_rate(omega, velocity, slip, tire: TireParams, speed_eps: float,
              relaxation_speed: float = 0.0, m=NUMERIC):
    """
    Time derivative of the lagged slip [1/s].

    ds/dt = (s_c - s) max(V, V_min) / σ,  V = max(|ω r|, |v|)

    with the classical slip s_c = (ω r - v)/V as equilibrium. Slip relaxes
    over the rolling distance σ, but never slower than the time constant
    σ/V_min, so a stopped wheel still settles to zero slip and a spinning
    one to full slip. With relaxation_speed = 0 this is
    ds/dt = (ω r - v - V s)/σ.
    """
    wheel_speed = omega * tire.radius
    ref_speed = smooth_max(smooth_abs(wheel_speed, speed_eps, m),
                           smooth_abs(velocity, speed_eps, m),
                           speed_eps, m)
    rate = (wheel_speed - velocity - ref_speed * slip) / tire.relaxation_length
    if relaxation_speed > 0:
        rate = rate * smooth_max(ref_speed, relaxation_speed, speed_eps, m) / ref_speed
    return rate


def tire_forces(omega, velocity, slip, load, tire: TireParams, soil,
                speed_eps: float, slip_eps: float, relaxation_speed: float = 0.0,
                m=NUMERIC):
    """
    Evaluate the tire-soil interaction of one tire.

    Parameters
    ----------
    omega : wheel speed [rad/s]
    velocity : hub (vehicle) speed [m/s]
    slip : lagged longitudinal slip [-]
    load : normal load W, positive downwards [N]
    tire : TireParams
    soil : SoilParams or runtime-parameter view
    speed_eps, slip_eps : regularization widths
    relaxation_speed : floor on the slip relaxation speed [m/s]
    m : Backend

    Returns
    -------
    dict
        'sinkage' [m], 'contact_length' [m], 'gross_thrust' H [N],
        'rolling_resistance' (compaction plus flexing magnitude) [N],
        'net_thrust' on the hub [N], 'wheel_torque' reaction H r [N*m],
        'slip_loss' and 'rolling_loss' powers [W], 'slip_rate' [1/s].
    """
    z = sinkage(load, tire, soil, m)
    length = contact_length(z, tire, m)
    gross = shear_capacity(load, length, tire, soil) * slip_factor(slip, length, soil, slip_eps, m)
    rolling = compaction_resistance(z, tire, soil, m) + flexing_resistance(load, tire)
    # Rolling resistance opposes hub motion
    rolling_signed = rolling * smooth_sign(velocity, speed_eps, m)
    return {
        'sinkage': z,
        'contact_length': length,
        'gross_thrust': gross,
        'rolling_resistance': rolling,
        'net_thrust': gross - rolling_signed,
        'wheel_torque': gross * tire.radius,
        'slip_loss': gross * (omega * tire.radius - velocity),
        'rolling_loss': rolling_signed * velocity,
        'slip_rate': slip_rate(omega, velocity, slip, tire, speed_eps,
                               relaxation_speed, m),
    }


def steady_slip(omega, velocity, tire: TireParams):
    """Classical slip (ω r - v)/max(|ω r|, |v|) for numeric inputs."""
    wheel_speed = omega * tire.radius
    ref = max(abs(wheel_speed), abs(velocity))
    if ref == 0.0:
        return 0.0
    return (wheel_speed - velocity) / ref
