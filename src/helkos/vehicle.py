'''Vehicle body model
Rigid tractor body on a grade. Receives tire thrust, implement draft and
grade resistance, and distributes normal loads to the four tires.'''

from dataclasses import dataclass
from typing import Optional
from .utils import smooth_ramp, NUMERIC

GRAVITY = 9.80665  # m/s^2


@dataclass(frozen=True)
class AxleParams:
    """
    Immutable parameters for a driven axle.

    The axle motor drives both wheels through an open differential, so each
    wheel receives half of the axle torque.

    Attributes
    ----------
    final_drive_ratio : float
        Motor speed over mean wheel speed [-]
    inertia : float
        Motor and driveline inertia reflected to the wheels [kg*m^2],
        shared equally by the two wheels
    """
    final_drive_ratio: float
    inertia: float

    def __post_init__(self):
        if self.final_drive_ratio <= 0:
            raise ValueError(
                f"Final drive ratio must be positive, got {self.final_drive_ratio}"
            )
        if self.inertia <= 0:
            raise ValueError(f"Axle inertia must be positive, got {self.inertia}")


@dataclass(frozen=True)
class VehicleParams:
    """
    Immutable parameters for the tractor body.

    Attributes
    ----------
    mass : float
        Operating mass [kg]
    wheelbase : float
        Distance between axles [m]
    cg_to_rear_axle : float
        Horizontal distance from rear axle to center of gravity [m]
    cg_height : float
        Height of the center of gravity [m]
    front_axle, rear_axle : AxleParams
        Driveline of each axle
    """
    mass: float
    wheelbase: float
    cg_to_rear_axle: float
    cg_height: float
    front_axle: AxleParams
    rear_axle: AxleParams
    name: Optional[str] = None

    def __post_init__(self):
        if self.mass <= 0:
            raise ValueError(f"Mass must be positive, got {self.mass}")
        if self.wheelbase <= 0:
            raise ValueError(f"Wheelbase must be positive, got {self.wheelbase}")
        if not (0 < self.cg_to_rear_axle < self.wheelbase):
            raise ValueError(
                f"Center of gravity must lie between the axles, got "
                f"{self.cg_to_rear_axle} m for wheelbase {self.wheelbase} m"
            )
        if self.cg_height <= 0:
            raise ValueError(f"CG height must be positive, got {self.cg_height}")

    @property
    def weight(self) -> float:
        """Weight [N]"""
        return self.mass * GRAVITY

    @property
    def static_front_share(self) -> float:
        """Fraction of weight on the front axle on level ground"""
        return self.cg_to_rear_axle / self.wheelbase


def normal_loads(draft_force, vertical_force, grade_sin, grade_cos,
                 vehicle: VehicleParams, hitch_height: float,
                 hitch_offset: float, load_eps: float, m=NUMERIC):
    """
    Quasi-static normal load on each front and each rear tire [N].

    Parameters
    ----------
    draft_force : horizontal implement force on the tractor, positive forward [N]
    vertical_force : implement vertical force VF, positive upwards [N]
    grade_sin, grade_cos : sine and cosine of the field grade
    vehicle : VehicleParams
    hitch_height, hitch_offset : implement hitch geometry [m]
    load_eps : float
        Width of the positive clamp [N]

    Returns
    -------
    tuple
        (per front tire, per rear tire) loads, smoothly clamped positive
    """
    L = vehicle.wheelbase
    W = vehicle.weight
    # Moments about the rear contact point
    front_axle = (W * grade_cos * vehicle.cg_to_rear_axle
                  - W * grade_sin * vehicle.cg_height
                  + draft_force * hitch_height
                  + vertical_force * hitch_offset) / L
    rear_axle = (W * grade_cos - front_axle - vertical_force)
    front = smooth_ramp(0.5 * front_axle, load_eps, m)
    rear = smooth_ramp(0.5 * rear_axle, load_eps, m)
    return front, rear


def body_acceleration(thrust, draft_force, grade_sin, vehicle: VehicleParams):
    """Longitudinal acceleration [m/s^2] from net tire thrust and draft."""
    return (thrust + draft_force - vehicle.weight * grade_sin) / vehicle.mass


def wheel_acceleration(axle_torque, reaction_torque, inertia):
    """Angular acceleration of one wheel [rad/s^2]."""
    return (0.5 * axle_torque - reaction_torque) / inertia
