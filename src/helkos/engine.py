'''Engine model for the tractor powertrain
The engine is an ideal angular velocity source behind a governor: it holds
the pump shaft at the commanded speed and supplies whatever torque the
transmission pump and charge pump draw.'''

from dataclasses import dataclass
from typing import Optional
from .utils import rpm2rad, validation_error


@dataclass(frozen=True)
class EngineParams:
    """
    Immutable parameters for a governed engine.

    The governed shaft speed follows the speed command as a first-order lag:
    dω/dt = (ω_cmd - ω) / τ

    Attributes
    ----------
    idle_speed : float
        Lowest governed speed [rpm]
    rated_speed : float
        Highest governed speed [rpm]
    governor_time_constant : float
        Time constant τ of the governor response [s]
    """
    idle_speed: float
    rated_speed: float
    governor_time_constant: float = 0.2
    name: Optional[str] = None

    def __post_init__(self):
        if self.idle_speed <= 0:
            raise ValueError(f"Idle speed must be positive, got {self.idle_speed}")
        if self.rated_speed <= self.idle_speed:
            raise ValueError(
                f"Rated speed ({self.rated_speed}) must exceed "
                f"idle speed ({self.idle_speed})"
            )
        if self.governor_time_constant <= 0:
            raise ValueError(
                f"Governor time constant must be positive, "
                f"got {self.governor_time_constant}"
            )

    @property
    def idle_omega(self) -> float:
        """Idle speed [rad/s]"""
        return float(rpm2rad(self.idle_speed))

    @property
    def rated_omega(self) -> float:
        """Rated speed [rad/s]"""
        return float(rpm2rad(self.rated_speed))

    def check_speed(self, speed: float):
        """Validate a speed command [rpm] against the governed range."""
        if not (self.idle_speed <= speed <= self.rated_speed):
            validation_error(
                f"Engine speed command {speed} rpm outside governed range "
                f"[{self.idle_speed}, {self.rated_speed}] rpm"
            )


def governor_rate(omega, omega_cmd, engine: EngineParams):
    """Time derivative of the governed engine speed [rad/s^2]."""
    return (omega_cmd - omega) / engine.governor_time_constant


def engine_torque(pump_torque, charge_torque):
    """Engine torque [N*m]: the sum of the loads on the shaft."""
    return pump_torque + charge_torque
