'''Implement model
Draft force of a tillage implement from the ASABE D497.5 empirical relation
D = F_i (A + B S + C S^2) W T, or from a user-supplied draft function, and
the vertical force the implement exerts on the tractor hitch.'''

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Callable, Tuple, Union
from .utils import smooth_abs, smooth_sign, NUMERIC


class SoilTexture(Enum):
    """Soil texture classes of the ASABE draft relation."""
    FINE = 'fine'
    MEDIUM = 'medium'
    COARSE = 'coarse'

    @property
    def index(self) -> int:
        """Column of the texture adjustment factor F_i"""
        return ('fine', 'medium', 'coarse').index(self.value)

    @staticmethod
    def parse(texture):
        """Convert string or enum to SoilTexture enum"""
        if isinstance(texture, SoilTexture):
            return texture
        elif isinstance(texture, str):
            try:
                return SoilTexture(texture.lower())
            except ValueError:
                raise ValueError(
                    f"Unknown soil texture '{texture}'. "
                    f"Use: {[t.value for t in SoilTexture]}"
                )
        else:
            raise TypeError(f"texture must be SoilTexture or str, got {type(texture)}")


# define the major tillage tools of ASABE D497.5
# (width unit, A, B, C, (F1, F2, F3))
class ImplementType(Enum):
    MOLDBOARD_PLOW = ('m', 652.0, 0.0, 5.1, (1.0, 0.70, 0.45))
    CHISEL_PLOW = ('tools', 91.0, 5.4, 0.0, (1.0, 0.85, 0.65))
    SWEEP_PLOW = ('m', 390.0, 19.0, 0.0, (1.0, 0.85, 0.65))
    DISK_HARROW_TANDEM = ('m', 309.0, 16.0, 0.0, (1.0, 0.88, 0.78))
    FIELD_CULTIVATOR = ('tools', 46.0, 2.8, 0.0, (1.0, 0.85, 0.65))
    SUBSOILER = ('tools', 226.0, 0.0, 1.8, (1.0, 0.70, 0.45))

    @property
    def width_unit(self) -> str:
        return self.value[0]

    @property
    def coefficients(self) -> Tuple[float, float, float]:
        """Machine parameters (A, B, C)"""
        return self.value[1:4]

    @property
    def texture_factors(self) -> Tuple[float, float, float]:
        """Soil texture adjustment (F1 fine, F2 medium, F3 coarse)"""
        return self.value[4]

    @staticmethod
    def parse(kind):
        """Convert string or enum to ImplementType enum"""
        if isinstance(kind, ImplementType):
            return kind
        elif isinstance(kind, str):
            type_map = {
                'moldboard': ImplementType.MOLDBOARD_PLOW,
                'moldboard_plow': ImplementType.MOLDBOARD_PLOW,
                'chisel': ImplementType.CHISEL_PLOW,
                'chisel_plow': ImplementType.CHISEL_PLOW,
                'sweep': ImplementType.SWEEP_PLOW,
                'sweep_plow': ImplementType.SWEEP_PLOW,
                'disk': ImplementType.DISK_HARROW_TANDEM,
                'disk_harrow': ImplementType.DISK_HARROW_TANDEM,
                'field_cultivator': ImplementType.FIELD_CULTIVATOR,
                'cultivator': ImplementType.FIELD_CULTIVATOR,
                'subsoiler': ImplementType.SUBSOILER,
            }
            key = kind.lower()
            if key in type_map:
                return type_map[key]
            raise ValueError(f"Unknown implement type '{kind}'. "
                             f"Use: {list(type_map.keys())}")
        else:
            raise TypeError(f"kind must be ImplementType or str, got {type(kind)}")


@dataclass(frozen=True)
class ImplementParams:
    """
    Immutable parameters for a hitched tillage implement.

    Attributes
    ----------
    kind : ImplementType or str, optional
        ASABE implement class. Ignored when draft_function is given.
    width : float
        Implement width [m] or number of tools, per kind.width_unit
    draft_function : callable, optional
        Custom draft law ``f(speed, depth) -> draft`` with field speed
        [m/s] >= 0, depth [m] and draft magnitude [N]. It is called with
        numpy arrays and with Heyoka expressions, so it may only use
        arithmetic operators.
    vertical_ratio : float
        Downward vertical force per unit draft [-]
    hitch_height : float
        Height of the line of draft at the hitch [m]
    hitch_offset : float
        Horizontal hitch distance behind the rear axle [m]
    depth_time_constant : float
        Hitch lag of the depth response [s]
    max_depth : float
        Deepest allowed working depth [m]
    """
    kind: Union[ImplementType, str, None] = None
    width: float = 1.0
    draft_function: Optional[Callable] = None
    vertical_ratio: float = 0.2
    hitch_height: float = 0.5
    hitch_offset: float = 1.0
    depth_time_constant: float = 1.0
    max_depth: float = 0.5
    name: Optional[str] = None

    def __post_init__(self):
        if self.draft_function is None:
            if self.kind is None:
                raise ValueError("Implement requires either kind or draft_function")
            # frozen dataclass, normalize via object.__setattr__
            object.__setattr__(self, 'kind', ImplementType.parse(self.kind))
        elif not callable(self.draft_function):
            raise TypeError("draft_function must be callable")
        elif self.kind is not None:
            object.__setattr__(self, 'kind', ImplementType.parse(self.kind))
        if self.width <= 0:
            raise ValueError(f"Implement width must be positive, got {self.width}")
        if self.vertical_ratio < 0:
            raise ValueError(f"Vertical ratio must be >= 0, got {self.vertical_ratio}")
        if self.hitch_height < 0:
            raise ValueError(f"Hitch height must be >= 0, got {self.hitch_height}")
        if self.hitch_offset < 0:
            raise ValueError(f"Hitch offset must be >= 0, got {self.hitch_offset}")
        if self.depth_time_constant <= 0:
            raise ValueError(
                f"Depth time constant must be positive, got {self.depth_time_constant}"
            )
        if self.max_depth <= 0:
            raise ValueError(f"Maximum depth must be positive, got {self.max_depth}")

    @property
    def is_custom(self) -> bool:
        """True when draft comes from a user function"""
        return self.draft_function is not None

    def texture_factor(self, texture) -> float:
        """ASABE texture adjustment F_i for a soil texture."""
        if self.is_custom:
            return 1.0
        return self.kind.texture_factors[SoilTexture.parse(texture).index]

    def draft(self, speed, depth, texture=SoilTexture.MEDIUM):
        """
        Draft force magnitude [N] for numeric speed [m/s] and depth [m].

        Draft is non-decreasing in depth and independent of the sign of
        the field velocity.
        """
        return draft_magnitude(abs(speed), depth, self,
                               self.texture_factor(texture))


def depth_rate(depth, command, implement: ImplementParams):
    """Time derivative of the working depth [m/s]."""
    return (command - depth) / implement.depth_time_constant


def draft_magnitude(speed, depth, implement: ImplementParams, texture_factor):
    """
    Draft magnitude [N] at field speed [m/s] >= 0 and depth [m].

    ASABE D497.5: D = F_i (A + B S + C S^2) W T with S in km/h and T in cm.
    """
    if implement.is_custom:
        return implement.draft_function(speed, depth)
    A, B, C = implement.kind.coefficients
    S = 3.6 * speed
    T = 100.0 * depth
    return texture_factor * (A + B * S + C * S * S) * implement.width * T


def implement_forces(velocity, depth, implement: ImplementParams,
                     texture_factor, speed_eps: float, m=NUMERIC):
    """
    Forces of the implement on the tractor.

    Returns
    -------
    dict
        'draft' magnitude [N], 'draft_force' horizontal force on the
        tractor (negative for positive field velocity) [N],
        'vertical_force' VF, positive upwards [N], and 'power' absorbed by
        the implement [W]. Both forces vanish when the tractor stands still.
    """
    speed = smooth_abs(velocity, speed_eps, m)
    draft = draft_magnitude(speed, depth, implement, texture_factor)
    direction = smooth_sign(velocity, speed_eps, m)
    force = -draft * direction
    return {
        'draft': draft,
        'draft_force': force,
        'vertical_force': -implement.vertical_ratio * draft * direction * direction,
        'power': -force * velocity,
    }
