'''Field scenario
Terrain parameters under each of the four tires, the soil texture seen by
the implement, and the field grade.'''

import math
from typing import Dict, Union, Optional
from .tire import SoilParams, TIRE_POSITIONS
from .implement import SoilTexture


class Scenario:
    """
    Immutable tire-soil and implement-soil initial conditions.

    Parameters
    ----------
    soils : SoilParams or dict
        One SoilParams for all four tires, or a dict keyed by tire
        position ('FL', 'FR', 'RL', 'RR') holding one SoilParams each.
    texture : SoilTexture or str, optional
        Soil texture for the ASABE draft relation (default: 'medium')
    grade : float, optional
        Field grade [deg], positive uphill (default: 0)
    name : str, optional
        Scenario identifier
    """
    def __init__(
        self,
        soils: Union[SoilParams, Dict[str, SoilParams]],
        texture: Union[SoilTexture, str] = SoilTexture.MEDIUM,
        grade: float = 0.0,
        name: Optional[str] = None
    ):
        if isinstance(soils, SoilParams):
            soils = {pos: soils for pos in TIRE_POSITIONS}
        elif isinstance(soils, dict):
            missing = [pos for pos in TIRE_POSITIONS if pos not in soils]
            if missing:
                raise ValueError(f"Missing soil parameters for tires: {missing}")
            extra = [key for key in soils if key not in TIRE_POSITIONS]
            if extra:
                raise ValueError(
                    f"Unknown tire positions {extra}. Valid: {list(TIRE_POSITIONS)}"
                )
            for pos, soil in soils.items():
                if not isinstance(soil, SoilParams):
                    raise TypeError(
                        f"Soil for tire {pos} must be SoilParams, got {type(soil)}"
                    )
        else:
            raise TypeError(f"soils must be SoilParams or dict, got {type(soils)}")

        if not (-45.0 < grade < 45.0):
            raise ValueError(f"Grade must lie in (-45, 45) deg, got {grade}")

        self._soils = {pos: soils[pos] for pos in TIRE_POSITIONS}
        self._texture = SoilTexture.parse(texture)
        self._grade = float(grade)
        self._name = name

    @classmethod
    def uniform(cls, soil: SoilParams, texture=SoilTexture.MEDIUM,
                grade: float = 0.0, name: Optional[str] = None) -> "Scenario":
        """Scenario with the same terrain under every tire."""
        return cls(soil, texture=texture, grade=grade, name=name)

    # ========== PROPERTY ACCESS ==========
    @property
    def soils(self) -> Dict[str, SoilParams]:
        """Terrain under each tire (copy)"""
        return dict(self._soils)

    def soil(self, position: str) -> SoilParams:
        """Terrain under one tire."""
        if position not in self._soils:
            raise ValueError(
                f"Unknown tire position '{position}'. Valid: {list(TIRE_POSITIONS)}"
            )
        return self._soils[position]

    @property
    def texture(self) -> SoilTexture:
        return self._texture

    @property
    def grade(self) -> float:
        """Field grade [deg]"""
        return self._grade

    @property
    def grade_sin(self) -> float:
        return math.sin(math.radians(self._grade))

    @property
    def grade_cos(self) -> float:
        return math.cos(math.radians(self._grade))

    @property
    def name(self) -> Optional[str]:
        return self._name

    def with_grade(self, grade: float) -> "Scenario":
        """Return a copy on a different grade."""
        return Scenario(self._soils, texture=self._texture, grade=grade,
                        name=self._name)

    # ========== SPECIAL METHODS ==========
    def __eq__(self, other) -> bool:
        if not isinstance(other, Scenario):
            return NotImplemented
        return (self._soils == other._soils and
                self._texture == other._texture and
                self._grade == other._grade)

    def __hash__(self) -> int:
        return hash((tuple(self._soils[pos] for pos in TIRE_POSITIONS),
                     self._texture, self._grade))

    def __repr__(self) -> str:
        name_str = f"'{self._name}'" if self._name else "unnamed"
        soil_names = {self._soils[pos].name or 'custom' for pos in TIRE_POSITIONS}
        return (f"Scenario({name_str}, soils={sorted(soil_names)}, "
                f"texture={self._texture.value}, grade={self._grade} deg)")
