'''TractorState class definition
Named view of the tractor state vector: powertrain, hydraulic loop, body,
wheel and slip states followed by the cumulative energy channels.'''

import numpy as np
from typing import Dict
from .energy import ENERGY_CHANNELS
from .tire import TIRE_POSITIONS

# Dynamic states, in state-vector order
DYNAMIC_STATES = (
    'engine_speed',     # rad/s
    'displacement',     # normalized pump displacement [-1, 1]
    'depth',            # implement depth [m]
    'p_A',              # loop line A pressure [Pa]
    'p_B',              # loop line B pressure [Pa]
    'velocity',         # body speed [m/s]
    'position',         # distance travelled [m]
) + tuple(f'omega_{pos}' for pos in TIRE_POSITIONS) \
  + tuple(f'slip_{pos}' for pos in TIRE_POSITIONS)

ENERGY_STATES = tuple(f'E_{name}' for name in ENERGY_CHANNELS)

STATE_NAMES = DYNAMIC_STATES + ENERGY_STATES
STATE_INDEX = {name: idx for idx, name in enumerate(STATE_NAMES)}
N_STATES = len(STATE_NAMES)


class TractorState:
    """
    Immutable snapshot of the tractor state vector.

    States are accessible by name as attributes, e.g. ``state.velocity``,
    ``state.p_A``, ``state.slip_RL`` or ``state.E_engine``.

    Parameters
    ----------
    values : array-like
        Full state vector of length N_STATES, ordered as STATE_NAMES
    time : float, optional
        Time the state refers to [s]
    validate : bool, optional
        Check length and finiteness (default True)
    """
    def __init__(self, values, time=None, validate=True):
        values = np.array(values, dtype=float)
        if validate:
            if values.shape != (N_STATES,):
                raise ValueError(
                    f"State vector must have shape ({N_STATES},), got {values.shape}"
                )
            if not np.all(np.isfinite(values)):
                raise ValueError(f"State contains NaN or Inf values: {values}")
        values.flags.writeable = False
        self._values = values
        self._time = time

    @classmethod
    def from_dict(cls, values: Dict[str, float], time=None) -> "TractorState":
        """
        Build a state from named values. Missing energy channels default to
        zero; every dynamic state must be given.
        """
        unknown = [name for name in values if name not in STATE_INDEX]
        if unknown:
            raise ValueError(f"Unknown state names: {unknown}")
        missing = [name for name in DYNAMIC_STATES if name not in values]
        if missing:
            raise ValueError(f"Missing dynamic states: {missing}")
        array = np.zeros(N_STATES)
        for name, value in values.items():
            array[STATE_INDEX[name]] = value
        return cls(array, time=time)

    # ========== PROPERTY ACCESS ==========
    @property
    def values(self) -> np.ndarray:
        """Full state vector (read-only)"""
        return self._values

    @property
    def time(self):
        return self._time

    @property
    def wheel_speeds(self) -> np.ndarray:
        """Wheel speeds FL, FR, RL, RR [rad/s]"""
        return np.array([self[f'omega_{pos}'] for pos in TIRE_POSITIONS])

    @property
    def slips(self) -> np.ndarray:
        """Lagged tire slips FL, FR, RL, RR [-]"""
        return np.array([self[f'slip_{pos}'] for pos in TIRE_POSITIONS])

    @property
    def energies(self) -> Dict[str, float]:
        """Cumulative energy per channel [J]"""
        return {name: self[f'E_{name}'] for name in ENERGY_CHANNELS}

    def to_dict(self) -> Dict[str, float]:
        return {name: float(self._values[idx]) for name, idx in STATE_INDEX.items()}

    def with_values(self, **changes) -> "TractorState":
        """Return a copy with some named states changed."""
        values = self._values.copy()
        for name, value in changes.items():
            if name not in STATE_INDEX:
                raise ValueError(f"Unknown state name '{name}'")
            values[STATE_INDEX[name]] = value
        return TractorState(values, time=self._time)

    def without_energy(self) -> "TractorState":
        """Return a copy with the energy accumulators reset to zero."""
        values = self._values.copy()
        values[len(DYNAMIC_STATES):] = 0.0
        return TractorState(values, time=self._time)

    # ========== SPECIAL METHODS ==========
    def __getitem__(self, name: str) -> float:
        if name not in STATE_INDEX:
            raise KeyError(f"Unknown state name '{name}'")
        return float(self._values[STATE_INDEX[name]])

    def __getattr__(self, name):
        # only reached for names that are not regular attributes
        if name.startswith('_'):
            raise AttributeError(name)
        if name in STATE_INDEX:
            return float(self._values[STATE_INDEX[name]])
        raise AttributeError(f"'TractorState' has no attribute '{name}'")

    def __array__(self, dtype=None, copy=None):
        if dtype is None:
            return self._values.copy()
        return self._values.astype(dtype)

    def __len__(self):
        return N_STATES

    def __eq__(self, other) -> bool:
        if not isinstance(other, TractorState):
            return NotImplemented
        return np.array_equal(self._values, other._values)

    def __hash__(self) -> int:
        return hash(self._values.tobytes())

    def __repr__(self) -> str:
        t_str = f"t={self._time}, " if self._time is not None else ""
        return (f"TractorState({t_str}engine={self.engine_speed * 30 / np.pi:.0f} rpm, "
                f"v={self.velocity:.3f} m/s, p_A={self.p_A / 1e5:.1f} bar, "
                f"p_B={self.p_B / 1e5:.1f} bar, depth={self.depth:.3f} m)")
