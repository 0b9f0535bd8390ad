'''Driver controls
Engine speed, pump displacement and implement depth commands, held constant
over a propagation segment, and time-stamped schedules of such commands.'''

from dataclasses import dataclass
from typing import Tuple, Sequence, Iterator
import numpy as np


@dataclass(frozen=True)
class DriverCommand:
    """
    Immutable set of driver commands.

    Attributes
    ----------
    engine_speed : float
        Governed engine speed command [rpm]
    displacement : float
        Normalized pump displacement command in [-1, 1].
        Negative values select reverse.
    depth : float
        Implement depth command [m], >= 0
    """
    engine_speed: float
    displacement: float = 0.0
    depth: float = 0.0

    def __post_init__(self):
        if not np.isfinite(self.engine_speed) or self.engine_speed <= 0:
            raise ValueError(
                f"Engine speed command must be positive, got {self.engine_speed}"
            )
        if not (-1.0 <= self.displacement <= 1.0):
            raise ValueError(
                f"Displacement command must lie in [-1, 1], got {self.displacement}"
            )
        if not np.isfinite(self.depth) or self.depth < 0:
            raise ValueError(f"Depth command must be >= 0, got {self.depth}")

    @property
    def is_reverse(self) -> bool:
        """True when the command selects reverse travel"""
        return self.displacement < 0

    def replace(self, **changes) -> "DriverCommand":
        """Return a copy with some commands changed."""
        values = {
            'engine_speed': self.engine_speed,
            'displacement': self.displacement,
            'depth': self.depth,
        }
        values.update(changes)
        return DriverCommand(**values)


class DriverSchedule:
    """
    Piecewise-constant sequence of driver commands.

    Parameters
    ----------
    events : sequence of (time, DriverCommand)
        Switching times [s] and the command that takes effect at each.
        Times must be strictly increasing.

    Examples
    --------
    >>> sched = DriverSchedule([
    ...     (0.0, DriverCommand(2000, displacement=0.6)),
    ...     (5.0, DriverCommand(2000, displacement=0.6, depth=0.2)),
    ...     (20.0, DriverCommand(2000, displacement=-0.4)),
    ... ])
    >>> list(sched.segments(0.0, 30.0))
    """
    def __init__(self, events: Sequence[Tuple[float, DriverCommand]]):
        if len(events) == 0:
            raise ValueError("DriverSchedule requires at least one event")
        times = []
        commands = []
        for t, cmd in events:
            if not isinstance(cmd, DriverCommand):
                raise TypeError(
                    f"Schedule entries must hold DriverCommand, got {type(cmd)}"
                )
            times.append(float(t))
            commands.append(cmd)
        if not np.all(np.isfinite(times)):
            raise ValueError(f"Schedule times must be finite, got {times}")
        if np.any(np.diff(times) <= 0):
            raise ValueError(f"Schedule times must be strictly increasing, got {times}")
        self._times = tuple(times)
        self._commands = tuple(commands)

    @classmethod
    def constant(cls, command: DriverCommand, t_start: float = 0.0) -> "DriverSchedule":
        """Schedule holding a single command."""
        return cls([(t_start, command)])

    @property
    def times(self) -> Tuple[float, ...]:
        return self._times

    @property
    def commands(self) -> Tuple[DriverCommand, ...]:
        return self._commands

    @property
    def t_start(self) -> float:
        """Time of the first event [s]"""
        return self._times[0]

    def command_at(self, t: float) -> DriverCommand:
        """Command in effect at time t."""
        if t < self._times[0]:
            raise ValueError(
                f"Time {t} precedes the first schedule event at {self._times[0]}"
            )
        idx = int(np.searchsorted(self._times, t, side='right')) - 1
        return self._commands[idx]

    def segments(self, t_start: float, t_end: float
                 ) -> Iterator[Tuple[float, float, DriverCommand]]:
        """
        Split [t_start, t_end] into constant-command segments.

        Yields
        ------
        (t0, t1, command)
        """
        if t_end <= t_start:
            raise ValueError(f"t_end ({t_end}) must be > t_start ({t_start})")
        bounds = [t_start] + [t for t in self._times if t_start < t < t_end] + [t_end]
        for t0, t1 in zip(bounds[:-1], bounds[1:]):
            yield t0, t1, self.command_at(t0)

    def __len__(self):
        return len(self._times)

    def __iter__(self):
        return iter(zip(self._times, self._commands))

    def __repr__(self):
        return f"DriverSchedule({len(self)} events, t0={self.t_start})"
