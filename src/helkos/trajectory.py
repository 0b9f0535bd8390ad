'''Trajectory class definition
A piecewise-constant-command simulation run with continuous-time access to
states, measured signals and energy reports.'''

import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Union, Optional, Dict, List, Sequence, Any, TYPE_CHECKING
import plotly.graph_objects as go
from plotly.subplots import make_subplots
from .config import config
from .driver import DriverCommand
from .energy import EnergyReport
from .scenario import Scenario
from .state import TractorState, STATE_NAMES, STATE_INDEX
if TYPE_CHECKING:
    from .tractor import Tractor

_UNITS = {
    'engine_speed': 'rad/s', 'displacement': '-', 'depth': 'm',
    'p_A': 'Pa', 'p_B': 'Pa', 'velocity': 'm/s', 'position': 'm',
}


@dataclass(frozen=True)
class Segment:
    """
    One constant-command interval of a trajectory.

    Attributes
    ----------
    t0, tf : float
        Interval bounds [s]
    output : heyoka continuous output
        Dense output from hy.taylor_adaptive().propagate_until()
    pars : np.ndarray
        Runtime parameter array used for the interval
    command : DriverCommand
    scenario : Scenario
    """
    t0: float
    tf: float
    output: Any
    pars: np.ndarray
    command: DriverCommand
    scenario: Scenario

    def state_raw(self, t: float) -> np.ndarray:
        # heyoka returns a view of an internal buffer for scalar calls
        return np.array(self.output(float(t)), dtype=float)

    def states_raw(self, times: np.ndarray) -> np.ndarray:
        return np.array(self.output(np.asarray(times, dtype=float)), dtype=float)

    def final_state(self) -> np.ndarray:
        return self.state_raw(self.tf)

    def clipped(self, t_start: float, t_end: float) -> "Segment":
        """Same dense output restricted to [t_start, t_end]."""
        return Segment(max(self.t0, t_start), min(self.tf, t_end), self.output,
                       self.pars, self.command, self.scenario)


class Trajectory:
    """
    Simulated tractor motion with continuous-time state access.

    A trajectory is a chain of segments, one per constant-command interval;
    each segment starts from the final state of the previous one.

    Attributes:
        tractor: Reference to parent Tractor (immutable)
        segments: tuple of Segment objects in time order
        t0: Start time
        tf: End time
    """
    # ========== CONSTRUCTION ==========
    def __init__(self, tractor: "Tractor", segments: Sequence[Segment]):
        if len(segments) == 0:
            raise ValueError("Trajectory requires at least one segment")
        for prev, nxt in zip(segments[:-1], segments[1:]):
            if not np.isclose(prev.tf, nxt.t0):
                raise ValueError(
                    f"Segments are not contiguous: {prev.tf} != {nxt.t0}"
                )
        self._tractor = tractor  # Immutable reference
        self._segments = tuple(segments)
        self._starts = np.array([seg.t0 for seg in self._segments])

    # ========== PROPERTY ACCESS ==========
    @property
    def tractor(self) -> "Tractor":
        return self._tractor

    @property
    def segments(self):
        return self._segments

    @property
    def t0(self) -> float:
        return self._segments[0].t0

    @property
    def tf(self) -> float:
        return self._segments[-1].tf

    @property
    def duration(self) -> float:
        """Trajectory duration."""
        return self.tf - self.t0

    @property
    def commands(self) -> List[DriverCommand]:
        """Driver command of each segment."""
        return [seg.command for seg in self._segments]

    # ========== STATE ACCESS ==========
    def state_at(self, t: float) -> TractorState:
        """
        Get tractor state at specified time.

        Parameters:
            t: Time to query (must be in [t0, tf])
        """
        return TractorState(self.state_at_raw(t), time=float(t), validate=False)

    def evaluate(self, times: Union[float, np.ndarray, list]
                 ) -> Union[TractorState, List[TractorState]]:
        """
        Evaluate trajectory at one or more times.

        Returns:
            Single TractorState if times is scalar,
            list of TractorState if times is array-like
        """
        if np.ndim(times) == 0:
            return self.state_at(float(times))
        times = np.asarray(times, dtype=float)
        states = self.evaluate_raw(times)
        return [TractorState(row, time=float(t), validate=False)
                for t, row in zip(times, states)]

    def sample(self, n_points: int = 100) -> List[TractorState]:
        """
        Uniformly sample trajectory in time.

        Returns:
            List of TractorState uniformly spaced in time
        """
        if n_points < 2:
            raise ValueError("n_points must be at least 2, use .state_at()")
        return self.evaluate(np.linspace(self.t0, self.tf, n_points))

    def state_at_raw(self, t: float) -> np.ndarray:
        """Get raw state array at time t."""
        self._validate_time(t)
        return self._segment_for(t).state_raw(t)

    def evaluate_raw(self, times: Union[float, np.ndarray, list]) -> np.ndarray:
        """
        Evaluate at one or more times, returning raw arrays.

        Returns:
            State array of shape (N_STATES,) if times is scalar,
            Array of shape (n_times, N_STATES) if times is array-like
        """
        if np.ndim(times) == 0:
            return self.state_at_raw(float(times))
        times = np.asarray(times, dtype=float)
        if times.size:
            self._validate_time(times.min())
            self._validate_time(times.max())
        states = np.empty((times.size, len(STATE_NAMES)))
        for idx, mask in self._group_by_segment(times):
            # One vectorized call to Heyoka per segment
            states[mask] = self._segments[idx].states_raw(times[mask])
        return states

    def sample_raw(self, n_points: int = 100) -> np.ndarray:
        """Uniformly sample trajectory in time, returning raw arrays."""
        if n_points < 2:
            raise ValueError("n_points must be at least 2, use .state_at_raw()")
        return self.evaluate_raw(np.linspace(self.t0, self.tf, n_points))

    def _segment_index(self, t):
        idx = np.searchsorted(self._starts, t, side='right') - 1
        return np.clip(idx, 0, len(self._segments) - 1)

    def _segment_for(self, t: float) -> Segment:
        return self._segments[int(self._segment_index(t))]

    def _group_by_segment(self, times: np.ndarray):
        """Yield (segment index, boolean mask) for the segments hit by times."""
        indices = self._segment_index(times)
        for idx in np.unique(indices):
            yield int(idx), indices == idx

    def _validate_time(self, t: float):
        """Validate that time is within trajectory bounds."""
        if not (self.t0 <= t <= self.tf):
            raise ValueError(
                f"Time {t} outside trajectory bounds [{self.t0}, {self.tf}]"
            )

    def contains_time(self, t: float) -> bool:
        """Check if time is within trajectory bounds."""
        return self.t0 <= t <= self.tf

    def get_times(self, n_points: Optional[int] = None) -> np.ndarray:
        """Generate uniform time array spanning trajectory."""
        if n_points is None:
            n_points = config.DEFAULT_SAMPLE_POINTS
        return np.linspace(self.t0, self.tf, n_points)

    # ========== SIGNALS ==========
    def signals(self, times: Union[float, np.ndarray, list, None] = None
                ) -> Dict[str, np.ndarray]:
        """
        Evaluate the measured system signals.

        Parameters:
            times: Times to evaluate. If None, uses uniform sampling.

        Returns:
            Dictionary of signal name -> array, one entry per time. Besides
            the signals it holds 'time', every state, and the state
            derivatives as 'd_<state>'.
        """
        if times is None:
            times = self.get_times()
        times = np.atleast_1d(np.asarray(times, dtype=float))
        states = self.evaluate_raw(times)
        result = None
        for idx, mask in self._group_by_segment(times):
            values = self._tractor.evaluate_signals(states[mask],
                                                   self._segments[idx].pars)
            if result is None:
                result = {name: np.empty(times.size) for name in values}
            for name, value in values.items():
                result[name][mask] = value

        data = {'time': times}
        for name, idx in STATE_INDEX.items():
            data[name] = states[:, idx]
        data.update(result)
        return data

    def signal(self, name: str, times: Union[float, np.ndarray, list, None] = None
               ) -> np.ndarray:
        """Evaluate a single state or signal by name."""
        data = self.signals(times)
        if name not in data:
            raise KeyError(f"Unknown signal '{name}'. Valid: {sorted(data)}")
        return data[name]

    def to_dataframe(self,
                     times: Optional[np.ndarray] = None,
                     n_points: Optional[int] = None,
                     include_signals: bool = True) -> pd.DataFrame:
        """
        Export trajectory to pandas DataFrame.

        Parameters:
            times: Specific times to evaluate. If None, uses uniform sampling.
            n_points: Number of uniform samples if times not provided
            include_signals: Add measured signals as columns (default: True)

        Returns:
            DataFrame with a time column, one column per state and,
            optionally, one per signal
        """
        if times is None:
            times = self.get_times(n_points)
        else:
            times = np.asarray(times, dtype=float)

        if include_signals:
            return pd.DataFrame(self.signals(times))

        states = self.evaluate_raw(times)
        data = {'time': times}
        for name, idx in STATE_INDEX.items():
            data[name] = states[:, idx]
        return pd.DataFrame(data)

    # ========== ENERGY ==========
    def energy(self, t: Optional[float] = None) -> EnergyReport:
        """
        Energy consumed from t0 to t.

        Parameters:
            t: End of the window (default: tf)
        """
        if t is None:
            t = self.tf
        start = self.state_at_raw(self.t0)
        end = self.state_at_raw(t)
        return self._tractor.energy_between(start, end, duration=t - self.t0)

    def energy_by_direction(self) -> Dict[str, EnergyReport]:
        """
        Energy split between forward and reverse travel.

        A segment counts as reverse when its displacement command is
        negative, as forward otherwise.

        Returns:
            {'forward': EnergyReport, 'reverse': EnergyReport}
        """
        reports = {
            'forward': EnergyReport.zero(label='forward'),
            'reverse': EnergyReport.zero(label='reverse'),
        }
        for seg in self._segments:
            label = 'reverse' if seg.command.is_reverse else 'forward'
            report = self._tractor.energy_between(
                seg.state_raw(seg.t0), seg.state_raw(seg.tf),
                duration=seg.tf - seg.t0, label=label
            )
            reports[label] = reports[label] + report
        return reports

    # ========== TRAJECTORY OPERATIONS ==========
    def extend(self, new_tf: float, command: Optional[DriverCommand] = None,
               scenario: Optional[Scenario] = None) -> 'Trajectory':
        """
        Extend trajectory by continuing propagation to a new final time.

        This creates a NEW Trajectory object holding the current segments
        plus one more. The original trajectory is unchanged.

        Parameters:
            new_tf: New final time (must be > current tf)
            command: Driver command for the new segment (default: last one)
            scenario: Scenario for the new segment (default: last one)

        Raises:
            ValueError: If new_tf <= self.tf
        """
        if new_tf <= self.tf:
            raise ValueError(f"new_tf ({new_tf}) must be > current tf ({self.tf})")
        last = self._segments[-1]
        command = last.command if command is None else command
        scenario = last.scenario if scenario is None else scenario
        segment = self._tractor._propagate_segment(
            last.final_state(), self.tf, float(new_tf), command, scenario
        )
        return Trajectory(self._tractor, self._segments + (segment,))

    def slice(self, t_start: float, t_end: float) -> 'Trajectory':
        """
        Extract a time window as a new Trajectory.

        The slice shares the dense output of this trajectory, so no
        re-integration takes place.

        Raises:
            ValueError: If slice bounds are invalid or outside trajectory bounds
        """
        if t_start >= t_end:
            raise ValueError(f"t_start ({t_start}) must be < t_end ({t_end})")
        if t_start < self.t0 or t_end > self.tf:
            raise ValueError(
                f"Slice bounds [{t_start}, {t_end}] outside trajectory "
                f"bounds [{self.t0}, {self.tf}]"
            )
        t_start = float(t_start)
        t_end = float(t_end)
        kept = [seg.clipped(t_start, t_end) for seg in self._segments
                if seg.tf > t_start and seg.t0 < t_end]
        return Trajectory(self._tractor, kept)

    # ========== SPECIAL METHODS ==========
    def __repr__(self):
        return (f"Trajectory(segments={len(self._segments)}, "
                f"t0={self.t0}, tf={self.tf}, duration={self.duration})")

    def __str__(self):
        return (f"Tractor trajectory with {len(self._segments)} segment(s): "
                f"t in [{self.t0}, {self.tf}] s")

    def __call__(self, t: float) -> TractorState:
        """
        Evaluate trajectory at time t.
        Syntactic sugar for .state_at(t). Allows traj(t) syntax.
        """
        return self.state_at(t)

    # ========== PLOTTING ==========
    def plot(self, quantities: Sequence[str] = ('engine_speed', 'velocity',
                                                'p_A', 'p_B', 'slip_RL'),
             n_points: Optional[int] = None, color: str = 'red') -> go.Figure:
        """
        Create stacked time-series plot of states or signals.

        Parameters:
            quantities: State or signal names, one subplot each
            n_points: Number of points to sample trajectory
            color: Line color

        Returns:
            Plotly Figure object
        """
        quantities = list(quantities)
        fig = make_subplots(rows=len(quantities), cols=1, shared_xaxes=True,
                            subplot_titles=quantities)
        self.add_to_plot(fig, quantities, n_points=n_points, color=color,
                         name='Trajectory')
        for row, name in enumerate(quantities, start=1):
            unit = _UNITS.get(name)
            if unit is not None:
                fig.update_yaxes(title_text=f'[{unit}]', row=row, col=1)
        fig.update_xaxes(title_text='Time [s]', row=len(quantities), col=1)
        fig.update_layout(title='Tractor Simulation', showlegend=True,
                          height=250 * len(quantities))
        return fig

    def add_to_plot(self, fig: go.Figure, quantities: Sequence[str],
                    n_points: Optional[int] = None, color: str = 'blue',
                    name: Optional[str] = None, **kwargs) -> go.Figure:
        """
        Add this trajectory to an existing figure made by ``plot``.

        Parameters:
            fig: Existing Plotly Figure with one subplot row per quantity
            quantities: State or signal names, in subplot order
            n_points: Number of points to sample trajectory
            color: Color of trajectory lines (default: 'blue')
            name: Legend name for this trajectory (default: 'Trajectory N')
            **kwargs: Additional arguments passed to Scatter

        Returns:
            Updated Plotly Figure object (same object, modified in place)
        """
        if n_points is None:
            n_points = config.DEFAULT_PLOT_POINTS
        times = self.get_times(n_points)
        quantities = list(quantities)
        if all(q in STATE_INDEX for q in quantities):
            states = self.evaluate_raw(times)
            data = {q: states[:, STATE_INDEX[q]] for q in quantities}
        else:
            data = self.signals(times)
            unknown = [q for q in quantities if q not in data]
            if unknown:
                raise KeyError(f"Unknown quantities {unknown}")

        if name is None:
            n_existing = len({trace.legendgroup for trace in fig.data})
            name = f'Trajectory {n_existing + 1}'

        for row, q in enumerate(quantities, start=1):
            fig.add_trace(go.Scatter(
                x=times,
                y=data[q],
                mode='lines',
                line=dict(color=color, width=2),
                name=name,
                legendgroup=name,
                showlegend=(row == 1),
                hovertemplate=f't: %{{x:.3f}}<br>{q}: %{{y:.4g}}<extra></extra>',
                **kwargs
            ), row=row, col=1)
        return fig
