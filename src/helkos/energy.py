'''Energy accounting for the tractor powertrain
Power at each component (torque x speed on shafts, flow x pressure in the
hydraulic loop, force x speed at tires and implement) is integrated into
cumulative energy as extra states of the equations of motion. EnergyReport
turns those accumulators into losses, efficiencies and a balance check.'''

import pandas as pd
from typing import Dict, Optional

# Cumulative energy channels, in state-vector order
ENERGY_CHANNELS = (
    'engine',
    'charge_pump',
    'pump_input',
    'pump_output',
    'front_motor_input',
    'front_motor_output',
    'rear_motor_input',
    'rear_motor_output',
    'front_pipe_loss',
    'rear_pipe_loss',
    'relief_loss',
    'check_inflow',
    'tire_slip_loss',
    'tire_rolling_loss',
    'implement',
    'grade',
)

ENERGY_DESCRIPTIONS = {
    'engine': 'Engine output, engine torque times engine speed [J]',
    'charge_pump': 'Charge pump shaft input [J]',
    'pump_input': 'Transmission pump input, shaft torque times speed [J]',
    'pump_output': 'Transmission pump output, flow times pressure difference [J]',
    'front_motor_input': 'Front motor hydraulic input [J]',
    'front_motor_output': 'Front motor shaft output [J]',
    'rear_motor_input': 'Rear motor hydraulic input [J]',
    'rear_motor_output': 'Rear motor shaft output [J]',
    'front_pipe_loss': 'Pipe friction in the front motor branch [J]',
    'rear_pipe_loss': 'Pipe friction in the rear motor branch [J]',
    'relief_loss': 'Flow discharged by the relief valves [J]',
    'check_inflow': 'Charge flow admitted by the check valves [J]',
    'tire_slip_loss': 'Tire slip dissipation, all tires [J]',
    'tire_rolling_loss': 'Compaction and flexing resistance, all tires [J]',
    'implement': 'Work done pulling the implement [J]',
    'grade': 'Work done against gravity along the grade [J]',
}


def _ratio(num, den):
    """Efficiency ratio, NaN when the denominator vanishes."""
    if abs(den) < 1e-12:
        return float('nan')
    return num / den


class EnergyReport:
    """
    Energy consumed by the tractor components over a time window.

    Parameters
    ----------
    channels : dict
        Energy per channel in ENERGY_CHANNELS [J]
    stored_change : float
        Change of compression energy held in the hydraulic loop [J]
    kinetic_change : float
        Change of kinetic energy of body and wheels [J]
    duration : float, optional
        Length of the window [s]
    label : str, optional
        Description of the window (e.g. 'forward', 'reverse')
    """
    def __init__(self, channels: Dict[str, float], stored_change: float,
                 kinetic_change: float, duration: Optional[float] = None,
                 label: Optional[str] = None):
        missing = [name for name in ENERGY_CHANNELS if name not in channels]
        if missing:
            raise ValueError(f"Missing energy channels: {missing}")
        self._channels = {name: float(channels[name]) for name in ENERGY_CHANNELS}
        self._stored_change = float(stored_change)
        self._kinetic_change = float(kinetic_change)
        self._duration = duration
        self._label = label

    @classmethod
    def zero(cls, label: Optional[str] = None) -> "EnergyReport":
        """Report with every channel at zero."""
        return cls({name: 0.0 for name in ENERGY_CHANNELS}, 0.0, 0.0,
                   duration=0.0, label=label)

    # ========== PROPERTY ACCESS ==========
    @property
    def channels(self) -> Dict[str, float]:
        """Energy per channel [J] (copy)"""
        return dict(self._channels)

    @property
    def stored_change(self) -> float:
        return self._stored_change

    @property
    def kinetic_change(self) -> float:
        return self._kinetic_change

    @property
    def duration(self) -> Optional[float]:
        return self._duration

    @property
    def label(self) -> Optional[str]:
        return self._label

    def __getitem__(self, name: str) -> float:
        if name not in self._channels:
            raise KeyError(f"Unknown energy channel '{name}'. "
                           f"Valid: {list(ENERGY_CHANNELS)}")
        return self._channels[name]

    # ========== DERIVED QUANTITIES ==========
    def losses(self) -> Dict[str, float]:
        """Dissipated energy per component [J]."""
        e = self._channels
        return {
            'charge_circuit': e['charge_pump'] - e['check_inflow'],
            'pump': e['pump_input'] - e['pump_output'],
            'front_motor': e['front_motor_input'] - e['front_motor_output'],
            'rear_motor': e['rear_motor_input'] - e['rear_motor_output'],
            'pipes': e['front_pipe_loss'] + e['rear_pipe_loss'],
            'relief': e['relief_loss'],
            'tire_slip': e['tire_slip_loss'],
            'tire_rolling': e['tire_rolling_loss'],
        }

    @property
    def total_loss(self) -> float:
        """Sum of all component losses [J]"""
        return sum(self.losses().values())

    @property
    def useful_work(self) -> float:
        """Implement work plus work against the grade [J]"""
        return self._channels['implement'] + self._channels['grade']

    def efficiencies(self) -> Dict[str, float]:
        """Energy efficiencies of the conversion stages [-]."""
        e = self._channels
        motors_out = e['front_motor_output'] + e['rear_motor_output']
        return {
            'pump': _ratio(e['pump_output'], e['pump_input']),
            'front_motor': _ratio(e['front_motor_output'], e['front_motor_input']),
            'rear_motor': _ratio(e['rear_motor_output'], e['rear_motor_input']),
            'transmission': _ratio(motors_out, e['pump_input']),
            'tractive': _ratio(self.useful_work, motors_out),
            'overall': _ratio(self.useful_work, e['engine']),
        }

    @property
    def balance_residual(self) -> float:
        """
        Engine energy not accounted for by losses, useful work and
        stored energy changes [J]. Zero up to integration error.
        """
        return (self._channels['engine'] - self.total_loss - self.useful_work
                - self._stored_change - self._kinetic_change)

    # ========== EXPORT ==========
    def to_series(self) -> pd.Series:
        """Channels, losses and storage changes as a pandas Series."""
        data = dict(self._channels)
        data.update({f'loss_{k}': v for k, v in self.losses().items()})
        data['stored_change'] = self._stored_change
        data['kinetic_change'] = self._kinetic_change
        data['balance_residual'] = self.balance_residual
        return pd.Series(data, name=self._label)

    def summary(self):
        """Print an energy flow summary."""
        title = f"Energy Report ({self._label})" if self._label else "Energy Report"
        print(title)
        if self._duration is not None:
            print(f"  Duration: {self._duration:.3f} s")
        print(f"  Engine:            {self._channels['engine'] / 1e3:12.3f} kJ")
        print(f"  Pump in / out:     {self._channels['pump_input'] / 1e3:12.3f} / "
              f"{self._channels['pump_output'] / 1e3:.3f} kJ")
        print(f"  Motors out:        "
              f"{(self._channels['front_motor_output'] + self._channels['rear_motor_output']) / 1e3:12.3f} kJ")
        print(f"  Implement:         {self._channels['implement'] / 1e3:12.3f} kJ")
        print("  Losses:")
        for name, value in self.losses().items():
            print(f"    {name:<16s} {value / 1e3:12.3f} kJ")
        print("  Efficiencies:")
        for name, value in self.efficiencies().items():
            print(f"    {name:<16s} {value:12.4f}")
        print(f"  Balance residual:  {self.balance_residual:12.3e} J")

    # ========== SPECIAL METHODS ==========
    def __add__(self, other: "EnergyReport") -> "EnergyReport":
        if not isinstance(other, EnergyReport):
            return NotImplemented
        duration = None
        if self._duration is not None and other._duration is not None:
            duration = self._duration + other._duration
        return EnergyReport(
            {name: self._channels[name] + other._channels[name]
             for name in ENERGY_CHANNELS},
            self._stored_change + other._stored_change,
            self._kinetic_change + other._kinetic_change,
            duration=duration,
            label=self._label if self._label == other._label else None,
        )

    def __repr__(self) -> str:
        label = f"'{self._label}', " if self._label else ""
        return (f"EnergyReport({label}engine={self._channels['engine'] / 1e3:.3f} kJ, "
                f"implement={self._channels['implement'] / 1e3:.3f} kJ, "
                f"losses={self.total_loss / 1e3:.3f} kJ)")
