'''Tractor class definition
Coupled hydro-mechanical model of a tractor pulling a tillage implement:
governed engine, hydrostatic CVT, rigid body on four Bekker tires, ASABE
implement, and cumulative energy accounting, integrated with Heyoka.'''

import numpy as np
import warnings
from types import SimpleNamespace
from typing import Optional, Dict, List, Tuple, Any, Union
import heyoka as hy
from .config import config
from .engine import EngineParams, governor_rate, engine_torque
from .hydrostatic import (HydrostaticParams, transmission_model,
                          swashplate_rate, stored_energy)
from .tire import TireParams, tire_forces, TIRE_POSITIONS
from .implement import ImplementParams, implement_forces, depth_rate
from .vehicle import (VehicleParams, normal_loads, body_acceleration,
                      wheel_acceleration)
from .energy import ENERGY_CHANNELS, EnergyReport
from .driver import DriverCommand, DriverSchedule
from .scenario import Scenario
from .state import (TractorState, STATE_NAMES, DYNAMIC_STATES, STATE_INDEX,
                    N_STATES)
from .utils import SYMBOLIC, NUMERIC, rpm2rad, validation_error

# Runtime parameters bound through hy.par[]
COMMAND_PARAMS = ('engine_speed_cmd', 'displacement_cmd', 'depth_cmd')
SCENARIO_PARAMS = ('grade_sin', 'grade_cos', 'texture_factor')
SOIL_FIELDS = ('kc', 'kphi', 'n', 'c', 'tan_phi', 'K')

_PARAM_DESCRIPTIONS = {
    'engine_speed_cmd': 'Governed engine speed command [rad/s]',
    'displacement_cmd': 'Normalized pump displacement command [-1, 1]',
    'depth_cmd': 'Implement depth command [m]',
    'grade_sin': 'Sine of the field grade',
    'grade_cos': 'Cosine of the field grade',
    'texture_factor': 'ASABE soil texture adjustment F_i',
    'kc': 'Cohesive modulus of sinkage [N/m^(n+1)]',
    'kphi': 'Frictional modulus of sinkage [N/m^(n+2)]',
    'n': 'Sinkage exponent',
    'c': 'Terrain cohesion [Pa]',
    'tan_phi': 'Tangent of the internal shearing angle',
    'K': 'Shear deformation parameter [m]',
}


class Tractor:
    """
    Immutable tractor-implement model for powertrain and energy simulation.

    Structural parameters (masses, displacements, geometry) are baked into
    the symbolic equations of motion. Driver commands and the field
    scenario are runtime parameters, so one compiled Tractor can simulate
    any number of scenarios and command schedules.

    Parameters
    ----------
    vehicle : VehicleParams
        Tractor body and axles
    engine : EngineParams
        Governed engine
    transmission : HydrostaticParams
        Hydrostatic CVT circuit
    front_tire, rear_tire : TireParams
        Tires of the front and rear axle
    implement : ImplementParams, optional
        Hitched implement. Without one the tractor runs with no draft load.
    compile : bool, optional
        Compile the integrator immediately (default: config.DEFAULT_COMPILE)

    Notes
    -----
    - State vector order is given by ``Tractor.state_names``
    - Instance counting: a ResourceWarning is issued when more than
      config.INSTANCE_WARNING_THRESHOLD Tractors exist simultaneously
      (each holds a compiled integrator)
    """
    # ========== CLASS CONSTANTS ==========
    # Class variable for instance counting
    _instance_count = 0

    # ========== CONSTRUCTION ==========
    def __init__(
        self,
        vehicle: VehicleParams,
        engine: EngineParams,
        transmission: HydrostaticParams,
        front_tire: TireParams,
        rear_tire: TireParams,
        implement: Optional[ImplementParams] = None,
        compile: Optional[bool] = None
    ):
        """
        Initialize Tractor with validation and symbolic equations of motion.

        Raises
        ------
        TypeError
            If a component has the wrong type
        ValueError
            If components are incompatible
        """
        self._counted = False
        self._validate_params(vehicle, engine, transmission,
                              front_tire, rear_tire, implement)

        # Store parameters in private attributes for immutability
        self._vehicle = vehicle
        self._engine = engine
        self._transmission = transmission
        self._front_tire = front_tire
        self._rear_tire = rear_tire
        self._implement = implement

        # Regularization widths are fixed at build time
        self._eps = SimpleNamespace(
            speed=config.SPEED_EPS,
            pressure=config.PRESSURE_EPS,
            load=config.LOAD_EPS,
            slip=config.SLIP_EPS,
            relaxation=config.SLIP_RELAXATION_SPEED,
        )

        # Initialize cached EOMs and heyoka integrator
        self._cached_eom = None
        self._cached_integrator = None
        self._param_info = self._build_param_info()

        # Build symbolic EOM
        self._cached_eom = self._build_eom()

        if compile is None:
            compile = config.DEFAULT_COMPILE
        if compile:
            self._compile_integrator()

        # Instance counting
        Tractor._instance_count += 1
        self._counted = True
        if Tractor._instance_count > config.INSTANCE_WARNING_THRESHOLD:
            warnings.warn(
                f"Created {Tractor._instance_count} Tractor instances. "
                f"Each Tractor caches a compiled Heyoka integrator, "
                f"which can consume significant memory. Consider reusing "
                f"Tractor objects with different scenarios instead.",
                ResourceWarning,
                stacklevel=2
            )

    # ========== VALIDATION ==========
    def _validate_params(self, vehicle, engine, transmission,
                         front_tire, rear_tire, implement):
        """
        Validate component types and consistency.

        Raises
        ------
        TypeError, ValueError
        """
        checks = (
            ('vehicle', vehicle, VehicleParams),
            ('engine', engine, EngineParams),
            ('transmission', transmission, HydrostaticParams),
            ('front_tire', front_tire, TireParams),
            ('rear_tire', rear_tire, TireParams),
        )
        for name, value, cls in checks:
            if not isinstance(value, cls):
                raise TypeError(f"{name} must be {cls.__name__}, got {type(value)}")
        if implement is not None and not isinstance(implement, ImplementParams):
            raise TypeError(
                f"implement must be ImplementParams or None, got {type(implement)}"
            )

        # Both axles should reach the same ground speed at equal motor speed,
        front_ratio = front_tire.radius / vehicle.front_axle.final_drive_ratio
        rear_ratio = rear_tire.radius / vehicle.rear_axle.final_drive_ratio
        lead = (front_ratio * transmission.rear_motor.displacement
                / (rear_ratio * transmission.front_motor.displacement)) - 1.0
        if abs(lead) > 0.1:
            warnings.warn(
                f"Front axle lead of {lead * 100:.1f}% at equal loop flow; "
                f"expected within +/-10%"
            )

    # ========== PROPAGATION ==========
    def initial_state(self, command: Optional[DriverCommand] = None) -> TractorState:
        """
        State at rest with both loop lines at charge pressure.

        Parameters
        ----------
        command : DriverCommand, optional
            Engine starts at the commanded speed and the implement at the
            commanded depth. Defaults to idle with the implement raised.
        """
        if command is None:
            omega = self._engine.idle_omega
            depth = 0.0
        else:
            omega = float(rpm2rad(command.engine_speed))
            depth = command.depth if self._implement is not None else 0.0
        p_ch = self._transmission.charge_pump.pressure
        values = {name: 0.0 for name in DYNAMIC_STATES}
        values.update(engine_speed=omega, depth=depth, p_A=p_ch, p_B=p_ch)
        return TractorState.from_dict(values, time=0.0)

    def propagate(
        self,
        initial_state: "TractorState | np.ndarray",
        t_start: float,
        t_end: float,
        command: DriverCommand,
        scenario: Scenario
    ) -> "Trajectory":
        """
        Propagate from t_start to t_end under constant driver commands.

        Uses Heyoka's continuous output so the state can be evaluated at any
        time in [t_start, t_end] without re-integration.

        Parameters
        ----------
        initial_state : TractorState or array_like
            Full state vector (see ``state_names``)
        t_start, t_end : float
            Segment bounds [s], t_end > t_start
        command : DriverCommand
            Driver commands held over the segment
        scenario : Scenario
            Terrain, soil texture and grade

        Returns
        -------
        Trajectory
        """
        from .trajectory import Trajectory
        segment = self._propagate_segment(initial_state, t_start, t_end,
                                          command, scenario)
        return Trajectory(self, [segment])

    def simulate(
        self,
        schedule: Union[DriverSchedule, DriverCommand],
        scenario: Scenario,
        t_end: Optional[float] = None,
        initial_state: "TractorState | np.ndarray | None" = None
    ) -> "Trajectory":
        """
        Run a driver schedule from its first event to t_end.

        Each constant-command interval is integrated as its own segment,
        starting from the final state of the previous one.

        Parameters
        ----------
        schedule : DriverSchedule or DriverCommand
            Command schedule; a single command is held from t = 0
        scenario : Scenario
        t_end : float, optional
            Final time [s]. Defaults to the last event time plus
            config.DEFAULT_HOLD_TIME.
        initial_state : TractorState or array_like, optional
            Defaults to ``initial_state(first command)``

        Returns
        -------
        Trajectory
            One trajectory with a segment per command interval
        """
        from .trajectory import Trajectory
        if isinstance(schedule, DriverCommand):
            schedule = DriverSchedule.constant(schedule)
        if not isinstance(schedule, DriverSchedule):
            raise TypeError(
                f"schedule must be DriverSchedule or DriverCommand, got {type(schedule)}"
            )
        if t_end is None:
            t_end = schedule.times[-1] + config.DEFAULT_HOLD_TIME
        if initial_state is None:
            initial_state = self.initial_state(schedule.commands[0])

        segments = []
        state = initial_state
        for t0, t1, command in schedule.segments(schedule.t_start, t_end):
            segment = self._propagate_segment(state, t0, t1, command, scenario)
            segments.append(segment)
            state = segment.final_state()
        return Trajectory(self, segments)

    def _propagate_segment(self, initial_state, t_start, t_end, command, scenario):
        """Integrate one constant-command segment and wrap its output."""
        from .trajectory import Segment

        # Ensure compiled
        if not self.is_compiled:
            self._compile_integrator()
        ta = self._cached_integrator
        assert ta is not None, "Integrator should be compiled"

        # cast input times explicitly to floats (required by heyoka)
        t_start = float(t_start)
        t_end = float(t_end)
        if not (np.isfinite(t_start) and np.isfinite(t_end)):
            raise ValueError(f"Times must be finite, got [{t_start}, {t_end}]")
        if t_end <= t_start:
            raise ValueError(f"t_end ({t_end}) must be > t_start ({t_start})")

        state_array = self._process_state(initial_state)
        params_array = self._process_params(command, scenario)

        # Set initial conditions
        ta.time = t_start
        ta.state[:] = state_array
        ta.pars[:] = params_array

        # Propagate until ending time
        result = ta.propagate_until(t_end, c_output=True)
        outcome, output = result[0], result[4]

        # Check for integration failure
        if not np.all(np.isfinite(ta.state)):
            raise ValueError(
                f"Integration failed: state became invalid during propagation.\n"
                f"Initial state: {TractorState(state_array, validate=False)}\n"
                f"Final time: {ta.time}\n"
                f"Likely causes:\n"
                f"  - Normal load or sinkage driven out of range\n"
                f"  - Unrealistic soil parameters for the tire size\n"
                f"  - Regularization widths too small for the time scale"
            )
        if outcome != hy.taylor_outcome.time_limit:
            raise ValueError(
                f"Integration stopped early at t={ta.time} with outcome {outcome}"
            )
        if output is None:
            raise ValueError(
                f"Integration produced no continuous output (c_output is None).\n"
                f"This may indicate a severe integration failure."
            )

        return Segment(t_start, t_end, output, params_array.copy(),
                       command, scenario)

    def _process_state(self, initial_state) -> np.ndarray:
        """Convert a TractorState or array into a validated state vector."""
        if isinstance(initial_state, TractorState):
            return initial_state.values.copy()
        state_array = np.asarray(initial_state, dtype=float)
        if state_array.shape != (N_STATES,):
            raise ValueError(
                f"Initial state must have shape ({N_STATES},), got {state_array.shape}"
            )
        if not np.all(np.isfinite(state_array)):
            raise ValueError(
                f"Initial state contains NaN or Inf values: {state_array}"
            )
        return state_array.copy()

    def _process_params(self, command: DriverCommand, scenario: Scenario) -> np.ndarray:
        """Convert driver command and scenario to the hy.par[] array."""
        if not isinstance(command, DriverCommand):
            raise TypeError(f"command must be DriverCommand, got {type(command)}")
        if not isinstance(scenario, Scenario):
            raise TypeError(f"scenario must be Scenario, got {type(scenario)}")

        self._engine.check_speed(command.engine_speed)
        if self._implement is None:
            if command.depth > 0:
                warnings.warn(
                    "Depth command given for a tractor without implement "
                    "but will be ignored"
                )
            depth = 0.0
            texture_factor = 1.0
        else:
            depth = command.depth
            if depth > self._implement.max_depth:
                validation_error(
                    f"Depth command {depth} m exceeds implement maximum "
                    f"{self._implement.max_depth} m"
                )
            texture_factor = self._implement.texture_factor(scenario.texture)

        values = {
            'engine_speed_cmd': float(rpm2rad(command.engine_speed)),
            'displacement_cmd': command.displacement,
            'depth_cmd': depth,
            'grade_sin': scenario.grade_sin,
            'grade_cos': scenario.grade_cos,
            'texture_factor': texture_factor,
        }
        for pos in TIRE_POSITIONS:
            soil = scenario.soil(pos)
            for field in SOIL_FIELDS:
                values[f'{pos}_{field}'] = getattr(soil, field)

        return np.array([values[name] for name, _ in self._param_info['param_map']])

    # ========== ENERGY ==========
    def stored_energy(self, state) -> float:
        """Compression energy in the hydraulic loop [J]."""
        values = np.asarray(state, dtype=float)
        return float(stored_energy(values[STATE_INDEX['p_A']],
                                   values[STATE_INDEX['p_B']],
                                   self._transmission))

    def kinetic_energy(self, state) -> float:
        """Kinetic energy of body and wheels [J]."""
        values = np.asarray(state, dtype=float)
        energy = 0.5 * self._vehicle.mass * values[STATE_INDEX['velocity']]**2
        for pos, inertia in zip(TIRE_POSITIONS, self.wheel_inertias):
            energy += 0.5 * inertia * values[STATE_INDEX[f'omega_{pos}']]**2
        return float(energy)

    def energy_between(self, state0, state1, duration=None, label=None) -> EnergyReport:
        """Energy report for the evolution from state0 to state1."""
        v0 = np.asarray(state0, dtype=float)
        v1 = np.asarray(state1, dtype=float)
        channels = {
            name: v1[STATE_INDEX[f'E_{name}']] - v0[STATE_INDEX[f'E_{name}']]
            for name in ENERGY_CHANNELS
        }
        return EnergyReport(
            channels,
            stored_change=self.stored_energy(v1) - self.stored_energy(v0),
            kinetic_change=self.kinetic_energy(v1) - self.kinetic_energy(v0),
            duration=duration,
            label=label,
        )

    # ========== SIGNALS ==========
    def evaluate_signals(self, states, pars) -> Dict[str, np.ndarray]:
        """
        Evaluate measured signals and state derivatives numerically.

        Parameters
        ----------
        states : array_like
            State vectors, shape (N_STATES,) or (n, N_STATES)
        pars : array_like
            Runtime parameter array of the segment

        Returns
        -------
        dict
            Signal name -> array of shape (n,). Derivatives are included as
            'd_<state>'.
        """
        states = np.atleast_2d(np.asarray(states, dtype=float))
        n = states.shape[0]
        x = {name: states[:, idx] for idx, name in enumerate(STATE_NAMES)}
        p = {name: float(pars[idx]) for name, idx in self._param_info['param_map']}
        derivs, signals = self._assemble(x, p, NUMERIC)
        out = {}
        for name, value in signals.items():
            out[name] = np.broadcast_to(np.asarray(value, dtype=float), (n,)).copy()
        for name, value in derivs.items():
            out[f'd_{name}'] = np.broadcast_to(np.asarray(value, dtype=float), (n,)).copy()
        return out

    # ========== PROPERTY ACCESS ==========
    def summary(self):
        """Print detailed summary of tractor parameters."""
        v = self._vehicle
        tr = self._transmission
        print(f"Tractor: {v.name or 'unnamed'}")
        print(f"  Mass: {v.mass:.0f} kg, wheelbase {v.wheelbase:.2f} m, "
              f"static front share {v.static_front_share * 100:.1f}%")
        print(f"  Engine: {self._engine.idle_speed:.0f}-{self._engine.rated_speed:.0f} rpm, "
              f"governor tau = {self._engine.governor_time_constant} s")
        print(f"  Pump: {tr.pump.max_displacement} cc/rev, "
              f"motors {tr.front_motor.displacement}/{tr.rear_motor.displacement} cc/rev")
        print(f"  Relief: {tr.relief.set_pressure / 1e5:.0f} bar, "
              f"charge: {tr.charge_pump.pressure / 1e5:.0f} bar")
        print(f"  Fluid: {tr.fluid.name or 'custom'}")
        print(f"  Tires: front r = {self._front_tire.radius} m, b = {self._front_tire.width} m; "
              f"rear r = {self._rear_tire.radius} m, b = {self._rear_tire.width} m")
        if self._implement is not None:
            imp = self._implement
            kind = 'custom draft' if imp.is_custom else imp.kind.name
            print(f"\nImplement: {imp.name or kind}, width {imp.width}")
        else:
            print("\nImplement: None")
        print(f"States: {N_STATES}, runtime parameters: "
              f"{len(self._param_info['param_map'])}")

    # Interface with Tractor instance counting
    @classmethod
    def get_instance_count(cls):
        """Get current number of Tractor instances."""
        return cls._instance_count

    @classmethod
    def reset_instance_count(cls):
        """Reset instance counter (useful for testing)."""
        cls._instance_count = 0

    # Immutability via read-only properties
    @property
    def vehicle(self) -> VehicleParams:
        return self._vehicle

    @property
    def engine(self) -> EngineParams:
        return self._engine

    @property
    def transmission(self) -> HydrostaticParams:
        return self._transmission

    @property
    def front_tire(self) -> TireParams:
        return self._front_tire

    @property
    def rear_tire(self) -> TireParams:
        return self._rear_tire

    @property
    def implement(self) -> Optional[ImplementParams]:
        return self._implement

    @property
    def state_names(self) -> Tuple[str, ...]:
        """Names of the state vector entries, in order."""
        return STATE_NAMES

    @property
    def wheel_inertias(self) -> Tuple[float, ...]:
        """Inertia acting on each wheel FL, FR, RL, RR [kg*m^2]"""
        front = self._front_tire.effective_inertia + 0.5 * self._vehicle.front_axle.inertia
        rear = self._rear_tire.effective_inertia + 0.5 * self._vehicle.rear_axle.inertia
        return (front, front, rear, rear)

    @property
    def is_compiled(self) -> bool:
        """Check if integrator has been compiled."""
        return self._cached_integrator is not None

    @property
    def cached_eom(self) -> Optional[List[Tuple]]:
        """Cached set of symbolic equations of motion"""
        return self._cached_eom

    @property
    def param_info(self) -> Dict[str, Any]:
        """Runtime parameter map and descriptions"""
        return self._param_info

    # ========== EQUATIONS OF MOTION ==========
    def _build_param_info(self):
        """
        Map runtime parameter names to hy.par[] indices.

        Returns
        -------
        dict
            'param_map': list of (name, index) tuples,
            'description': dict of human-readable descriptions
        """
        names = list(COMMAND_PARAMS) + list(SCENARIO_PARAMS)
        names += [f'{pos}_{field}' for pos in TIRE_POSITIONS for field in SOIL_FIELDS]
        description = {}
        for name in names:
            key = name.split('_', 1)[1] if name[:2] in TIRE_POSITIONS else name
            description[name] = _PARAM_DESCRIPTIONS[key]
        return {
            'param_map': [(name, idx) for idx, name in enumerate(names)],
            'description': description,
        }

    def _build_eom(self):
        """
        Build symbolic Heyoka equations of motion for this tractor.

        Returns
        -------
        sys : list of (var, rhs) tuples
            Heyoka ODE system definition ready for taylor_adaptive()
        """
        state_vars = hy.make_vars(*STATE_NAMES)
        x = dict(zip(STATE_NAMES, state_vars))
        p = {name: hy.par[idx] for name, idx in self._param_info['param_map']}
        derivs, _ = self._assemble(x, p, SYMBOLIC)

        sys = []
        for name in STATE_NAMES:
            rhs = derivs[name]
            if isinstance(rhs, (int, float)):
                rhs = hy.expression(float(rhs))
            sys.append((x[name], rhs))
        return sys

    def _soil_view(self, p, pos):
        """Terrain parameters of one tire as runtime parameters."""
        return SimpleNamespace(**{field: p[f'{pos}_{field}'] for field in SOIL_FIELDS})

    def _assemble(self, x, p, m):
        """
        Assemble state derivatives and measured signals.

        Parameters
        ----------
        x : dict
            State name -> Heyoka variable or numpy array
        p : dict
            Runtime parameter name -> hy.par[] or float
        m : Backend
            SYMBOLIC for the integrator, NUMERIC for signal evaluation

        Returns
        -------
        derivs : dict
            State name -> time derivative
        signals : dict
            Signal name -> value
        """
        eps = self._eps
        veh = self._vehicle
        imp = self._implement
        omega_e = x['engine_speed']
        v = x['velocity']
        depth = x['depth']

        # Implement
        if imp is not None:
            implement = implement_forces(v, depth, imp, p['texture_factor'],
                                         eps.speed, m)
            d_depth = depth_rate(depth, p['depth_cmd'], imp)
            hitch_height, hitch_offset = imp.hitch_height, imp.hitch_offset
        else:
            implement = {'draft': 0.0, 'draft_force': 0.0,
                         'vertical_force': 0.0, 'power': 0.0}
            d_depth = -depth
            hitch_height, hitch_offset = 0.0, 0.0

        # Normal loads
        load_front, load_rear = normal_loads(
            implement['draft_force'], implement['vertical_force'],
            p['grade_sin'], p['grade_cos'], veh,
            hitch_height, hitch_offset, eps.load, m
        )
        loads = {'FL': load_front, 'FR': load_front,
                 'RL': load_rear, 'RR': load_rear}

        # Hydrostatic transmission
        omega_mf = veh.front_axle.final_drive_ratio * 0.5 * (x['omega_FL'] + x['omega_FR'])
        omega_mr = veh.rear_axle.final_drive_ratio * 0.5 * (x['omega_RL'] + x['omega_RR'])
        hyd = transmission_model(omega_e, x['displacement'], x['p_A'], x['p_B'],
                                 omega_mf, omega_mr, self._transmission,
                                 eps.pressure, m)
        axle_torque = {
            'F': veh.front_axle.final_drive_ratio * hyd['front_motor_torque'],
            'R': veh.rear_axle.final_drive_ratio * hyd['rear_motor_torque'],
        }

        # Tires and wheels
        derivs = {}
        signals = {}
        thrust = 0.0
        slip_loss = 0.0
        rolling_loss = 0.0
        inertias = dict(zip(TIRE_POSITIONS, self.wheel_inertias))
        for pos in TIRE_POSITIONS:
            tire = self._front_tire if pos[0] == 'F' else self._rear_tire
            forces = tire_forces(x[f'omega_{pos}'], v, x[f'slip_{pos}'], loads[pos],
                                 tire, self._soil_view(p, pos),
                                 eps.speed, eps.slip, eps.relaxation, m)
            derivs[f'omega_{pos}'] = wheel_acceleration(
                axle_torque[pos[0]], forces['wheel_torque'], inertias[pos])
            derivs[f'slip_{pos}'] = forces['slip_rate']
            thrust = thrust + forces['net_thrust']
            slip_loss = slip_loss + forces['slip_loss']
            rolling_loss = rolling_loss + forces['rolling_loss']
            signals[f'load_{pos}'] = loads[pos]
            signals[f'sinkage_{pos}'] = forces['sinkage']
            signals[f'gross_thrust_{pos}'] = forces['gross_thrust']
            signals[f'net_thrust_{pos}'] = forces['net_thrust']
            signals[f'rolling_resistance_{pos}'] = forces['rolling_resistance']

        # Body
        acceleration = body_acceleration(thrust, implement['draft_force'],
                                         p['grade_sin'], veh)

        # Power at each component
        e_torque = engine_torque(hyd['pump_torque'], hyd['charge_torque'])
        powers = {
            'engine': e_torque * omega_e,
            'charge_pump': hyd['charge_torque'] * omega_e,
            'pump_input': hyd['pump_power_in'],
            'pump_output': hyd['pump_power_out'],
            'front_motor_input': hyd['front_motor_power_in'],
            'front_motor_output': hyd['front_motor_power_out'],
            'rear_motor_input': hyd['rear_motor_power_in'],
            'rear_motor_output': hyd['rear_motor_power_out'],
            'front_pipe_loss': hyd['front_pipe_loss'],
            'rear_pipe_loss': hyd['rear_pipe_loss'],
            'relief_loss': hyd['relief_loss'],
            'check_inflow': hyd['check_power'],
            'tire_slip_loss': slip_loss,
            'tire_rolling_loss': rolling_loss,
            'implement': implement['power'],
            'grade': veh.weight * p['grade_sin'] * v,
        }

        derivs.update({
            'engine_speed': governor_rate(omega_e, p['engine_speed_cmd'], self._engine),
            'displacement': swashplate_rate(x['displacement'], p['displacement_cmd'],
                                            self._transmission),
            'depth': d_depth,
            'p_A': hyd['dp_a'],
            'p_B': hyd['dp_b'],
            'velocity': acceleration,
            'position': v,
        })
        for name in ENERGY_CHANNELS:
            derivs[f'E_{name}'] = powers[name]

        signals.update({
            'engine_torque': e_torque,
            'pump_torque': hyd['pump_torque'],
            'pump_flow': hyd['pump_flow'],
            'pump_leakage': hyd['pump_leakage'],
            'pressure_difference': x['p_A'] - x['p_B'],
            'front_motor_speed': omega_mf,
            'rear_motor_speed': omega_mr,
            'front_motor_torque': hyd['front_motor_torque'],
            'rear_motor_torque': hyd['rear_motor_torque'],
            'front_motor_flow': hyd['front_motor_flow'],
            'rear_motor_flow': hyd['rear_motor_flow'],
            'front_motor_pressure_drop': hyd['front_motor_pressure_drop'],
            'rear_motor_pressure_drop': hyd['rear_motor_pressure_drop'],
            'relief_flow': hyd['relief_flow'],
            'check_flow': hyd['check_flow'],
            'charge_flow': hyd['charge_flow'],
            'tractive_force': thrust,
            'draft': implement['draft'],
            'draft_force': implement['draft_force'],
            'vertical_force': implement['vertical_force'],
            'acceleration': acceleration,
        })
        for name in ENERGY_CHANNELS:
            signals[f'power_{name}'] = powers[name]

        return derivs, signals

    def _compile_integrator(self):
        """
        Compile Heyoka integrator (expensive operation).

        This performs automatic differentiation and LLVM compilation,
        which takes several seconds for the full tractor system.
        """
        if self._cached_integrator is not None:
            return  # Already compiled

        # Dummy state and parameters for compilation
        n_params = len(self._param_info['param_map'])

        if config.VERBOSE:
            implement = 'no implement'
            if self._implement is not None:
                implement = ('custom draft' if self._implement.is_custom
                             else self._implement.kind.name)
            print(f"Compiling tractor integrator ({N_STATES} states, {implement})...")

        # EXPENSIVE: Compile integrator
        self._cached_integrator = hy.taylor_adaptive(
            sys=self._cached_eom,
            state=[0.0] * N_STATES,
            pars=[0.0] * n_params,
            tol=config.INTEGRATION_TOL,
            compact_mode=config.COMPACT_MODE,
        )
        if config.VERBOSE:
            print("Compilation complete")

    def compile(self):
        """
        Explicitly compile integrator if not already compiled.

        Returns
        -------
        self
            Returns self for method chaining
        """
        self._compile_integrator()
        return self

    # ========== SPECIAL METHODS ==========
    def __del__(self):
        """Decrement instance count when Tractor is garbage collected."""
        if getattr(self, '_counted', False):
            Tractor._instance_count -= 1

    def __repr__(self):
        """Readable string representation."""
        parts = [f"Tractor(mass={self._vehicle.mass:.0f} kg"]
        parts.append(f"pump={self._transmission.pump.max_displacement} cc/rev")
        if self._implement is not None:
            kind = 'custom' if self._implement.is_custom else self._implement.kind.name
            parts.append(f"implement={kind}")
        parts.append(f"compiled={self.is_compiled}")
        return ", ".join(parts) + ")"
