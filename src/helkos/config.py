"""
Global Configuration for Helkos Package
=======================================

This module provides package-wide configuration settings that users can modify
to control integrator accuracy, model regularization, validation behavior and
default sampling options.

Examples
--------
View current configuration:

>>> import helkos
>>> print(helkos.config)

Modify settings:

>>> helkos.config.INTEGRATION_TOL = 1e-12  # Tighter integration
>>> helkos.config.VERBOSE = False            # Silence compile messages

Reset to defaults:

>>> helkos.config.reset()

Temporarily modify settings:

>>> with helkos.temp_config(STRICT_VALIDATION=False):
...     # Out-of-range driver commands only warn in this block
...     cmd = helkos.DriverCommand(engine_speed=3500, displacement=0.5)

Notes
-----
Regularization widths and integrator settings are read when a Tractor builds
and compiles its equations of motion. Changing them afterwards does not
affect Tractors that already exist.
"""

from dataclasses import dataclass
from contextlib import contextmanager


@dataclass
class HelkosConfig:
    """
    Global configuration for Helkos package.

    Attributes
    ----------
    STRICT_VALIDATION : bool
        If True, soft validation failures raise exceptions.
        If False, they issue warnings.
        Default: True
    DEFAULT_COMPILE : bool
        If True, Tractor objects compile the integrator on construction.
        If False, compilation is deferred until first propagation.
        Default: True
    INSTANCE_WARNING_THRESHOLD : int
        Number of Tractor instances in memory before a warning is issued.
        Default: 10
    VERBOSE : bool
        Print compilation progress messages.
        Default: True
    INTEGRATION_TOL : float
        Tolerance handed to the Taylor integrator. Lower values raise the
        Taylor order and the compile time.
        Default: 1e-10
    COMPACT_MODE : bool
        Compile the integrator in compact mode (much faster compilation of
        the large tractor system at some runtime cost).
        Default: True
    SPEED_EPS : float
        Velocity width [m/s] used to smooth sign changes of vehicle and
        wheel speeds (rolling resistance, draft direction, slip denominator).
        Below this speed draft and rolling resistance act like stiction,
        so it must stay far below working speeds.
        Default: 0.005
    SLIP_RELAXATION_SPEED : float
        Floor [m/s] on the slip relaxation speed. Near standstill slip
        settles with time constant relaxation_length / SLIP_RELAXATION_SPEED.
        Default: 0.5
    PRESSURE_EPS : float
        Pressure width [Pa] of the relief and check valve opening ramps.
        Default: 1e5
    LOAD_EPS : float
        Load width [N] of the smooth positive clamp on tire normal loads.
        Default: 100.0
    SLIP_EPS : float
        Width of the regularized slip-shear term around zero slip.
        Default: 1e-3
    DEFAULT_SAMPLE_POINTS : int
        Default number of samples for DataFrame export.
        Default: 1000
    DEFAULT_PLOT_POINTS : int
        Default number of points for trajectory plotting.
        Default: 1000
    DEFAULT_HOLD_TIME : float
        Time [s] the last scheduled command is held when Tractor.simulate()
        is called without t_end.
        Default: 10.0
    """

    # Validation behavior
    STRICT_VALIDATION: bool = True

    # Tractor defaults
    DEFAULT_COMPILE: bool = True
    INSTANCE_WARNING_THRESHOLD: int = 10
    VERBOSE: bool = True

    # Integration
    INTEGRATION_TOL: float = 1e-10
    COMPACT_MODE: bool = True

    # Model regularization
    SPEED_EPS: float = 0.005
    SLIP_RELAXATION_SPEED: float = 0.5
    PRESSURE_EPS: float = 1e5
    LOAD_EPS: float = 100.0
    SLIP_EPS: float = 1e-3

    # Sampling defaults
    DEFAULT_SAMPLE_POINTS: int = 1000
    DEFAULT_PLOT_POINTS: int = 1000
    DEFAULT_HOLD_TIME: float = 10.0

    def reset(self):
        """
        Reset all configuration values to package defaults.

        Examples
        --------
        >>> import helkos
        >>> helkos.config.SPEED_EPS = 0.2  # Modify
        >>> helkos.config.reset()  # Back to defaults
        >>> helkos.config.SPEED_EPS
        0.005
        """
        defaults = HelkosConfig()
        for key in self.__dataclass_fields__:
            setattr(self, key, getattr(defaults, key))

    def __repr__(self):
        """Return formatted string showing all configuration values."""
        lines = ["HelkosConfig:"]
        lines.append("  Behavior:")
        lines.append(f"    STRICT_VALIDATION = {self.STRICT_VALIDATION}")
        lines.append(f"    DEFAULT_COMPILE = {self.DEFAULT_COMPILE}")
        lines.append(f"    INSTANCE_WARNING_THRESHOLD = {self.INSTANCE_WARNING_THRESHOLD}")
        lines.append(f"    VERBOSE = {self.VERBOSE}")
        lines.append("  Integration:")
        lines.append(f"    INTEGRATION_TOL = {self.INTEGRATION_TOL}")
        lines.append(f"    COMPACT_MODE = {self.COMPACT_MODE}")
        lines.append("  Regularization:")
        lines.append(f"    SPEED_EPS = {self.SPEED_EPS}")
        lines.append(f"    SLIP_RELAXATION_SPEED = {self.SLIP_RELAXATION_SPEED}")
        lines.append(f"    PRESSURE_EPS = {self.PRESSURE_EPS}")
        lines.append(f"    LOAD_EPS = {self.LOAD_EPS}")
        lines.append(f"    SLIP_EPS = {self.SLIP_EPS}")
        lines.append("  Sampling:")
        lines.append(f"    DEFAULT_SAMPLE_POINTS = {self.DEFAULT_SAMPLE_POINTS}")
        lines.append(f"    DEFAULT_PLOT_POINTS = {self.DEFAULT_PLOT_POINTS}")
        lines.append(f"    DEFAULT_HOLD_TIME = {self.DEFAULT_HOLD_TIME}")
        return "\n".join(lines)


# Global configuration instance
config = HelkosConfig()


@contextmanager
def temp_config(**kwargs):
    """
    Context manager for temporarily modifying configuration values.

    Configuration is automatically restored when the context exits,
    even if an exception occurs.

    Parameters
    ----------
    **kwargs
        Configuration attributes to temporarily modify.

    Examples
    --------
    >>> import helkos
    >>> with helkos.temp_config(VERBOSE=False, DEFAULT_COMPILE=False):
    ...     tractor = helkos.default_tractor()
    >>> # Original config restored here
    >>> helkos.config.VERBOSE
    True

    Raises
    ------
    AttributeError
        If an invalid configuration attribute is specified.
    """
    for key in kwargs:
        if key not in config.__dataclass_fields__:
            raise AttributeError(
                f"HelkosConfig has no attribute '{key}'. "
                f"Valid attributes: {list(config.__dataclass_fields__.keys())}"
            )

    old_values = {}
    for key, value in kwargs.items():
        old_values[key] = getattr(config, key)
        setattr(config, key, value)

    try:
        yield config
    finally:
        for key, value in old_values.items():
            setattr(config, key, value)
