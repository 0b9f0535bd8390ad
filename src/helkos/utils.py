"""
Utility functions and classes for the Helkos package.

The component models are written once and evaluated two ways: as Heyoka
expressions when a Tractor builds its equations of motion, and as numpy
arrays when a Trajectory reports signals. A ``Backend`` bundles the few
transcendental functions the models need for each case.
"""

from time import perf_counter
import warnings
from typing import Type
import numpy as np
import heyoka as hy
from .config import config


class Timer:
    """
    Context manager for timing code execution.

    Examples
    --------
    >>> from helkos.utils import Timer
    >>> with Timer("Tillage pass"):
    ...     traj = tractor.propagate(state, 0, 10, command, scenario)
    Tillage pass: 0.123456 s

    >>> with Timer(verbose=False) as t:
    ...     # ... code ...
    >>> print(f"Took {t.elapsed:.6f} seconds")
    """
    def __init__(self, name="Operation", verbose=True):
        """
        Parameters
        ----------
        name : str, optional
            Name to display when timing completes (default: "Operation")
        verbose : bool, optional
            Whether to print timing automatically (default: True)
        """
        self.name = name
        self.verbose = verbose
        self.elapsed = None

    def __enter__(self):
        self.start = perf_counter()
        return self

    def __exit__(self, *args):
        self.end = perf_counter()
        self.elapsed = self.end - self.start
        if self.verbose:
            print(f"{self.name}: {self.elapsed:.6f} s")


def validation_error(message: str, error_class: Type[Exception] = ValueError):
    """
    Raise error or warn based on config.STRICT_VALIDATION.

    Parameters
    ----------
    message : str
        Validation error message
    error_class : Type[Exception], optional
        Exception class to raise if STRICT_VALIDATION is True.
        Default: ValueError

    Raises
    ------
    Exception (of type error_class)
        If config.STRICT_VALIDATION is True

    Warns
    -----
    UserWarning
        If config.STRICT_VALIDATION is False
    """
    if config.STRICT_VALIDATION:
        raise error_class(message)
    else:
        warnings.warn(message, UserWarning, stacklevel=3)


class Backend:
    """Transcendental functions used by the component models."""
    def __init__(self, name, exp, log, sqrt, tanh):
        self.name = name
        self.exp = exp
        self.log = log
        self.sqrt = sqrt
        self.tanh = tanh

    def __repr__(self):
        return f"Backend('{self.name}')"


SYMBOLIC = Backend('heyoka', hy.exp, hy.log, hy.sqrt, hy.tanh)
NUMERIC = Backend('numpy', np.exp, np.log, np.sqrt, np.tanh)


# ========== SMOOTH PRIMITIVES ==========
# C-infinity replacements for max(0, x), |x|, sign(x) and max(a, b), so the
# right-hand side stays differentiable for the Taylor integrator.
def smooth_ramp(x, eps, m=NUMERIC):
    """Smooth max(0, x) with transition width eps."""
    return 0.5 * (x + m.sqrt(x * x + eps * eps))


def smooth_abs(x, eps, m=NUMERIC):
    """Smooth |x|, never below eps."""
    return m.sqrt(x * x + eps * eps)


def smooth_sign(x, eps, m=NUMERIC):
    """Smooth sign(x) with transition width eps."""
    return m.tanh(x / eps)


def smooth_max(a, b, eps, m=NUMERIC):
    """Smooth max(a, b), never below max(a, b)."""
    return 0.5 * (a + b + m.sqrt((a - b) ** 2 + eps * eps))


def positive_power(x, exponent, m=NUMERIC):
    """x**exponent for x > 0 where the exponent may itself be an expression."""
    return m.exp(exponent * m.log(x))


# ========== UNIT CONVERSIONS ==========
RPM_TO_RAD = 2.0 * np.pi / 60.0
CC_PER_REV_TO_M3_PER_RAD = 1e-6 / (2.0 * np.pi)


def rpm2rad(rpm):
    """Convert rotational speed [rpm] to [rad/s]."""
    return np.asarray(rpm) * RPM_TO_RAD


def rad2rpm(omega):
    """Convert rotational speed [rad/s] to [rpm]."""
    return np.asarray(omega) / RPM_TO_RAD


def cc2si(displacement):
    """Convert displacement [cc/rev] to [m^3/rad]."""
    return displacement * CC_PER_REV_TO_M3_PER_RAD
