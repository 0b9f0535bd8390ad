"""Shared fixtures: compiled tractors are expensive, so build them once."""

import pytest
from helkos import config, default_tractor, default_scenario, DriverCommand


@pytest.fixture(scope='session', autouse=True)
def quiet_config():
    """Silence compile messages for the whole session."""
    config.VERBOSE = False
    yield
    config.reset()


@pytest.fixture(scope='session')
def tractor():
    """Compiled default tractor with chisel plow."""
    return default_tractor()


@pytest.fixture(scope='session')
def scenario():
    """Level sandy loam field."""
    return default_scenario()


@pytest.fixture(scope='session')
def tillage_command():
    return DriverCommand(engine_speed=2000, displacement=0.6, depth=0.1)


@pytest.fixture(scope='session')
def tillage_traj(tractor, scenario, tillage_command):
    """Three seconds of tillage from rest."""
    return tractor.simulate(tillage_command, scenario, t_end=3.0)
