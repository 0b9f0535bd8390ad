"""
Helkos: Tractor Powertrain and Tillage Energy Simulation

A Python package for simulating a hydrostatic four-wheel-drive tractor
pulling a tillage implement, with tire-soil interaction, hydraulic loop
dynamics and energy accounting, using high-performance Taylor series
integration.
"""

# Configuration
from .config import config, temp_config

# Core classes
from .tractor import Tractor
from .trajectory import Trajectory, Trajectory as Traj
from .state import TractorState, STATE_NAMES
from .driver import DriverCommand, DriverSchedule
from .scenario import Scenario
from .energy import EnergyReport, ENERGY_CHANNELS

# Component parameters
from .engine import EngineParams
from .hydrostatic import (FluidParams, PumpParams, MotorParams, PipeParams,
                          ReliefValveParams, CheckValveParams,
                          ChargePumpParams, HydrostaticParams)
from .tire import SoilParams, TireParams
from .implement import ImplementParams, ImplementType, SoilTexture
from .vehicle import VehicleParams, AxleParams

# Predefined components
from .defaults import (SAE_5W30, SANDY_LOAM, CLAYEY_SOIL, DRY_SAND, HEAVY_CLAY,
                       default_tractor, default_scenario)

# Package metadata
__version__ = "0.1.0"

# Define what gets imported with "from helkos import *"
__all__ = [
    # Configuration
    "config",
    "temp_config",
    # Classes
    "Tractor",
    "Trajectory",
    "TractorState",
    "DriverCommand",
    "DriverSchedule",
    "Scenario",
    "EnergyReport",
    "EngineParams",
    "FluidParams",
    "PumpParams",
    "MotorParams",
    "PipeParams",
    "ReliefValveParams",
    "CheckValveParams",
    "ChargePumpParams",
    "HydrostaticParams",
    "SoilParams",
    "TireParams",
    "ImplementParams",
    "ImplementType",
    "SoilTexture",
    "VehicleParams",
    "AxleParams",
    # Abbreviations
    "Traj",
    # Constants
    "STATE_NAMES",
    "ENERGY_CHANNELS",
    "SAE_5W30",
    "SANDY_LOAM",
    "CLAYEY_SOIL",
    "DRY_SAND",
    "HEAVY_CLAY",
    # Factories
    "default_tractor",
    "default_scenario",
]
