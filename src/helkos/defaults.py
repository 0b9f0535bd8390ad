"""
Default Components and Tractor Configurations
=============================================

Predefined fluid, terrains, tires, hydrostatic circuit, engine, body and
implements for a mid-size four-wheel-drive tractor with a hydrostatic CVT.

Factory functions build Tractor and Scenario objects on demand, avoiding
compilation until needed. ``default_tractor`` accepts a ``compile``
parameter (default True) to control whether the Heyoka integrator is
compiled immediately or deferred.

Examples
--------
>>> from helkos import default_tractor, default_scenario, DriverCommand
>>> tractor = default_tractor()
>>> cmd = DriverCommand(2000, displacement=0.6, depth=0.1)
>>> traj = tractor.simulate(cmd, default_scenario(), t_end=5.0)
"""
from .engine import EngineParams
from .hydrostatic import (FluidParams, PumpParams, MotorParams, PipeParams,
                          ReliefValveParams, CheckValveParams,
                          ChargePumpParams, HydrostaticParams)
from .implement import ImplementParams, ImplementType, SoilTexture
from .scenario import Scenario
from .tire import SoilParams, TireParams
from .tractor import Tractor
from .vehicle import AxleParams, VehicleParams

"""
Transmission fluid
SAE 5W-30 near 60 degC operating temperature
"""
SAE_5W30 = FluidParams(
    density=860.0,
    kinematic_viscosity=3.0e-5,
    bulk_modulus=1.0e9,
    name='SAE 5W-30'
)

"""
Predefined terrains for the Bekker tire-soil model
Values taken from Wong, Theory of Ground Vehicles, Fourth Edition, 2008,
Table 2.3. Units: kc [N/m^(n+1)], kphi [N/m^(n+2)], c [Pa], phi [deg], K [m]
"""
SANDY_LOAM = SoilParams(
    kc=5.27e3,
    kphi=1515.04e3,
    n=0.7,
    c=1.72e3,
    phi=29.0,
    K=0.025,
    name='Sandy loam'
)

CLAYEY_SOIL = SoilParams(
    kc=13.19e3,
    kphi=692.15e3,
    n=0.5,
    c=4.14e3,
    phi=13.0,
    K=0.01,
    name='Clayey soil'
)

DRY_SAND = SoilParams(
    kc=0.99e3,
    kphi=1528.43e3,
    n=1.1,
    c=1.04e3,
    phi=28.0,
    K=0.01,
    name='Dry sand'
)

HEAVY_CLAY = SoilParams(
    kc=12.70e3,
    kphi=1555.95e3,
    n=0.13,
    c=68.95e3,
    phi=34.0,
    K=0.01,
    name='Heavy clay'
)

"""
Tractor tires
"""
FRONT_TIRE = TireParams(
    radius=0.6,
    width=0.4,
    inertia=20.0,
    flexing_coefficient=0.02,
    relaxation_length=0.25,
    name='Front 380/85R28'
)

REAR_TIRE = TireParams(
    radius=0.8,
    width=0.5,
    inertia=60.0,
    flexing_coefficient=0.02,
    relaxation_length=0.3,
    name='Rear 480/80R38'
)

"""
Hydrostatic CVT
One 100 cc/rev pump feeding two 80 cc/rev axle motors
"""
DEFAULT_TRANSMISSION = HydrostaticParams(
    pump=PumpParams(max_displacement=100.0),
    front_motor=MotorParams(displacement=80.0),
    rear_motor=MotorParams(displacement=80.0),
    front_pipe=PipeParams(length=3.0, diameter=0.019),
    rear_pipe=PipeParams(length=2.0, diameter=0.019),
    relief=ReliefValveParams(set_pressure=42.0e6),
    check=CheckValveParams(),
    charge_pump=ChargePumpParams(displacement=15.0, pressure=2.0e6),
    line_volume=1.5e-3,
    fluid=SAE_5W30,
)

DEFAULT_ENGINE = EngineParams(
    idle_speed=800.0,
    rated_speed=2200.0,
    governor_time_constant=0.2,
    name='Diesel 100 kW'
)

DEFAULT_VEHICLE = VehicleParams(
    mass=8000.0,
    wheelbase=2.8,
    cg_to_rear_axle=1.1,
    cg_height=1.0,
    front_axle=AxleParams(final_drive_ratio=30.0, inertia=9.0),
    rear_axle=AxleParams(final_drive_ratio=40.0, inertia=16.0),
    name='4WD hydrostatic tractor'
)

"""
Implements
Widths follow the ASABE width unit of each kind (tools or m)
"""
CHISEL_PLOW = ImplementParams(
    kind=ImplementType.CHISEL_PLOW,
    width=7,
    vertical_ratio=0.2,
    hitch_height=0.5,
    hitch_offset=1.2,
    max_depth=0.35,
    name='Chisel plow, 7 shanks'
)

MOLDBOARD_PLOW = ImplementParams(
    kind=ImplementType.MOLDBOARD_PLOW,
    width=1.2,
    vertical_ratio=0.3,
    hitch_height=0.45,
    hitch_offset=1.5,
    max_depth=0.3,
    name='Moldboard plow, 3 bottoms'
)

FIELD_CULTIVATOR = ImplementParams(
    kind=ImplementType.FIELD_CULTIVATOR,
    width=15,
    vertical_ratio=0.1,
    hitch_height=0.5,
    hitch_offset=1.0,
    max_depth=0.15,
    name='Field cultivator, 15 tools'
)


def default_tractor(implement=CHISEL_PLOW, compile=True):
    """
    Create the default 4WD hydrostatic tractor.

    Parameters
    ----------
    implement : ImplementParams or None, optional
        Hitched implement (default: 7-shank chisel plow)
    compile : bool, optional
        If True (default), compile the Heyoka integrator immediately.
        Set to False to defer compilation until first propagation.

    Returns
    -------
    Tractor
    """
    return Tractor(
        vehicle=DEFAULT_VEHICLE,
        engine=DEFAULT_ENGINE,
        transmission=DEFAULT_TRANSMISSION,
        front_tire=FRONT_TIRE,
        rear_tire=REAR_TIRE,
        implement=implement,
        compile=compile,
    )


def default_scenario(soil=SANDY_LOAM, texture=SoilTexture.MEDIUM, grade=0.0):
    """
    Create a uniform field scenario (default: level sandy loam, medium texture).
    """
    return Scenario(soil, texture=texture, grade=grade,
                    name=f"{soil.name or 'custom'}, {grade} deg")
