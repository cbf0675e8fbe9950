"""femtolab — serial drivers for a femtosecond laser bench"""

from .constants import DEFAULT_PERIOD_US, MAX_PERIOD_US, MIN_PERIOD_US
from .exceptions import (
    ConnectionError,
    DeviceNotReadyError,
    FemtolabError,
    ParseError,
    ShootingDisabledError,
    TimeoutError,
    TransportError,
    ValidationError,
)
from .oscilloscope import Oscilloscope
from .protocol import Command, ExternalSource, FiringMode
from .shooter import LaserShooter
from .stepper import StepperMotor

__all__ = [
    "Command",
    "ConnectionError",
    "DEFAULT_PERIOD_US",
    "DeviceNotReadyError",
    "ExternalSource",
    "FemtolabError",
    "FiringMode",
    "LaserShooter",
    "MAX_PERIOD_US",
    "MIN_PERIOD_US",
    "Oscilloscope",
    "ParseError",
    "ShootingDisabledError",
    "StepperMotor",
    "TimeoutError",
    "TransportError",
    "ValidationError",
]
__version__ = "0.1.0"
