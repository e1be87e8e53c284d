__all__ = [
    "CloudParameters",
    "DEFAULT_CONSTANTS",
    "PhysicalConstants",
    "RecordError",
    "SequencingError",
    "SimulationController",
    "SimulationState",
    "StarSystem",
    "StellarSimError",
    "ValidationError",
    "validate_cloud_parameters",
]

from .base import CloudParameters, SimulationState, StarSystem
from .constants import DEFAULT_CONSTANTS, PhysicalConstants
from .exceptions import RecordError, SequencingError, StellarSimError, ValidationError
from .simulation import SimulationController
from .util.validation import validate_cloud_parameters
