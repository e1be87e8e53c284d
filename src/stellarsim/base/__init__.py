__all__ = [
    "CloudParameters",
    "CoreComposition",
    "DerivedCloudProperties",
    "EvolutionPhase",
    "InternalStructure",
    "LayerStructure",
    "NuclearReaction",
    "OrbitalParameters",
    "Planet",
    "PlanetComposition",
    "ProtoplanetaryDisk",
    "ShellBurning",
    "SimulationState",
    "SimulationStatus",
    "SpectralType",
    "Star",
    "StarSystem",
]

from .cloud import CloudParameters, DerivedCloudProperties
from .planet import OrbitalParameters, Planet, PlanetComposition, ProtoplanetaryDisk
from .star import (
    CoreComposition,
    EvolutionPhase,
    InternalStructure,
    LayerStructure,
    NuclearReaction,
    ShellBurning,
    SpectralType,
    Star,
)
from .system import SimulationState, SimulationStatus, StarSystem
