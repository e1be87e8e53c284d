__all__ = [
    "SimulationController",
    "advance_system",
    "calculate_mass_distribution",
    "create_protoplanetary_disk",
    "create_star",
    "determine_fragmentation",
    "evolve_star",
    "generate_planets",
    "generate_star_system",
    "system_at_age",
    "will_cloud_collapse",
]

from .cloud_formation import (
    calculate_mass_distribution,
    determine_fragmentation,
    generate_star_system,
    will_cloud_collapse,
)
from .controller import SimulationController, advance_system, system_at_age
from .planetary_formation import create_protoplanetary_disk, generate_planets
from .stellar_evolution import create_star, evolve_star
