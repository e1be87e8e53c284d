"""Protoplanetary disk physics and planet population rules."""

from __future__ import annotations

import numpy as np

from stellarsim.base.planet import PlanetComposition
from stellarsim.constants import CLOUD_DEFAULTS, DEFAULT_CONSTANTS, PhysicalConstants
from stellarsim.physics.orbits import calculate_hill_sphere_radius

MIN_DISK_MASS_FRACTION = 0.01
MAX_DISK_MASS_FRACTION = 0.1
SNOW_LINE_COEFFICIENT = 2.7  # AU per sqrt(L_sun)
INNER_RADIUS_COEFFICIENT = 0.05  # AU per sqrt(L_sun)
OUTER_RADIUS_COEFFICIENT = 30.0  # AU per sqrt(M_sun)
MAGNETIC_BRAKING_EXPONENT = 0.7
OUTER_RADIUS_BOUNDS = (10.0, 1000.0)  # AU

MIN_FIRST_ORBIT = 0.3  # AU
MAX_PLANETS = 10
# Typical planet mass [M_earth] used to space orbits before masses are drawn
SPACING_PLANET_MASS = 5.0
HILL_SPACING_RANGE = (10.0, 20.0)
SPACING_JITTER = (0.8, 1.2)
# Largest fraction of the disk mass one planet may take
MAX_PLANET_DISK_FRACTION = 0.01
MAX_ECCENTRICITY = 0.3


def calculate_disk_mass(stellar_mass: float, metallicity: float) -> float:
    """Disk mass [M_sun], 1% of the star at zero metallicity rising to 10%
    at twice solar."""
    fraction = MIN_DISK_MASS_FRACTION + (
        MAX_DISK_MASS_FRACTION - MIN_DISK_MASS_FRACTION
    ) * (min(metallicity, 2.0) / 2.0)
    return stellar_mass * fraction


def apply_magnetic_braking(base_radius: float, magnetic_field_strength: float) -> float:
    """Outer radius [AU] shrunk by (B / 10 μG)^-0.7 and clamped."""
    reference = CLOUD_DEFAULTS["magnetic_field_strength"]
    reduced = base_radius * (magnetic_field_strength / reference) ** -MAGNETIC_BRAKING_EXPONENT
    low, high = OUTER_RADIUS_BOUNDS
    return float(min(max(reduced, low), high))


def calculate_disk_extent(stellar_mass, stellar_luminosity, magnetic_field_strength=None):
    """
    Inner and outer disk radius

    Args:
        stellar_mass (float):
            Stellar mass in M_sun
        stellar_luminosity (float):
            Stellar luminosity in L_sun
        magnetic_field_strength (float, optional):
            Cloud field in μG; when given the outer radius is braked

    Returns:
        tuple:
            (inner radius, outer radius) in AU
    """
    inner = INNER_RADIUS_COEFFICIENT * np.sqrt(stellar_luminosity)
    outer = OUTER_RADIUS_COEFFICIENT * np.sqrt(stellar_mass)
    if magnetic_field_strength is not None:
        outer = apply_magnetic_braking(outer, magnetic_field_strength)
    return float(inner), float(outer)


def calculate_snow_line(stellar_luminosity: float) -> float:
    return float(SNOW_LINE_COEFFICIENT * np.sqrt(stellar_luminosity))


def can_form_planets(disk_mass: float, stellar_mass: float) -> bool:
    return disk_mass / stellar_mass >= MIN_DISK_MASS_FRACTION * 0.5


def determine_planet_composition(
    orbital_distance: float, snow_line: float, metallicity: float
) -> PlanetComposition:
    """Rocky inside the snow line, ice giants (metal-rich disks only) out to
    three snow lines, gas giants beyond."""
    if orbital_distance < snow_line:
        return PlanetComposition.ROCKY
    if orbital_distance < 3 * snow_line:
        if metallicity > 0.5:
            return PlanetComposition.ICE_GIANT
        return PlanetComposition.ROCKY
    return PlanetComposition.GAS_GIANT


def calculate_planet_mass(
    composition: PlanetComposition,
    disk_mass: float,
    metallicity: float,
    rng,
    constants: PhysicalConstants = DEFAULT_CONSTANTS,
) -> float:
    """
    Planet mass [M_earth] drawn from the composition's range, capped at 1%
    of the disk mass

    Args:
        composition (PlanetComposition):
            Planet type
        disk_mass (float):
            Disk mass in M_sun
        metallicity (float):
            Disk metallicity relative to solar
        rng (numpy.random.Generator):
            Random source

    Returns:
        float
    """
    if composition is PlanetComposition.ROCKY:
        mass = (0.5 + 5 * rng.random()) * (0.5 + 0.5 * metallicity)
    elif composition is PlanetComposition.ICE_GIANT:
        mass = 10 + 10 * rng.random()
    else:
        mass = (50 + 450 * rng.random()) * min(disk_mass / 0.01, 2.0)
    cap = disk_mass * constants.earth_masses_per_solar_mass * MAX_PLANET_DISK_FRACTION
    return float(min(mass, cap))


def calculate_planet_radius(mass: float, composition: PlanetComposition) -> float:
    """Radius [R_earth] from the composition's mass-radius relation."""
    if composition is PlanetComposition.ROCKY:
        return float(mass**0.27)
    if composition is PlanetComposition.ICE_GIANT:
        return float(mass**0.31)
    return float(11 * (mass / 318) ** 0.1)


def calculate_planet_spacing(
    distance: float,
    stellar_mass: float,
    planet_mass: float,
    rng,
    constants: PhysicalConstants = DEFAULT_CONSTANTS,
) -> float:
    """Gap [AU] to the next orbit, 10-20 Hill radii of a planet of
    ``planet_mass`` M_earth at ``distance``."""
    hill = calculate_hill_sphere_radius(
        distance, stellar_mass, planet_mass / constants.earth_masses_per_solar_mass
    )
    return float(hill * rng.uniform(*HILL_SPACING_RANGE))


def generate_planet_orbital_distances(
    disk_inner_radius: float,
    disk_outer_radius: float,
    stellar_mass: float,
    rng,
    max_planets: int = MAX_PLANETS,
    constants: PhysicalConstants = DEFAULT_CONSTANTS,
) -> list[float]:
    """
    Orbit radii [AU] from twice the inner disk radius (at least 0.3 AU)
    outward until the disk edge or ``max_planets``
    """
    distances = []
    distance = max(2 * disk_inner_radius, MIN_FIRST_ORBIT)
    while distance < disk_outer_radius and len(distances) < max_planets:
        distances.append(float(distance))
        spacing = calculate_planet_spacing(
            distance, stellar_mass, SPACING_PLANET_MASS, rng, constants
        )
        distance += spacing * rng.uniform(*SPACING_JITTER)
    return distances
