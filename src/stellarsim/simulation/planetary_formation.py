"""Protoplanetary disks and the planets that form in them."""

from __future__ import annotations

import logging
from typing import Optional

from stellarsim.base.planet import Planet, ProtoplanetaryDisk
from stellarsim.base.star import Star
from stellarsim.constants import DEFAULT_CONSTANTS, PhysicalConstants
from stellarsim.physics import disk as disk_physics
from stellarsim.physics import orbits, stellar
from stellarsim.util.misc import to_tuple

logger = logging.getLogger(__name__)


def create_protoplanetary_disk(
    star: Star, magnetic_field_strength: Optional[float] = None
) -> Optional[ProtoplanetaryDisk]:
    """
    Disk around a newly formed star, or None when it is too light to form
    planets. Geometry follows the star's zero-age main-sequence luminosity.

    Args:
        star (Star):
            Parent star
        magnetic_field_strength (float, optional):
            Cloud field in μG for magnetic braking of the outer edge

    Returns:
        ProtoplanetaryDisk or None
    """
    luminosity = stellar.calculate_luminosity(star.mass)
    mass = disk_physics.calculate_disk_mass(star.mass, star.metallicity)
    if not disk_physics.can_form_planets(mass, star.mass):
        return None
    inner, outer = disk_physics.calculate_disk_extent(
        star.mass, luminosity, magnetic_field_strength
    )
    _, unbraked_outer = disk_physics.calculate_disk_extent(star.mass, luminosity)
    return ProtoplanetaryDisk(
        star_id=star.id,
        mass=float(mass),
        inner_radius=inner,
        outer_radius=outer,
        metallicity=star.metallicity,
        snow_line=disk_physics.calculate_snow_line(luminosity),
        magnetic_braking_factor=outer / unbraked_outer,
    )


def generate_planets(
    disk: ProtoplanetaryDisk,
    star: Star,
    rng,
    max_planets: int = disk_physics.MAX_PLANETS,
    constants: PhysicalConstants = DEFAULT_CONSTANTS,
) -> tuple[Planet, ...]:
    """
    Planets forming in a disk, innermost first, at system age 0

    Args:
        disk (ProtoplanetaryDisk):
            Disk around ``star``
        star (Star):
            Parent star
        rng (numpy.random.Generator):
            Random source

    Returns:
        tuple of Planet
    """
    if not disk_physics.can_form_planets(disk.mass, star.mass):
        return ()

    distances = disk_physics.generate_planet_orbital_distances(
        disk.inner_radius, disk.outer_radius, star.mass, rng, max_planets, constants
    )
    planets = []
    for k, distance in enumerate(distances):
        composition = disk_physics.determine_planet_composition(
            distance, disk.snow_line, disk.metallicity
        )
        mass = disk_physics.calculate_planet_mass(
            composition, disk.mass, disk.metallicity, rng, constants
        )
        report = orbits.check_planet_orbit_stability(
            distance, star.radius, star.mass, constants
        )
        if not report.stable:
            logger.warning("Planet %d of %s: %s", k, star.name, report.reason)

        eccentricity = rng.uniform(0, disk_physics.MAX_ECCENTRICITY)
        orbit = orbits.random_orbital_parameters(distance, eccentricity, rng)
        period = orbits.calculate_orbital_period(distance, star.mass, constants)
        offset = orbits.calculate_orbital_position(orbit, 0.0, period)
        planets.append(
            Planet(
                id=f"{star.id}-planet-{k}",
                name=f"{star.name}-{chr(ord('b') + k)}",
                mass=mass,
                radius=disk_physics.calculate_planet_radius(mass, composition),
                composition=composition,
                orbit=orbit,
                orbital_period=period,
                parent_star_id=star.id,
                position=to_tuple(offset + star.position),
            )
        )
    logger.info("%s formed %d planet(s)", star.name, len(planets))
    return tuple(planets)


def form_planets(stars, rng, magnetic_field_strength=None, constants=DEFAULT_CONSTANTS):
    """Disks and planets for every star, in star order."""
    planets = []
    for star in stars:
        disk = create_protoplanetary_disk(star, magnetic_field_strength)
        if disk is not None:
            planets.extend(generate_planets(disk, star, rng, constants=constants))
    return tuple(planets)
