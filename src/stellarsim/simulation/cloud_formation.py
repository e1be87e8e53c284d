"""Fragmentation of a molecular cloud into a set of stars."""

from __future__ import annotations

import dataclasses
import logging

import numpy as np

from stellarsim.base.cloud import CloudParameters, DerivedCloudProperties
from stellarsim.base.star import Star
from stellarsim.base.system import StarSystem
from stellarsim.constants import (
    DEFAULT_CONSTANTS,
    MAX_STELLAR_MASS,
    MIN_STELLAR_MASS,
    STAR_FORMATION_EFFICIENCY,
    PhysicalConstants,
)
from stellarsim.physics import orbits
from stellarsim.physics.cloud import calculate_derived_properties
from stellarsim.simulation.stellar_evolution import create_star, star_name
from stellarsim.util.misc import to_tuple

logger = logging.getLogger(__name__)

MAX_FRAGMENTS = 10
# (upper cloud mass [M_sun], base count, fragments per unit normalized
# angular momentum, band cap)
FRAGMENTATION_BANDS = (
    (1.0, 1, 2.0, 2),
    (10.0, 1, 2.0, 3),
    (100.0, 2, 2.0, 5),
    (np.inf, 3, 3.0, MAX_FRAGMENTS),
)
TURBULENT_FRAGMENTATION_GAIN = 0.25

SALPETER_ALPHA = 2.35

BINARY_ECCENTRICITY_RANGE = (0.1, 0.4)
# Share of the cloud angular momentum held by the inner pair of a multiple
INNER_PAIR_ANGULAR_MOMENTUM = 0.6
# Periapsis must clear this many contact separations; apoapsis stays inside
# the unbound limit
MIN_PERIAPSIS_CONTACTS = 2.0
OUTER_INCLINATION = np.pi / 12


def normalized_angular_momentum(params: CloudParameters, constants=DEFAULT_CONSTANTS):
    """Cloud angular momentum over M R sigma."""
    params = params.with_defaults()
    scale = (
        params.mass
        * constants.M_sun
        * params.radius
        * constants.pc
        * params.turbulence_velocity
        * 1e3
    )
    return params.angular_momentum / scale


def turbulent_fragmentation_factor(params: CloudParameters, derived: DerivedCloudProperties):
    """
    Multiplier on the fragment count from turbulent fragmentation

    The number of Jeans-mass fragments is bounded by the number of
    turbulent-Jeans-length cells fitting in the cloud volume; the factor
    grows with the log of that count and is 1 when fewer than one fits.
    """
    params = params.with_defaults()
    jeans_fragments = params.mass / derived.jeans_mass
    cells = (params.radius / derived.turbulent_jeans_length) ** 3
    fragments = max(min(jeans_fragments, cells), 1.0)
    return 1 + TURBULENT_FRAGMENTATION_GAIN * np.log10(fragments)


def determine_fragmentation(
    params: CloudParameters,
    derived: DerivedCloudProperties,
    constants: PhysicalConstants = DEFAULT_CONSTANTS,
) -> int:
    """
    Number of stars a cloud fragments into

    Args:
        params (CloudParameters):
            Cloud description
        derived (DerivedCloudProperties):
            Diagnostics of ``params``

    Returns:
        int:
            Count in [1, 10]
    """
    rotation = normalized_angular_momentum(params, constants)
    for upper, base, gain, cap in FRAGMENTATION_BANDS:
        if params.mass < upper:
            count = min(base + int(np.floor(gain * rotation)), cap)
            break
    count = int(np.floor(count * turbulent_fragmentation_factor(params, derived)))
    if not derived.is_bound:
        count = max(1, count // 2)

    # Every fragment must be able to hold the minimum stellar mass
    mass_cap = int(STAR_FORMATION_EFFICIENCY * params.mass / MIN_STELLAR_MASS)
    return int(np.clip(min(count, max(mass_cap, 1)), 1, MAX_FRAGMENTS))


def sample_salpeter(rng, size, low=MIN_STELLAR_MASS, high=MAX_STELLAR_MASS):
    """Draw masses from dN/dm ~ m^-2.35 truncated to [low, high]."""
    u = rng.random(size)
    if high <= low:
        return np.full(size, float(low))
    k = 1 - SALPETER_ALPHA
    return (low**k + u * (high**k - low**k)) ** (1 / k)


def calculate_mass_distribution(total_mass: float, count: int, rng) -> list[float]:
    """
    Split the star-forming share of a cloud between ``count`` stars

    Each star gets the minimum stellar mass; the rest of
    ``STAR_FORMATION_EFFICIENCY * total_mass`` is shared in proportion to
    Salpeter-distributed weights drawn from ``rng``.

    Args:
        total_mass (float):
            Cloud mass in M_sun
        count (int):
            Number of stars
        rng (numpy.random.Generator):
            Random source

    Returns:
        list of float:
            Masses in M_sun, most massive first
    """
    available = STAR_FORMATION_EFFICIENCY * total_mass
    excess = available - count * MIN_STELLAR_MASS
    if excess < 0:
        logger.warning(
            "%.3g M_sun of star-forming gas cannot give %d stars the minimum "
            "mass of %.2f M_sun",
            available,
            count,
            MIN_STELLAR_MASS,
        )
        excess = 0.0
    weights = sample_salpeter(rng, count, high=min(0.5 * total_mass, MAX_STELLAR_MASS))
    masses = MIN_STELLAR_MASS + excess * weights / weights.sum()
    masses = np.clip(masses, MIN_STELLAR_MASS, MAX_STELLAR_MASS)
    return sorted((float(m) for m in masses), reverse=True)


def will_cloud_collapse(params: CloudParameters, derived: DerivedCloudProperties) -> bool:
    """Bound and more massive than its Jeans mass."""
    return bool(derived.is_bound and params.mass > derived.jeans_mass)


def _with_orbit(star, orbit, period):
    return dataclasses.replace(
        star,
        orbit=orbit,
        orbital_period=float(period),
        position=to_tuple(orbits.calculate_orbital_position(orbit, 0.0, period)),
        velocity=to_tuple(orbits.calculate_orbital_velocity(orbit, 0.0, period)),
    )


def configure_binary(
    primary: Star,
    secondary: Star,
    angular_momentum: float,
    rng,
    constants: PhysicalConstants = DEFAULT_CONSTANTS,
):
    """
    Put two stars on barycentric orbits of a common relative orbit whose
    separation carries ``angular_momentum``

    Returns:
        tuple:
            (primary, secondary, relative semi-major axis in AU)
    """
    total = primary.mass + secondary.mass
    eccentricity = rng.uniform(*BINARY_ECCENTRICITY_RANGE)
    separation = orbits.separation_from_angular_momentum(
        angular_momentum, primary.mass, secondary.mass, constants
    )
    contact = (primary.radius + secondary.radius) * constants.solar_radius_au
    low = MIN_PERIAPSIS_CONTACTS * contact / (1 - eccentricity)
    high = orbits.unbound_separation(total) / (1 + eccentricity)
    if not low <= separation <= high:
        logger.info(
            "Binary separation %.3g AU from angular momentum clamped to [%.3g, %.3g] AU",
            separation,
            low,
            high,
        )
        separation = float(np.clip(separation, low, high))

    relative = orbits.random_orbital_parameters(separation, eccentricity, rng)
    period = orbits.calculate_orbital_period(separation, total, constants)
    secondary_orbit = dataclasses.replace(
        relative, semi_major_axis=separation * primary.mass / total
    )
    primary_orbit = dataclasses.replace(
        relative,
        semi_major_axis=separation * secondary.mass / total,
        argument_of_periapsis=(relative.argument_of_periapsis + np.pi) % (2 * np.pi),
    )
    return (
        _with_orbit(primary, primary_orbit, period),
        _with_orbit(secondary, secondary_orbit, period),
        separation,
    )


def configure_multiple_star_system(
    stars,
    angular_momentum: float,
    rng,
    constants: PhysicalConstants = DEFAULT_CONSTANTS,
) -> tuple:
    """
    Arrange stars about the system centre of mass

    A single star stays at the origin. The two most massive stars form an
    inner binary; any further star gets a circular orbit about the centre of
    mass at 5 + 2i inner separations (i its index).

    Args:
        stars (sequence of Star):
            Stars at age 0
        angular_momentum (float):
            Cloud angular momentum in kg m^2/s
        rng (numpy.random.Generator):
            Random source

    Returns:
        tuple of Star:
            Most massive first
    """
    stars = sorted(stars, key=lambda star: star.mass, reverse=True)
    if len(stars) < 2:
        return tuple(stars)

    share = 1.0 if len(stars) == 2 else INNER_PAIR_ANGULAR_MOMENTUM
    primary, secondary, separation = configure_binary(
        stars[0], stars[1], angular_momentum * share, rng, constants
    )
    configured = [primary, secondary]
    total_mass = sum(star.mass for star in stars)
    for i, star in enumerate(stars[2:], start=2):
        distance = separation * (5 + 2 * i)
        orbit = orbits.random_orbital_parameters(distance, 0.0, rng)
        orbit = dataclasses.replace(
            orbit, inclination=float(rng.uniform(-OUTER_INCLINATION, OUTER_INCLINATION))
        )
        period = orbits.calculate_orbital_period(distance, total_mass, constants)
        configured.append(_with_orbit(star, orbit, period))
    return tuple(configured)


def generate_star_system(
    params: CloudParameters,
    rng,
    constants: PhysicalConstants = DEFAULT_CONSTANTS,
) -> StarSystem:
    """
    Form the stars of a cloud at system age 0, without planets

    Clouds that would not collapse on their own still form stars; the
    condition is logged.

    Args:
        params (CloudParameters):
            Validated cloud description
        rng (numpy.random.Generator):
            Random source

    Returns:
        StarSystem
    """
    derived = calculate_derived_properties(params, constants)
    if not will_cloud_collapse(params, derived):
        logger.warning(
            "Cloud of %.3g M_sun would not collapse on its own "
            "(virial parameter %.3g, Jeans mass %.3g M_sun)",
            params.mass,
            derived.virial_parameter,
            derived.jeans_mass,
        )

    count = determine_fragmentation(params, derived, constants)
    masses = calculate_mass_distribution(params.mass, count, rng)

    tag = f"{int(rng.integers(16**6)):06x}"
    system_id = f"system-{tag}"
    stars = [
        create_star(mass, params.metallicity, f"{system_id}-star-{i}", star_name(i), constants)
        for i, mass in enumerate(masses)
    ]
    stars = configure_multiple_star_system(stars, params.angular_momentum, rng, constants)

    report = orbits.check_hierarchical_stability(stars, constants)
    if not report.stable:
        logger.warning("Star configuration may be unstable: %s", report.reason)

    logger.info("Cloud of %.3g M_sun formed %d star(s)", params.mass, len(stars))
    return StarSystem(
        id=system_id,
        name=f"System {tag}",
        stars=stars,
        planets=(),
        age=0.0,
        cloud_parameters=params,
        derived_properties=derived,
    )
