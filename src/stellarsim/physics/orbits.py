"""Analytic two-body orbital mechanics.

Periods, Kepler's equation, positions and velocities along fixed Keplerian
orbits, plus the stability criteria applied to stellar hierarchies and
planetary orbits. Distances are in AU, masses in M_sun, times in years
unless stated otherwise.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

import numpy as np

from stellarsim.base.planet import OrbitalParameters
from stellarsim.constants import DEFAULT_CONSTANTS, PhysicalConstants
from stellarsim.util.misc import perifocal_to_inertial

logger = logging.getLogger(__name__)

KEPLER_TOLERANCE = 1e-6
KEPLER_MAX_ITERATIONS = 100

# Minimum outer/inner separation ratio of a stable hierarchy
STABILITY_RATIO = 3.0
# Separation [AU] per M_sun^(1/3) beyond which a pair is treated as unbound
UNBOUND_SEPARATION_SCALE = 1000.0


def calculate_orbital_period(
    semi_major_axis, total_mass, constants: PhysicalConstants = DEFAULT_CONSTANTS
):
    """
    Period from Kepler's third law, T^2 = 4 pi^2 a^3 / (G M)

    Args:
        semi_major_axis (float or numpy.ndarray):
            Semi-major axis in AU
        total_mass (float or numpy.ndarray):
            Mass of the two bodies in M_sun

    Returns:
        float or numpy.ndarray:
            Period in years
    """
    a = np.asarray(semi_major_axis, dtype=float) * constants.AU
    mu = constants.G * np.asarray(total_mass, dtype=float) * constants.M_sun
    period = 2 * np.pi * np.sqrt(a**3 / mu) / constants.year
    return period if np.ndim(period) else float(period)


def calculate_semi_major_axis(
    period, total_mass, constants: PhysicalConstants = DEFAULT_CONSTANTS
):
    """Inverse of ``calculate_orbital_period``: AU from a period in years."""
    t = np.asarray(period, dtype=float) * constants.year
    mu = constants.G * np.asarray(total_mass, dtype=float) * constants.M_sun
    a = np.cbrt(mu * (t / (2 * np.pi)) ** 2) / constants.AU
    return a if np.ndim(a) else float(a)


def calculate_mean_anomaly(time, period, mean_anomaly_at_epoch=0.0):
    """Mean anomaly in [0, 2 pi) at ``time`` years after epoch."""
    mean_anomaly = np.mod(
        2 * np.pi / period * np.asarray(time, dtype=float) + mean_anomaly_at_epoch,
        2 * np.pi,
    )
    return mean_anomaly if np.ndim(mean_anomaly) else float(mean_anomaly)


def solve_kepler_equation(
    mean_anomaly,
    eccentricity,
    tolerance=KEPLER_TOLERANCE,
    max_iterations=KEPLER_MAX_ITERATIONS,
):
    """
    Solve M = E - e sin(E) for the eccentric anomaly with safeguarded
    Newton-Raphson

    Iteration starts from E = M. The root lies in [M - e, M + e] since
    |E - M| = e |sin E| <= e; the bracket shrinks around every iterate and a
    Newton step landing outside it is replaced by bisection. Iteration stops
    once every step is smaller than ``tolerance`` or after
    ``max_iterations`` steps. The last estimate is returned either way.

    Args:
        mean_anomaly (float or numpy.ndarray):
            Mean anomaly in radians
        eccentricity (float or numpy.ndarray):
            Eccentricity in [0, 1)

    Returns:
        float or numpy.ndarray:
            Eccentric anomaly in radians
    """
    M = np.asarray(mean_anomaly, dtype=float)
    e = np.asarray(eccentricity, dtype=float)
    E = np.array(np.broadcast_to(M, np.broadcast(M, e).shape), dtype=float)
    low = E - e
    high = E + e
    step = np.full_like(E, np.inf)
    for _ in range(max_iterations):
        residual = E - e * np.sin(E) - M
        # The residual increases with E
        high = np.where(residual > 0, E, high)
        low = np.where(residual > 0, low, E)
        newton = E - residual / (1 - e * np.cos(E))
        outside = ~np.isfinite(newton) | (newton < low) | (newton > high)
        update = np.where(outside, 0.5 * (low + high), newton)
        step = E - update
        E = update
        if np.all(np.abs(step) < tolerance):
            break
    else:
        logger.debug(
            "Kepler solver stopped after %d iterations, last step %.3g",
            max_iterations,
            np.max(np.abs(step)),
        )
    return E if E.ndim else float(E)


def calculate_true_anomaly(eccentric_anomaly, eccentricity):
    """True anomaly from tan(nu/2) = sqrt((1+e)/(1-e)) tan(E/2)."""
    E = np.asarray(eccentric_anomaly, dtype=float)
    nu = 2 * np.arctan2(
        np.sqrt(1 + eccentricity) * np.sin(E / 2),
        np.sqrt(1 - eccentricity) * np.cos(E / 2),
    )
    return nu if nu.ndim else float(nu)


def calculate_orbital_radius(semi_major_axis, eccentricity, eccentric_anomaly):
    return semi_major_axis * (1 - eccentricity * np.cos(eccentric_anomaly))


def _anomalies(orbit, time, period):
    M = calculate_mean_anomaly(time, period, orbit.mean_anomaly_at_epoch)
    E = solve_kepler_equation(M, orbit.eccentricity)
    nu = calculate_true_anomaly(E, orbit.eccentricity)
    return np.asarray(E), np.asarray(nu)


def calculate_orbital_position(orbit: OrbitalParameters, time, period):
    """
    Position on an orbit

    Args:
        orbit (OrbitalParameters):
            Orbital elements
        time (float or numpy.ndarray):
            Years since epoch
        period (float):
            Orbital period in years

    Returns:
        numpy.ndarray:
            Position in AU, shape ``np.shape(time) + (3,)``
    """
    E, nu = _anomalies(orbit, time, period)
    r = calculate_orbital_radius(orbit.semi_major_axis, orbit.eccentricity, E)
    perifocal = np.stack([r * np.cos(nu), r * np.sin(nu), np.zeros_like(r)], axis=-1)
    return perifocal_to_inertial(
        perifocal,
        orbit.inclination,
        orbit.longitude_of_ascending_node,
        orbit.argument_of_periapsis,
    )


def calculate_orbital_velocity(orbit: OrbitalParameters, time, period):
    """Velocity in AU/yr on an orbit, same shape rules as
    ``calculate_orbital_position``."""
    _, nu = _anomalies(orbit, time, period)
    a, e = orbit.semi_major_axis, orbit.eccentricity
    # Gravitational parameter in AU^3/yr^2 implied by the period
    mu = 4 * np.pi**2 * a**3 / period**2
    scale = np.sqrt(mu / (a * (1 - e**2)))
    perifocal = np.stack(
        [-scale * np.sin(nu), scale * (e + np.cos(nu)), np.zeros_like(nu)], axis=-1
    )
    return perifocal_to_inertial(
        perifocal,
        orbit.inclination,
        orbit.longitude_of_ascending_node,
        orbit.argument_of_periapsis,
    )


def calculate_hill_sphere_radius(semi_major_axis, primary_mass, secondary_mass):
    """r_H = a (m / 3M)^(1/3); both masses in the same unit."""
    return semi_major_axis * (secondary_mass / (3 * primary_mass)) ** (1 / 3)


def check_system_stability(inner_separation, outer_separation, min_ratio=STABILITY_RATIO):
    """True when the outer separation is at least ``min_ratio`` times the
    inner one."""
    if inner_separation <= 0:
        return False
    return outer_separation / inner_separation >= min_ratio


def separation_from_angular_momentum(
    angular_momentum,
    mass1,
    mass2,
    constants: PhysicalConstants = DEFAULT_CONSTANTS,
):
    """
    Circular-orbit separation a = L^2 / (mu^2 G M) carrying the given
    orbital angular momentum

    Args:
        angular_momentum (float):
            Orbital angular momentum in kg m^2/s
        mass1, mass2 (float):
            Component masses in M_sun

    Returns:
        float:
            Separation in AU
    """
    total = (mass1 + mass2) * constants.M_sun
    reduced = mass1 * mass2 / (mass1 + mass2) * constants.M_sun
    return float(angular_momentum**2 / (reduced**2 * constants.G * total) / constants.AU)


def random_orbital_parameters(
    semi_major_axis, eccentricity, rng, max_inclination=np.pi / 6
) -> OrbitalParameters:
    """Orbit with the given shape and random orientation and phase drawn
    from ``rng``."""
    return OrbitalParameters(
        semi_major_axis=float(semi_major_axis),
        eccentricity=float(eccentricity),
        inclination=float(rng.uniform(0, max_inclination)),
        longitude_of_ascending_node=float(rng.uniform(0, 2 * np.pi)),
        argument_of_periapsis=float(rng.uniform(0, 2 * np.pi)),
        mean_anomaly_at_epoch=float(rng.uniform(0, 2 * np.pi)),
    )


class StabilityReport(NamedTuple):
    stable: bool
    reason: str = ""


def unbound_separation(total_mass):
    return UNBOUND_SEPARATION_SCALE * total_mass ** (1 / 3)


def check_binary_stability(
    star1, star2, constants: PhysicalConstants = DEFAULT_CONSTANTS
) -> StabilityReport:
    """
    Check that two stars neither touch nor drift apart

    Args:
        star1, star2 (Star):
            Stars with positions in AU and radii in R_sun

    Returns:
        StabilityReport
    """
    separation = float(
        np.linalg.norm(np.subtract(star2.position, star1.position))
    )
    contact = (star1.radius + star2.radius) * constants.solar_radius_au
    if separation < contact:
        return StabilityReport(
            False,
            f"{star1.name} and {star2.name} too close "
            f"({separation:.4f} AU < {contact:.4f} AU)",
        )
    limit = unbound_separation(star1.mass + star2.mass)
    if separation > limit:
        return StabilityReport(
            False,
            f"{star1.name} and {star2.name} potentially unbound "
            f"({separation:.2f} AU > {limit:.2f} AU)",
        )
    return StabilityReport(True)


def check_hierarchical_stability(
    stars, constants: PhysicalConstants = DEFAULT_CONSTANTS
) -> StabilityReport:
    """
    Check a multiple-star configuration: the closest pair must be a stable
    binary and every other star must sit at least ``STABILITY_RATIO`` inner
    separations from that pair's centre of mass.

    Args:
        stars (sequence of Star):
            Stars with positions in AU

    Returns:
        StabilityReport
    """
    if len(stars) < 2:
        return StabilityReport(True)
    if len(stars) == 2:
        return check_binary_stability(stars[0], stars[1], constants)

    positions = np.array([star.position for star in stars], dtype=float)
    dists = np.linalg.norm(positions[:, None, :] - positions[None, :, :], axis=-1)
    dists[np.diag_indices(len(stars))] = np.inf
    i, j = np.unravel_index(np.argmin(dists), dists.shape)
    inner = check_binary_stability(stars[i], stars[j], constants)
    if not inner.stable:
        return inner

    masses = np.array([stars[i].mass, stars[j].mass])
    com = (positions[[i, j]] * masses[:, None]).sum(axis=0) / masses.sum()
    inner_separation = dists[i, j]
    for k, star in enumerate(stars):
        if k in (i, j):
            continue
        outer_separation = float(np.linalg.norm(positions[k] - com))
        if not check_system_stability(inner_separation, outer_separation):
            return StabilityReport(
                False,
                f"{star.name} too close to inner pair {stars[i].name}/{stars[j].name} "
                f"({outer_separation:.2f} AU < "
                f"{STABILITY_RATIO * inner_separation:.2f} AU)",
            )
    return StabilityReport(True)


def check_planet_orbit_stability(
    distance, star_radius, star_mass, constants: PhysicalConstants = DEFAULT_CONSTANTS
) -> StabilityReport:
    """A planet must orbit beyond two stellar radii and inside the star's
    unbound limit. Radius in R_sun, mass in M_sun, distance in AU."""
    min_distance = 2 * star_radius * constants.solar_radius_au
    if distance < min_distance:
        return StabilityReport(
            False, f"orbit too close to star ({distance:.4f} AU < {min_distance:.4f} AU)"
        )
    limit = unbound_separation(star_mass)
    if distance > limit:
        return StabilityReport(
            False, f"orbit too far from star ({distance:.2f} AU > {limit:.2f} AU)"
        )
    return StabilityReport(True)
