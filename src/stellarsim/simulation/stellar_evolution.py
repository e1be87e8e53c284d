"""Construction and aging of Star records."""

from __future__ import annotations

import dataclasses
import logging
from typing import Optional

import pandas as pd
from tqdm import tqdm

from stellarsim.base.star import Star
from stellarsim.constants import DEFAULT_CONSTANTS, PhysicalConstants
from stellarsim.physics import orbits, stellar, structure
from stellarsim.util.misc import to_tuple

logger = logging.getLogger(__name__)

STAR_NAMES = (
    "Alpha",
    "Beta",
    "Gamma",
    "Delta",
    "Epsilon",
    "Zeta",
    "Eta",
    "Theta",
    "Iota",
    "Kappa",
)


def star_name(index: int) -> str:
    if index < len(STAR_NAMES):
        return STAR_NAMES[index]
    return f"Star {index + 1}"


def create_star(
    mass: float,
    metallicity: float,
    star_id: str,
    name: str,
    constants: PhysicalConstants = DEFAULT_CONSTANTS,
) -> Star:
    """
    A newly formed star of the given mass at age 0

    Args:
        mass (float):
            Mass in M_sun
        metallicity (float):
            Metallicity relative to solar
        star_id (str):
            Unique identifier
        name (str):
            Display name

    Returns:
        Star
    """
    lifetime = stellar.calculate_main_sequence_lifetime(mass)
    phase = stellar.determine_evolution_phase(mass, 0.0, lifetime)
    props = stellar.calculate_phase_properties(mass, 0.0, phase, constants)
    internal = structure.calculate_internal_structure(
        mass,
        props.radius,
        props.luminosity,
        phase,
        0.0,
        metallicity,
        constants=constants,
    )
    return Star(
        id=star_id,
        name=name,
        mass=float(mass),
        radius=props.radius,
        luminosity=props.luminosity,
        temperature=props.temperature,
        age=0.0,
        metallicity=float(metallicity),
        spectral_type=stellar.determine_spectral_type(props.temperature),
        evolution_phase=phase,
        lifetime=lifetime,
        internal_structure=internal,
    )


def star_at_age(
    star: Star,
    age: float,
    previous: Optional[Star] = None,
    constants: PhysicalConstants = DEFAULT_CONSTANTS,
) -> Star:
    """
    Recompute every age-dependent property of a star

    Phase, luminosity, radius, temperature and kinematics depend only on
    ``age``. The core composition is advanced incrementally from
    ``previous`` when given, otherwise it is rebuilt from the absolute age
    with ``structure.calculate_composition_at_age``.

    Args:
        star (Star):
            Star whose fixed properties (mass, metallicity, lifetime, orbit)
            are used
        age (float):
            New age in years
        previous (Star, optional):
            Snapshot to advance the composition from, with ``age`` not
            before ``previous.age``

    Returns:
        Star
    """
    mass = star.mass
    ratio = age / star.lifetime
    phase = stellar.determine_evolution_phase(mass, age, star.lifetime)
    props = stellar.calculate_phase_properties(mass, ratio, phase, constants)

    if previous is not None:
        internal = structure.calculate_internal_structure(
            mass,
            props.radius,
            props.luminosity,
            phase,
            ratio,
            star.metallicity,
            previous=previous.internal_structure,
            delta_time=age - previous.age,
            constants=constants,
        )
    else:
        internal = structure.calculate_internal_structure(
            mass,
            props.radius,
            props.luminosity,
            phase,
            ratio,
            star.metallicity,
            composition=structure.calculate_composition_at_age(
                mass, star.metallicity, age, star.lifetime
            ),
            constants=constants,
        )

    kinematics = {}
    if star.orbit is not None:
        kinematics = {
            "position": to_tuple(
                orbits.calculate_orbital_position(star.orbit, age, star.orbital_period)
            ),
            "velocity": to_tuple(
                orbits.calculate_orbital_velocity(star.orbit, age, star.orbital_period)
            ),
        }

    if phase is not star.evolution_phase:
        logger.info(
            "%s: %s -> %s at %.4g yr",
            star.name,
            star.evolution_phase.value,
            phase.value,
            age,
        )
    return dataclasses.replace(
        star,
        age=float(age),
        radius=props.radius,
        luminosity=props.luminosity,
        temperature=props.temperature,
        spectral_type=stellar.determine_spectral_type(props.temperature),
        evolution_phase=phase,
        internal_structure=internal,
        **kinematics,
    )


def evolve_star(
    star: Star, delta_time: float, constants: PhysicalConstants = DEFAULT_CONSTANTS
) -> Star:
    """Advance a star by ``delta_time`` years."""
    return star_at_age(star, star.age + delta_time, previous=star, constants=constants)


def evolution_track(
    star: Star, ages, constants: PhysicalConstants = DEFAULT_CONSTANTS
) -> pd.DataFrame:
    """
    Properties of a star sampled at each of the given ages

    Args:
        star (Star):
            Star to follow
        ages (array_like):
            Ages in years

    Returns:
        pandas.DataFrame:
            One row per age
    """
    rows = []
    for age in tqdm(ages, desc=f"{star.name} evolution track", delay=0.5):
        aged = star_at_age(star, float(age), constants=constants)
        internal = aged.internal_structure
        rows.append(
            {
                "age": aged.age,
                "evolution_phase": aged.evolution_phase.value,
                "luminosity": aged.luminosity,
                "radius": aged.radius,
                "temperature": aged.temperature,
                "spectral_type": aged.spectral_type.value,
                "core_temperature": internal.core_temperature,
                "core_reaction": internal.core_reaction.value,
                **internal.core_composition.as_dict(),
            }
        )
    return pd.DataFrame(rows)
