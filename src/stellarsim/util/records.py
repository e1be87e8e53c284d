"""Plain-data records of simulation state.

The dictionaries produced here hold only str, float, bool, list and dict
values so any serializer can store them. Loading backfills optional cloud
fields with ``CLOUD_DEFAULTS`` and recomputes a missing derived-properties
block; values present in the record are kept as they are.
"""

from __future__ import annotations

import dataclasses
import logging
from enum import Enum

import numpy as np

from stellarsim.base.cloud import CloudParameters, DerivedCloudProperties
from stellarsim.base.planet import OrbitalParameters, Planet, PlanetComposition
from stellarsim.base.star import (
    CoreComposition,
    EvolutionPhase,
    InternalStructure,
    LayerStructure,
    NuclearReaction,
    ShellBurning,
    SpectralType,
    Star,
)
from stellarsim.base.system import StarSystem
from stellarsim.constants import CLOUD_DEFAULTS, DEFAULT_CONSTANTS
from stellarsim.exceptions import RecordError
from stellarsim.physics.cloud import calculate_derived_properties

logger = logging.getLogger(__name__)

RECORD_VERSION = 1


def to_record(value):
    """Recursively convert records, enums and tuples to plain data."""
    if isinstance(value, Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            field.name: to_record(getattr(value, field.name))
            for field in dataclasses.fields(value)
        }
    if isinstance(value, (tuple, list)):
        return [to_record(item) for item in value]
    if isinstance(value, np.generic):
        return value.item()
    return value


def cloud_parameters_from_dict(data) -> CloudParameters:
    """Cloud parameters with absent or null optional fields set to their
    defaults. Raises RecordError if mass, metallicity or angular momentum is
    absent or null."""
    fields = {
        name: data.get(name)
        for name in ("mass", "metallicity", "angular_momentum", *CLOUD_DEFAULTS)
    }
    for name in ("mass", "metallicity", "angular_momentum"):
        if fields[name] is None:
            raise RecordError(f"Cloud record is missing required field {name!r}")
    for name, default in CLOUD_DEFAULTS.items():
        if fields[name] is None:
            fields[name] = default
    return CloudParameters(**fields)


def _orbit(data):
    if data is None:
        return None
    return OrbitalParameters(**data)


def _internal_structure(data) -> InternalStructure:
    return InternalStructure(
        core_composition=CoreComposition(**data["core_composition"]),
        core_temperature=data["core_temperature"],
        core_pressure=data["core_pressure"],
        core_reaction=NuclearReaction(data["core_reaction"]),
        shell_reactions=tuple(NuclearReaction(r) for r in data["shell_reactions"]),
        energy_production_rate=data["energy_production_rate"],
        shell_burning=ShellBurning(**data["shell_burning"]),
        layer_structure=LayerStructure(**data["layer_structure"]),
    )


def _star(data) -> Star:
    return Star(
        id=data["id"],
        name=data["name"],
        mass=data["mass"],
        radius=data["radius"],
        luminosity=data["luminosity"],
        temperature=data["temperature"],
        age=data["age"],
        metallicity=data["metallicity"],
        spectral_type=SpectralType(data["spectral_type"]),
        evolution_phase=EvolutionPhase(data["evolution_phase"]),
        lifetime=data["lifetime"],
        internal_structure=_internal_structure(data["internal_structure"]),
        position=tuple(data.get("position", (0.0, 0.0, 0.0))),
        velocity=tuple(data.get("velocity", (0.0, 0.0, 0.0))),
        orbit=_orbit(data.get("orbit")),
        orbital_period=data.get("orbital_period", 0.0),
    )


def _planet(data) -> Planet:
    return Planet(
        id=data["id"],
        name=data["name"],
        mass=data["mass"],
        radius=data["radius"],
        composition=PlanetComposition(data["composition"]),
        orbit=_orbit(data["orbit"]),
        orbital_period=data["orbital_period"],
        parent_star_id=data["parent_star_id"],
        position=tuple(data.get("position", (0.0, 0.0, 0.0))),
    )


def system_to_dict(system: StarSystem) -> dict:
    return to_record(system)


def system_from_dict(data, constants=DEFAULT_CONSTANTS) -> StarSystem:
    """
    Rebuild a StarSystem from ``system_to_dict`` output

    Args:
        data (dict):
            Plain record
        constants (PhysicalConstants):
            Used to recompute a missing derived-properties block

    Returns:
        StarSystem

    Raises:
        RecordError:
            If a required field is missing or holds an invalid value
    """
    try:
        params = cloud_parameters_from_dict(data["cloud_parameters"])
        derived = data.get("derived_properties")
        if derived is None:
            logger.info("Record has no derived cloud properties, recomputing them")
            derived = calculate_derived_properties(params, constants)
        else:
            derived = DerivedCloudProperties(**derived)
        return StarSystem(
            id=data["id"],
            name=data["name"],
            stars=tuple(_star(star) for star in data["stars"]),
            planets=tuple(_planet(planet) for planet in data.get("planets", ())),
            age=data["age"],
            cloud_parameters=params,
            derived_properties=derived,
        )
    except RecordError:
        raise
    except (KeyError, TypeError, ValueError) as err:
        raise RecordError(f"Malformed star system record: {err!r}") from err


def saved_simulation_to_dict(system: StarSystem, time_scale: float) -> dict:
    return {
        "version": RECORD_VERSION,
        "current_time": system.age,
        "time_scale": time_scale,
        "system": system_to_dict(system),
    }


def saved_simulation_from_dict(data, constants=DEFAULT_CONSTANTS):
    """
    Inverse of ``saved_simulation_to_dict``

    Returns:
        tuple:
            (StarSystem, time scale)
    """
    try:
        version = data.get("version", RECORD_VERSION)
        if version != RECORD_VERSION:
            raise RecordError(f"Unsupported record version {version!r}")
        system = system_from_dict(data["system"], constants)
        return system, float(data.get("time_scale", 1.0))
    except (KeyError, AttributeError, TypeError) as err:
        raise RecordError(f"Malformed saved simulation: {err!r}") from err
