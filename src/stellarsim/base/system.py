from __future__ import annotations

from enum import Enum
from typing import Optional

import equinox as eqx
import numpy as np
import pandas as pd
import xarray as xr

from stellarsim.base.cloud import CloudParameters, DerivedCloudProperties
from stellarsim.base.planet import Planet
from stellarsim.base.star import Star
from stellarsim.physics import orbits

# Column order of the tabular views. Export consumers read these positionally.
STAR_FIELDS = (
    "id",
    "name",
    "mass",
    "radius",
    "luminosity",
    "temperature",
    "age",
    "metallicity",
    "spectral_type",
    "evolution_phase",
    "lifetime",
    "x",
    "y",
    "z",
)
PLANET_FIELDS = (
    "id",
    "name",
    "mass",
    "radius",
    "composition",
    "semi_major_axis",
    "eccentricity",
    "orbital_period",
    "parent_star_id",
    "x",
    "y",
    "z",
)


class SimulationState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


class StarSystem(eqx.Module):
    """
    A full system: the stars and planets formed from one cloud.

    Args:
        id (str):
            Unique system identifier
        name (str):
            Display name
        stars (tuple of Star):
            Stars, most massive first
        planets (tuple of Planet):
            Planets of every star
        age (float):
            System age in years
        cloud_parameters (CloudParameters):
            The cloud the system formed from
        derived_properties (DerivedCloudProperties):
            Diagnostics computed from ``cloud_parameters``
    """

    id: str
    name: str
    stars: tuple[Star, ...]
    planets: tuple[Planet, ...]
    age: float
    cloud_parameters: CloudParameters
    derived_properties: DerivedCloudProperties

    def __repr__(self):
        return (
            f"{self.name}\tage:{self.age:.4g} yr\t"
            f"Stars:{len(self.stars)}\tPlanets:{len(self.planets)}\n\n"
            f"Stars:\n{self.get_star_df()}"
        )

    def get_star(self, star_id: str) -> Star:
        for star in self.stars:
            if star.id == star_id:
                return star
        raise KeyError(star_id)

    def planets_of(self, star_id: str) -> tuple[Planet, ...]:
        return tuple(p for p in self.planets if p.parent_star_id == star_id)

    def get_star_df(self) -> pd.DataFrame:
        """
        One row per star with the columns of ``STAR_FIELDS``
        """
        rows = [_row(star, STAR_FIELDS) for star in self.stars]
        return pd.DataFrame(rows, columns=list(STAR_FIELDS))

    def get_planet_df(self) -> pd.DataFrame:
        """
        One row per planet with the columns of ``PLANET_FIELDS``
        """
        rows = [_row(planet, PLANET_FIELDS) for planet in self.planets]
        return pd.DataFrame(rows, columns=list(PLANET_FIELDS))

    def planet_trajectories(self, ages) -> xr.Dataset:
        """
        Planet positions (AU, system frame) at each of the given ages

        Args:
            ages (array_like):
                System ages in years

        Returns:
            xarray.Dataset:
                Variables x, y, z with dimensions (age, planet)
        """
        ages = np.atleast_1d(np.asarray(ages, dtype=float))
        n_planets = len(self.planets)
        positions = np.zeros((len(ages), n_planets, 3))
        for i, planet in enumerate(self.planets):
            star = self.get_star(planet.parent_star_id)
            positions[:, i, :] = orbits.calculate_orbital_position(
                planet.orbit, ages, planet.orbital_period
            ) + star_positions(star, ages)

        coords = {"age": ages, "planet": [planet.id for planet in self.planets]}
        ds = xr.Dataset(
            {
                coord: (["age", "planet"], positions[:, :, j])
                for j, coord in enumerate(["x", "y", "z"])
            },
            coords=coords,
        )
        for var in ["x", "y", "z"]:
            ds[var].attrs["unit"] = "AU"
        ds["age"].attrs["unit"] = "yr"
        return ds


class SimulationStatus(eqx.Module):
    """Read-only view of the controller."""

    state: SimulationState
    current_time: float
    time_scale: float
    system: Optional[StarSystem]


def star_positions(star: Star, ages) -> np.ndarray:
    """Barycentric positions of a star at the given ages, shape (n, 3)."""
    ages = np.atleast_1d(np.asarray(ages, dtype=float))
    if star.orbit is None:
        return np.tile(np.asarray(star.position, dtype=float), (len(ages), 1))
    return orbits.calculate_orbital_position(star.orbit, ages, star.orbital_period)


def _row(body, fields):
    row = []
    for field in fields:
        if field in ("x", "y", "z"):
            value = body.position["xyz".index(field)]
        else:
            value = getattr(body, field)
        if isinstance(value, Enum):
            value = value.value
        row.append(value)
    return row
