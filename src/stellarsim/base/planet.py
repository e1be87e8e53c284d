from __future__ import annotations

from enum import Enum

import equinox as eqx


class PlanetComposition(str, Enum):
    ROCKY = "rocky"
    ICE_GIANT = "ice_giant"
    GAS_GIANT = "gas_giant"


class OrbitalParameters(eqx.Module):
    """
    Keplerian elements of an orbit

    Args:
        semi_major_axis (float):
            Semi-major axis in AU
        eccentricity (float):
            Eccentricity in [0, 1)
        inclination (float):
            Inclination in radians
        longitude_of_ascending_node (float):
            Longitude of the ascending node in radians
        argument_of_periapsis (float):
            Argument of periapsis in radians
        mean_anomaly_at_epoch (float):
            Mean anomaly at system age 0 in radians
    """

    semi_major_axis: float
    eccentricity: float
    inclination: float = 0.0
    longitude_of_ascending_node: float = 0.0
    argument_of_periapsis: float = 0.0
    mean_anomaly_at_epoch: float = 0.0


class Planet(eqx.Module):
    """
    A planet orbiting one star. The orbit never changes after formation,
    only ``position`` (AU, system frame, i.e. parent star position plus the
    orbital offset) follows the age.
    """

    id: str
    name: str
    mass: float  # M_earth
    radius: float  # R_earth
    composition: PlanetComposition
    orbit: OrbitalParameters
    orbital_period: float  # yr
    parent_star_id: str
    position: tuple[float, float, float] = (0.0, 0.0, 0.0)

    @property
    def semi_major_axis(self) -> float:
        return self.orbit.semi_major_axis

    @property
    def eccentricity(self) -> float:
        return self.orbit.eccentricity


class ProtoplanetaryDisk(eqx.Module):
    """Disk of gas and dust around a young star."""

    star_id: str
    mass: float  # M_sun
    inner_radius: float  # AU
    outer_radius: float  # AU
    metallicity: float
    snow_line: float  # AU
    magnetic_braking_factor: float = 1.0
