"""Physical constants and parameter tables for stellarsim.

``PhysicalConstants`` is an immutable table built from ``astropy.constants``
and ``astropy.units``. Every physics function takes it as an optional
``constants`` argument so tests can swap in alternative values.
"""

from __future__ import annotations

from types import MappingProxyType

import astropy.constants as const
import astropy.units as u
import equinox as eqx


class PhysicalConstants(eqx.Module):
    """SI constants and unit conversions used by the physics modules."""

    G: float = const.G.si.value  # m^3 kg^-1 s^-2
    k_B: float = const.k_B.si.value  # J/K
    sigma_sb: float = const.sigma_sb.si.value  # W m^-2 K^-4
    m_p: float = const.m_p.si.value  # kg

    M_sun: float = const.M_sun.si.value  # kg
    R_sun: float = const.R_sun.si.value  # m
    L_sun: float = const.L_sun.si.value  # W
    M_earth: float = const.M_earth.si.value  # kg
    R_earth: float = const.R_earth.si.value  # m

    AU: float = u.AU.to(u.m)
    pc: float = u.pc.to(u.m)
    year: float = u.yr.to(u.s)
    microgauss: float = (1 * u.uG).to(u.T).value  # T per μG

    # Mean molecular weight of molecular (mostly H2) gas
    mu_molecular: float = 2.33

    @property
    def solar_radius_au(self) -> float:
        return self.R_sun / self.AU

    @property
    def earth_masses_per_solar_mass(self) -> float:
        return self.M_sun / self.M_earth

    @property
    def mean_particle_mass(self) -> float:
        return self.mu_molecular * self.m_p


DEFAULT_CONSTANTS = PhysicalConstants()

# Stellar mass bounds (M_sun)
MIN_STELLAR_MASS = 0.08
MAX_STELLAR_MASS = 150.0

STAR_FORMATION_EFFICIENCY = 0.3

# Optional cloud fields and their defaults
CLOUD_DEFAULTS = MappingProxyType(
    {
        "temperature": 20.0,  # K
        "radius": 10.0,  # pc
        "turbulence_velocity": 1.0,  # km/s
        "magnetic_field_strength": 10.0,  # μG
    }
)

# Inclusive (low, high) bounds of each cloud field
VALIDATION_RANGES = MappingProxyType(
    {
        "mass": (0.1, 1000.0),
        "metallicity": (1e-4, 3.0),
        "angular_momentum": (0.0, 1e50),
        "temperature": (5.0, 100.0),
        "radius": (0.1, 200.0),
        "turbulence_velocity": (0.1, 10.0),
        "magnetic_field_strength": (1.0, 1000.0),
    }
)
