from __future__ import annotations

import dataclasses
from typing import Optional

import equinox as eqx

from stellarsim.constants import CLOUD_DEFAULTS


class CloudParameters(eqx.Module):
    """
    Description of the molecular cloud a system forms from

    Args:
        mass (float):
            Total cloud mass in solar masses
        metallicity (float):
            Metallicity relative to solar
        angular_momentum (float):
            Total angular momentum in kg m^2/s
        temperature (float or None):
            Gas temperature in K, defaults to 20 K
        radius (float or None):
            Cloud radius in pc, defaults to 10 pc
        turbulence_velocity (float or None):
            Velocity dispersion in km/s, defaults to 1 km/s
        magnetic_field_strength (float or None):
            Field strength in μG, defaults to 10 μG
    """

    mass: float
    metallicity: float
    angular_momentum: float
    temperature: Optional[float] = None
    radius: Optional[float] = None
    turbulence_velocity: Optional[float] = None
    magnetic_field_strength: Optional[float] = None

    def with_defaults(self) -> CloudParameters:
        """Copy with every unset optional field filled from ``CLOUD_DEFAULTS``."""
        missing = {
            name: value
            for name, value in CLOUD_DEFAULTS.items()
            if getattr(self, name) is None
        }
        if not missing:
            return self
        return dataclasses.replace(self, **missing)


class DerivedCloudProperties(eqx.Module):
    """
    Physical diagnostics of a cloud

    Args:
        density (float):
            Number density in particles/cm^3
        virial_parameter (float):
            alpha = 5 sigma^2 R / (G M)
        jeans_mass (float):
            Thermal Jeans mass in solar masses
        collapse_timescale (float):
            Free-fall time in years
        is_bound (bool):
            True when the virial parameter is below 2
        turbulent_jeans_length (float):
            Turbulent Jeans length in pc
        magnetic_flux_to_mass_ratio (float):
            Flux-to-mass ratio normalized to the critical value
    """

    density: float
    virial_parameter: float
    jeans_mass: float
    collapse_timescale: float
    is_bound: bool
    turbulent_jeans_length: float
    magnetic_flux_to_mass_ratio: float
