"""Diagnostics of a molecular cloud.

Pure functions of the cloud description. Inputs are assumed to have been
validated; no function here raises for out-of-range values.
"""

from __future__ import annotations

import numpy as np

from stellarsim.base.cloud import CloudParameters, DerivedCloudProperties
from stellarsim.constants import DEFAULT_CONSTANTS, PhysicalConstants

# Critical magnetic flux-to-mass ratio, Wb/kg
CRITICAL_FLUX_TO_MASS = 2.5e-21

# Clouds with a virial parameter below this are gravitationally bound
BOUND_VIRIAL_LIMIT = 2.0


def _mass_density(number_density, constants):
    """particles/cm^3 -> kg/m^3"""
    return number_density * 1e6 * constants.mean_particle_mass


def calculate_density(
    mass: float, radius: float, constants: PhysicalConstants = DEFAULT_CONSTANTS
) -> float:
    """Number density (particles/cm^3) of a uniform sphere of mass [M_sun]
    and radius [pc]."""
    mass_kg = mass * constants.M_sun
    radius_m = radius * constants.pc
    volume = 4 / 3 * np.pi * radius_m**3
    number_density = mass_kg / volume / constants.mean_particle_mass
    return number_density / 1e6


def calculate_virial_parameter(
    mass: float,
    radius: float,
    turbulence_velocity: float,
    constants: PhysicalConstants = DEFAULT_CONSTANTS,
) -> float:
    """alpha = 5 sigma^2 R / (G M), sigma in km/s."""
    sigma = turbulence_velocity * 1e3
    return 5 * sigma**2 * radius * constants.pc / (constants.G * mass * constants.M_sun)


def calculate_jeans_mass(
    temperature: float,
    density: float,
    constants: PhysicalConstants = DEFAULT_CONSTANTS,
) -> float:
    """Thermal Jeans mass in M_sun for a temperature [K] and number density
    [particles/cm^3]."""
    rho = _mass_density(density, constants)
    thermal = 5 * constants.k_B * temperature / (constants.G * constants.mean_particle_mass)
    jeans_kg = thermal**1.5 * np.sqrt(3 / (4 * np.pi * rho))
    return jeans_kg / constants.M_sun


def calculate_collapse_timescale(
    density: float, constants: PhysicalConstants = DEFAULT_CONSTANTS
) -> float:
    """Free-fall time sqrt(3 pi / (32 G rho)) in years."""
    rho = _mass_density(density, constants)
    return np.sqrt(3 * np.pi / (32 * constants.G * rho)) / constants.year


def calculate_turbulent_jeans_length(
    turbulence_velocity: float,
    density: float,
    constants: PhysicalConstants = DEFAULT_CONSTANTS,
) -> float:
    """sigma * sqrt(pi / (G rho)) in pc."""
    rho = _mass_density(density, constants)
    sigma = turbulence_velocity * 1e3
    return sigma * np.sqrt(np.pi / (constants.G * rho)) / constants.pc


def calculate_magnetic_flux_to_mass_ratio(
    magnetic_field_strength: float,
    radius: float,
    mass: float,
    constants: PhysicalConstants = DEFAULT_CONSTANTS,
) -> float:
    """B pi R^2 / M normalized by ``CRITICAL_FLUX_TO_MASS``; B in μG."""
    flux = magnetic_field_strength * constants.microgauss * np.pi * (radius * constants.pc) ** 2
    return flux / (mass * constants.M_sun) / CRITICAL_FLUX_TO_MASS


def calculate_derived_properties(
    params: CloudParameters, constants: PhysicalConstants = DEFAULT_CONSTANTS
) -> DerivedCloudProperties:
    """
    All diagnostics of a cloud. Unset optional fields take their defaults.

    Args:
        params (CloudParameters):
            Cloud description
        constants (PhysicalConstants):
            Constant table

    Returns:
        DerivedCloudProperties
    """
    params = params.with_defaults()
    density = calculate_density(params.mass, params.radius, constants)
    alpha = calculate_virial_parameter(
        params.mass, params.radius, params.turbulence_velocity, constants
    )
    return DerivedCloudProperties(
        density=float(density),
        virial_parameter=float(alpha),
        jeans_mass=float(calculate_jeans_mass(params.temperature, density, constants)),
        collapse_timescale=float(calculate_collapse_timescale(density, constants)),
        is_bound=bool(alpha < BOUND_VIRIAL_LIMIT),
        turbulent_jeans_length=float(
            calculate_turbulent_jeans_length(
                params.turbulence_velocity, density, constants
            )
        ),
        magnetic_flux_to_mass_ratio=float(
            calculate_magnetic_flux_to_mass_ratio(
                params.magnetic_field_strength, params.radius, params.mass, constants
            )
        ),
    )
