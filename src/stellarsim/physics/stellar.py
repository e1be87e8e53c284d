"""Stellar physics: main-sequence scaling relations and phase evolution.

Evolution is a pure function of (mass, age). The phase reached at a given
age is read from per-mass-band tracks of age-ratio thresholds, and each
phase rescales the main-sequence baseline through ``PHASE_PROFILES``.
"""

from __future__ import annotations

from typing import Callable, NamedTuple

import numpy as np

from stellarsim.base.star import EvolutionPhase, SpectralType
from stellarsim.constants import DEFAULT_CONSTANTS, PhysicalConstants

# (upper mass bound in M_sun, exponent) of L = M^k
LUMINOSITY_EXPONENTS = (
    (0.43, 2.3),
    (2.0, 4.0),
    (55.0, 3.5),
    (np.inf, 1.0),
)

MAIN_SEQUENCE_LIFETIME_SUN = 1e10  # yr
LIFETIME_EXPONENT = -2.5

# Lower temperature bound [K] of each spectral class, hottest first
SPECTRAL_TYPE_TEMPERATURES = (
    (30000.0, SpectralType.O),
    (10000.0, SpectralType.B),
    (7500.0, SpectralType.A),
    (6000.0, SpectralType.F),
    (5200.0, SpectralType.G),
    (3700.0, SpectralType.K),
    (0.0, SpectralType.M),
)

# Initial-mass limits [M_sun] of the remnant types
WHITE_DWARF_MASS_LIMIT = 8.0
NEUTRON_STAR_MASS_LIMIT = 25.0

P = EvolutionPhase

# For each mass band, (upper age ratio, phase) in order. Ages beyond the last
# threshold of a band end in the remnant chosen by ``determine_final_state``.
PHASE_TRACKS = (
    (0.5, ((0.01, P.PROTOSTAR), (1.0, P.MAIN_SEQUENCE))),
    (
        WHITE_DWARF_MASS_LIMIT,
        (
            (0.01, P.PROTOSTAR),
            (0.9, P.MAIN_SEQUENCE),
            (0.95, P.RED_GIANT),
            (0.98, P.HORIZONTAL_BRANCH),
            (1.0, P.ASYMPTOTIC_GIANT),
            (1.01, P.PLANETARY_NEBULA),
        ),
    ),
    (np.inf, ((0.01, P.PROTOSTAR), (0.9, P.MAIN_SEQUENCE), (0.95, P.RED_GIANT))),
)


class StellarProperties(NamedTuple):
    luminosity: float  # L_sun
    radius: float  # R_sun
    temperature: float  # K


class PhaseProfile(NamedTuple):
    """Maps the main-sequence baseline, the mass and the age ratio to the
    value of one property in a phase."""

    luminosity: Callable[[StellarProperties, float, float], float]
    radius: Callable[[StellarProperties, float, float], float]
    temperature: Callable[[StellarProperties, float, float], float]


def _ms_growth(age_ratio):
    # Main-sequence brightening
    return 1 + 0.3 * age_ratio


def _giant_luminosity(base, mass, age_ratio):
    return base.luminosity * (100 + 50 * mass)


def _giant_radius(base, mass, age_ratio):
    return base.radius * (100 if mass < 2 else 1000)


PHASE_PROFILES = {
    P.PROTOSTAR: PhaseProfile(
        luminosity=lambda base, mass, r: base.luminosity * 0.1,
        radius=lambda base, mass, r: base.radius * 2,
        temperature=lambda base, mass, r: base.temperature * 0.7,
    ),
    P.MAIN_SEQUENCE: PhaseProfile(
        luminosity=lambda base, mass, r: base.luminosity * _ms_growth(r),
        radius=lambda base, mass, r: base.radius * _ms_growth(r) ** 0.5,
        temperature=lambda base, mass, r: base.temperature * _ms_growth(r) ** 0.25,
    ),
    P.RED_GIANT: PhaseProfile(
        luminosity=_giant_luminosity,
        radius=_giant_radius,
        temperature=lambda base, mass, r: 3500.0,
    ),
    P.HORIZONTAL_BRANCH: PhaseProfile(
        luminosity=lambda base, mass, r: base.luminosity * 50,
        radius=lambda base, mass, r: base.radius * 10,
        temperature=lambda base, mass, r: 5000.0,
    ),
    P.ASYMPTOTIC_GIANT: PhaseProfile(
        luminosity=_giant_luminosity,
        radius=_giant_radius,
        temperature=lambda base, mass, r: 3500.0,
    ),
    P.PLANETARY_NEBULA: PhaseProfile(
        luminosity=lambda base, mass, r: base.luminosity * 100,
        radius=lambda base, mass, r: base.radius * 0.1,
        temperature=lambda base, mass, r: 1e5,
    ),
    P.WHITE_DWARF: PhaseProfile(
        luminosity=lambda base, mass, r: base.luminosity * 0.001,
        radius=lambda base, mass, r: 0.01,
        # Cooling track, floored so very old dwarfs keep a finite temperature
        temperature=lambda base, mass, r: max(10000 - 5000 * r, 3000.0),
    ),
    P.NEUTRON_STAR: PhaseProfile(
        luminosity=lambda base, mass, r: base.luminosity * 1e-4,
        radius=lambda base, mass, r: 1e-5,
        temperature=lambda base, mass, r: 1e6,
    ),
    P.BLACK_HOLE: PhaseProfile(
        luminosity=lambda base, mass, r: 0.0,
        radius=lambda base, mass, r: 1e-5,
        temperature=lambda base, mass, r: 0.0,
    ),
}


def calculate_luminosity(mass: float) -> float:
    """Main-sequence luminosity [L_sun] from the piecewise mass-luminosity
    relation."""
    for upper, exponent in LUMINOSITY_EXPONENTS:
        if mass < upper:
            return float(mass**exponent)
    raise ValueError(f"Mass {mass} outside the mass-luminosity relation")


def calculate_radius(mass: float) -> float:
    """Main-sequence radius [R_sun]."""
    return float(mass**0.8 if mass < 1 else mass**0.57)


def calculate_main_sequence_lifetime(mass: float) -> float:
    """Main-sequence lifetime [yr], 1e10 yr for the Sun."""
    return float(MAIN_SEQUENCE_LIFETIME_SUN * mass**LIFETIME_EXPONENT)


def calculate_temperature(
    luminosity: float, radius: float, constants: PhysicalConstants = DEFAULT_CONSTANTS
) -> float:
    """Effective temperature [K] from L = 4 pi R^2 sigma T^4."""
    if luminosity <= 0 or radius <= 0:
        return 0.0
    lum = luminosity * constants.L_sun
    rad = radius * constants.R_sun
    return float((lum / (4 * np.pi * rad**2 * constants.sigma_sb)) ** 0.25)


def determine_spectral_type(temperature: float) -> SpectralType:
    for lower, spectral_type in SPECTRAL_TYPE_TEMPERATURES:
        if temperature >= lower:
            return spectral_type
    return SpectralType.M


def calculate_initial_stellar_properties(
    mass: float, constants: PhysicalConstants = DEFAULT_CONSTANTS
) -> StellarProperties:
    """Zero-age main-sequence luminosity, radius and temperature."""
    luminosity = calculate_luminosity(mass)
    radius = calculate_radius(mass)
    return StellarProperties(
        luminosity, radius, calculate_temperature(luminosity, radius, constants)
    )


def determine_final_state(mass: float) -> EvolutionPhase:
    """Remnant left by a star of the given initial mass."""
    if mass < WHITE_DWARF_MASS_LIMIT:
        return P.WHITE_DWARF
    if mass < NEUTRON_STAR_MASS_LIMIT:
        return P.NEUTRON_STAR
    return P.BLACK_HOLE


def determine_evolution_phase(mass: float, age: float, lifetime: float) -> EvolutionPhase:
    """
    Phase of a star of the given mass at an age

    Args:
        mass (float):
            Initial mass in M_sun
        age (float):
            Age in years
        lifetime (float):
            Main-sequence lifetime in years

    Returns:
        EvolutionPhase
    """
    age_ratio = age / lifetime
    for upper_mass, track in PHASE_TRACKS:
        if mass < upper_mass:
            for upper_ratio, phase in track:
                if age_ratio < upper_ratio:
                    return phase
            break
    return determine_final_state(mass)


def calculate_phase_properties(
    mass: float,
    age_ratio: float,
    phase: EvolutionPhase,
    constants: PhysicalConstants = DEFAULT_CONSTANTS,
) -> StellarProperties:
    """
    Luminosity, radius and temperature of a star in a phase

    Args:
        mass (float):
            Initial mass in M_sun
        age_ratio (float):
            Age divided by the main-sequence lifetime
        phase (EvolutionPhase):
            Current phase

    Returns:
        StellarProperties
    """
    base = calculate_initial_stellar_properties(mass, constants)
    profile = PHASE_PROFILES[phase]
    return StellarProperties(
        luminosity=float(profile.luminosity(base, mass, age_ratio)),
        radius=float(profile.radius(base, mass, age_ratio)),
        temperature=float(profile.temperature(base, mass, age_ratio)),
    )


def phase_segments(mass: float, lifetime: float):
    """
    Age intervals a star of the given mass spends in each phase

    Args:
        mass (float):
            Initial mass in M_sun
        lifetime (float):
            Main-sequence lifetime in years

    Returns:
        list of tuple:
            (start age, end age, phase) in order; the remnant segment ends
            at infinity
    """
    segments = []
    start = 0.0
    for upper_mass, track in PHASE_TRACKS:
        if mass < upper_mass:
            for upper_ratio, phase in track:
                end = upper_ratio * lifetime
                segments.append((start, end, phase))
                start = end
            break
    segments.append((start, np.inf, determine_final_state(mass)))
    return segments
