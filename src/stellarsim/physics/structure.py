"""Internal structure of stars.

Core conditions, burning shells and layer boundaries are phase lookups.
Core composition is the one piece of state that evolves incrementally: it
is advanced from a previous snapshot through the reaction network in
``REACTION_CHANNELS``.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

import numpy as np

from stellarsim.base.star import (
    CoreComposition,
    EvolutionPhase,
    InternalStructure,
    LayerStructure,
    NuclearReaction,
    ShellBurning,
)
from stellarsim.constants import DEFAULT_CONSTANTS, PhysicalConstants
from stellarsim.physics import stellar

P = EvolutionPhase
NR = NuclearReaction

PRIMORDIAL_HELIUM = 0.25
SOLAR_METAL_FRACTION = 0.02
# Split of the metal fraction between the tracked heavy elements
METAL_SPLIT = {
    "carbon": 0.3,
    "oxygen": 0.5,
    "neon": 0.1,
    "magnesium": 0.05,
    "silicon": 0.04,
    "iron": 0.01,
}

# Ignition temperatures, K
T_PP = 4e6
T_CNO = 1.5e7
T_HELIUM = 1e8
T_CARBON = 6e8
T_NEON = 1.2e9
T_OXYGEN = 1.5e9
T_SILICON = 2.7e9

CNO_MASS_LIMIT = 1.5  # M_sun
MASSIVE_STAR_LIMIT = stellar.WHITE_DWARF_MASS_LIMIT

# Core burn rate per unit stellar mass, fraction per year
BURN_RATE = 1e-10
SHELL_RATE_FRACTION = 0.1


class ReactionChannel(NamedTuple):
    """Stoichiometry of one reaction.

    ``reactants`` pairs an element with the multiple of the step's burn
    fraction it can lose; ``products`` pairs an element with the fraction of
    the total consumed mass it receives.
    """

    reactants: tuple
    products: tuple


REACTION_CHANNELS = {
    NR.PP_CHAIN: ReactionChannel((("hydrogen", 4.0),), (("helium", 0.99),)),
    NR.CNO_CYCLE: ReactionChannel((("hydrogen", 4.0),), (("helium", 0.99),)),
    NR.TRIPLE_ALPHA: ReactionChannel((("helium", 3.0),), (("carbon", 0.95),)),
    NR.HELIUM_CARBON: ReactionChannel(
        (("helium", 1.0), ("carbon", 0.5)), (("oxygen", 0.9),)
    ),
    NR.CARBON_BURNING: ReactionChannel(
        (("carbon", 2.0),), (("neon", 0.5), ("magnesium", 0.4))
    ),
    NR.NEON_BURNING: ReactionChannel(
        (("neon", 2.0),), (("oxygen", 0.5), ("magnesium", 0.4))
    ),
    NR.OXYGEN_BURNING: ReactionChannel((("oxygen", 2.0),), (("silicon", 0.9),)),
    NR.SILICON_BURNING: ReactionChannel((("silicon", 2.0),), (("iron", 0.9),)),
}


class ReactionGate(NamedTuple):
    """A reaction with the conditions under which it ignites."""

    reaction: NuclearReaction
    min_temperature: float
    fuel: tuple  # (element, minimum fraction) pairs, all exceeded
    min_mass: float = 0.0  # exclusive


# Candidate core reactions per phase, first match wins. Phases not listed
# have an inert core.
CORE_REACTIONS = {
    P.MAIN_SEQUENCE: (
        ReactionGate(NR.CNO_CYCLE, T_CNO, (("hydrogen", 0.01),), CNO_MASS_LIMIT),
        ReactionGate(NR.PP_CHAIN, T_PP, (("hydrogen", 0.01),)),
    ),
    P.RED_GIANT: (
        ReactionGate(NR.SILICON_BURNING, T_SILICON, (("silicon", 0.01),), MASSIVE_STAR_LIMIT),
        ReactionGate(NR.OXYGEN_BURNING, T_OXYGEN, (("oxygen", 0.01),), MASSIVE_STAR_LIMIT),
        ReactionGate(NR.NEON_BURNING, T_NEON, (("neon", 0.01),), MASSIVE_STAR_LIMIT),
        ReactionGate(NR.CARBON_BURNING, T_CARBON, (("carbon", 0.01),), MASSIVE_STAR_LIMIT),
        ReactionGate(NR.TRIPLE_ALPHA, T_HELIUM, (("helium", 0.1),)),
    ),
    P.HORIZONTAL_BRANCH: (
        ReactionGate(NR.HELIUM_CARBON, T_HELIUM, (("helium", 0.01), ("carbon", 0.01))),
        ReactionGate(NR.TRIPLE_ALPHA, 0.0, (("helium", 0.01),)),
    ),
    P.ASYMPTOTIC_GIANT: (
        ReactionGate(NR.CARBON_BURNING, T_CARBON, (("carbon", 0.01),), MASSIVE_STAR_LIMIT),
    ),
}

ENERGY_FRACTIONS = {
    NR.PP_CHAIN: 0.99,
    NR.CNO_CYCLE: 0.99,
    NR.TRIPLE_ALPHA: 0.8,
    NR.HELIUM_CARBON: 0.8,
    NR.CARBON_BURNING: 0.5,
    NR.NEON_BURNING: 0.5,
    NR.OXYGEN_BURNING: 0.5,
    NR.SILICON_BURNING: 0.5,
    NR.NONE: 0.0,
}


def _base_core_temperature(mass):
    return 1.5e7 * np.sqrt(mass)


def _giant_core_temperature(mass, age_ratio):
    if mass >= MASSIVE_STAR_LIMIT:
        # Supergiant cores contract through each advanced burning stage
        # across the red giant interval, from helium to silicon ignition.
        progress = np.clip((age_ratio - 0.9) / 0.05, 0.0, 1.0)
        return T_HELIUM * (30.0**progress)
    return _base_core_temperature(mass) * (2 + 3 * age_ratio)


CORE_TEMPERATURES = {
    P.PROTOSTAR: lambda m, r: _base_core_temperature(m) * (0.5 + 0.5 * r / 0.01),
    P.MAIN_SEQUENCE: lambda m, r: _base_core_temperature(m) * (1 + 0.2 * r),
    P.RED_GIANT: _giant_core_temperature,
    P.ASYMPTOTIC_GIANT: lambda m, r: _base_core_temperature(m) * (2 + 3 * r),
    P.HORIZONTAL_BRANCH: lambda m, r: _base_core_temperature(m) * 5,
    P.PLANETARY_NEBULA: lambda m, r: _base_core_temperature(m) * 10,
    P.WHITE_DWARF: lambda m, r: 1e7 * np.exp(-r),
    P.NEUTRON_STAR: lambda m, r: 1e9,
    P.BLACK_HOLE: lambda m, r: 0.0,
}

# Multiplier on the virial pressure estimate G M^2 / R^4
PRESSURE_FACTORS = {
    P.PROTOSTAR: 0.5,
    P.MAIN_SEQUENCE: 1.0,
    P.RED_GIANT: 100.0,
    P.ASYMPTOTIC_GIANT: 100.0,
    P.HORIZONTAL_BRANCH: 50.0,
    P.WHITE_DWARF: 1e6,
    P.NEUTRON_STAR: 1e12,
}

SHELLS = {
    P.RED_GIANT: lambda m: ShellBurning(hydrogen_shell=True),
    P.HORIZONTAL_BRANCH: lambda m: ShellBurning(hydrogen_shell=True),
    P.ASYMPTOTIC_GIANT: lambda m: ShellBurning(
        hydrogen_shell=True, helium_shell=True, carbon_shell=m > MASSIVE_STAR_LIMIT
    ),
}


def _main_sequence_layers(mass, age_ratio):
    if mass < 0.5:
        # Fully convective
        return LayerStructure(0.2, 0.2, 1.0)
    if mass < CNO_MASS_LIMIT:
        return LayerStructure(0.25, 0.7, 1.0)
    # Convective core inside a radiative envelope
    return LayerStructure(0.3, 1.0, 0.3)


def _giant_layers(mass, age_ratio):
    return LayerStructure(0.01 + 0.02 * age_ratio, 0.1, 1.0)


LAYERS = {
    P.PROTOSTAR: lambda m, r: LayerStructure(0.1, 0.3, 1.0),
    P.MAIN_SEQUENCE: _main_sequence_layers,
    P.RED_GIANT: _giant_layers,
    P.ASYMPTOTIC_GIANT: _giant_layers,
    P.HORIZONTAL_BRANCH: lambda m, r: LayerStructure(0.15, 0.6, 1.0),
    P.WHITE_DWARF: lambda m, r: LayerStructure(0.99, 1.0, 1.0),
}
DEFAULT_LAYERS = LayerStructure(0.25, 0.7, 1.0)


def calculate_initial_core_composition(metallicity: float) -> CoreComposition:
    """Primordial helium, solar-scaled metals and hydrogen for the rest."""
    metals = SOLAR_METAL_FRACTION * metallicity
    hydrogen = max(0.0, 1.0 - PRIMORDIAL_HELIUM - metals)
    return CoreComposition(
        hydrogen=hydrogen,
        helium=PRIMORDIAL_HELIUM,
        **{element: metals * share for element, share in METAL_SPLIT.items()},
    )


def calculate_core_temperature(mass: float, phase: EvolutionPhase, age_ratio: float) -> float:
    return float(CORE_TEMPERATURES[phase](mass, age_ratio))


def calculate_core_pressure(
    mass: float,
    radius: float,
    phase: EvolutionPhase,
    constants: PhysicalConstants = DEFAULT_CONSTANTS,
) -> float:
    """Central pressure [Pa] from the virial estimate G M^2 / R^4 scaled by
    phase. Mass in M_sun, radius in R_sun."""
    mass_kg = mass * constants.M_sun
    radius_m = radius * constants.R_sun
    base = constants.G * mass_kg**2 / radius_m**4
    return float(base * PRESSURE_FACTORS.get(phase, 1.0))


def determine_active_reaction(
    core_temperature: float,
    composition: CoreComposition,
    phase: EvolutionPhase,
    mass: float,
) -> NuclearReaction:
    """
    Core reaction burning under the given conditions

    Args:
        core_temperature (float):
            Core temperature in K
        composition (CoreComposition):
            Core mass fractions
        phase (EvolutionPhase):
            Current phase
        mass (float):
            Stellar mass in M_sun

    Returns:
        NuclearReaction:
            ``NuclearReaction.NONE`` for an inert core
    """
    for gate in CORE_REACTIONS.get(phase, ()):
        if core_temperature < gate.min_temperature or mass <= gate.min_mass:
            continue
        if all(getattr(composition, element) > limit for element, limit in gate.fuel):
            return gate.reaction
    return NR.NONE


def determine_shell_burning(phase: EvolutionPhase, mass: float) -> ShellBurning:
    if phase in SHELLS:
        return SHELLS[phase](mass)
    return ShellBurning()


def shell_reactions(shell_burning: ShellBurning, mass: float) -> tuple:
    """Reactions of the burning shells, innermost shell last."""
    reactions = []
    if shell_burning.hydrogen_shell:
        reactions.append(NR.CNO_CYCLE if mass > CNO_MASS_LIMIT else NR.PP_CHAIN)
    if shell_burning.helium_shell:
        reactions.append(NR.TRIPLE_ALPHA)
    if shell_burning.carbon_shell:
        reactions.append(NR.CARBON_BURNING)
    return tuple(reactions)


def calculate_layer_structure(
    mass: float, phase: EvolutionPhase, age_ratio: float
) -> LayerStructure:
    if phase in LAYERS:
        return LAYERS[phase](mass, age_ratio)
    return DEFAULT_LAYERS


def calculate_energy_production_rate(reaction: NuclearReaction, luminosity: float) -> float:
    """Share of the luminosity [L_sun] supplied by the core reaction."""
    return luminosity * ENERGY_FRACTIONS[reaction]


def _burn(fractions, channel, burn_fraction):
    consumed = 0.0
    for element, multiple in channel.reactants:
        burned = min(fractions[element], burn_fraction * multiple)
        fractions[element] -= burned
        consumed += burned
    for element, fraction in channel.products:
        fractions[element] += consumed * fraction


def evolve_core_composition(
    composition: CoreComposition,
    reaction: NuclearReaction,
    shell_burning: ShellBurning,
    delta_time: float,
    mass: float,
) -> CoreComposition:
    """
    Advance core composition by one step

    The core reaction burns ``BURN_RATE * mass * delta_time`` times the
    reactant stoichiometry, capped by the fuel present; burning shells run at
    ``SHELL_RATE_FRACTION`` of that rate. Fractions are renormalized to 1
    afterwards.

    Args:
        composition (CoreComposition):
            Composition at the start of the step
        reaction (NuclearReaction):
            Core reaction during the step
        shell_burning (ShellBurning):
            Burning shells during the step
        delta_time (float):
            Step length in years
        mass (float):
            Stellar mass in M_sun

    Returns:
        CoreComposition
    """
    if delta_time <= 0:
        return composition
    fractions = composition.as_dict()
    burn_fraction = BURN_RATE * mass * delta_time

    if reaction in REACTION_CHANNELS:
        _burn(fractions, REACTION_CHANNELS[reaction], burn_fraction)
    for shell_reaction in shell_reactions(shell_burning, mass):
        _burn(
            fractions,
            REACTION_CHANNELS[shell_reaction],
            burn_fraction * SHELL_RATE_FRACTION,
        )

    total = sum(fractions.values())
    if total > 0:
        fractions = {element: value / total for element, value in fractions.items()}
    return CoreComposition(**fractions)


def calculate_composition_at_age(
    mass: float, metallicity: float, age: float, lifetime: float
) -> CoreComposition:
    """
    Core composition reached at an absolute age without a prior snapshot

    The composition is advanced in one step per phase interval up to
    ``age``, each step using the reaction ignited at the end of the
    interval. The result depends only on (mass, metallicity, age).
    """
    composition = calculate_initial_core_composition(metallicity)
    for start, end, phase in stellar.phase_segments(mass, lifetime):
        if start >= age:
            break
        stop = min(end, age)
        ratio = stop / lifetime
        reaction = determine_active_reaction(
            calculate_core_temperature(mass, phase, ratio), composition, phase, mass
        )
        composition = evolve_core_composition(
            composition,
            reaction,
            determine_shell_burning(phase, mass),
            stop - start,
            mass,
        )
    return composition


def calculate_internal_structure(
    mass: float,
    radius: float,
    luminosity: float,
    phase: EvolutionPhase,
    age_ratio: float,
    metallicity: float,
    previous: Optional[InternalStructure] = None,
    delta_time: Optional[float] = None,
    composition: Optional[CoreComposition] = None,
    constants: PhysicalConstants = DEFAULT_CONSTANTS,
) -> InternalStructure:
    """
    Interior of a star in its current state

    The core composition is, in order of precedence: ``composition`` when
    given, ``previous`` advanced by ``delta_time`` when both are given, or
    the initial composition for ``metallicity``.

    Args:
        mass (float):
            Stellar mass in M_sun
        radius (float):
            Current radius in R_sun
        luminosity (float):
            Current luminosity in L_sun
        phase (EvolutionPhase):
            Current phase
        age_ratio (float):
            Age over main-sequence lifetime
        metallicity (float):
            Metallicity relative to solar
        previous (InternalStructure):
            Structure at the start of the step
        delta_time (float):
            Step length in years
        composition (CoreComposition):
            Precomputed core composition

    Returns:
        InternalStructure
    """
    core_temperature = calculate_core_temperature(mass, phase, age_ratio)
    shells = determine_shell_burning(phase, mass)

    if composition is None:
        if previous is not None and delta_time is not None:
            step_reaction = determine_active_reaction(
                core_temperature, previous.core_composition, phase, mass
            )
            composition = evolve_core_composition(
                previous.core_composition, step_reaction, shells, delta_time, mass
            )
        else:
            composition = calculate_initial_core_composition(metallicity)

    reaction = determine_active_reaction(core_temperature, composition, phase, mass)
    return InternalStructure(
        core_composition=composition,
        core_temperature=core_temperature,
        core_pressure=calculate_core_pressure(mass, radius, phase, constants),
        core_reaction=reaction,
        shell_reactions=shell_reactions(shells, mass),
        energy_production_rate=calculate_energy_production_rate(reaction, luminosity),
        shell_burning=shells,
        layer_structure=calculate_layer_structure(mass, phase, age_ratio),
    )

