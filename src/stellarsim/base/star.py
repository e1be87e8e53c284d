from __future__ import annotations

from enum import Enum
from typing import Optional

import equinox as eqx

from stellarsim.base.planet import OrbitalParameters


class EvolutionPhase(str, Enum):
    PROTOSTAR = "protostar"
    MAIN_SEQUENCE = "main_sequence"
    RED_GIANT = "red_giant"
    HORIZONTAL_BRANCH = "horizontal_branch"
    ASYMPTOTIC_GIANT = "asymptotic_giant"
    PLANETARY_NEBULA = "planetary_nebula"
    WHITE_DWARF = "white_dwarf"
    NEUTRON_STAR = "neutron_star"
    BLACK_HOLE = "black_hole"

    @property
    def is_remnant(self) -> bool:
        return self in REMNANT_PHASES


REMNANT_PHASES = frozenset(
    {
        EvolutionPhase.WHITE_DWARF,
        EvolutionPhase.NEUTRON_STAR,
        EvolutionPhase.BLACK_HOLE,
    }
)


class SpectralType(str, Enum):
    O = "O"
    B = "B"
    A = "A"
    F = "F"
    G = "G"
    K = "K"
    M = "M"


class NuclearReaction(str, Enum):
    PP_CHAIN = "pp_chain"
    CNO_CYCLE = "cno_cycle"
    TRIPLE_ALPHA = "triple_alpha"
    HELIUM_CARBON = "helium_carbon"
    CARBON_BURNING = "carbon_burning"
    NEON_BURNING = "neon_burning"
    OXYGEN_BURNING = "oxygen_burning"
    SILICON_BURNING = "silicon_burning"
    NONE = "none"


class CoreComposition(eqx.Module):
    """Mass fractions of the stellar core, summing to 1."""

    hydrogen: float
    helium: float
    carbon: float = 0.0
    oxygen: float = 0.0
    neon: float = 0.0
    magnesium: float = 0.0
    silicon: float = 0.0
    iron: float = 0.0

    def as_dict(self) -> dict[str, float]:
        return {element: getattr(self, element) for element in ELEMENTS}

    def total(self) -> float:
        return sum(self.as_dict().values())


ELEMENTS = (
    "hydrogen",
    "helium",
    "carbon",
    "oxygen",
    "neon",
    "magnesium",
    "silicon",
    "iron",
)


class ShellBurning(eqx.Module):
    hydrogen_shell: bool = False
    helium_shell: bool = False
    carbon_shell: bool = False


class LayerStructure(eqx.Module):
    """Layer boundaries as fractions of the stellar radius."""

    core_radius: float
    radiative_zone_radius: float
    convective_zone_radius: float


class InternalStructure(eqx.Module):
    """
    Snapshot of a star's interior

    Args:
        core_composition (CoreComposition):
            Element mass fractions in the core
        core_temperature (float):
            Core temperature in K
        core_pressure (float):
            Core pressure in Pa
        core_reaction (NuclearReaction):
            Reaction burning in the core
        shell_reactions (tuple of NuclearReaction):
            Reactions burning in shells, outermost last
        energy_production_rate (float):
            Nuclear energy output in solar luminosities
        shell_burning (ShellBurning):
            Which shells are burning
        layer_structure (LayerStructure):
            Core, radiative and convective boundaries
    """

    core_composition: CoreComposition
    core_temperature: float
    core_pressure: float
    core_reaction: NuclearReaction
    shell_reactions: tuple[NuclearReaction, ...]
    energy_production_rate: float
    shell_burning: ShellBurning
    layer_structure: LayerStructure


class Star(eqx.Module):
    """
    A star in the system. Mass, metallicity and lifetime are fixed at
    formation; everything else is a function of age.

    Position is in AU and velocity in AU/yr, both relative to the system
    centre of mass. Stars in multiple systems carry a barycentric ``orbit``
    with period ``orbital_period``; a single star sits at the origin.
    """

    id: str
    name: str
    mass: float  # M_sun
    radius: float  # R_sun
    luminosity: float  # L_sun
    temperature: float  # K
    age: float  # yr
    metallicity: float  # Z_sun
    spectral_type: SpectralType
    evolution_phase: EvolutionPhase
    lifetime: float  # main-sequence lifetime, yr
    internal_structure: InternalStructure
    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    velocity: tuple[float, float, float] = (0.0, 0.0, 0.0)
    orbit: Optional[OrbitalParameters] = None
    orbital_period: float = 0.0  # yr

    @property
    def age_ratio(self) -> float:
        return self.age / self.lifetime
