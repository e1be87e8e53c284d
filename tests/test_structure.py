import numpy as np
import pytest

from stellarsim.base import CoreComposition, EvolutionPhase, NuclearReaction, ShellBurning
from stellarsim.physics import stellar, structure

P = EvolutionPhase
NR = NuclearReaction

ADVANCED_FUEL = CoreComposition(
    hydrogen=0.0,
    helium=0.2,
    carbon=0.2,
    oxygen=0.2,
    neon=0.2,
    silicon=0.2,
)


def test_initial_composition_solar():
    comp = structure.calculate_initial_core_composition(1.0)
    assert comp.hydrogen == pytest.approx(0.73)
    assert comp.helium == pytest.approx(0.25)
    assert comp.oxygen == pytest.approx(0.01)
    assert comp.total() == pytest.approx(1.0)


def test_initial_composition_metal_free():
    comp = structure.calculate_initial_core_composition(0.0)
    assert comp.hydrogen == pytest.approx(0.75)
    assert comp.carbon == comp.iron == 0.0


@pytest.mark.parametrize(
    "mass,expected",
    [(1.0, NR.PP_CHAIN), (1.5, NR.PP_CHAIN), (2.0, NR.CNO_CYCLE), (20.0, NR.CNO_CYCLE)],
)
def test_main_sequence_reaction(mass, expected):
    comp = structure.calculate_initial_core_composition(1.0)
    temperature = structure.calculate_core_temperature(mass, P.MAIN_SEQUENCE, 0.5)
    assert structure.determine_active_reaction(temperature, comp, P.MAIN_SEQUENCE, mass) is expected


def test_exhausted_hydrogen_stops_burning():
    comp = CoreComposition(hydrogen=0.005, helium=0.995)
    assert structure.determine_active_reaction(2e7, comp, P.MAIN_SEQUENCE, 1.0) is NR.NONE


def test_cool_core_is_inert():
    comp = structure.calculate_initial_core_composition(1.0)
    assert structure.determine_active_reaction(1e6, comp, P.MAIN_SEQUENCE, 1.0) is NR.NONE


def test_advanced_burning_needs_massive_star():
    assert (
        structure.determine_active_reaction(3e9, ADVANCED_FUEL, P.RED_GIANT, 20.0)
        is NR.SILICON_BURNING
    )
    assert (
        structure.determine_active_reaction(3e9, ADVANCED_FUEL, P.RED_GIANT, 5.0)
        is NR.TRIPLE_ALPHA
    )


@pytest.mark.parametrize(
    "temperature,expected",
    [
        (1e8, NR.TRIPLE_ALPHA),
        (7e8, NR.CARBON_BURNING),
        (1.3e9, NR.NEON_BURNING),
        (2e9, NR.OXYGEN_BURNING),
        (2.8e9, NR.SILICON_BURNING),
    ],
)
def test_supergiant_burning_sequence(temperature, expected):
    assert (
        structure.determine_active_reaction(temperature, ADVANCED_FUEL, P.RED_GIANT, 20.0)
        is expected
    )


def test_supergiant_core_heats_through_red_giant_phase():
    start = structure.calculate_core_temperature(20.0, P.RED_GIANT, 0.9)
    end = structure.calculate_core_temperature(20.0, P.RED_GIANT, 0.95)
    assert start == pytest.approx(structure.T_HELIUM)
    assert end == pytest.approx(3e9)


def test_horizontal_branch_burns_helium():
    comp = CoreComposition(hydrogen=0.0, helium=0.9, carbon=0.1)
    temperature = structure.calculate_core_temperature(1.0, P.HORIZONTAL_BRANCH, 0.96)
    assert structure.determine_active_reaction(
        temperature, comp, P.HORIZONTAL_BRANCH, 1.0
    ) is NR.TRIPLE_ALPHA
    assert structure.determine_active_reaction(
        2e8, comp, P.HORIZONTAL_BRANCH, 1.0
    ) is NR.HELIUM_CARBON


@pytest.mark.parametrize("phase", [P.PLANETARY_NEBULA, P.WHITE_DWARF, P.NEUTRON_STAR])
def test_remnant_cores_are_inert(phase):
    assert structure.determine_active_reaction(1e9, ADVANCED_FUEL, phase, 1.0) is NR.NONE


def test_shell_burning():
    assert structure.determine_shell_burning(P.MAIN_SEQUENCE, 1.0) == ShellBurning()
    assert structure.determine_shell_burning(P.RED_GIANT, 1.0) == ShellBurning(
        hydrogen_shell=True
    )
    agb = structure.determine_shell_burning(P.ASYMPTOTIC_GIANT, 3.0)
    assert agb.hydrogen_shell and agb.helium_shell and not agb.carbon_shell


def test_shell_reactions():
    shells = ShellBurning(hydrogen_shell=True, helium_shell=True)
    assert structure.shell_reactions(shells, 1.0) == (NR.PP_CHAIN, NR.TRIPLE_ALPHA)
    assert structure.shell_reactions(shells, 3.0) == (NR.CNO_CYCLE, NR.TRIPLE_ALPHA)
    assert structure.shell_reactions(ShellBurning(), 3.0) == ()


def test_layer_structure():
    assert structure.calculate_layer_structure(0.3, P.MAIN_SEQUENCE, 0.5).core_radius == 0.2
    massive = structure.calculate_layer_structure(5.0, P.MAIN_SEQUENCE, 0.5)
    assert massive.convective_zone_radius < massive.radiative_zone_radius
    assert structure.calculate_layer_structure(1.0, P.NEUTRON_STAR, 2.0) == (
        structure.DEFAULT_LAYERS
    )


def test_core_pressure_scales_with_phase():
    ms = structure.calculate_core_pressure(1.0, 1.0, P.MAIN_SEQUENCE)
    rg = structure.calculate_core_pressure(1.0, 1.0, P.RED_GIANT)
    assert ms > 0
    assert rg == pytest.approx(100 * ms)


def test_energy_production_rate():
    assert structure.calculate_energy_production_rate(NR.PP_CHAIN, 2.0) == pytest.approx(1.98)
    assert structure.calculate_energy_production_rate(NR.NONE, 2.0) == 0.0


def test_zero_step_keeps_composition():
    comp = structure.calculate_initial_core_composition(1.0)
    evolved = structure.evolve_core_composition(comp, NR.PP_CHAIN, ShellBurning(), 0.0, 1.0)
    assert evolved is comp


def test_hydrogen_burning_makes_helium():
    comp = structure.calculate_initial_core_composition(1.0)
    evolved = structure.evolve_core_composition(comp, NR.PP_CHAIN, ShellBurning(), 1e8, 1.0)
    assert evolved.hydrogen < comp.hydrogen
    assert evolved.helium > comp.helium
    assert evolved.total() == pytest.approx(1.0)


@pytest.mark.parametrize("reaction", list(NR))
@pytest.mark.parametrize("delta_time", [1e6, 1e9, 1e12])
def test_composition_stays_normalized(reaction, delta_time):
    shells = ShellBurning(hydrogen_shell=True, helium_shell=True, carbon_shell=True)
    evolved = structure.evolve_core_composition(ADVANCED_FUEL, reaction, shells, delta_time, 20.0)
    fractions = np.array(list(evolved.as_dict().values()))
    assert np.all(fractions >= 0)
    assert fractions.sum() == pytest.approx(1.0)


def test_composition_at_age_zero_is_initial():
    initial = structure.calculate_initial_core_composition(1.0)
    at_zero = structure.calculate_composition_at_age(1.0, 1.0, 0.0, 1e10)
    assert at_zero.as_dict() == initial.as_dict()


def test_composition_at_age_is_deterministic_and_depletes_hydrogen():
    lifetime = stellar.calculate_main_sequence_lifetime(1.0)
    ages = np.linspace(0, 0.1 * lifetime, 5)
    hydrogen = [
        structure.calculate_composition_at_age(1.0, 1.0, age, lifetime).hydrogen
        for age in ages
    ]
    assert np.all(np.diff(hydrogen) < 0)
    again = structure.calculate_composition_at_age(1.0, 1.0, ages[-1], lifetime)
    assert again.hydrogen == hydrogen[-1]


def test_internal_structure_from_previous_snapshot():
    first = structure.calculate_internal_structure(
        1.0, 1.0, 1.0, P.MAIN_SEQUENCE, 0.1, 1.0
    )
    assert first.core_reaction is NR.PP_CHAIN
    assert first.energy_production_rate == pytest.approx(0.99)

    unchanged = structure.calculate_internal_structure(
        1.0, 1.0, 1.0, P.MAIN_SEQUENCE, 0.1, 1.0, previous=first, delta_time=0.0
    )
    assert unchanged.core_composition.as_dict() == first.core_composition.as_dict()

    later = structure.calculate_internal_structure(
        1.0, 1.0, 1.0, P.MAIN_SEQUENCE, 0.2, 1.0, previous=first, delta_time=1e9
    )
    assert later.core_composition.hydrogen < first.core_composition.hydrogen
