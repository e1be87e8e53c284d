import dataclasses
import itertools
import logging

import numpy as np
import pytest

from stellarsim.base import CloudParameters, EvolutionPhase
from stellarsim.constants import MAX_STELLAR_MASS, MIN_STELLAR_MASS
from stellarsim.physics.cloud import calculate_derived_properties
from stellarsim.physics.orbits import check_hierarchical_stability
from stellarsim.simulation import cloud_formation


@pytest.mark.parametrize(
    "mass,angular_momentum,radius",
    list(itertools.product([0.1, 0.9, 5.0, 50.0, 500.0, 1000.0], [0.0, 1e45, 1e50], [0.1, 1.0, 10.0])),
)
def test_fragment_count_in_range(mass, angular_momentum, radius):
    params = CloudParameters(
        mass=mass, metallicity=1.0, angular_momentum=angular_momentum, radius=radius
    )
    derived = calculate_derived_properties(params)
    count = cloud_formation.determine_fragmentation(params, derived)
    assert 1 <= count <= 10


def test_small_cloud_forms_single_star(solar_cloud):
    derived = calculate_derived_properties(solar_cloud)
    assert cloud_formation.determine_fragmentation(solar_cloud, derived) == 1


def test_rotation_increases_fragmentation():
    slow = CloudParameters(
        mass=50.0,
        metallicity=1.0,
        angular_momentum=0.0,
        radius=0.1,
        turbulence_velocity=0.1,
    )
    fast = dataclasses.replace(slow, angular_momentum=1e50)
    slow_count = cloud_formation.determine_fragmentation(
        slow, calculate_derived_properties(slow)
    )
    fast_count = cloud_formation.determine_fragmentation(
        fast, calculate_derived_properties(fast)
    )
    assert fast_count > slow_count


def test_unbound_cloud_halves_fragments(dense_cloud):
    derived = calculate_derived_properties(dense_cloud)
    bound = cloud_formation.determine_fragmentation(
        dense_cloud, dataclasses.replace(derived, is_bound=True)
    )
    unbound = cloud_formation.determine_fragmentation(
        dense_cloud, dataclasses.replace(derived, is_bound=False)
    )
    assert unbound == max(1, bound // 2)


def test_fragments_capped_by_available_mass():
    params = CloudParameters(
        mass=0.5, metallicity=1.0, angular_momentum=1e50, radius=0.1, turbulence_velocity=0.1
    )
    derived = calculate_derived_properties(params)
    assert cloud_formation.determine_fragmentation(params, derived) == 1


@pytest.mark.parametrize("total", [0.1, 0.5, 1.0, 10.0, 100.0, 1000.0])
@pytest.mark.parametrize("count", range(1, 11))
def test_mass_distribution_invariants(total, count, rng):
    if count * MIN_STELLAR_MASS > total:
        pytest.skip("infeasible partition")
    masses = cloud_formation.calculate_mass_distribution(total, count, rng)
    assert len(masses) == count
    assert masses == sorted(masses, reverse=True)
    assert all(MIN_STELLAR_MASS <= m <= MAX_STELLAR_MASS for m in masses)
    assert sum(masses) <= total + 1e-12


def test_mass_distribution_uses_formation_efficiency(rng):
    masses = cloud_formation.calculate_mass_distribution(10.0, 3, rng)
    assert sum(masses) == pytest.approx(3.0)


def test_mass_distribution_is_seeded():
    first = cloud_formation.calculate_mass_distribution(50.0, 5, np.random.default_rng(3))
    second = cloud_formation.calculate_mass_distribution(50.0, 5, np.random.default_rng(3))
    assert first == second


def test_infeasible_partition_warns(rng, caplog):
    with caplog.at_level(logging.WARNING, logger="stellarsim"):
        masses = cloud_formation.calculate_mass_distribution(1.0, 5, rng)
    assert masses == [MIN_STELLAR_MASS] * 5
    assert "minimum mass" in caplog.text


def test_salpeter_samples_within_bounds(rng):
    samples = cloud_formation.sample_salpeter(rng, 1000, 0.08, 50.0)
    assert samples.min() >= 0.08
    assert samples.max() <= 50.0
    # Bottom-heavy
    assert np.median(samples) < 0.3


def test_collapse_criterion(solar_cloud, dense_cloud):
    assert not cloud_formation.will_cloud_collapse(
        solar_cloud, calculate_derived_properties(solar_cloud)
    )
    assert cloud_formation.will_cloud_collapse(
        dense_cloud, calculate_derived_properties(dense_cloud)
    )


def test_generate_star_system(dense_cloud, rng):
    system = cloud_formation.generate_star_system(dense_cloud, rng)
    masses = [star.mass for star in system.stars]
    assert len(system.stars) >= 2
    assert masses == sorted(masses, reverse=True)
    assert len({star.id for star in system.stars}) == len(system.stars)
    assert system.age == 0.0
    assert system.planets == ()
    assert all(star.evolution_phase is EvolutionPhase.PROTOSTAR for star in system.stars)
    assert system.stars[0].name == "Alpha"


def test_non_collapsing_cloud_still_forms_stars(solar_cloud, rng, caplog):
    with caplog.at_level(logging.WARNING, logger="stellarsim"):
        system = cloud_formation.generate_star_system(solar_cloud, rng)
    assert len(system.stars) == 1
    assert system.stars[0].mass == pytest.approx(0.3)
    assert system.stars[0].position == (0.0, 0.0, 0.0)
    assert "would not collapse" in caplog.text


def test_binary_centre_of_mass_at_origin(binary_cloud, rng):
    system = cloud_formation.generate_star_system(binary_cloud, rng)
    assert len(system.stars) == 2
    primary, secondary = system.stars
    com = primary.mass * np.array(primary.position) + secondary.mass * np.array(
        secondary.position
    )
    assert np.allclose(com, 0.0, atol=1e-9)
    assert primary.orbital_period == pytest.approx(secondary.orbital_period)


def test_hierarchical_configuration_is_stable(dense_cloud, rng):
    system = cloud_formation.generate_star_system(dense_cloud, rng)
    assert check_hierarchical_stability(system.stars).stable
