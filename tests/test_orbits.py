import dataclasses
import logging

import numpy as np
import pytest

from stellarsim.base import OrbitalParameters
from stellarsim.physics import orbits


def test_earth_period():
    assert orbits.calculate_orbital_period(1.0, 1.0) == pytest.approx(1.0, rel=1e-3)


def test_period_inverts_to_semi_major_axis():
    period = orbits.calculate_orbital_period(5.2, 1.5)
    assert orbits.calculate_semi_major_axis(period, 1.5) == pytest.approx(5.2)


def test_period_is_vectorized():
    periods = orbits.calculate_orbital_period(np.array([1.0, 4.0]), 1.0)
    assert periods.shape == (2,)
    assert periods[1] / periods[0] == pytest.approx(8.0)


def test_mean_anomaly_wraps():
    assert orbits.calculate_mean_anomaly(1.25, 1.0) == pytest.approx(np.pi / 2)
    assert 0 <= orbits.calculate_mean_anomaly(7.9, 1.0, 5.0) < 2 * np.pi


def test_kepler_solution_grid():
    mean_anomaly = np.linspace(0, 2 * np.pi, 37)[:, None]
    eccentricity = np.array([0.0, 0.1, 0.3, 0.5, 0.7, 0.9])[None, :]
    E = orbits.solve_kepler_equation(mean_anomaly, eccentricity)
    assert E.shape == (37, 6)
    residual = E - eccentricity * np.sin(E) - mean_anomaly
    assert np.max(np.abs(residual)) < 1e-5


@pytest.mark.parametrize("e", [0.95, 0.98, 0.99, 0.999])
def test_kepler_solution_near_parabolic(e):
    mean_anomaly = np.linspace(0, 2 * np.pi, 7201)
    E = orbits.solve_kepler_equation(mean_anomaly, e)
    residual = E - e * np.sin(E) - mean_anomaly
    assert np.max(np.abs(residual)) < 1e-5
    assert np.all(np.abs(E - mean_anomaly) <= e + 1e-12)


def test_kepler_scalar_in_scalar_out():
    E = orbits.solve_kepler_equation(1.0, 0.2)
    assert isinstance(E, float)
    assert E - 0.2 * np.sin(E) == pytest.approx(1.0, abs=1e-6)


def test_kepler_returns_best_estimate_without_converging(caplog):
    with caplog.at_level(logging.DEBUG, logger="stellarsim.physics.orbits"):
        E = orbits.solve_kepler_equation(3.0, 0.9, max_iterations=1)
    assert np.isfinite(E)
    assert "Kepler solver stopped" in caplog.text
    assert orbits.solve_kepler_equation(3.0, 0.9, max_iterations=0) == 3.0


@pytest.mark.parametrize("e", [0.0, 0.3, 0.8])
def test_true_anomaly_at_apsides(e):
    assert orbits.calculate_true_anomaly(0.0, e) == pytest.approx(0.0)
    assert orbits.calculate_true_anomaly(np.pi, e) == pytest.approx(np.pi)


def test_true_anomaly_of_circle_is_eccentric_anomaly():
    E = np.linspace(-3, 3, 7)
    np.testing.assert_allclose(orbits.calculate_true_anomaly(E, 0.0), E)


def test_orbital_radius_at_apsides():
    assert orbits.calculate_orbital_radius(2.0, 0.5, 0.0) == pytest.approx(1.0)
    assert orbits.calculate_orbital_radius(2.0, 0.5, np.pi) == pytest.approx(3.0)


def test_circular_orbit_positions():
    orbit = OrbitalParameters(semi_major_axis=1.0, eccentricity=0.0)
    np.testing.assert_allclose(
        orbits.calculate_orbital_position(orbit, 0.0, 1.0), [1, 0, 0], atol=1e-9
    )
    np.testing.assert_allclose(
        orbits.calculate_orbital_position(orbit, 0.25, 1.0), [0, 1, 0], atol=1e-9
    )


def test_inclined_orbit_leaves_reference_plane():
    orbit = OrbitalParameters(semi_major_axis=1.0, eccentricity=0.0, inclination=np.pi / 2)
    np.testing.assert_allclose(
        orbits.calculate_orbital_position(orbit, 0.25, 1.0), [0, 0, 1], atol=1e-9
    )


def test_position_shape_follows_time():
    orbit = OrbitalParameters(semi_major_axis=2.0, eccentricity=0.4, inclination=0.3)
    times = np.linspace(0, 3, 11)
    positions = orbits.calculate_orbital_position(orbit, times, 2.0)
    assert positions.shape == (11, 3)
    r = np.linalg.norm(positions, axis=-1)
    assert np.all(r >= 2.0 * 0.6 - 1e-9)
    assert np.all(r <= 2.0 * 1.4 + 1e-9)


def test_orbit_is_periodic():
    orbit = OrbitalParameters(
        semi_major_axis=3.0,
        eccentricity=0.5,
        inclination=0.4,
        longitude_of_ascending_node=1.0,
        argument_of_periapsis=2.0,
        mean_anomaly_at_epoch=0.5,
    )
    period = orbits.calculate_orbital_period(3.0, 1.0)
    np.testing.assert_allclose(
        orbits.calculate_orbital_position(orbit, 0.3, period),
        orbits.calculate_orbital_position(orbit, 0.3 + 4 * period, period),
        atol=1e-6,
    )


def test_circular_speed():
    orbit = OrbitalParameters(semi_major_axis=1.0, eccentricity=0.0, inclination=0.7)
    velocity = orbits.calculate_orbital_velocity(orbit, 0.1, 1.0)
    assert np.linalg.norm(velocity) == pytest.approx(2 * np.pi)
    position = orbits.calculate_orbital_position(orbit, 0.1, 1.0)
    assert np.dot(position, velocity) == pytest.approx(0.0, abs=1e-9)


def test_vis_viva():
    orbit = OrbitalParameters(semi_major_axis=2.0, eccentricity=0.6)
    period = 2.0**1.5
    times = np.linspace(0, period, 9)
    r = np.linalg.norm(orbits.calculate_orbital_position(orbit, times, period), axis=-1)
    v = np.linalg.norm(orbits.calculate_orbital_velocity(orbit, times, period), axis=-1)
    mu = 4 * np.pi**2
    np.testing.assert_allclose(v**2, mu * (2 / r - 1 / 2.0), rtol=1e-5)


def test_hill_sphere():
    assert orbits.calculate_hill_sphere_radius(3.0, 1.0, 3.0) == pytest.approx(3.0)
    assert orbits.calculate_hill_sphere_radius(1.0, 1.0, 3e-6) == pytest.approx(0.01)


def test_system_stability_ratio():
    assert orbits.check_system_stability(1.0, 3.0)
    assert not orbits.check_system_stability(1.0, 2.9)
    assert not orbits.check_system_stability(0.0, 100.0)


def test_separation_round_trip():
    constants = orbits.DEFAULT_CONSTANTS
    a = 10.0
    m1, m2 = 1.0, 0.5
    total = (m1 + m2) * constants.M_sun
    reduced = m1 * m2 / (m1 + m2) * constants.M_sun
    angular_momentum = reduced * np.sqrt(constants.G * total * a * constants.AU)
    assert orbits.separation_from_angular_momentum(angular_momentum, m1, m2) == (
        pytest.approx(a)
    )


def test_random_orbital_parameters(rng):
    orbit = orbits.random_orbital_parameters(2.0, 0.1, rng)
    assert orbit.semi_major_axis == 2.0
    assert orbit.eccentricity == 0.1
    assert 0 <= orbit.inclination <= np.pi / 6
    assert 0 <= orbit.mean_anomaly_at_epoch < 2 * np.pi


def test_binary_stability(make_star):
    primary = make_star(1.0)
    close = make_star(1.0, position=(0.001, 0.0, 0.0), name="Beta")
    assert not orbits.check_binary_stability(primary, close).stable

    wide = make_star(1.0, position=(5000.0, 0.0, 0.0), name="Beta")
    report = orbits.check_binary_stability(primary, wide)
    assert not report.stable
    assert "unbound" in report.reason

    good = make_star(1.0, position=(10.0, 0.0, 0.0), name="Beta")
    assert orbits.check_binary_stability(primary, good).stable


def test_hierarchical_stability(make_star):
    a = make_star(1.0, position=(-1.0, 0.0, 0.0))
    b = make_star(1.0, position=(1.0, 0.0, 0.0), name="Beta")
    far = make_star(0.5, position=(0.0, 20.0, 0.0), name="Gamma")
    near = make_star(0.5, position=(0.0, 4.0, 0.0), name="Gamma")
    assert orbits.check_hierarchical_stability([a]).stable
    assert orbits.check_hierarchical_stability([a, b]).stable
    assert orbits.check_hierarchical_stability([a, b, far]).stable
    report = orbits.check_hierarchical_stability([a, b, near])
    assert not report.stable
    assert "Gamma" in report.reason


def test_hierarchical_stability_reports_touching_pair(make_star):
    a = make_star(1.0)
    b = dataclasses.replace(make_star(1.0, name="Beta"), position=(1e-4, 0.0, 0.0))
    c = make_star(1.0, position=(50.0, 0.0, 0.0), name="Gamma")
    assert not orbits.check_hierarchical_stability([a, b, c]).stable


def test_planet_orbit_stability():
    assert orbits.check_planet_orbit_stability(1.0, 1.0, 1.0).stable
    assert not orbits.check_planet_orbit_stability(0.005, 1.0, 1.0).stable
    assert not orbits.check_planet_orbit_stability(2000.0, 1.0, 1.0).stable
