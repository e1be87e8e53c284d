import dataclasses

import numpy as np
import pytest

from stellarsim.base import CloudParameters
from stellarsim.simulation import SimulationController
from stellarsim.simulation.stellar_evolution import create_star


@pytest.fixture
def rng():
    return np.random.default_rng(12345)


@pytest.fixture
def solar_cloud():
    return CloudParameters(mass=1.0, metallicity=1.0, angular_momentum=1e42)


@pytest.fixture
def dense_cloud():
    """Bound, Jeans-unstable cloud of 1000 M_sun in 1 pc."""
    return CloudParameters(
        mass=1000.0,
        metallicity=1.0,
        angular_momentum=1e49,
        radius=1.0,
        turbulence_velocity=0.5,
    )


@pytest.fixture
def binary_cloud():
    """Compact 2 M_sun cloud that fragments into exactly two stars."""
    return CloudParameters(
        mass=2.0,
        metallicity=1.0,
        angular_momentum=9e47,
        radius=0.1,
        turbulence_velocity=0.1,
    )


@pytest.fixture
def controller():
    return SimulationController()


@pytest.fixture
def initialized(controller, solar_cloud):
    controller.initialize_simulation(solar_cloud, seed=7)
    return controller


@pytest.fixture
def make_star():
    def _make(mass=1.0, metallicity=1.0, position=(0.0, 0.0, 0.0), name="Alpha"):
        star = create_star(mass, metallicity, f"star-{name}", name)
        return dataclasses.replace(star, position=position)

    return _make
