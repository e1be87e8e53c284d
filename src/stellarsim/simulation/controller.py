"""Run-state machine driving a star system through time.

Age-dependent properties are pure functions of the initial system and the
absolute age, with one exception: core composition. ``update_simulation``
advances it incrementally from the previous snapshot, while
``jump_to_time`` rebuilds it from the absolute age, one step per
evolution phase (``structure.calculate_composition_at_age``). Jumps are
therefore exactly reproducible; a run of updates reaching the same age can
differ from a jump in core composition only.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from typing import Optional

import numpy as np
import pandas as pd

from stellarsim.base.system import SimulationState, SimulationStatus, StarSystem
from stellarsim.constants import DEFAULT_CONSTANTS, PhysicalConstants
from stellarsim.exceptions import SequencingError
from stellarsim.physics import orbits
from stellarsim.simulation.cloud_formation import generate_star_system
from stellarsim.simulation.planetary_formation import form_planets
from stellarsim.simulation.stellar_evolution import (
    evolution_track,
    evolve_star,
    star_at_age,
)
from stellarsim.util.misc import to_tuple
from stellarsim.util.validation import ensure_valid_cloud_parameters

logger = logging.getLogger(__name__)


def _place_planets(planets, stars, age):
    by_id = {star.id: star for star in stars}
    placed = []
    for planet in planets:
        star = by_id[planet.parent_star_id]
        offset = orbits.calculate_orbital_position(
            planet.orbit, age, planet.orbital_period
        )
        placed.append(
            dataclasses.replace(
                planet, position=to_tuple(offset + np.asarray(star.position))
            )
        )
    return tuple(placed)


def system_at_age(
    system: StarSystem, age: float, constants: PhysicalConstants = DEFAULT_CONSTANTS
) -> StarSystem:
    """The system at an absolute age, independent of ``system.age``."""
    stars = tuple(star_at_age(star, age, constants=constants) for star in system.stars)
    return dataclasses.replace(
        system,
        stars=stars,
        planets=_place_planets(system.planets, stars, age),
        age=float(age),
    )


def advance_system(
    system: StarSystem, delta_time: float, constants: PhysicalConstants = DEFAULT_CONSTANTS
) -> StarSystem:
    """The system ``delta_time`` years later, composition advanced from the
    current snapshot."""
    age = system.age + delta_time
    stars = tuple(evolve_star(star, delta_time, constants) for star in system.stars)
    return dataclasses.replace(
        system,
        stars=stars,
        planets=_place_planets(system.planets, stars, age),
        age=float(age),
    )


class SimulationController:
    """
    Owns the current StarSystem and the run state

    State transitions: STOPPED -> start -> RUNNING -> pause -> PAUSED ->
    start -> RUNNING, and reset from any state back to STOPPED at age 0.
    Every operation either completes or raises before touching state.

    Args:
        constants (PhysicalConstants):
            Constant table passed to every physics function
    """

    def __init__(self, constants: PhysicalConstants = DEFAULT_CONSTANTS) -> None:
        self.constants = constants
        self._state = SimulationState.STOPPED
        self._time_scale = 1.0
        self._system: Optional[StarSystem] = None
        self._initial_system: Optional[StarSystem] = None

    def __repr__(self):
        return (
            f"{type(self).__name__}(state={self._state.value}, "
            f"time={self.current_time:.4g} yr, time_scale={self._time_scale:g})"
        )

    @property
    def state(self) -> SimulationState:
        return self._state

    @property
    def system(self) -> Optional[StarSystem]:
        return self._system

    @property
    def current_time(self) -> float:
        return self._system.age if self._system is not None else 0.0

    @property
    def time_scale(self) -> float:
        return self._time_scale

    def get_status(self) -> SimulationStatus:
        return SimulationStatus(
            state=self._state,
            current_time=self.current_time,
            time_scale=self._time_scale,
            system=self._system,
        )

    def _require_system(self, operation):
        if self._system is None:
            raise SequencingError(
                f"{operation} called before initialize_simulation"
            )

    def initialize_simulation(self, params, seed=None) -> StarSystem:
        """
        Build a fresh system at age 0 from a cloud

        Args:
            params (CloudParameters or Mapping):
                Cloud description
            seed (int, optional):
                Seed of the random source used for masses, orbits and
                planets; the same seed reproduces the same system

        Returns:
            StarSystem

        Raises:
            ValidationError:
                If any parameter is missing or out of range
        """
        params = ensure_valid_cloud_parameters(params)
        rng = np.random.default_rng(seed)
        system = generate_star_system(params, rng, self.constants)
        planets = form_planets(
            system.stars,
            rng,
            params.with_defaults().magnetic_field_strength,
            self.constants,
        )
        system = dataclasses.replace(system, planets=planets)

        self._initial_system = system
        self._system = system
        self._state = SimulationState.STOPPED
        logger.info(
            "Initialized %s with %d star(s) and %d planet(s)",
            system.name,
            len(system.stars),
            len(system.planets),
        )
        return system

    def restore_simulation(self, system: StarSystem, time_scale: float = 1.0) -> None:
        """Resume from a saved system, stopped at the system's age."""
        self._check_time_scale(time_scale)
        initial = system_at_age(system, 0.0, self.constants)
        self._initial_system = initial
        self._system = system
        self._time_scale = float(time_scale)
        self._state = SimulationState.STOPPED

    def start_simulation(self) -> None:
        self._require_system("start_simulation")
        self._state = SimulationState.RUNNING

    def pause_simulation(self) -> None:
        if self._state is SimulationState.RUNNING:
            self._state = SimulationState.PAUSED

    def reset_simulation(self) -> None:
        self._system = self._initial_system
        self._state = SimulationState.STOPPED

    def update_simulation(self, delta_time: float) -> StarSystem:
        """
        Advance the system by ``delta_time`` years

        Raises:
            SequencingError:
                Before initialization, or for a negative or non-finite step
        """
        self._require_system("update_simulation")
        if not math.isfinite(delta_time) or delta_time < 0:
            raise SequencingError(f"Time step must be finite and >= 0, got {delta_time}")
        self._system = advance_system(self._system, delta_time, self.constants)
        return self._system

    def jump_to_time(self, target_time: float) -> StarSystem:
        """
        Set the system age to ``target_time`` years, recomputing everything
        from the initial system

        Raises:
            SequencingError:
                Before initialization, or for a negative or non-finite target
        """
        self._require_system("jump_to_time")
        if not math.isfinite(target_time) or target_time < 0:
            raise SequencingError(
                f"Target time must be finite and >= 0, got {target_time}"
            )
        self._system = system_at_age(self._initial_system, target_time, self.constants)
        return self._system

    @staticmethod
    def _check_time_scale(scale):
        if not math.isfinite(scale) or scale < 0:
            raise SequencingError(f"Time scale must be finite and >= 0, got {scale}")

    def set_time_scale(self, scale: float) -> None:
        self._check_time_scale(scale)
        self._time_scale = float(scale)

    def advance(self, elapsed: float) -> Optional[StarSystem]:
        """
        Advance by ``elapsed * time_scale`` years when running

        Args:
            elapsed (float):
                Time since the previous call, in the driver's clock units

        Returns:
            StarSystem or None:
                The current system
        """
        if self._state is SimulationState.RUNNING:
            self.update_simulation(elapsed * self._time_scale)
        return self._system

    def evolution_track(self, ages) -> pd.DataFrame:
        """
        Evolution of every star over the given ages without changing the
        current state

        Returns:
            pandas.DataFrame:
                Rows per (star, age), with ``star_id`` and ``star_name``
                columns first
        """
        self._require_system("evolution_track")
        frames = []
        for star in self._initial_system.stars:
            track = evolution_track(star, ages, self.constants)
            track.insert(0, "star_name", star.name)
            track.insert(0, "star_id", star.id)
            frames.append(track)
        return pd.concat(frames, ignore_index=True)
