"""
Stochastic generation: package arrivals, rest durations, and new packages.

Every function takes the random source as an argument. Runs are reproducible
given a seed, and each worker owns its own generator (see worker_rngs).
"""
import uuid
from datetime import datetime, timedelta
from typing import Optional, Sequence

import numpy as np

from .config import (
    ENDPOINT_KINDS, DeliveryMethod, Location, NormalDistribution, Package,
    SimulationConfig, Transition, TransitionKind, hours_to_timedelta
)
from .geo import distance_metres
from .routing import is_eligible
from .utils import setup_logging

logger = setup_logging()

# redraws allowed for a candidate whose origin/destination pair is too close
MAX_DRAW_ATTEMPTS = 10


def sample_normal(dist: NormalDistribution, rng: np.random.Generator) -> float:
    if dist.stddev == 0:
        return float(dist.avg)
    return float(rng.normal(dist.avg, dist.stddev))


def packages_this_tick(
        dist: NormalDistribution,
        rng: np.random.Generator,
        generated_so_far: int = 0,
        max_packages: Optional[int] = None
) -> int:
    """Number of packages to create this tick, never pushing past max_packages."""
    count = max(0, int(round(sample_normal(dist, rng))))

    if max_packages is not None:
        count = min(count, max(0, max_packages - generated_so_far))

    return count


def rest_duration(dist: NormalDistribution, rng: np.random.Generator) -> timedelta:
    hours = max(0.0, sample_normal(dist, rng))
    return hours_to_timedelta(hours)


def worker_rngs(
        seed: Optional[int],
        tick: int,
        workers: int,
        generated: int = 0
) -> list[np.random.Generator]:
    """
    One generator per worker, derived deterministically from
    (seed, tick, generated).

    generated is the number of packages created before this tick. It only
    stays equal across two ticks if the earlier one created nothing, so a
    resumed run never replays package ids already in the store.
    """
    if seed is None:
        seq = np.random.SeedSequence()
    else:
        seq = np.random.SeedSequence([seed, tick, generated])

    return [np.random.default_rng(child) for child in seq.spawn(workers)]


def random_package_id(rng: np.random.Generator) -> uuid.UUID:
    return uuid.UUID(bytes=rng.bytes(16), version=4)


def endpoint_locations(locations: Sequence[Location]) -> list[Location]:
    endpoints = [loc for loc in locations if loc.kind in ENDPOINT_KINDS]
    return sorted(endpoints, key=lambda l: l.location_id)


def draw_package(
        endpoints: Sequence[Location],
        config: SimulationConfig,
        rng: np.random.Generator,
        now: datetime
) -> Optional[tuple[Package, Transition]]:
    """
    Draw one package with a random origin and destination.

    Pairs closer than the minimum shipping distance are redrawn; after
    MAX_DRAW_ATTEMPTS the candidate is dropped and None is returned.

    Returns:
        The new package and its first (pending) transition at the origin
    """
    if len(endpoints) < 2:
        return None

    for _ in range(MAX_DRAW_ATTEMPTS):
        origin_idx, dest_idx = rng.choice(len(endpoints), size=2, replace=False)
        origin = endpoints[int(origin_idx)]
        dest = endpoints[int(dest_idx)]

        if not is_eligible(distance_metres(origin.position, dest.position), config):
            continue

        method = (
            DeliveryMethod.EXPRESS
            if rng.random() < config.probability_express
            else DeliveryMethod.STANDARD
        )

        package = Package(
            package_id=random_package_id(rng),
            method=method,
            origin_location_id=origin.location_id,
            destination_location_id=dest.location_id,
            created_at=now
        )

        pending = Transition(
            package_id=package.package_id,
            seq=1,
            kind=TransitionKind.PENDING,
            location_id=origin.location_id,
            next_location_id=origin.location_id,
            mode=None,
            recorded_at=now,
            completes_at=now,
            longitude=origin.longitude,
            latitude=origin.latitude
        )
        return package, pending

    logger.debug(f"Dropped package candidate after {MAX_DRAW_ATTEMPTS} ineligible draws")
    return None


def generate_packages(
        count: int,
        locations: Sequence[Location],
        config: SimulationConfig,
        rng: np.random.Generator,
        now: datetime
) -> tuple[list[Package], list[Transition]]:
    """Generate up to count new packages, each with its pending transition."""
    endpoints = endpoint_locations(locations)

    packages = []
    transitions = []
    for _ in range(count):
        drawn = draw_package(endpoints, config, rng, now)
        if drawn is None:
            continue
        package, pending = drawn
        packages.append(package)
        transitions.append(pending)

    if len(packages) < count:
        logger.debug(f"Generated {len(packages)}/{count} packages; remaining draws were too close to ship")

    return packages, transitions
