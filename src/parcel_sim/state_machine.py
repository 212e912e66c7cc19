"""
Transition state machine: advance a package by at most one transition.

    pending -> at_rest -> in_transit -> at_rest -> ... -> in_transit -> delivered

advance() reads only the package's latest transition, so a run can resume
from the active-package snapshot alone. Every transition it emits carries
seq = latest seq + 1 and the package's new position.
"""
from datetime import datetime
from typing import Mapping, Optional

import numpy as np

from .config import (
    ActivePackage, FreightMode, Location, SimulationConfig, Transition,
    TransitionKind
)
from .errors import UnroutablePackage
from .generator import rest_duration
from .routing import NextStopFn, decide, direct_next_stop


def _lookup(package: ActivePackage, locations: Mapping[int, Location], location_id: int) -> Location:
    try:
        return locations[location_id]
    except KeyError:
        raise UnroutablePackage(package.package_id, f"unknown location {location_id}")


def _transition(
        package: ActivePackage,
        kind: TransitionKind,
        location: Location,
        next_location: Location,
        now: datetime,
        completes_at: datetime,
        mode: Optional[FreightMode] = None
) -> Transition:
    return Transition(
        package_id=package.package_id,
        seq=package.transition_seq + 1,
        kind=kind,
        location_id=location.location_id,
        next_location_id=next_location.location_id,
        mode=mode,
        recorded_at=now,
        completes_at=completes_at,
        longitude=location.longitude,
        latitude=location.latitude
    )


def _rest_at(
        package: ActivePackage,
        location: Location,
        now: datetime,
        config: SimulationConfig,
        rng: np.random.Generator
) -> Transition:
    completes_at = now + rest_duration(config.hours_at_rest, rng)
    return _transition(package, TransitionKind.AT_REST, location, location, now, completes_at)


def _dispatch(
        package: ActivePackage,
        current: Location,
        destination: Location,
        locations: Mapping[int, Location],
        now: datetime,
        config: SimulationConfig,
        next_stop: NextStopFn
) -> Transition:
    stop = next_stop(current, destination, locations.values(), config)
    decision = decide(current.position, stop.position, config)

    if not decision.eligible:
        raise UnroutablePackage(
            package.package_id,
            f"leg {current.location_id}->{stop.location_id} is "
            f"{decision.distance_metres:.0f}m, below minimum shipping distance "
            f"{config.min_shipping_distance_metres:.0f}m"
        )

    return _transition(
        package,
        TransitionKind.IN_TRANSIT,
        current,
        stop,
        now,
        now + decision.duration,
        mode=decision.mode
    )


def advance(
        package: ActivePackage,
        now: datetime,
        config: SimulationConfig,
        rng: np.random.Generator,
        locations: Mapping[int, Location],
        next_stop: NextStopFn = direct_next_stop
) -> Optional[Transition]:
    """
    Compute the next transition for a package, or None if nothing is due.

    Args:
        package: Latest transition of the package
        now: Current simulated time
        config: Simulation configuration
        rng: Random source for rest durations
        locations: Location snapshot keyed by location_id
        next_stop: Hook choosing the next stop on the way to the destination

    Raises:
        UnroutablePackage: the package cannot leave its current location
    """
    kind = package.transition_kind

    if kind == TransitionKind.DELIVERED:
        return None

    if kind == TransitionKind.PENDING:
        current = _lookup(package, locations, package.transition_location_id)
        return _rest_at(package, current, now, config, rng)

    if now < package.transition_completes_at:
        return None

    if kind == TransitionKind.AT_REST:
        current = _lookup(package, locations, package.transition_location_id)
        destination = _lookup(package, locations, package.destination_location_id)
        return _dispatch(package, current, destination, locations, now, config, next_stop)

    if kind == TransitionKind.IN_TRANSIT:
        arrived = _lookup(package, locations, package.transition_next_location_id)

        if arrived.location_id == package.destination_location_id:
            return _transition(package, TransitionKind.DELIVERED, arrived, arrived, now, now)

        return _rest_at(package, arrived, now, config, rng)

    raise ValueError(f"Unknown transition kind: {kind}")
