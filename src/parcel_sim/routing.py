"""
Routing policy: shipping eligibility, freight mode selection, leg duration.

Eligibility and mode selection are separate rules:
- A pair closer than min_shipping_distance_metres is not shipped at all.
- A leg strictly longer than min_air_freight_distance_metres goes by air,
  anything else (including exactly the threshold) goes by land.

The next-stop hook decides where a package goes from its current location.
With HubPolicy.DIRECT it is always the final destination; with
HubPolicy.NEAREST_HUB long journeys hop through the hubs nearest to the
origin and to the destination.
"""
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Iterable, Optional

from .config import (
    FreightMode, HubPolicy, Location, LocationKind, Position, SimulationConfig,
    hours_to_timedelta
)
from .geo import distance_metres, nearest_location, travel_hours

NextStopFn = Callable[[Location, Location, Iterable[Location], SimulationConfig], Location]


@dataclass(frozen=True)
class RouteDecision:
    eligible: bool
    distance_metres: float
    mode: Optional[FreightMode] = None
    duration: Optional[timedelta] = None


def is_eligible(distance: float, config: SimulationConfig) -> bool:
    return distance >= config.min_shipping_distance_metres


def select_mode(distance: float, config: SimulationConfig) -> FreightMode:
    if distance > config.min_air_freight_distance_metres:
        return FreightMode.AIR
    return FreightMode.LAND


def speed_for(mode: FreightMode, config: SimulationConfig) -> float:
    if mode == FreightMode.AIR:
        return config.avg_air_speed_metre_hours
    return config.avg_land_speed_metre_hours


def decide(origin: Position, destination: Position, config: SimulationConfig) -> RouteDecision:
    """Decide whether and how a leg from origin to destination is shipped."""
    d = distance_metres(origin, destination)

    if not is_eligible(d, config):
        return RouteDecision(eligible=False, distance_metres=d)

    mode = select_mode(d, config)
    hours = travel_hours(d, speed_for(mode, config))

    return RouteDecision(
        eligible=True,
        distance_metres=d,
        mode=mode,
        duration=hours_to_timedelta(hours)
    )


def direct_next_stop(
        current: Location,
        destination: Location,
        locations: Iterable[Location],
        config: SimulationConfig
) -> Location:
    return destination


def nearest_hub_next_stop(
        current: Location,
        destination: Location,
        locations: Iterable[Location],
        config: SimulationConfig
) -> Location:
    """
    Route long journeys origin -> origin hub -> destination hub -> destination.

    Journeys short enough to go by land skip the hubs. Hops that repeat the
    current stop or are too short to ship are skipped; the final destination
    is always the last candidate, so an unshippable final hop surfaces as an
    ineligible route rather than being hidden.
    """
    direct = distance_metres(current.position, destination.position)
    if direct <= config.min_air_freight_distance_metres:
        return destination

    hubs = [loc for loc in locations if loc.kind == LocationKind.HUB]
    if not hubs:
        return destination

    chain = []
    if current.kind != LocationKind.HUB:
        chain.append(nearest_location(current.position, hubs))
    chain.append(nearest_location(destination.position, hubs))

    for stop in chain:
        if stop.location_id in (current.location_id, destination.location_id):
            continue
        if is_eligible(distance_metres(current.position, stop.position), config):
            return stop

    return destination


HUB_POLICIES: dict[HubPolicy, NextStopFn] = {
    HubPolicy.DIRECT: direct_next_stop,
    HubPolicy.NEAREST_HUB: nearest_hub_next_stop,
}


def next_stop_for_policy(policy: HubPolicy) -> NextStopFn:
    return HUB_POLICIES[policy]
