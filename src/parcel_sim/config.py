"""Configuration: constants, enums, and dataclasses for the parcel simulator."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


EARTH_RADIUS_METRES = 6_371_000.0
SECONDS_PER_HOUR = 3600

DEFAULT_INPUT_FILE = "data/input_parcel_sim_v1.xlsx"
DEFAULT_OUTPUT_FILE = "outputs/output_parcel_sim_v1.xlsx"
DEFAULT_TICK_DURATION = timedelta(hours=1)


class LocationKind(str, Enum):
    DEPOT = "depot"
    HUB = "hub"
    CUSTOMER = "customer"


# Kinds a package may be created at or addressed to. Hubs are only ever
# intermediate stops.
ENDPOINT_KINDS = (LocationKind.DEPOT, LocationKind.CUSTOMER)


class DeliveryMethod(str, Enum):
    STANDARD = "standard"
    EXPRESS = "express"


class TransitionKind(str, Enum):
    PENDING = "pending"
    AT_REST = "at_rest"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"


class FreightMode(str, Enum):
    LAND = "land"
    AIR = "air"


class HubPolicy(str, Enum):
    DIRECT = "direct"
    NEAREST_HUB = "nearest_hub"


@dataclass(frozen=True)
class Position:
    longitude: float
    latitude: float


@dataclass(frozen=True)
class NormalDistribution:
    avg: float
    stddev: float


@dataclass(frozen=True)
class Location:
    location_id: int
    kind: LocationKind
    longitude: float
    latitude: float

    @property
    def position(self) -> Position:
        return Position(self.longitude, self.latitude)


@dataclass(frozen=True)
class Package:
    package_id: uuid.UUID
    method: DeliveryMethod
    origin_location_id: int
    destination_location_id: int
    created_at: datetime


@dataclass(frozen=True)
class Transition:
    package_id: uuid.UUID
    seq: int
    kind: TransitionKind
    location_id: int
    next_location_id: int
    mode: Optional[FreightMode]
    recorded_at: datetime
    completes_at: datetime

    # package position once this transition is recorded
    longitude: float
    latitude: float

    @property
    def position(self) -> Position:
        return Position(self.longitude, self.latitude)


@dataclass(frozen=True)
class ActivePackage:
    """Latest transition of a non-delivered package, one row per package."""
    package_id: uuid.UUID
    method: DeliveryMethod
    destination_location_id: int

    # current package position
    longitude: float
    latitude: float

    transition_kind: TransitionKind
    transition_seq: int
    transition_location_id: int
    transition_next_location_id: int
    transition_completes_at: datetime

    @property
    def position(self) -> Position:
        return Position(self.longitude, self.latitude)


@dataclass(frozen=True)
class SimulationConfig:
    packages_per_tick: NormalDistribution
    hours_at_rest: NormalDistribution

    # probability that a package is shipped express, between 0 and 1
    probability_express: float

    # packages only travel between locations at least this far apart
    min_shipping_distance_metres: float

    # a leg goes by air when it is strictly longer than this
    min_air_freight_distance_metres: float

    avg_land_speed_metre_hours: float
    avg_air_speed_metre_hours: float

    max_packages: int = 0
    max_delivered: int = 0

    start_time: datetime = field(default_factory=datetime.now)
    tick_duration: timedelta = DEFAULT_TICK_DURATION

    hub_policy: HubPolicy = HubPolicy.DIRECT
    seed: Optional[int] = None
    workers: int = 1
    verbose: int = 0


def hours_to_timedelta(hours: float) -> timedelta:
    return timedelta(seconds=hours * SECONDS_PER_HOUR)
