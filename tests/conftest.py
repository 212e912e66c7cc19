import dataclasses
import uuid
from datetime import datetime, timedelta

import numpy as np
import pytest

from parcel_sim.config import (
    ActivePackage, DeliveryMethod, Location, LocationKind, NormalDistribution,
    SimulationConfig, TransitionKind
)

T0 = datetime(2024, 1, 1, 8, 0)


def make_config(**overrides) -> SimulationConfig:
    base = SimulationConfig(
        packages_per_tick=NormalDistribution(avg=5, stddev=0),
        hours_at_rest=NormalDistribution(avg=2, stddev=0),
        probability_express=0.2,
        min_shipping_distance_metres=1000,
        min_air_freight_distance_metres=50000,
        avg_land_speed_metre_hours=40000,
        avg_air_speed_metre_hours=800000,
        start_time=T0,
        tick_duration=timedelta(hours=1),
        seed=42,
    )
    return dataclasses.replace(base, **overrides)


def make_active(
        kind: TransitionKind,
        location_id: int,
        next_location_id: int = None,
        destination_location_id: int = 2,
        seq: int = 1,
        completes_at: datetime = T0,
        locations: dict = None,
) -> ActivePackage:
    locations = locations or {loc.location_id: loc for loc in NETWORK}
    here = locations[location_id]
    return ActivePackage(
        package_id=uuid.UUID(int=seq * 1000 + location_id),
        method=DeliveryMethod.STANDARD,
        destination_location_id=destination_location_id,
        longitude=here.longitude,
        latitude=here.latitude,
        transition_kind=kind,
        transition_seq=seq,
        transition_location_id=location_id,
        transition_next_location_id=location_id if next_location_id is None else next_location_id,
        transition_completes_at=completes_at,
    )


NETWORK = [
    Location(1, LocationKind.DEPOT, 0.0, 0.0),
    Location(2, LocationKind.CUSTOMER, 0.0, 1.0),      # ~111 km north of 1
    Location(3, LocationKind.CUSTOMER, 0.005, 0.0),    # ~556 m east of 1
    Location(4, LocationKind.CUSTOMER, 10.1, 10.0),    # ~11 km east of hub 11
    Location(10, LocationKind.HUB, 0.0, 0.1),          # ~11 km north of 1
    Location(11, LocationKind.HUB, 10.0, 10.0),
]


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def network():
    return list(NETWORK)


@pytest.fixture
def locations():
    return {loc.location_id: loc for loc in NETWORK}


@pytest.fixture
def shippable_network():
    """Network in which every depot/customer pair is far enough apart to ship."""
    return [loc for loc in NETWORK if loc.location_id != 3]


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
