from datetime import timedelta

import pytest

from conftest import make_config
from parcel_sim.config import FreightMode, HubPolicy, Position
from parcel_sim.errors import InvalidConfiguration
from parcel_sim.routing import (
    decide, direct_next_stop, nearest_hub_next_stop, next_stop_for_policy,
    select_mode, speed_for
)

ORIGIN = Position(0, 0)
ONE_DEGREE_NORTH = Position(0, 1)


def test_leg_beyond_air_threshold_flies():
    config = make_config(
        min_shipping_distance_metres=1000,
        min_air_freight_distance_metres=50000,
        avg_land_speed_metre_hours=40000,
    )
    decision = decide(ORIGIN, ONE_DEGREE_NORTH, config)

    assert decision.eligible
    assert decision.distance_metres == pytest.approx(111_195, abs=1)
    assert decision.mode == FreightMode.AIR


def test_land_scenario_with_higher_air_threshold():
    config = make_config(
        min_shipping_distance_metres=1000,
        min_air_freight_distance_metres=150000,
        avg_land_speed_metre_hours=40000,
    )
    decision = decide(ORIGIN, ONE_DEGREE_NORTH, config)

    assert decision.eligible
    assert decision.mode == FreightMode.LAND
    assert decision.duration.total_seconds() / 3600 == pytest.approx(2.78, abs=0.01)


def test_air_scenario():
    config = make_config(
        min_air_freight_distance_metres=100000,
        avg_air_speed_metre_hours=800000,
    )
    decision = decide(ORIGIN, ONE_DEGREE_NORTH, config)

    assert decision.mode == FreightMode.AIR
    expected_hours = decision.distance_metres / 800000
    assert decision.duration.total_seconds() / 3600 == pytest.approx(expected_hours)


def test_air_threshold_is_exclusive():
    config = make_config(min_air_freight_distance_metres=50000)
    assert select_mode(50000, config) == FreightMode.LAND
    assert select_mode(50000.001, config) == FreightMode.AIR


def test_exact_threshold_distance_goes_by_land():
    d = decide(ORIGIN, ONE_DEGREE_NORTH, make_config()).distance_metres
    decision = decide(ORIGIN, ONE_DEGREE_NORTH, make_config(min_air_freight_distance_metres=d))
    assert decision.mode == FreightMode.LAND


def test_below_minimum_shipping_distance_is_ineligible():
    config = make_config(min_shipping_distance_metres=1000)
    decision = decide(ORIGIN, Position(0.005, 0), config)

    assert not decision.eligible
    assert decision.mode is None
    assert decision.duration is None
    assert decision.distance_metres < 1000


def test_exactly_minimum_shipping_distance_is_eligible():
    d = decide(ORIGIN, Position(0.005, 0), make_config()).distance_metres
    decision = decide(ORIGIN, Position(0.005, 0), make_config(min_shipping_distance_metres=d))
    assert decision.eligible


def test_non_positive_speed_rejected():
    config = make_config(avg_land_speed_metre_hours=0, min_air_freight_distance_metres=1e9)
    with pytest.raises(InvalidConfiguration):
        decide(ORIGIN, ONE_DEGREE_NORTH, config)


def test_speed_for():
    config = make_config()
    assert speed_for(FreightMode.LAND, config) == config.avg_land_speed_metre_hours
    assert speed_for(FreightMode.AIR, config) == config.avg_air_speed_metre_hours


def test_duration_is_timedelta():
    decision = decide(ORIGIN, ONE_DEGREE_NORTH, make_config())
    assert isinstance(decision.duration, timedelta)


def test_direct_next_stop(locations):
    config = make_config()
    assert direct_next_stop(locations[1], locations[4], locations.values(), config) == locations[4]


def test_nearest_hub_route_hops_through_hubs(locations):
    config = make_config(hub_policy=HubPolicy.NEAREST_HUB)
    all_locations = list(locations.values())

    first = nearest_hub_next_stop(locations[1], locations[4], all_locations, config)
    assert first.location_id == 10

    second = nearest_hub_next_stop(first, locations[4], all_locations, config)
    assert second.location_id == 11

    third = nearest_hub_next_stop(second, locations[4], all_locations, config)
    assert third.location_id == 4


def test_nearest_hub_short_journey_goes_direct(locations):
    config = make_config(hub_policy=HubPolicy.NEAREST_HUB, min_air_freight_distance_metres=200000)
    stop = nearest_hub_next_stop(locations[1], locations[2], list(locations.values()), config)
    assert stop.location_id == 2


def test_nearest_hub_skips_hub_too_close_to_ship(locations):
    # hub 10 is ~11 km from depot 1
    config = make_config(hub_policy=HubPolicy.NEAREST_HUB, min_shipping_distance_metres=20000)
    stop = nearest_hub_next_stop(locations[1], locations[4], list(locations.values()), config)
    assert stop.location_id == 11


def test_nearest_hub_without_hubs_goes_direct(locations):
    config = make_config(hub_policy=HubPolicy.NEAREST_HUB)
    no_hubs = [locations[1], locations[4]]
    assert nearest_hub_next_stop(locations[1], locations[4], no_hubs, config).location_id == 4


def test_next_stop_for_policy():
    assert next_stop_for_policy(HubPolicy.DIRECT) is direct_next_stop
    assert next_stop_for_policy(HubPolicy.NEAREST_HUB) is nearest_hub_next_stop
