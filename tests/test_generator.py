from datetime import timedelta

import numpy as np
import pytest

from conftest import T0, make_config
from parcel_sim.config import (
    DeliveryMethod, Location, LocationKind, NormalDistribution, TransitionKind
)
from parcel_sim.generator import (
    draw_package, endpoint_locations, generate_packages, packages_this_tick,
    random_package_id, rest_duration, worker_rngs
)
from parcel_sim.geo import distance_metres


def test_zero_stddev_returns_mean_every_call():
    rng = np.random.default_rng(7)
    dist = NormalDistribution(avg=5, stddev=0)
    assert [packages_this_tick(dist, rng) for _ in range(20)] == [5] * 20


def test_negative_samples_clamp_to_zero():
    rng = np.random.default_rng(7)
    dist = NormalDistribution(avg=-3, stddev=0)
    assert packages_this_tick(dist, rng) == 0


def test_samples_are_non_negative_integers():
    rng = np.random.default_rng(7)
    dist = NormalDistribution(avg=1, stddev=4)
    counts = [packages_this_tick(dist, rng) for _ in range(200)]
    assert all(isinstance(c, int) and c >= 0 for c in counts)
    assert 0 in counts


def test_count_capped_by_max_packages():
    rng = np.random.default_rng(7)
    dist = NormalDistribution(avg=5, stddev=0)
    assert packages_this_tick(dist, rng, generated_so_far=8, max_packages=10) == 2
    assert packages_this_tick(dist, rng, generated_so_far=10, max_packages=10) == 0
    assert packages_this_tick(dist, rng, generated_so_far=0, max_packages=None) == 5


def test_same_seed_same_counts():
    dist = NormalDistribution(avg=10, stddev=3)
    a = np.random.default_rng(99)
    b = np.random.default_rng(99)
    assert [packages_this_tick(dist, a) for _ in range(10)] == [packages_this_tick(dist, b) for _ in range(10)]


def test_rest_duration():
    rng = np.random.default_rng(7)
    assert rest_duration(NormalDistribution(avg=3, stddev=0), rng) == timedelta(hours=3)
    assert rest_duration(NormalDistribution(avg=-1, stddev=0), rng) == timedelta(0)


def test_rest_duration_never_negative():
    rng = np.random.default_rng(7)
    dist = NormalDistribution(avg=0, stddev=2)
    assert all(rest_duration(dist, rng) >= timedelta(0) for _ in range(100))


def test_worker_rngs_are_deterministic():
    first = [g.random() for g in worker_rngs(42, 3, 4)]
    second = [g.random() for g in worker_rngs(42, 3, 4)]
    assert first == second
    assert len(set(first)) == 4


def test_worker_rngs_differ_between_ticks():
    assert worker_rngs(42, 0, 1)[0].random() != worker_rngs(42, 1, 1)[0].random()


def test_worker_rngs_differ_by_packages_generated():
    assert worker_rngs(42, 0, 1, 0)[0].random() != worker_rngs(42, 0, 1, 10)[0].random()


def test_random_package_id_is_uuid4_and_reproducible():
    a = random_package_id(np.random.default_rng(5))
    b = random_package_id(np.random.default_rng(5))
    assert a == b
    assert a.version == 4


def test_endpoint_locations_excludes_hubs(network):
    kinds = {loc.kind for loc in endpoint_locations(network)}
    assert LocationKind.HUB not in kinds


def test_draw_package_pending_at_origin(network, rng):
    config = make_config()
    package, pending = draw_package(endpoint_locations(network), config, rng, T0)

    assert pending.package_id == package.package_id
    assert pending.seq == 1
    assert pending.kind == TransitionKind.PENDING
    assert pending.location_id == package.origin_location_id
    assert pending.completes_at == T0
    assert package.origin_location_id != package.destination_location_id


def test_draw_package_needs_two_endpoints(rng):
    config = make_config()
    assert draw_package([Location(1, LocationKind.DEPOT, 0, 0)], config, rng, T0) is None


def test_draw_package_gives_up_on_unshippable_network(rng):
    config = make_config(min_shipping_distance_metres=1000)
    close = [
        Location(1, LocationKind.DEPOT, 0.0, 0.0),
        Location(2, LocationKind.CUSTOMER, 0.001, 0.0),
    ]
    assert draw_package(close, config, rng, T0) is None


def test_generated_packages_are_eligible(network, rng):
    config = make_config()
    by_id = {loc.location_id: loc for loc in network}
    packages, transitions = generate_packages(50, network, config, rng, T0)

    assert len(packages) == len(transitions)
    assert len({p.package_id for p in packages}) == len(packages)
    for p in packages:
        d = distance_metres(
            by_id[p.origin_location_id].position,
            by_id[p.destination_location_id].position
        )
        assert d >= config.min_shipping_distance_metres


@pytest.mark.parametrize("probability,method", [
    (0.0, DeliveryMethod.STANDARD),
    (1.0, DeliveryMethod.EXPRESS),
])
def test_probability_express(network, rng, probability, method):
    config = make_config(probability_express=probability)
    packages, _ = generate_packages(20, network, config, rng, T0)
    assert packages
    assert all(p.method == method for p in packages)


def test_generation_is_reproducible(network):
    config = make_config()
    a, _ = generate_packages(10, network, config, np.random.default_rng(3), T0)
    b, _ = generate_packages(10, network, config, np.random.default_rng(3), T0)
    assert a == b
