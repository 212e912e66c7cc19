"""
Configuration validation.
"""
import math
from collections import Counter
from typing import Optional, Sequence

from .config import ENDPOINT_KINDS, HubPolicy, Location, LocationKind, SimulationConfig
from .errors import InvalidConfiguration, InvalidCoordinate
from .generator import endpoint_locations
from .geo import distance_metres
from .routing import is_eligible
from .utils import setup_logging

logger = setup_logging()


class ConfigValidator:
    """Validate the simulation config and location set before any tick runs."""

    def __init__(
            self,
            config: SimulationConfig,
            locations: Sequence[Location],
            max_ticks: Optional[int] = None
    ):
        self.config = config
        self.locations = locations
        self.max_ticks = max_ticks
        self.errors: list[str] = []
        self.warnings: list[str] = []

    def validate_all(self) -> tuple[list[str], list[str]]:
        """Run all validations and return (errors, warnings)."""
        self.validate_speeds()
        self.validate_distributions()
        self.validate_thresholds()
        self.validate_limits()
        self.validate_locations()
        self.validate_run_bound()

        return self.errors, self.warnings

    def can_generate(self) -> bool:
        """True if at least one package can ever be generated."""
        dist = self.config.packages_per_tick
        if dist.avg <= 0 and dist.stddev == 0:
            return False

        endpoints = endpoint_locations(self.locations)
        for i, origin in enumerate(endpoints):
            for destination in endpoints[i + 1:]:
                try:
                    distance = distance_metres(origin.position, destination.position)
                except InvalidCoordinate:
                    continue
                if is_eligible(distance, self.config):
                    return True
        return False

    def validate_run_bound(self):
        """
        A run ends at max_ticks, once max_packages are generated and settled,
        or once max_delivered packages arrive. The last only ends the run if
        packages can be generated at all.
        """
        cfg = self.config
        if self.max_ticks is not None or cfg.max_packages > 0:
            return

        if cfg.max_delivered == 0:
            self.errors.append("Unbounded run: set max_ticks, max_delivered or max_packages")
        elif not self.can_generate():
            self.errors.append(
                f"Unbounded run: max_delivered is {cfg.max_delivered} but no package can be "
                f"generated and neither max_ticks nor max_packages is set"
            )

    def validate_speeds(self):
        cfg = self.config
        if not cfg.avg_land_speed_metre_hours > 0:
            self.errors.append(f"avg_land_speed_metre_hours must be positive: {cfg.avg_land_speed_metre_hours}")
        if not cfg.avg_air_speed_metre_hours > 0:
            self.errors.append(f"avg_air_speed_metre_hours must be positive: {cfg.avg_air_speed_metre_hours}")

    def validate_distributions(self):
        for name in ("packages_per_tick", "hours_at_rest"):
            dist = getattr(self.config, name)
            if not math.isfinite(dist.avg):
                self.errors.append(f"{name} avg must be finite: {dist.avg}")
            if not (math.isfinite(dist.stddev) and dist.stddev >= 0):
                self.errors.append(f"{name} stddev must be non-negative: {dist.stddev}")
            if dist.avg < 0:
                self.warnings.append(f"{name} avg is negative; samples clamp to zero: {dist.avg}")

    def validate_thresholds(self):
        cfg = self.config
        if not 0 <= cfg.probability_express <= 1:
            self.errors.append(f"probability_express must be between 0 and 1: {cfg.probability_express}")
        if cfg.min_shipping_distance_metres < 0:
            self.errors.append(
                f"min_shipping_distance_metres must be non-negative: {cfg.min_shipping_distance_metres}")
        if cfg.min_air_freight_distance_metres < cfg.min_shipping_distance_metres:
            self.warnings.append(
                f"min_air_freight_distance_metres ({cfg.min_air_freight_distance_metres}) is below "
                f"min_shipping_distance_metres ({cfg.min_shipping_distance_metres}); every leg goes by air"
            )

    def validate_limits(self):
        cfg = self.config
        if cfg.tick_duration.total_seconds() <= 0:
            self.errors.append(f"tick_duration must be positive: {cfg.tick_duration}")
        if cfg.max_packages < 0:
            self.errors.append(f"max_packages must be non-negative: {cfg.max_packages}")
        if cfg.max_delivered < 0:
            self.errors.append(f"max_delivered must be non-negative: {cfg.max_delivered}")
        if cfg.workers < 1:
            self.errors.append(f"workers must be at least 1: {cfg.workers}")
        if cfg.seed is not None and cfg.seed < 0:
            self.errors.append(f"seed must be non-negative: {cfg.seed}")
        if 0 < cfg.max_packages < cfg.max_delivered:
            self.warnings.append(
                f"max_delivered ({cfg.max_delivered}) exceeds max_packages ({cfg.max_packages}); "
                f"the run stops when the network is exhausted"
            )

    def validate_locations(self):
        if not self.locations:
            self.errors.append("No locations defined")
            return

        for loc in self.locations:
            if loc.longitude is None or not -180 <= loc.longitude <= 180:
                self.errors.append(f"Location {loc.location_id} has invalid longitude: {loc.longitude}")
            if loc.latitude is None or not -90 <= loc.latitude <= 90:
                self.errors.append(f"Location {loc.location_id} has invalid latitude: {loc.latitude}")

        counts = Counter(loc.location_id for loc in self.locations)
        duplicates = sorted(loc_id for loc_id, n in counts.items() if n > 1)
        if duplicates:
            self.errors.append(f"Duplicate location ids: {duplicates}")

        endpoints = [loc for loc in self.locations if loc.kind in ENDPOINT_KINDS]
        if len(endpoints) < 2:
            self.warnings.append(
                f"Only {len(endpoints)} depot/customer locations; no packages can be generated"
            )

        if self.config.hub_policy == HubPolicy.NEAREST_HUB:
            if not any(loc.kind == LocationKind.HUB for loc in self.locations):
                self.warnings.append("hub_policy is nearest_hub but no hub locations exist; routing direct")


def validate_config(
        config: SimulationConfig,
        locations: Sequence[Location],
        max_ticks: Optional[int] = None
) -> None:
    """
    Validate config and locations and raise InvalidConfiguration if critical
    errors found.

    Warnings are logged but don't stop execution.
    """
    validator = ConfigValidator(config, locations, max_ticks)
    errors, warnings = validator.validate_all()

    for warning in warnings:
        logger.warning(f"Validation warning: {warning}")

    if errors:
        for error in errors:
            logger.error(f"Validation error: {error}")
        raise InvalidConfiguration(f"Config validation failed with {len(errors)} error(s). See log for details.")

    logger.info("Config validation passed")
