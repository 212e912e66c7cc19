from datetime import datetime
from pathlib import Path
from typing import Sequence, Union

import pandas as pd

from .config import (
    DEFAULT_TICK_DURATION, HubPolicy, Location, LocationKind, NormalDistribution,
    SimulationConfig
)
from .errors import InvalidConfiguration
from .utils import parse_datetime_value, parse_hours_value, setup_logging

logger = setup_logging()


REQUIRED_SETTINGS = [
    "packages_per_tick_avg",
    "packages_per_tick_stddev",
    "hours_at_rest_avg",
    "hours_at_rest_stddev",
    "probability_express",
    "min_shipping_distance_metres",
    "min_air_freight_distance_metres",
    "avg_land_speed_metre_hours",
    "avg_air_speed_metre_hours",
]


class InputLoader:
    """
    Load simulation settings and locations from one or more workbooks.

    Each workbook may carry a "settings" sheet (key/value rows) and a
    "locations" sheet. Settings from later workbooks override earlier ones;
    locations come from the last workbook that has the sheet.
    """

    SETTINGS_SHEET = "settings"
    LOCATIONS_SHEET = "locations"

    def __init__(self, filepaths: Union[str, Sequence[str]]):
        if isinstance(filepaths, (str, Path)):
            filepaths = [filepaths]

        self.filepaths = [Path(p) for p in filepaths]
        if not self.filepaths:
            raise ValueError("At least one input file is required")

        for path in self.filepaths:
            if not path.exists():
                raise FileNotFoundError(f"Input file not found: {path}")

        self.excels = [pd.ExcelFile(p) for p in self.filepaths]
        self._validate_required_sheets()

    def _validate_required_sheets(self):
        for sheet in (self.SETTINGS_SHEET, self.LOCATIONS_SHEET):
            if not any(sheet in excel.sheet_names for excel in self.excels):
                raise ValueError(f"Missing required sheet: {sheet}")

    def load_raw_settings(self) -> dict:
        settings = {}
        for path, excel in zip(self.filepaths, self.excels):
            if self.SETTINGS_SHEET not in excel.sheet_names:
                continue

            df = pd.read_excel(excel, sheet_name=self.SETTINGS_SHEET)
            for _, row in df.iterrows():
                key = str(row["key"]).strip()
                if key in settings:
                    logger.debug(f"Setting {key} overridden by {path}")
                settings[key] = row["value"]

        return settings

    def load_config(self) -> SimulationConfig:
        settings = self.load_raw_settings()

        missing = [k for k in REQUIRED_SETTINGS if k not in settings or pd.isna(settings[k])]
        if missing:
            raise InvalidConfiguration(f"Missing required settings: {missing}")

        # a key row with a blank value cell counts as absent
        def optional(key, default):
            value = settings.get(key)
            return default if value is None or pd.isna(value) else value

        policy_str = str(optional("hub_policy", HubPolicy.DIRECT.value)).lower().strip()
        try:
            hub_policy = HubPolicy(policy_str)
        except ValueError:
            raise InvalidConfiguration(
                f"Invalid hub_policy: {policy_str}. "
                f"Must be one of {[e.value for e in HubPolicy]}"
            )

        start_time = parse_datetime_value(settings.get("start_time")) or datetime.now()
        tick_duration = parse_hours_value(settings.get("tick_duration"))
        if tick_duration is None:
            tick_duration = DEFAULT_TICK_DURATION

        seed = optional("seed", None)
        seed = int(seed) if seed is not None else None

        try:
            config = SimulationConfig(
                packages_per_tick=NormalDistribution(
                    avg=float(settings["packages_per_tick_avg"]),
                    stddev=float(settings["packages_per_tick_stddev"])
                ),
                hours_at_rest=NormalDistribution(
                    avg=float(settings["hours_at_rest_avg"]),
                    stddev=float(settings["hours_at_rest_stddev"])
                ),
                probability_express=float(settings["probability_express"]),
                min_shipping_distance_metres=float(settings["min_shipping_distance_metres"]),
                min_air_freight_distance_metres=float(settings["min_air_freight_distance_metres"]),
                avg_land_speed_metre_hours=float(settings["avg_land_speed_metre_hours"]),
                avg_air_speed_metre_hours=float(settings["avg_air_speed_metre_hours"]),
                max_packages=int(optional("max_packages", 0)),
                max_delivered=int(optional("max_delivered", 0)),
                start_time=start_time,
                tick_duration=tick_duration,
                hub_policy=hub_policy,
                seed=seed,
                workers=int(optional("workers", 1)),
                verbose=int(optional("verbose", 0))
            )
        except (TypeError, ValueError) as e:
            raise InvalidConfiguration(f"Malformed setting value: {e}") from e

        logger.info(f"Loaded simulation config: {config}")
        return config

    def load_locations(self) -> list[Location]:
        excel = [e for e in self.excels if self.LOCATIONS_SHEET in e.sheet_names][-1]
        df = pd.read_excel(excel, sheet_name=self.LOCATIONS_SHEET)

        locations = []
        for _, row in df.iterrows():
            kind_str = str(row["kind"]).lower().strip()
            try:
                kind = LocationKind(kind_str)
            except ValueError:
                raise ValueError(
                    f"Invalid kind '{kind_str}' for location {row['location_id']}. "
                    f"Must be one of {[e.value for e in LocationKind]}"
                )

            locations.append(Location(
                location_id=int(row["location_id"]),
                kind=kind,
                longitude=float(row["longitude"]),
                latitude=float(row["latitude"])
            ))

        logger.info(f"Loaded {len(locations)} locations")
        return locations

    def load_all(self) -> dict:
        return {
            "config": self.load_config(),
            "locations": self.load_locations()
        }
