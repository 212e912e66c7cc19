"""Shared utility functions for the parcel simulator."""
import logging
import numbers
import sys
from datetime import datetime, time, timedelta
from typing import Optional

import pandas as pd


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure and return logger that writes to stdout."""
    logger = logging.getLogger("parcel_sim")

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
    return logger


def log_level_for_verbosity(verbose: int) -> int:
    return logging.DEBUG if verbose and verbose > 0 else logging.INFO


def parse_datetime_value(val) -> Optional[datetime]:
    """Parse a datetime value from Excel into a datetime object."""
    if val is None or pd.isna(val):
        return None
    if isinstance(val, pd.Timestamp):
        return val.to_pydatetime()
    if isinstance(val, datetime):
        return val

    if isinstance(val, str):
        val = val.strip()
        if not val:
            return None
        try:
            return datetime.fromisoformat(val)
        except ValueError:
            raise ValueError(f"Cannot parse datetime value: {val}")

    raise ValueError(f"Unexpected datetime value type: {type(val)} = {val}")


def parse_hours_value(val) -> Optional[timedelta]:
    """Parse a duration given in hours (number, or 'HH:MM' string)."""
    if val is None or pd.isna(val):
        return None
    if isinstance(val, timedelta):
        return val
    if isinstance(val, time):
        return timedelta(hours=val.hour, minutes=val.minute, seconds=val.second)

    if isinstance(val, numbers.Real):
        return timedelta(hours=float(val))

    if isinstance(val, str):
        val = val.strip()
        if not val:
            return None
        try:
            if ":" in val:
                parts = val.split(":")
                hours = int(parts[0])
                minutes = int(parts[1]) if len(parts) > 1 else 0
                seconds = int(parts[2]) if len(parts) > 2 else 0
                return timedelta(hours=hours, minutes=minutes, seconds=seconds)
            return timedelta(hours=float(val))
        except (ValueError, IndexError):
            raise ValueError(f"Cannot parse duration value: {val}")

    raise ValueError(f"Unexpected duration value type: {type(val)} = {val}")


def format_duration_hours(delta: timedelta) -> float:
    """Duration as fractional hours, for reports."""
    return delta.total_seconds() / 3600
