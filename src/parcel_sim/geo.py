"""Geographic calculations: haversine distance, travel time, nearest location."""
import math
from typing import Iterable, Optional

from .config import EARTH_RADIUS_METRES, Location, Position
from .errors import InvalidCoordinate, InvalidConfiguration


def validate_position(position: Position) -> None:
    lon, lat = position.longitude, position.latitude
    if lon is None or lat is None or math.isnan(lon) or math.isnan(lat):
        raise InvalidCoordinate(f"Missing coordinate: {position}")
    if lon < -180 or lon > 180:
        raise InvalidCoordinate(f"Longitude out of range [-180, 180]: {lon}")
    if lat < -90 or lat > 90:
        raise InvalidCoordinate(f"Latitude out of range [-90, 90]: {lat}")


def distance_metres(a: Position, b: Position) -> float:
    """Calculate great-circle distance between two points."""
    validate_position(a)
    validate_position(b)

    if a == b:
        return 0.0

    # canonical order keeps distance(a, b) == distance(b, a) bit for bit
    if (b.longitude, b.latitude) < (a.longitude, a.latitude):
        a, b = b, a

    lat1_r = math.radians(a.latitude)
    lat2_r = math.radians(b.latitude)
    dlat = math.radians(b.latitude - a.latitude)
    dlon = math.radians(b.longitude - a.longitude)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlon / 2) ** 2
    c = 2 * math.asin(min(1.0, math.sqrt(h)))

    return EARTH_RADIUS_METRES * c


def travel_hours(distance: float, speed_metre_hours: float) -> float:
    """Calculate travel time in hours from distance and speed."""
    if speed_metre_hours <= 0:
        raise InvalidConfiguration(f"Speed must be positive, got {speed_metre_hours}")

    return distance / speed_metre_hours


def nearest_location(
        position: Position,
        candidates: Iterable[Location]
) -> Optional[Location]:
    """Closest candidate to position; ties go to the lowest location id."""
    best = None
    best_distance = math.inf

    for loc in sorted(candidates, key=lambda l: l.location_id):
        dist = distance_metres(position, loc.position)
        if dist < best_distance:
            best = loc
            best_distance = dist

    return best
