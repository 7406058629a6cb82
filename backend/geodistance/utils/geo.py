import math
from dataclasses import dataclass
from typing import Any, Mapping

from ..errors import ExtractionError

EARTH_RADIUS_KM = 6371
RAD_PER_DEG = math.pi / 180

# Applied to the meter result as-is, so "mph" distances are meters * 0.621371
# rather than miles. Existing thresholds are tuned against this value.
MPH_MULTIPLIER = 0.621371


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float


def distance(loc1: GeoPoint, loc2: GeoPoint, metric_system: str = "mph") -> float:
    """Haversine great-circle distance in meters (scaled for mph)."""
    rm = EARTH_RADIUS_KM * 1000

    dlat_rad = (loc2.lat - loc1.lat) * RAD_PER_DEG
    dlon_rad = (loc2.lon - loc1.lon) * RAD_PER_DEG
    lat1_rad = loc1.lat * RAD_PER_DEG
    lat2_rad = loc2.lat * RAD_PER_DEG

    a = math.sin(dlat_rad / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon_rad / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    multiplier = MPH_MULTIPLIER if metric_system == "mph" else 1
    return rm * c * multiplier


def _to_coord(v: Any) -> float:
    if isinstance(v, bool):
        raise ExtractionError(f"not a coordinate: {v!r}")
    try:
        f = float(v.strip() if isinstance(v, str) else v)
    except (TypeError, ValueError) as e:
        raise ExtractionError(f"not a coordinate: {v!r}") from e
    if not math.isfinite(f):
        raise ExtractionError(f"coordinate is not finite: {v!r}")
    return f


def parse_geo_point(value: Any) -> GeoPoint:
    """
    Accepts "lat,lon" or {"lat": .., "lon": ..}.
    Anything else (wrong arity, non numeric, nan/inf) raises ExtractionError.
    """
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, Mapping):
        if "lat" not in value or "lon" not in value:
            raise ExtractionError(f"geo mapping needs lat and lon: {value!r}")
        parts = [value["lat"], value["lon"]]
    else:
        raise ExtractionError(f"unsupported geo value: {value!r}")

    if len(parts) != 2:
        raise ExtractionError(f"geo value must have exactly two components: {value!r}")
    return GeoPoint(_to_coord(parts[0]), _to_coord(parts[1]))
