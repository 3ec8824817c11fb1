"""
Nearest-kitchen resolution.

Pure functions, no I/O: great-circle distance and the geofence that
decides which kitchen (if any) serves a coordinate.
"""

import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Tuple

EARTH_RADIUS_KM = 6371.0


@dataclass
class NearestKitchen:
    """
    Outcome of a nearest-kitchen lookup.

    Attributes:
        kitchen: Closest kitchen within range, or None
        distance_km: Distance to the closest usable kitchen, even when it
            is out of range (None when no kitchen had coordinates)
    """
    kitchen: Optional[Any]
    distance_km: Optional[float]

    @property
    def in_range(self) -> bool:
        return self.kitchen is not None


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometers."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def parse_coordinates(latitude: Any, longitude: Any) -> Optional[Tuple[float, float]]:
    """Parse stored decimal-string coordinates; None if missing or invalid."""
    if latitude in (None, "") or longitude in (None, ""):
        return None
    try:
        lat, lng = float(latitude), float(longitude)
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None
    if abs(lat) > 90 or abs(lng) > 180:
        return None
    return lat, lng


def find_nearest_kitchen(
    lat: float,
    lng: float,
    kitchens: Iterable[Any],
    max_radius_km: float = 10.0,
) -> NearestKitchen:
    """
    Pick the kitchen closest to (lat, lng).

    Kitchens are any objects with ``latitude``/``longitude`` attributes.
    Those without usable coordinates are skipped. A kitchen exactly on
    the radius is still in range.
    """
    nearest = None
    min_distance = math.inf

    for kitchen in kitchens:
        coords = parse_coordinates(kitchen.latitude, kitchen.longitude)
        if coords is None:
            continue
        distance = haversine_km(lat, lng, coords[0], coords[1])
        if distance < min_distance:
            min_distance = distance
            nearest = kitchen

    if nearest is None:
        return NearestKitchen(kitchen=None, distance_km=None)

    if min_distance > max_radius_km:
        return NearestKitchen(kitchen=None, distance_km=min_distance)

    return NearestKitchen(kitchen=nearest, distance_km=min_distance)
