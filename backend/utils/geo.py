"""
Geospatial helpers for nearby-resource lookups.
"""
import math
from typing import Dict, Iterable, List

from utils.validators import CoordinateValidator

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in kilometres.

    Raises:
        ValueError: If coordinates are invalid

    Examples:
        >>> round(haversine_km(0, 0, 0, 1), 1)
        111.2
    """
    if not CoordinateValidator.validate_coordinates(lat1, lon1) or \
            not CoordinateValidator.validate_coordinates(lat2, lon2):
        raise ValueError(f"Invalid coordinates: ({lat1}, {lon1}) or ({lat2}, {lon2})")

    phi1, phi2 = math.radians(float(lat1)), math.radians(float(lat2))
    d_phi = math.radians(float(lat2) - float(lat1))
    d_lambda = math.radians(float(lon2) - float(lon1))

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def within_radius(items: Iterable[Dict], lat: float, lon: float, radius_km: float) -> List[Dict]:
    """
    Items with usable 'lat'/'lon' within radius_km of a point, nearest first.

    Each returned item gets a 'distance_km' field. Items without valid
    coordinates are skipped.
    """
    nearby = []
    for item in items:
        item_lat, item_lon = item.get('lat'), item.get('lon', item.get('lng'))
        if not CoordinateValidator.validate_coordinates(item_lat, item_lon):
            continue

        distance = haversine_km(lat, lon, item_lat, item_lon)
        if distance <= radius_km:
            nearby.append({**item, 'distance_km': round(distance, 3)})

    nearby.sort(key=lambda item: item['distance_km'])
    return nearby
