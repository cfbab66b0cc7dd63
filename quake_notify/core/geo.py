"""Geographic calculations - Pure functions.

Distance, bearing and compass helpers used by the eligibility rules
and by notification formatting. All functions are pure with no side
effects.
"""

import math
from dataclasses import dataclass

from quake_notify.core.earthquake import Event


# Earth's radius in kilometers
EARTH_RADIUS_KM = 6371.0

COMPASS_POINTS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")


@dataclass(frozen=True)
class GeoPoint:
    """A location on the globe.

    Attributes:
        latitude: Latitude in degrees
        longitude: Longitude in degrees
    """
    latitude: float
    longitude: float


def distance_km(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate distance between two points using Haversine formula.

    Pure function.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def bearing_degrees(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate the initial bearing from point 1 to point 2.

    Pure function.

    Returns:
        Bearing in degrees, normalized to [0, 360)
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lon = math.radians(lon2 - lon1)

    x = math.sin(delta_lon) * math.cos(lat2_rad)
    y = (
        math.cos(lat1_rad) * math.sin(lat2_rad)
        - math.sin(lat1_rad) * math.cos(lat2_rad) * math.cos(delta_lon)
    )

    bearing = math.degrees(math.atan2(x, y)) % 360.0
    # -0.0 % 360 and float rounding can both land exactly on 360.0
    return 0.0 if bearing >= 360.0 else bearing


def compass_direction(bearing: float) -> str:
    """Bucket a bearing into one of 8 compass points.

    Pure function. Each sector is 45 degrees wide and centered on its
    point, so 337.5-22.5 is N, 22.5-67.5 is NE, and so on.
    """
    index = int(((bearing + 22.5) % 360) // 45)
    return COMPASS_POINTS[index % len(COMPASS_POINTS)]


def distance_to_event(point: GeoPoint, event: Event) -> float:
    """Distance in kilometers from a point to an event's epicenter.

    Pure function.
    """
    return distance_km(
        point.latitude,
        point.longitude,
        event.latitude,
        event.longitude,
    )


def describe_relative_position(point: GeoPoint, event: Event) -> tuple[float, str]:
    """Describe where an event lies as seen from a point.

    Pure function.

    Returns:
        Tuple of (distance_km, compass direction from point to event)
    """
    bearing = bearing_degrees(
        point.latitude,
        point.longitude,
        event.latitude,
        event.longitude,
    )
    return distance_to_event(point, event), compass_direction(bearing)
