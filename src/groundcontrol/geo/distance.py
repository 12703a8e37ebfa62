"""
Great-circle distance helpers.
"""

import math
from dataclasses import dataclass

EARTH_RADIUS_METERS = 6_371_008.8
# Slightly under one degree of arc so the boxes err on the large side.
METERS_PER_DEGREE_LATITUDE = 111_000.0


@dataclass(frozen=True)
class BoundingBox:
    """Latitude/longitude window enclosing a circle."""

    min_latitude: float
    max_latitude: float
    min_longitude: float
    max_longitude: float

    def contains(self, latitude: float, longitude: float) -> bool:
        return (
            self.min_latitude <= latitude <= self.max_latitude
            and self.min_longitude <= longitude <= self.max_longitude
        )


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in meters between two points given in degrees."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(a)))


def bounding_box(latitude: float, longitude: float, meters: float) -> BoundingBox:
    """Window that contains every point within `meters` of the center.

    The box is an over-approximation; callers check exact distance afterwards.
    """
    d_lat = meters / METERS_PER_DEGREE_LATITUDE
    cos_lat = math.cos(math.radians(latitude))
    if cos_lat < 1e-6:
        d_lon = 180.0
    else:
        d_lon = min(180.0, meters / (METERS_PER_DEGREE_LATITUDE * cos_lat))

    return BoundingBox(
        min_latitude=max(-90.0, latitude - d_lat),
        max_latitude=min(90.0, latitude + d_lat),
        min_longitude=longitude - d_lon,
        max_longitude=longitude + d_lon,
    )
