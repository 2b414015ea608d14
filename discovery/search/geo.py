"""Geographic helpers for expanding a search outward from an origin."""

import math
from typing import List, Optional, Set

from discovery.models import GeoPoint

EARTH_RADIUS_MILES = 3958.8
MAX_BEARINGS_PER_RING = 16


def normalize_longitude(longitude: float) -> float:
    """Wrap a longitude into (-180, 180]."""
    while longitude > 180:
        longitude -= 360
    while longitude <= -180:
        longitude += 360
    return longitude


def destination_point(origin: GeoPoint, distance_miles: float, bearing_degrees: float) -> Optional[GeoPoint]:
    """Point reached by travelling ``distance_miles`` from ``origin`` on ``bearing_degrees``.

    Uses the spherical forward geodesic. Returns ``None`` for a non-finite
    origin or a non-positive distance.
    """
    if not (math.isfinite(origin.latitude) and math.isfinite(origin.longitude)):
        return None
    if not math.isfinite(distance_miles) or distance_miles <= 0:
        return None

    lat_rad = math.radians(origin.latitude)
    lon_rad = math.radians(origin.longitude)
    bearing_rad = math.radians(bearing_degrees)
    angular_distance = distance_miles / EARTH_RADIUS_MILES

    sin_lat = math.sin(lat_rad) * math.cos(angular_distance) + math.cos(lat_rad) * math.sin(
        angular_distance
    ) * math.cos(bearing_rad)
    new_lat_rad = math.asin(max(-1.0, min(1.0, sin_lat)))
    new_lon_rad = lon_rad + math.atan2(
        math.sin(bearing_rad) * math.sin(angular_distance) * math.cos(lat_rad),
        math.cos(angular_distance) - math.sin(lat_rad) * math.sin(new_lat_rad),
    )

    return GeoPoint(
        latitude=math.degrees(new_lat_rad),
        longitude=normalize_longitude(math.degrees(new_lon_rad)),
    )


def generate_rings(
    origin: GeoPoint,
    rings: int,
    start_distance_miles: float,
    ring_step_miles: float,
) -> List[GeoPoint]:
    """Search centers on concentric rings around ``origin``, closest ring first.

    Ring ``r`` sits at ``start + r * step`` miles with ``min(16, 6 + 2r)``
    evenly spaced bearings; odd rings are rotated by half a bearing step.
    Points are deduplicated across all rings on their 4-decimal key.
    """
    points: List[GeoPoint] = []
    seen: Set[str] = set()
    for ring_index in range(max(0, rings)):
        distance = start_distance_miles + ring_index * ring_step_miles
        bearing_count = min(MAX_BEARINGS_PER_RING, 6 + 2 * ring_index)
        bearing_step = 360.0 / bearing_count
        offset = bearing_step / 2 if ring_index % 2 == 1 else 0.0
        for bearing_index in range(bearing_count):
            point = destination_point(origin, distance, offset + bearing_index * bearing_step)
            if point is None:
                continue
            key = point.rounded_key()
            if key in seen:
                continue
            seen.add(key)
            points.append(point)
    return points
