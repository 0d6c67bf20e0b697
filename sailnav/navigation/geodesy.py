"""
Geodesy Module
==============

Spherical-Earth distance and bearing primitives shared by every
navigation component. All angles are in degrees, distances in
nautical miles unless the function name says otherwise.
"""

import math
from dataclasses import dataclass


# Mean Earth radius
EARTH_RADIUS_NM = 3440.065
EARTH_RADIUS_M = 6371000.0

# 1 minute of latitude = 1 nm
NM_PER_DEGREE = 60.0


@dataclass(frozen=True)
class GeoPoint:
    """Geographic position in decimal degrees."""
    lat: float
    lon: float

    def __post_init__(self):
        if not (math.isfinite(self.lat) and math.isfinite(self.lon)):
            raise ValueError(f"Non-finite coordinates: {self.lat}, {self.lon}")
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lon <= 180.0:
            raise ValueError(f"Longitude out of range: {self.lon}")

    def to_dict(self) -> dict:
        return {'lat': self.lat, 'lon': self.lon}

    @classmethod
    def from_dict(cls, data: dict) -> 'GeoPoint':
        return cls(lat=float(data['lat']), lon=float(data['lon']))


def normalize_unsigned(angle: float) -> float:
    """Normalize an angle to [0, 360)."""
    result = angle % 360.0
    # -1e-15 % 360 rounds to 360.0
    return 0.0 if result >= 360.0 else result


def normalize_signed(angle: float) -> float:
    """Normalize an angle to (-180, 180]."""
    result = normalize_unsigned(angle)
    if result > 180.0:
        result -= 360.0
    return result


def _central_angle(a: GeoPoint, b: GeoPoint) -> float:
    """Haversine central angle between two points (radians)."""
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlat = math.radians(b.lat - a.lat)
    dlon = math.radians(b.lon - a.lon)

    h = (math.sin(dlat / 2) ** 2 +
         math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2)
    return 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def distance(a: GeoPoint, b: GeoPoint) -> float:
    """Great circle distance in nautical miles (haversine)."""
    return EARTH_RADIUS_NM * _central_angle(a, b)


def distance_m(a: GeoPoint, b: GeoPoint) -> float:
    """Great circle distance in metres (haversine)."""
    return EARTH_RADIUS_M * _central_angle(a, b)


def bearing(a: GeoPoint, b: GeoPoint) -> float:
    """
    Initial great circle bearing from a to b.

    Returns bearing in degrees [0, 360). Coincident points have no
    defined bearing; 0.0 is returned for them.
    """
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlon = math.radians(b.lon - a.lon)

    x = math.sin(dlon) * math.cos(lat2)
    y = (math.cos(lat1) * math.sin(lat2) -
         math.sin(lat1) * math.cos(lat2) * math.cos(dlon))

    if x == 0.0 and y == 0.0:
        return 0.0
    return normalize_unsigned(math.degrees(math.atan2(x, y)))


def cross_track_distance(start: GeoPoint, end: GeoPoint, point: GeoPoint) -> float:
    """
    Cross-track distance from point to the great circle start -> end.

    Returns distance in nautical miles.
    Positive means point is to the right of the track.
    """
    d13 = distance(start, point) / EARTH_RADIUS_NM
    theta13 = math.radians(bearing(start, point))
    theta12 = math.radians(bearing(start, end))

    return math.asin(math.sin(d13) * math.sin(theta13 - theta12)) * EARTH_RADIUS_NM


def along_track_distance(start: GeoPoint, end: GeoPoint, point: GeoPoint) -> float:
    """
    Distance from start to the foot of the perpendicular from point
    onto the track start -> end.

    Negative when the foot lies behind start.
    """
    d13 = distance(start, point) / EARTH_RADIUS_NM
    if d13 == 0.0:
        return 0.0
    xtd = cross_track_distance(start, end, point) / EARTH_RADIUS_NM

    ratio = math.cos(d13) / math.cos(xtd)
    atd = math.acos(max(-1.0, min(1.0, ratio)))

    # Sign from whether the point lies ahead of or behind start
    delta = math.radians(bearing(start, point) - bearing(start, end))
    return math.copysign(atd, math.cos(delta)) * EARTH_RADIUS_NM


def project(origin: GeoPoint, course: float, distance_nm: float) -> GeoPoint:
    """
    Move distance_nm from origin along course on a local flat-Earth chart.

    Short-range approximation: latitude advances 1/60 degree per nm and
    longitude is stretched by 1/cos(lat) for meridian convergence.
    """
    course_rad = math.radians(course)
    lat = origin.lat + (distance_nm / NM_PER_DEGREE) * math.cos(course_rad)

    cos_lat = math.cos(math.radians(origin.lat))
    if abs(cos_lat) < 1e-12:
        lon = origin.lon
    else:
        lon = origin.lon + (distance_nm / NM_PER_DEGREE) * math.sin(course_rad) / cos_lat

    lat = max(-90.0, min(90.0, lat))
    lon = normalize_signed(lon)
    return GeoPoint(lat=lat, lon=lon)
