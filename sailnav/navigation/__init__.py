"""
Navigation Modules
==================

Spherical geodesy, the route model and route tracking.
"""

from .geodesy import (
    EARTH_RADIUS_NM,
    EARTH_RADIUS_M,
    GeoPoint,
    distance,
    distance_m,
    bearing,
    normalize_signed,
    normalize_unsigned,
    cross_track_distance,
    along_track_distance,
    project,
)

from .route import Route, RouteState, Waypoint

from .route_tracker import (
    RouteTracker,
    NavOutput,
    SteeringGuidance,
    TurnDirection,
)

__all__ = [
    'EARTH_RADIUS_NM',
    'EARTH_RADIUS_M',
    'GeoPoint',
    'distance',
    'distance_m',
    'bearing',
    'normalize_signed',
    'normalize_unsigned',
    'cross_track_distance',
    'along_track_distance',
    'project',
    'Route',
    'RouteState',
    'Waypoint',
    'RouteTracker',
    'NavOutput',
    'SteeringGuidance',
    'TurnDirection',
]
