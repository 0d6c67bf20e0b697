"""
Shared test fixtures for navigation engine unit tests.
"""

import pytest

from sailnav.navigation.geodesy import GeoPoint
from sailnav.navigation.route import Route
from sailnav.navigation.route_tracker import RouteTracker
from sailnav.performance.polar import Polar
from sailnav.performance.wind import WindState
from sailnav.sensors.gps_smoother import Fix, SignalSmoother


def make_fix(lat, lon, t_s, speed_mps=None, heading=None):
    """Fix at t_s seconds."""
    return Fix(
        point=GeoPoint(lat, lon),
        timestamp_ms=t_s * 1000.0,
        speed_mps=speed_mps,
        heading_deg=heading,
    )


@pytest.fixture
def polar():
    """Default cruiser polar for testing."""
    return Polar()


@pytest.fixture
def smoother():
    """GPS smoother with default configuration."""
    return SignalSmoother()


@pytest.fixture
def route_abc():
    """
    Route A -> B -> C.

    A-B runs due north along the prime meridian, B-C due east.
    """
    route = Route(name="abc")
    route.add_waypoint(GeoPoint(0.0, 0.0), "A")
    route.add_waypoint(GeoPoint(0.1, 0.0), "B")
    route.add_waypoint(GeoPoint(0.1, 0.1), "C")
    return route


@pytest.fixture
def tracker(route_abc):
    """Tracker on the A-B-C route."""
    return RouteTracker(route_abc)


@pytest.fixture
def north_wind():
    """10 knots from north."""
    return WindState(speed_kn=10.0, direction_deg=0.0)
