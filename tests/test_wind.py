"""
Unit tests for wind model.

Tests true/apparent wind, laylines, leeway and wind shifts.
"""

import math
import pytest

from sailnav.navigation.geodesy import GeoPoint
from sailnav.performance.wind import (
    ShiftDirection,
    WindModel,
    WindState,
    apparent_wind,
    calculate_laylines,
    calculate_leeway,
    layline_intercept,
    true_wind_angle,
    wind_shift,
)


class TestWindState:
    """Tests for WindState validation."""

    def test_direction_normalized(self):
        assert WindState(10.0, 370.0).direction_deg == pytest.approx(10.0)
        assert WindState(10.0, -90.0).direction_deg == pytest.approx(270.0)

    def test_negative_speed_rejected(self):
        with pytest.raises(ValueError):
            WindState(-1.0, 0.0)

    def test_non_finite_rejected(self):
        with pytest.raises(ValueError):
            WindState(float('nan'), 0.0)

    def test_to_dict(self, north_wind):
        assert north_wind.to_dict() == {'speedKn': 10.0, 'directionDeg': 0.0}


class TestTrueWindAngle:
    """Tests for TWA."""

    @pytest.mark.parametrize("heading,wind_dir,expected", [
        (0, 0, 0),
        (0, 45, 45),
        (0, 315, 45),
        (90, 0, 90),
        (350, 10, 20),
        (0, 180, 180),
    ])
    def test_twa(self, heading, wind_dir, expected):
        assert true_wind_angle(heading, wind_dir) == pytest.approx(expected)


class TestApparentWind:
    """Tests for apparent wind."""

    def test_head_to_wind_adds_speeds(self, north_wind):
        aw = apparent_wind(north_wind, boat_speed=5.0, heading=0.0)
        assert aw.speed == pytest.approx(15.0)
        assert aw.direction == pytest.approx(0.0, abs=1e-9)
        assert aw.angle == pytest.approx(0.0, abs=1e-9)

    def test_dead_downwind_subtracts_speeds(self):
        wind = WindState(10.0, 180.0)
        aw = apparent_wind(wind, boat_speed=4.0, heading=0.0)
        assert aw.speed == pytest.approx(6.0)
        assert aw.direction == pytest.approx(180.0)
        assert aw.angle == pytest.approx(180.0)

    def test_beam_wind_draws_forward(self):
        wind = WindState(10.0, 90.0)
        aw = apparent_wind(wind, boat_speed=10.0, heading=0.0)
        assert aw.speed == pytest.approx(10.0 * math.sqrt(2))
        assert aw.direction == pytest.approx(45.0)
        assert aw.angle == pytest.approx(45.0)

    def test_stationary_boat_feels_true_wind(self):
        wind = WindState(12.0, 225.0)
        aw = apparent_wind(wind, boat_speed=0.0, heading=100.0)
        assert aw.speed == pytest.approx(12.0)
        assert aw.direction == pytest.approx(225.0)

    def test_no_wind_no_motion(self):
        aw = apparent_wind(WindState(0.0, 0.0), boat_speed=0.0, heading=123.0)
        assert aw.speed == 0.0
        assert aw.angle == 0.0


class TestLaylines:
    """Tests for layline calculation."""

    def test_layline_bearings(self, north_wind, polar):
        out = calculate_laylines(GeoPoint(0.0, 0.0), GeoPoint(0.1, 0.0),
                                 north_wind, polar)
        assert out.port.bearing == pytest.approx(45.0)
        assert out.starboard.bearing == pytest.approx(315.0)
        assert out.port.angle == 45
        assert out.target_bearing == pytest.approx(0.0)
        assert out.distance_to_target == pytest.approx(6.0, abs=0.01)

    def test_layline_intercepts(self, north_wind, polar):
        out = calculate_laylines(GeoPoint(0.0, 0.0), GeoPoint(0.1, 0.0),
                                 north_wind, polar)
        expected = 6.0 * math.sin(math.radians(45))
        assert out.port.intercept.distance == pytest.approx(expected, abs=0.01)
        assert out.port.intercept.point.lat == pytest.approx(0.05, abs=1e-3)
        assert out.port.intercept.point.lon == pytest.approx(0.05, abs=1e-3)
        assert out.starboard.intercept.point.lon == pytest.approx(-0.05, abs=1e-3)

    def test_layline_wraps_north(self, polar):
        wind = WindState(10.0, 350.0)
        out = calculate_laylines(GeoPoint(0.0, 0.0), GeoPoint(0.1, 0.0), wind, polar)
        assert out.port.bearing == pytest.approx(35.0)
        assert out.starboard.bearing == pytest.approx(305.0)

    def test_intercept_distance_never_negative(self):
        intercept = layline_intercept(GeoPoint(0.0, 0.0), 10.0, 350.0, 5.0)
        assert intercept.distance == pytest.approx(5.0 * math.sin(math.radians(20)))

    def test_to_dict(self, north_wind, polar):
        out = calculate_laylines(GeoPoint(0.0, 0.0), GeoPoint(0.1, 0.0),
                                 north_wind, polar)
        data = out.to_dict()
        assert set(data) == {'port', 'starboard', 'targetBearing', 'distanceToTarget'}
        assert set(data['port']['intercept']) == {'lat', 'lon', 'distance'}


class TestLeeway:
    """Tests for leeway estimate."""

    def test_reaching(self):
        assert calculate_leeway(4.0, 15.0, 90.0) == pytest.approx(1.5)

    def test_running_is_reduced(self):
        assert calculate_leeway(4.0, 15.0, 150.0) == pytest.approx(0.3)

    def test_heel_to_port_counts(self):
        assert calculate_leeway(4.0, -15.0, 90.0) == pytest.approx(1.5)

    def test_fast_boat_has_none(self):
        assert calculate_leeway(10.0, 20.0, 60.0) == 0.0


class TestWindShift:
    """Tests for wind shift detection."""

    def test_veer_across_north(self):
        shift = wind_shift(350.0, 10.0)
        assert shift.direction == ShiftDirection.VEER
        assert shift.magnitude == pytest.approx(20.0)

    def test_back_across_north(self):
        shift = wind_shift(10.0, 350.0)
        assert shift.direction == ShiftDirection.BACK
        assert shift.magnitude == pytest.approx(20.0)

    def test_no_shift(self):
        assert wind_shift(90.0, 90.0).direction == ShiftDirection.NONE


class TestWindModel:
    """Tests for WindModel state handling."""

    def test_unset_returns_none(self, polar):
        model = WindModel()
        assert not model.is_available
        assert model.true_wind_angle(0.0) is None
        assert model.apparent_wind(5.0, 0.0) is None
        assert model.laylines(GeoPoint(0.0, 0.0), GeoPoint(0.1, 0.0), polar) is None

    def test_first_reading_has_no_shift(self, north_wind):
        model = WindModel()
        assert model.set_wind(north_wind) is None
        assert model.wind == north_wind

    def test_update_reports_shift(self, north_wind):
        model = WindModel(north_wind)
        shift = model.set_wind(WindState(12.0, 15.0))
        assert shift.direction == ShiftDirection.VEER
        assert model.true_wind_angle(0.0) == pytest.approx(15.0)
