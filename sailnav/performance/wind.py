"""
Wind Model
==========

True/apparent wind transforms, laylines to a mark, leeway and wind
shift estimates for a single scalar wind reading.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging

from ..navigation.geodesy import (
    GeoPoint,
    bearing,
    distance,
    normalize_signed,
    normalize_unsigned,
    project,
)
from .polar import Polar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WindState:
    """True wind reading. Replaced wholesale, never mutated."""
    speed_kn: float             # True wind speed (knots)
    direction_deg: float        # True wind direction, from (degrees)

    def __post_init__(self):
        if not (math.isfinite(self.speed_kn) and math.isfinite(self.direction_deg)):
            raise ValueError("Wind speed and direction must be finite")
        if self.speed_kn < 0:
            raise ValueError(f"Wind speed must be non-negative: {self.speed_kn}")
        object.__setattr__(self, 'direction_deg', normalize_unsigned(self.direction_deg))

    def to_dict(self) -> dict:
        return {'speedKn': self.speed_kn, 'directionDeg': self.direction_deg}


@dataclass
class ApparentWind:
    """Apparent wind as felt on board."""
    speed: float                # Apparent wind speed (knots)
    direction: float            # Apparent wind direction (degrees true)
    angle: float                # Apparent wind angle off the bow (0-180)


@dataclass
class LaylineIntercept:
    """Point where a layline is reached."""
    point: GeoPoint
    distance: float             # Distance sailed along the layline (nm)

    def to_dict(self) -> dict:
        return {'lat': self.point.lat, 'lon': self.point.lon,
                'distance': self.distance}


@dataclass
class Layline:
    """One tack's layline."""
    bearing: float              # Course on this tack (degrees)
    intercept: LaylineIntercept
    angle: float                # Optimal TWA used (degrees)
    vmg: float                  # Upwind VMG at that angle (knots)

    def to_dict(self) -> dict:
        return {'bearing': self.bearing, 'intercept': self.intercept.to_dict(),
                'angle': self.angle, 'vmg': self.vmg}


@dataclass
class LaylineOutput:
    """Port and starboard laylines to a target."""
    port: Layline
    starboard: Layline
    target_bearing: float
    distance_to_target: float

    def to_dict(self) -> dict:
        return {
            'port': self.port.to_dict(),
            'starboard': self.starboard.to_dict(),
            'targetBearing': self.target_bearing,
            'distanceToTarget': self.distance_to_target,
        }


class ShiftDirection(Enum):
    """Wind shift direction."""
    VEER = "veer"       # Clockwise
    BACK = "back"       # Anti-clockwise
    NONE = "none"


@dataclass
class WindShift:
    """Change in true wind direction."""
    magnitude: float
    direction: ShiftDirection


def true_wind_angle(heading: float, wind_direction: float) -> float:
    """True wind angle off the bow (0-180), either side."""
    return abs(normalize_signed(wind_direction - heading))


def apparent_wind(wind: WindState, boat_speed: float, heading: float) -> ApparentWind:
    """
    Calculate apparent wind from true wind and boat motion.

    Vectors use east = x, north = y and give the velocity of the air.
    Air velocity relative to the boat is the true wind velocity plus the
    negated boat velocity; the result is converted back to the
    direction the wind blows from. Heading into 10 kn of true wind at
    5 kn gives 15 kn apparent from dead ahead.
    """
    heading_rad = math.radians(heading)
    twd_rad = math.radians(wind.direction_deg)

    # True wind blows toward twd + 180
    tw_x = -wind.speed_kn * math.sin(twd_rad)
    tw_y = -wind.speed_kn * math.cos(twd_rad)

    # Negated boat velocity
    bv_x = -boat_speed * math.sin(heading_rad)
    bv_y = -boat_speed * math.cos(heading_rad)

    aw_x = tw_x + bv_x
    aw_y = tw_y + bv_y

    speed = math.hypot(aw_x, aw_y)
    if speed == 0.0:
        direction = normalize_unsigned(heading)
    else:
        direction = normalize_unsigned(math.degrees(math.atan2(-aw_x, -aw_y)))

    return ApparentWind(
        speed=speed,
        direction=direction,
        angle=abs(normalize_signed(direction - heading)),
    )


def layline_intercept(position: GeoPoint, layline_bearing: float,
                      target_bearing: float, distance_to_target: float) -> LaylineIntercept:
    """
    Approximate where the layline is reached.

    Planar short-range approximation, not a spherical intersection.
    """
    angle = abs(normalize_signed(layline_bearing - target_bearing))
    distance_on_layline = distance_to_target * math.sin(math.radians(angle))

    return LaylineIntercept(
        point=project(position, layline_bearing, distance_on_layline),
        distance=distance_on_layline,
    )


def calculate_laylines(position: GeoPoint, target: GeoPoint,
                       wind: WindState, polar: Polar) -> LaylineOutput:
    """
    Calculate port and starboard laylines to a target.

    Args:
        position: Current position
        target: Mark or waypoint
        wind: True wind
        polar: Boat polar used for the optimal upwind angle

    Returns:
        LaylineOutput
    """
    target_bearing = bearing(position, target)
    distance_to_target = distance(position, target)

    upwind = polar.find_optimal_vmg_angles(wind.speed_kn).upwind

    port_bearing = normalize_unsigned(wind.direction_deg + upwind.angle)
    starboard_bearing = normalize_unsigned(wind.direction_deg - upwind.angle)

    port = Layline(
        bearing=port_bearing,
        intercept=layline_intercept(position, port_bearing,
                                    target_bearing, distance_to_target),
        angle=upwind.angle,
        vmg=upwind.vmg,
    )
    starboard = Layline(
        bearing=starboard_bearing,
        intercept=layline_intercept(position, starboard_bearing,
                                    target_bearing, distance_to_target),
        angle=upwind.angle,
        vmg=upwind.vmg,
    )

    logger.debug(f"Laylines: port={port_bearing:.0f} stbd={starboard_bearing:.0f} "
                 f"@ TWA {upwind.angle:.0f}")

    return LaylineOutput(
        port=port,
        starboard=starboard,
        target_bearing=target_bearing,
        distance_to_target=distance_to_target,
    )


def calculate_leeway(boat_speed: float, heel_angle: float, twa: float) -> float:
    """
    Estimate leeway angle (degrees).

    Grows with heel, falls with boat speed, and is small when running.
    """
    base_leeway = 3.0
    heel_factor = abs(heel_angle) / 15.0
    speed_factor = max(0.0, 1.0 - boat_speed / 8.0)

    leeway = base_leeway * heel_factor * speed_factor

    if twa > 135:
        leeway *= 0.2

    return leeway


def wind_shift(previous_direction: float, current_direction: float) -> WindShift:
    """Shift from previous to current wind direction."""
    shift = normalize_signed(current_direction - previous_direction)
    if shift > 0:
        direction = ShiftDirection.VEER
    elif shift < 0:
        direction = ShiftDirection.BACK
    else:
        direction = ShiftDirection.NONE
    return WindShift(magnitude=abs(shift), direction=direction)


class WindModel:
    """
    Current true wind and the calculations that depend on it.

    The wind is unset until the first reading arrives; dependent
    calculations return None until then.
    """

    def __init__(self, wind: Optional[WindState] = None):
        self._wind = wind

    def set_wind(self, wind: WindState) -> Optional[WindShift]:
        """
        Replace the current wind reading.

        Returns:
            Shift relative to the previous reading, if there was one
        """
        previous = self._wind
        self._wind = wind
        if previous is None:
            logger.info(f"Wind set: {wind.speed_kn:.1f}kn from {wind.direction_deg:.0f}°")
            return None
        shift = wind_shift(previous.direction_deg, wind.direction_deg)
        logger.debug(f"Wind update: {wind.speed_kn:.1f}kn from "
                     f"{wind.direction_deg:.0f}° ({shift.direction.value} "
                     f"{shift.magnitude:.0f}°)")
        return shift

    @property
    def wind(self) -> Optional[WindState]:
        return self._wind

    @property
    def is_available(self) -> bool:
        return self._wind is not None

    def true_wind_angle(self, heading: float) -> Optional[float]:
        if self._wind is None:
            return None
        return true_wind_angle(heading, self._wind.direction_deg)

    def apparent_wind(self, boat_speed: float, heading: float) -> Optional[ApparentWind]:
        if self._wind is None:
            return None
        return apparent_wind(self._wind, boat_speed, heading)

    def laylines(self, position: GeoPoint, target: GeoPoint,
                 polar: Polar) -> Optional[LaylineOutput]:
        if self._wind is None:
            return None
        return calculate_laylines(position, target, self._wind, polar)
