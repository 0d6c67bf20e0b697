"""
Route Tracker
=============

Follows a route as positions arrive: picks the leg the boat is on,
advances past reached waypoints, and computes distance/bearing to the
active waypoint, cross-track error, VMG, ETA and steering guidance.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Tuple
import logging

from .geodesy import (
    GeoPoint,
    along_track_distance,
    bearing,
    cross_track_distance,
    distance,
    normalize_signed,
    normalize_unsigned,
)
from .route import Route, RouteState, Waypoint

logger = logging.getLogger(__name__)


ETA_UNAVAILABLE_TEXT = "--:--"


@dataclass
class NavOutput:
    """Navigation data toward the active waypoint."""
    waypoint: Waypoint
    dtw: float                  # Distance to waypoint (nm, 1 dp)
    brg: int                    # Bearing to waypoint (degrees)
    xte: float                  # Cross-track error (nm, 2 dp, +ve right of track)
    vmg: float                  # Velocity made good toward waypoint (knots, 1 dp)
    eta: Optional[datetime]     # None when the waypoint is not being approached
    active_index: int
    total_waypoints: int

    @property
    def eta_available(self) -> bool:
        return self.eta is not None

    @property
    def eta_text(self) -> str:
        """ETA as HH:MM, or --:-- when unavailable."""
        if self.eta is None:
            return ETA_UNAVAILABLE_TEXT
        return self.eta.strftime("%H:%M")

    def to_dict(self) -> dict:
        return {
            'waypoint': self.waypoint.to_dict(),
            'dtw': self.dtw,
            'brg': self.brg,
            'xte': self.xte,
            'vmg': self.vmg,
            'eta': self.eta.isoformat() if self.eta else None,
            'active_index': self.active_index,
            'total_waypoints': self.total_waypoints,
        }


class TurnDirection(Enum):
    """Helm instruction direction."""
    ON_COURSE = "on_course"
    PORT = "port"
    STARBOARD = "starboard"


@dataclass
class SteeringGuidance:
    """Course to steer and the correction needed from the current COG."""
    cts: float                  # Course to steer (degrees)
    correction: float           # Signed turn needed (degrees, +ve to starboard)
    direction: TurnDirection
    instruction: str


def compute_eta(dtw: float, vmg: float, now: datetime) -> Optional[datetime]:
    """
    ETA from distance and closing speed.

    Uses VMG at the reported 0.1 kn resolution, so a boat abeam of the
    waypoint (VMG shown as 0.0) has no ETA. None if not closing or if
    the arrival time is beyond what datetime can represent.
    """
    vmg = round(vmg, 1)
    if vmg <= 0:
        return None
    try:
        return now + timedelta(hours=dtw / vmg)
    except OverflowError:
        return None


def compute_vmg(sog: float, cog: float, brg: float) -> float:
    """Speed component along the bearing to the waypoint."""
    if not sog:
        return 0.0
    return sog * math.cos(math.radians(cog - brg))


class RouteTracker:
    """
    Tracks progress along a Route.

    Features:
    - Re-targets to the leg closest to the boat
    - Advances past reached waypoints (never past the last one)
    - Computes DTW, BRG, XTE, VMG and ETA
    - Derives course-to-steer guidance from XTE
    """

    # Waypoint arrival threshold
    ARRIVAL_THRESHOLD_NM = 0.05

    # Only switch legs when this close to the nearer leg
    LEG_SWITCH_THRESHOLD_NM = 1.0

    # Steering guidance
    XTE_GAIN_DEG_PER_NM = 50.0
    MAX_XTE_CORRECTION_DEG = 30.0
    ON_COURSE_TOLERANCE_DEG = 5.0

    def __init__(self, route: Optional[Route] = None):
        self.route = route or Route()
        self._navigating = False

    @property
    def state(self) -> RouteState:
        route_state = self.route.state
        if route_state == RouteState.PLANNING and self._navigating:
            return RouteState.ACTIVE
        return route_state

    def add_waypoint(self, point: GeoPoint, name: Optional[str] = None) -> Waypoint:
        return self.route.add_waypoint(point, name)

    def remove_waypoint(self, waypoint_id: int) -> bool:
        removed = self.route.remove_waypoint(waypoint_id)
        if not self.route.waypoints:
            self._navigating = False
        return removed

    def clear_route(self):
        self.route.clear()
        self._navigating = False

    def load_route(self, route: Route):
        """Replace the tracked route (e.g. after loading from storage)."""
        self.route = route
        self._navigating = False
        logger.info(f"Loaded route '{route.name}' with {len(route)} waypoints")

    def update(self, position: GeoPoint, sog: float, cog: float,
               now: Optional[datetime] = None) -> Optional[NavOutput]:
        """
        Update navigation for a new position.

        Args:
            position: Current (smoothed) position
            sog: Speed over ground (knots)
            cog: Course over ground (degrees)
            now: Time reference for the ETA (defaults to now)

        Returns:
            NavOutput, or None if the route has no waypoints
        """
        if not self.route.waypoints:
            return None

        self._update_active_leg(position)

        active = self.route.active_waypoint
        if (distance(position, active.point) < self.ARRIVAL_THRESHOLD_NM
                and self.route.advance()):
            logger.info(f"Reached {active.name}, advancing to "
                        f"{self.route.active_waypoint.name}")
            active = self.route.active_waypoint

        self._navigating = True

        dtw = distance(position, active.point)
        brg = bearing(position, active.point)
        xte = self._cross_track_error(position)
        vmg = compute_vmg(sog, cog, brg)
        eta = compute_eta(dtw, vmg, now or datetime.now())

        logger.debug(f"WPT {self.route.active_index}: dtw={dtw:.3f}nm "
                     f"brg={brg:.1f} xte={xte:.3f} vmg={vmg:.2f}")

        return NavOutput(
            waypoint=active,
            dtw=round(dtw, 1),
            brg=int(round(brg)) % 360,
            xte=round(xte, 2),
            vmg=round(vmg, 1),
            eta=eta,
            active_index=self.route.active_index,
            total_waypoints=len(self.route),
        )

    def _update_active_leg(self, position: GeoPoint):
        """Retarget to the leg the boat is closest to."""
        waypoints = self.route.waypoints
        if len(waypoints) < 2:
            return

        closest_to_index, min_distance = self._closest_leg(position)

        if (closest_to_index != self.route.active_index
                and min_distance < self.LEG_SWITCH_THRESHOLD_NM):
            logger.debug(f"Leg switch: {self.route.active_index} -> "
                         f"{closest_to_index} ({min_distance:.3f}nm)")
            self.route.active_index = closest_to_index

    def _closest_leg(self, position: GeoPoint) -> Tuple[int, float]:
        """Return (to_index, distance) of the leg nearest to position."""
        waypoints = self.route.waypoints
        closest_to_index = 0
        min_distance = math.inf

        for i in range(len(waypoints) - 1):
            leg_distance = self.distance_to_leg(
                position, waypoints[i].point, waypoints[i + 1].point
            )
            if leg_distance < min_distance:
                min_distance = leg_distance
                closest_to_index = i + 1  # We navigate TO the second waypoint

        return closest_to_index, min_distance

    @staticmethod
    def distance_to_leg(position: GeoPoint, start: GeoPoint, end: GeoPoint) -> float:
        """
        Distance from position to the leg start -> end.

        Perpendicular distance when the position projects onto the leg,
        otherwise distance to the nearer endpoint.
        """
        leg_length = distance(start, end)
        along = along_track_distance(start, end, position)

        if leg_length == 0.0 or along < 0.0 or along > leg_length:
            return min(distance(start, position), distance(end, position))

        return abs(cross_track_distance(start, end, position))

    def _cross_track_error(self, position: GeoPoint) -> float:
        """
        Cross-track error from the leg previous -> active waypoint.

        Zero while heading to the first waypoint.
        """
        waypoints = self.route.waypoints
        index = self.route.active_index
        if len(waypoints) < 2 or index == 0:
            return 0.0

        return cross_track_distance(waypoints[index - 1].point,
                                    waypoints[index].point, position)

    def steering_guidance(self, nav: NavOutput, cog: float) -> SteeringGuidance:
        """
        Course to steer given the current COG.

        CTS is the waypoint bearing offset by XTE, limited to
        +/- MAX_XTE_CORRECTION_DEG.
        """
        offset = nav.xte * self.XTE_GAIN_DEG_PER_NM
        offset = max(-self.MAX_XTE_CORRECTION_DEG,
                     min(self.MAX_XTE_CORRECTION_DEG, offset))
        cts = normalize_unsigned(nav.brg + offset)

        correction = normalize_signed(cts - cog)
        magnitude = abs(correction)

        if magnitude < self.ON_COURSE_TOLERANCE_DEG:
            direction = TurnDirection.ON_COURSE
            instruction = "On course"
        elif correction > 0:
            direction = TurnDirection.STARBOARD
            instruction = f"Turn right {magnitude:.0f}°"
        else:
            direction = TurnDirection.PORT
            instruction = f"Turn left {magnitude:.0f}°"

        return SteeringGuidance(
            cts=cts,
            correction=correction,
            direction=direction,
            instruction=instruction,
        )
