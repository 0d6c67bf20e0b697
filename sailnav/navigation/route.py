"""
Route Model
===========

Ordered waypoint sequence with an active waypoint pointer.
Waypoints are created by the user, may be dragged to a new position,
and are identified by ids that are never reused within a route.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Any, Dict
import logging

from .geodesy import GeoPoint, distance

logger = logging.getLogger(__name__)


class RouteState(Enum):
    """Lifecycle of a route."""
    EMPTY = "empty"           # No waypoints
    PLANNING = "planning"     # Waypoints exist, no position applied yet
    ACTIVE = "active"         # Navigating toward the active waypoint


@dataclass
class Waypoint:
    """A user-placed waypoint."""
    id: int
    point: GeoPoint
    name: str

    @property
    def lat(self) -> float:
        return self.point.lat

    @property
    def lon(self) -> float:
        return self.point.lon

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'lat': self.point.lat, 'lon': self.point.lon,
                'name': self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Waypoint':
        return cls(
            id=int(data['id']),
            point=GeoPoint.from_dict(data),
            name=str(data['name']),
        )


class Route:
    """
    Ordered list of waypoints and the index of the one being steered to.

    Invariant: 0 <= active_index < len(waypoints), or 0 when empty.
    """

    def __init__(self, name: Optional[str] = None):
        self.name = name
        self.waypoints: List[Waypoint] = []
        self.active_index = 0
        self._next_id = 1

    def __len__(self) -> int:
        return len(self.waypoints)

    @property
    def state(self) -> RouteState:
        # ACTIVE is only known to the tracker that applies positions
        if not self.waypoints:
            return RouteState.EMPTY
        return RouteState.PLANNING

    @property
    def active_waypoint(self) -> Optional[Waypoint]:
        """Waypoint currently steered to, or None for an empty route."""
        if not self.waypoints:
            return None
        return self.waypoints[self.active_index]

    @property
    def is_last_active(self) -> bool:
        return self.active_index >= len(self.waypoints) - 1

    def add_waypoint(self, point: GeoPoint, name: Optional[str] = None) -> Waypoint:
        """
        Append a waypoint to the end of the route.

        Args:
            point: Waypoint position
            name: Display name (defaults to "WPT n")

        Returns:
            The created Waypoint
        """
        waypoint = Waypoint(
            id=self._next_id,
            point=point,
            name=name or f"WPT {len(self.waypoints) + 1}",
        )
        self._next_id += 1
        self.waypoints.append(waypoint)

        if len(self.waypoints) == 1:
            self.active_index = 0

        logger.debug(f"Added waypoint {waypoint.id} '{waypoint.name}' at "
                     f"{point.lat:.5f}, {point.lon:.5f}")
        return waypoint

    def get_waypoint(self, waypoint_id: int) -> Optional[Waypoint]:
        for waypoint in self.waypoints:
            if waypoint.id == waypoint_id:
                return waypoint
        return None

    def remove_waypoint(self, waypoint_id: int) -> bool:
        """Remove a waypoint by id. Returns False if the id is unknown."""
        for index, waypoint in enumerate(self.waypoints):
            if waypoint.id == waypoint_id:
                del self.waypoints[index]
                if self.active_index >= len(self.waypoints):
                    self.active_index = max(0, len(self.waypoints) - 1)
                logger.debug(f"Removed waypoint {waypoint_id}")
                return True
        return False

    def move_waypoint(self, waypoint_id: int, point: GeoPoint) -> bool:
        """Move (drag) a waypoint to a new position."""
        waypoint = self.get_waypoint(waypoint_id)
        if waypoint is None:
            return False
        waypoint.point = point
        return True

    def set_active(self, index: int) -> bool:
        """Set the active waypoint. Out of range indices are ignored."""
        if 0 <= index < len(self.waypoints):
            self.active_index = index
            return True
        return False

    def advance(self) -> bool:
        """Step to the next waypoint unless the active one is the last."""
        if self.is_last_active:
            return False
        self.active_index += 1
        return True

    def clear(self):
        """Remove all waypoints. Ids keep counting upwards."""
        self.waypoints = []
        self.active_index = 0

    def total_distance(self) -> float:
        """Sum of leg lengths in nautical miles (1 dp)."""
        total = 0.0
        for prev, cur in zip(self.waypoints, self.waypoints[1:]):
            total += distance(prev.point, cur.point)
        return round(total, 1)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form for a storage collaborator."""
        return {
            'name': self.name,
            'waypoints': [wp.to_dict() for wp in self.waypoints],
            'active_index': self.active_index,
            'next_id': self._next_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Route':
        """
        Rebuild a route saved with to_dict().

        Raises:
            ValueError: If waypoints are malformed or ids are duplicated
        """
        route = cls(name=data.get('name'))
        try:
            waypoints = [Waypoint.from_dict(wp) for wp in data.get('waypoints', [])]
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Malformed waypoint: {e}") from e

        ids = [wp.id for wp in waypoints]
        if len(set(ids)) != len(ids):
            raise ValueError("Duplicate waypoint ids in route")

        try:
            next_id = int(data.get('next_id') or 1)
            active = int(data.get('active_index') or 0)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Malformed route index: {e}") from e

        route.waypoints = waypoints
        route._next_id = max(next_id, max(ids, default=0) + 1)

        route.active_index = active if 0 <= active < len(waypoints) else 0
        return route
