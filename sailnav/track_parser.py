"""
Track Parser
============

Reads recorded position fixes and planned routes from files so they
can be replayed through the navigation engine.

Track CSV columns (header required):
    timestamp_ms, lat, lon[, speed_mps, heading_deg, accuracy_m]
Empty optional cells mean the device did not report the value.
"""

import csv
import json
from pathlib import Path
from typing import List, Optional
import logging

from .navigation.geodesy import GeoPoint
from .navigation.route import Route
from .sensors.gps_smoother import Fix

logger = logging.getLogger(__name__)


REQUIRED_COLUMNS = ('timestamp_ms', 'lat', 'lon')


class TrackParser:
    """Parser for recorded GPS track CSV files."""

    def __init__(self, filepath: str):
        self.filepath = Path(filepath)
        self.fixes: List[Fix] = []

    def parse(self) -> List[Fix]:
        """
        Parse the track file.

        Rows that cannot be parsed are logged and skipped.

        Returns:
            Fixes in file order
        """
        if not self.filepath.exists():
            raise FileNotFoundError(f"Track file not found: {self.filepath}")

        self.fixes = []
        with open(self.filepath, 'r', newline='', encoding='utf-8') as f:
            reader = csv.DictReader(f)
            columns = reader.fieldnames or []
            missing = [c for c in REQUIRED_COLUMNS if c not in columns]
            if missing:
                raise ValueError(f"Track file missing columns: {', '.join(missing)}")

            for line_num, row in enumerate(reader, start=2):
                try:
                    self.fixes.append(self._parse_row(row))
                except (ValueError, TypeError) as e:
                    logger.warning(f"Failed to parse line {line_num}: {e}")
                    continue

        logger.info(f"Parsed {len(self.fixes)} fixes from {self.filepath.name}")
        return self.fixes

    def _parse_row(self, row: dict) -> Fix:
        return Fix(
            point=GeoPoint(lat=float(row['lat']), lon=float(row['lon'])),
            timestamp_ms=float(row['timestamp_ms']),
            speed_mps=_optional_float(row.get('speed_mps')),
            heading_deg=_optional_float(row.get('heading_deg')),
            accuracy_m=_optional_float(row.get('accuracy_m')) or 0.0,
        )


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    return float(value)


def load_route(filepath: str) -> Route:
    """
    Load a route from JSON.

    Accepts either a saved route object (Route.to_dict()) or a plain
    list of {"lat", "lon", "name"?} waypoints.
    """
    path = Path(filepath)
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if isinstance(data, list):
        route = Route(name=path.stem)
        for index, item in enumerate(data):
            try:
                route.add_waypoint(GeoPoint.from_dict(item), item.get('name'))
            except (KeyError, TypeError, AttributeError) as e:
                raise ValueError(f"Malformed waypoint {index}: {e!r}") from e
    elif isinstance(data, dict):
        route = Route.from_dict(data)
    else:
        raise ValueError(f"Route file must hold an object or a list, "
                         f"got {type(data).__name__}")

    logger.info(f"Loaded {len(route)} waypoints from {path.name}")
    return route
