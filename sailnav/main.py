"""
Main Navigation Application
===========================

Holds the navigation engine components in one explicit context and
exposes synchronous "apply an update, get the derived state" entry
points. Platform adapters (GPS callbacks, wind fetchers, UI) translate
their events into these calls.

The CLI replays a recorded track through the engine.
"""

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .navigation.route import Route
from .navigation.route_tracker import NavOutput, RouteTracker, SteeringGuidance
from .performance.polar import Polar, PolarTable
from .performance.wind import LaylineOutput, WindModel, WindState
from .sensors.gps_smoother import (
    Fix,
    PositionError,
    SignalSmoother,
    SmoothedNav,
    SmootherConfig,
)
from .track_parser import TrackParser, load_route

logger = logging.getLogger(__name__)


@dataclass
class SailNavConfig:
    """Main navigation configuration."""
    # Boat
    boat_length_ft: Optional[float] = None  # Generate polar from size if set
    boat_type: str = "cruiser"
    polar_path: Optional[str] = None        # JSON polar, overrides generated one

    # GPS smoothing
    smoother: Optional[SmootherConfig] = None


@dataclass
class PerformanceOutput:
    """Boat speed against the polar."""
    tws: float                  # True wind speed (knots)
    twa: float                  # True wind angle (degrees, 0-180)
    target_speed: float         # Polar speed (knots)
    performance_ratio: float    # Actual / target

    def to_dict(self) -> dict:
        return {
            'tws': self.tws,
            'twa': self.twa,
            'targetSpeed': self.target_speed,
            'performanceRatio': self.performance_ratio,
        }


@dataclass
class NavSnapshot:
    """Everything derived from one fix."""
    nav: SmoothedNav
    route: Optional[NavOutput] = None
    steering: Optional[SteeringGuidance] = None
    performance: Optional[PerformanceOutput] = None

    def to_dict(self, include_track: bool = False) -> dict:
        nav = self.nav.to_dict()
        if not include_track:
            nav.pop('track')
        return {
            'nav': nav,
            'route': self.route.to_dict() if self.route else None,
            'steering': {
                'cts': self.steering.cts,
                'correction': self.steering.correction,
                'instruction': self.steering.instruction,
            } if self.steering else None,
            'performance': self.performance.to_dict() if self.performance else None,
        }


class SailNav:
    """
    Navigation engine context.

    Coordinates:
    - GPS smoothing
    - Route tracking and steering guidance
    - Polar performance
    - Wind and laylines
    """

    def __init__(self, config: Optional[SailNavConfig] = None,
                 polar: Optional[Polar] = None,
                 route: Optional[Route] = None):
        self.config = config or SailNavConfig()

        self.smoother = SignalSmoother(self.config.smoother)
        self.tracker = RouteTracker(route)
        self.polar = polar or self._build_polar()
        self.wind = WindModel()

        self._last_timestamp_ms: Optional[float] = None
        self._fix_count = 0
        self._dropped_count = 0

    def _build_polar(self) -> Polar:
        if self.config.polar_path:
            logger.info(f"Loading polar from {self.config.polar_path}")
            return Polar.from_json(self.config.polar_path)
        if self.config.boat_length_ft:
            table = PolarTable.for_boat(self.config.boat_length_ft, self.config.boat_type)
            logger.info(f"Generated polar '{table.name}' "
                        f"(hull speed {table.hull_speed:.1f}kn)")
            return Polar(table)
        return Polar()

    def apply_fix(self, fix: Fix) -> Optional[NavSnapshot]:
        """
        Process one position fix.

        Fixes not newer than the last processed one are dropped.

        Returns:
            NavSnapshot, or None if the fix was dropped
        """
        if self._last_timestamp_ms is not None and fix.timestamp_ms <= self._last_timestamp_ms:
            self._dropped_count += 1
            logger.debug(f"Dropping stale fix @ {fix.timestamp_ms}")
            return None
        self._last_timestamp_ms = fix.timestamp_ms
        self._fix_count += 1

        nav = self.smoother.update(fix)

        now = datetime.fromtimestamp(fix.timestamp_ms / 1000.0, tz=timezone.utc)
        route_output = self.tracker.update(nav.position, nav.sog, nav.cog, now=now)
        steering = None
        if route_output is not None:
            steering = self.tracker.steering_guidance(route_output, nav.cog)

        return NavSnapshot(
            nav=nav,
            route=route_output,
            steering=steering,
            performance=self.performance(),
        )

    def apply_position_error(self, message: str) -> PositionError:
        """Forward a position source failure; last good output is kept."""
        return self.smoother.handle_error(message)

    def apply_wind(self, wind: WindState) -> Optional[LaylineOutput]:
        """
        Replace the wind reading.

        Returns:
            Laylines to the active waypoint, if a position and waypoint exist
        """
        self.wind.set_wind(wind)
        return self.laylines()

    def import_polar(self, text: str) -> bool:
        return self.polar.import_json(text)

    def performance(self) -> Optional[PerformanceOutput]:
        """Performance against the polar for the latest fix and wind."""
        nav = self.smoother.current
        wind = self.wind.wind
        if nav is None or wind is None:
            return None

        twa = self.wind.true_wind_angle(nav.cog)
        target = self.polar.get_target_speed(wind.speed_kn, twa)
        return PerformanceOutput(
            tws=wind.speed_kn,
            twa=twa,
            target_speed=target,
            performance_ratio=self.polar.get_performance_ratio(nav.sog, wind.speed_kn, twa),
        )

    def laylines(self) -> Optional[LaylineOutput]:
        """Laylines from the latest position to the active waypoint."""
        nav = self.smoother.current
        waypoint = self.tracker.route.active_waypoint
        if nav is None or waypoint is None:
            return None
        return self.wind.laylines(nav.position, waypoint.point, self.polar)

    @property
    def status(self) -> dict:
        """Current engine status."""
        route = self.tracker.route
        return {
            'route_state': self.tracker.state.value,
            'waypoints': len(route),
            'active_index': route.active_index,
            'polar': self.polar.table.name,
            'wind': self.wind.wind.to_dict() if self.wind.wind else None,
            'fix_count': self._fix_count,
            'dropped_fixes': self._dropped_count,
        }


def setup_logging(verbose: bool = False):
    """Configure logging."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)]
    )


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Replay a GPS track through the sailing navigator")
    parser.add_argument("--track", "-t", required=True,
                        help="Track CSV (timestamp_ms,lat,lon[,speed_mps,heading_deg,accuracy_m])")
    parser.add_argument("--route", "-r", default=None,
                        help="Route JSON (saved route or list of waypoints)")
    parser.add_argument("--polar", "-p", default=None,
                        help="Polar JSON file")
    parser.add_argument("--boat-length", type=float, default=None,
                        help="Generate polar for this length overall (feet)")
    parser.add_argument("--boat-type", default="cruiser",
                        help="Boat type for generated polar")
    parser.add_argument("--wind-speed", type=float, default=None,
                        help="True wind speed (knots)")
    parser.add_argument("--wind-direction", type=float, default=None,
                        help="True wind direction (degrees)")
    parser.add_argument("--output", "-o", default=None,
                        help="Write JSON lines here instead of stdout")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Verbose logging")

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    config = SailNavConfig(
        boat_length_ft=args.boat_length,
        boat_type=args.boat_type,
        polar_path=args.polar,
    )

    try:
        route = load_route(args.route) if args.route else None
        engine = SailNav(config, route=route)
        fixes = TrackParser(args.track).parse()
    except (OSError, ValueError) as e:
        logger.error(f"Failed to start: {e}")
        return 1

    if args.wind_speed is not None and args.wind_direction is not None:
        try:
            engine.wind.set_wind(WindState(args.wind_speed, args.wind_direction))
        except ValueError as e:
            logger.error(f"Invalid wind: {e}")
            return 1

    out = open(args.output, 'w', encoding='utf-8') if args.output else sys.stdout
    try:
        for fix in fixes:
            snapshot = engine.apply_fix(fix)
            if snapshot is None:
                continue
            out.write(json.dumps(snapshot.to_dict()) + "\n")

        laylines = engine.laylines() if engine.wind.is_available else None
        if laylines is not None:
            logger.info(f"Laylines: port {laylines.port.bearing:.0f}°, "
                        f"starboard {laylines.starboard.bearing:.0f}°")
    finally:
        if out is not sys.stdout:
            out.close()

    status = engine.status
    logger.info(f"Processed {status['fix_count']} fixes "
                f"({status['dropped_fixes']} dropped), route {status['route_state']}")
    if args.output:
        logger.info(f"Output written to {Path(args.output)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
