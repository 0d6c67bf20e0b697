"""
GPS Smoother Module
===================

Conditions raw GNSS position fixes into stable speed and course over
ground. Heavy smoothing is applied when nearly stationary (where GPS
jitter dominates) and light smoothing under way to keep lag low.
"""

import math
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional, Tuple, Union
import numpy as np
import logging

from ..navigation.geodesy import GeoPoint, bearing, distance_m, normalize_unsigned

logger = logging.getLogger(__name__)


MPS_TO_KNOTS = 1.94384


@dataclass(frozen=True)
class Fix:
    """Raw position sample from the position source."""
    point: GeoPoint
    timestamp_ms: float
    heading_deg: Optional[float] = None   # Device course, if reported
    speed_mps: Optional[float] = None     # Device speed, if reported
    accuracy_m: float = 0.0


@dataclass(frozen=True)
class TrackPoint:
    """Track history entry."""
    point: GeoPoint
    timestamp_ms: float

    def to_dict(self) -> dict:
        return {'lat': self.point.lat, 'lon': self.point.lon,
                'timestamp': self.timestamp_ms}


@dataclass(frozen=True)
class SmoothedNav:
    """Smoothed navigation output for one fix."""
    position: GeoPoint
    sog: float                  # Speed over ground (knots, 1 dp)
    cog: int                    # Course over ground (degrees, 0-359)
    track_history: Tuple[TrackPoint, ...] = ()

    def to_dict(self) -> dict:
        return {
            'position': self.position.to_dict(),
            'sog': self.sog,
            'cog': self.cog,
            'track': [p.to_dict() for p in self.track_history],
        }


@dataclass(frozen=True)
class PositionError:
    """Error reported by the position source."""
    message: str
    timestamp_ms: Optional[float] = None


@dataclass
class SmootherConfig:
    """Configuration for GPS smoothing."""
    slow_window: int = 10               # Samples averaged when nearly stationary
    fast_window: int = 3                # Samples averaged under way
    low_speed_threshold: float = 1.0    # Below this raw SOG use slow_window (knots)
    cog_hold_threshold: float = 0.5     # Freeze COG at or below this SOG (knots)
    min_speed: float = 0.1              # Report 0 below this SOG (knots)
    buffer_size: int = 20               # Raw SOG/COG samples kept
    max_track_points: int = 1000        # Track history length


SmootherListener = Callable[[Union[SmoothedNav, PositionError]], None]


class SignalSmoother:
    """
    Smooths GNSS fixes into SOG/COG.

    - Recency-weighted moving average of SOG
    - Recency-weighted circular mean of COG
    - COG held at the last moving value when stationary
    - Bounded track history
    """

    def __init__(self, config: Optional[SmootherConfig] = None):
        self.config = config or SmootherConfig()
        if self.config.buffer_size < 2 * max(self.config.slow_window,
                                             self.config.fast_window):
            raise ValueError("buffer_size must hold at least two windows")

        self._sog_buffer: Deque[float] = deque(maxlen=self.config.buffer_size)
        self._cog_buffer: Deque[float] = deque(maxlen=self.config.buffer_size)
        self._track: Deque[TrackPoint] = deque(maxlen=self.config.max_track_points)

        self._previous: Optional[Fix] = None
        self._current: Optional[Fix] = None
        self._last_output: Optional[SmoothedNav] = None
        self._last_error: Optional[PositionError] = None

        self._callbacks: List[SmootherListener] = []

    def update(self, fix: Fix) -> SmoothedNav:
        """
        Process a new fix.

        Args:
            fix: Raw position sample (timestamps must not decrease)

        Returns:
            Smoothed navigation data
        """
        self._previous = self._current
        self._current = fix
        self._track.append(TrackPoint(point=fix.point, timestamp_ms=fix.timestamp_ms))

        raw_sog, raw_cog = self._raw_sog_cog()
        sog, cog = self._smooth(raw_sog, raw_cog)

        output = SmoothedNav(
            position=fix.point,
            sog=round(sog, 1),
            cog=int(round(cog)) % 360,
            track_history=tuple(self._track),
        )
        self._last_output = output
        self._last_error = None

        logger.debug(f"Fix raw sog={raw_sog:.2f} cog={raw_cog:.1f} -> "
                     f"sog={output.sog} cog={output.cog}")
        self._notify(output)
        return output

    def handle_error(self, message: str,
                     timestamp_ms: Optional[float] = None) -> PositionError:
        """
        Record a position source failure.

        The last good output is kept; nothing is raised.
        """
        error = PositionError(message=message, timestamp_ms=timestamp_ms)
        self._last_error = error
        logger.warning(f"Position source error: {message}")
        self._notify(error)
        return error

    def _raw_sog_cog(self) -> Tuple[float, float]:
        """Unsmoothed SOG (knots) and COG (degrees) for the current fix."""
        fix = self._current
        prev = self._previous

        if fix.speed_mps is not None:
            raw_sog = fix.speed_mps * MPS_TO_KNOTS
        elif prev is not None:
            dt = (fix.timestamp_ms - prev.timestamp_ms) / 1000.0
            if dt > 0:
                raw_sog = distance_m(prev.point, fix.point) / dt * MPS_TO_KNOTS
            else:
                raw_sog = 0.0
        else:
            raw_sog = 0.0

        if fix.heading_deg is not None:
            raw_cog = normalize_unsigned(fix.heading_deg)
        elif prev is not None:
            raw_cog = bearing(prev.point, fix.point)
        else:
            raw_cog = 0.0

        return raw_sog, raw_cog

    def _smooth(self, raw_sog: float, raw_cog: float) -> Tuple[float, float]:
        """Apply speed-dependent smoothing to the raw values."""
        self._sog_buffer.append(raw_sog)
        self._cog_buffer.append(raw_cog)

        if raw_sog < self.config.low_speed_threshold:
            window = self.config.slow_window
        else:
            window = self.config.fast_window
        window = min(window, len(self._sog_buffer))

        sog_samples = list(self._sog_buffer)[-window:]
        sog = weighted_mean(sog_samples)

        if sog > self.config.cog_hold_threshold:
            cog = circular_mean(list(self._cog_buffer)[-window:])
        else:
            cog = self._held_cog(raw_cog)

        if sog < self.config.min_speed:
            sog = 0.0

        return sog, cog

    def _held_cog(self, fallback: float) -> float:
        """Most recent earlier COG recorded while moving."""
        sogs = list(self._sog_buffer)
        cogs = list(self._cog_buffer)
        # Skip the sample just appended
        for i in range(len(cogs) - 2, -1, -1):
            if sogs[i] > self.config.cog_hold_threshold:
                return cogs[i]
        return fallback

    def _notify(self, data: Union[SmoothedNav, PositionError]):
        for callback in self._callbacks:
            try:
                callback(data)
            except Exception as e:
                logger.warning(f"GPS listener error: {e}")

    def add_callback(self, callback: SmootherListener):
        """Register a listener for smoothed output and errors."""
        self._callbacks.append(callback)

    def remove_callback(self, callback: SmootherListener):
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def reset(self):
        """Forget all fixes, buffers and track history."""
        self._sog_buffer.clear()
        self._cog_buffer.clear()
        self._track.clear()
        self._previous = None
        self._current = None
        self._last_output = None
        self._last_error = None

    @property
    def current(self) -> Optional[SmoothedNav]:
        """Last good output, or None before the first fix."""
        return self._last_output

    @property
    def last_error(self) -> Optional[PositionError]:
        """Most recent source error since the last good fix."""
        return self._last_error

    @property
    def last_fix(self) -> Optional[Fix]:
        return self._current

    @property
    def track_history(self) -> Tuple[TrackPoint, ...]:
        return tuple(self._track)


def weighted_mean(values: List[float]) -> float:
    """Linearly recency-weighted mean (oldest weight 1, newest weight n)."""
    if not values:
        return 0.0
    weights = np.arange(1, len(values) + 1, dtype=float)
    return float(np.average(np.asarray(values, dtype=float), weights=weights))


def circular_mean(angles: List[float], weighted: bool = True) -> float:
    """
    Circular mean of angles in degrees.

    Averages the unit vectors so that 350 and 10 average to 0, not 180.

    Args:
        angles: Angles, oldest first
        weighted: Weight by recency rank (oldest 1, newest n)

    Returns:
        Mean angle in [0, 360)
    """
    if not angles:
        return 0.0
    radians = np.radians(np.asarray(angles, dtype=float))
    if weighted:
        weights = np.arange(1, len(angles) + 1, dtype=float)
    else:
        weights = np.ones(len(angles))

    sin_sum = float(np.sum(weights * np.sin(radians)))
    cos_sum = float(np.sum(weights * np.cos(radians)))

    return normalize_unsigned(math.degrees(math.atan2(sin_sum, cos_sum)))
