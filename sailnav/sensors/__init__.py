"""
Sensor Modules
==============

Position source conditioning.
"""

from .gps_smoother import (
    Fix,
    TrackPoint,
    SmoothedNav,
    PositionError,
    SmootherConfig,
    SignalSmoother,
    MPS_TO_KNOTS,
    weighted_mean,
    circular_mean,
)

__all__ = [
    'Fix',
    'TrackPoint',
    'SmoothedNav',
    'PositionError',
    'SmootherConfig',
    'SignalSmoother',
    'MPS_TO_KNOTS',
    'weighted_mean',
    'circular_mean',
]
