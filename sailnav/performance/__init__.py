"""
Performance Modules
===================

Boat polar and wind calculations.
"""

from .polar import (
    Polar,
    PolarTable,
    OptimalAngle,
    VMGAngles,
    BOAT_TYPE_FACTORS,
    normalize_twa,
)

from .wind import (
    WindModel,
    WindState,
    ApparentWind,
    Layline,
    LaylineIntercept,
    LaylineOutput,
    ShiftDirection,
    WindShift,
    apparent_wind,
    true_wind_angle,
    calculate_laylines,
    calculate_leeway,
    layline_intercept,
    wind_shift,
)

__all__ = [
    'Polar',
    'PolarTable',
    'OptimalAngle',
    'VMGAngles',
    'BOAT_TYPE_FACTORS',
    'normalize_twa',
    'WindModel',
    'WindState',
    'ApparentWind',
    'Layline',
    'LaylineIntercept',
    'LaylineOutput',
    'ShiftDirection',
    'WindShift',
    'apparent_wind',
    'true_wind_angle',
    'calculate_laylines',
    'calculate_leeway',
    'layline_intercept',
    'wind_shift',
]
