"""
Polar Diagram Module
====================

Loads, validates and interpolates the boat's polar performance table.
Used to calculate target speeds, performance ratios and VMG-optimal
sailing angles.
"""

import bisect
import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple
import numpy as np
import logging

logger = logging.getLogger(__name__)


# Speed multipliers relative to a displacement cruiser
BOAT_TYPE_FACTORS = {
    'cruiser': 1.0,
    'cruiser-racer': 1.08,
    'racer': 1.15,
    'multihull': 1.3,
}

# Hull speed = 1.34 * sqrt(LWL in feet); LWL estimated from LOA
HULL_SPEED_COEFFICIENT = 1.34
WATERLINE_RATIO = 0.9


@dataclass(frozen=True, eq=False)
class PolarTable:
    """
    Polar diagram data, normalized to a rectangular matrix.

    matrix[i][j] is boat speed (knots) at wind_speeds[i], angles[j].
    """
    name: str
    hull_speed: float
    angles: Tuple[float, ...]           # True wind angles (degrees, 0-180)
    wind_speeds: Tuple[float, ...]      # True wind speeds (knots), ascending
    matrix: np.ndarray = field(repr=False)

    def __post_init__(self):
        # Tables are replaced wholesale, never edited in place
        matrix = np.array(self.matrix, dtype=float)
        matrix.flags.writeable = False
        object.__setattr__(self, 'matrix', matrix)

    @property
    def speeds(self) -> Dict[float, list]:
        """Per wind speed rows aligned with angles."""
        return {ws: self.matrix[i].tolist() for i, ws in enumerate(self.wind_speeds)}

    def __eq__(self, other) -> bool:
        if not isinstance(other, PolarTable):
            return NotImplemented
        return (self.name == other.name
                and self.hull_speed == other.hull_speed
                and self.angles == other.angles
                and self.wind_speeds == other.wind_speeds
                and np.array_equal(self.matrix, other.matrix))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PolarTable':
        """
        Build a validated table from its serialized form.

        Expected shape:
            {"name": str, "hullSpeed": float, "angles": [...],
             "speeds": {"<tws>": [...], ...}}

        Raises:
            ValueError: If fields are missing or the table is not rectangular
        """
        if not isinstance(data, dict):
            raise ValueError("Polar must be an object")
        missing = [key for key in ('name', 'angles', 'speeds') if not data.get(key)]
        if missing:
            raise ValueError(f"Polar missing required fields: {', '.join(missing)}")

        try:
            angles = [float(a) for a in data['angles']]
            rows = {float(ws): [float(v) for v in row]
                    for ws, row in data['speeds'].items()}
            hull_speed = float(data.get('hullSpeed', 0.0))
        except (TypeError, ValueError, AttributeError) as e:
            raise ValueError(f"Polar contains non-numeric data: {e}") from e
        if len(rows) != len(data['speeds']):
            raise ValueError("Polar has duplicate wind speed rows")

        _validate_axis(angles, "angles")
        if angles[0] < 0 or angles[-1] > 180:
            raise ValueError("Polar angles must lie within 0-180")

        wind_speeds = sorted(rows)
        _validate_axis(wind_speeds, "wind speeds")
        for ws in wind_speeds:
            if len(rows[ws]) != len(angles):
                raise ValueError(
                    f"Polar row for {ws:g} kn has {len(rows[ws])} values, "
                    f"expected {len(angles)}"
                )

        matrix = np.array([rows[ws] for ws in wind_speeds], dtype=float)
        if not np.all(np.isfinite(matrix)) or np.any(matrix < 0):
            raise ValueError("Polar speeds must be finite and non-negative")

        return cls(
            name=str(data['name']),
            hull_speed=hull_speed,
            angles=tuple(angles),
            wind_speeds=tuple(wind_speeds),
            matrix=matrix,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialized form accepted by from_dict()."""
        return {
            'name': self.name,
            'hullSpeed': self.hull_speed,
            'angles': list(self.angles),
            'speeds': {_format_key(ws): self.matrix[i].tolist()
                       for i, ws in enumerate(self.wind_speeds)},
        }

    @classmethod
    def default_cruiser(cls) -> 'PolarTable':
        """Built-in polar for a generic 35ft cruising yacht."""
        return cls.from_dict({
            'name': 'Default 35ft Cruiser',
            'hullSpeed': 7.5,
            'angles': [0, 30, 45, 60, 75, 90, 110, 120, 135, 150, 165, 180],
            'speeds': {
                '5': [0, 0, 2.5, 3.2, 3.8, 4.2, 4.0, 3.5, 3.0, 2.5, 2.0, 1.8],
                '10': [0, 0, 4.5, 5.5, 6.0, 6.5, 6.8, 6.5, 5.5, 4.5, 3.8, 3.5],
                '15': [0, 0, 5.5, 6.5, 7.0, 7.5, 7.8, 7.5, 6.8, 6.0, 5.5, 5.2],
                '20': [0, 0, 5.8, 6.8, 7.2, 7.5, 8.0, 7.8, 7.2, 6.8, 6.5, 6.2],
                '25': [0, 0, 5.5, 6.5, 7.0, 7.3, 7.8, 7.6, 7.0, 6.8, 6.8, 6.8],
                '30': [0, 0, 5.0, 6.0, 6.5, 6.8, 7.2, 7.0, 6.8, 6.8, 7.0, 7.0],
            },
        })

    @classmethod
    def for_boat(cls, length_ft: float, boat_type: str = 'cruiser') -> 'PolarTable':
        """
        Generate a polar by scaling the default cruiser to a boat's size.

        Args:
            length_ft: Length overall (feet)
            boat_type: One of BOAT_TYPE_FACTORS

        Raises:
            ValueError: On non-positive length or unknown boat type
        """
        if not length_ft or length_ft <= 0:
            raise ValueError(f"Boat length must be positive: {length_ft}")
        factor = BOAT_TYPE_FACTORS.get(boat_type)
        if factor is None:
            raise ValueError(f"Unknown boat type: {boat_type}")

        base = cls.default_cruiser()
        hull_speed = HULL_SPEED_COEFFICIENT * math.sqrt(WATERLINE_RATIO * length_ft)
        scale = hull_speed / base.hull_speed * factor

        return cls(
            name=f"{length_ft:g}ft {boat_type}",
            hull_speed=round(hull_speed, 2),
            angles=base.angles,
            wind_speeds=base.wind_speeds,
            matrix=np.round(base.matrix * scale, 2),
        )


@dataclass
class OptimalAngle:
    """Best sailing angle found for a point of sail."""
    angle: float        # True wind angle (degrees)
    vmg: float          # VMG at that angle (knots)


@dataclass
class VMGAngles:
    """Optimal upwind and downwind sailing angles."""
    upwind: OptimalAngle
    downwind: OptimalAngle


def _validate_axis(values: Sequence[float], label: str):
    if not values:
        raise ValueError(f"Polar {label} are empty")
    if any(not math.isfinite(v) for v in values):
        raise ValueError(f"Polar {label} must be finite")
    if any(b <= a for a, b in zip(values, values[1:])):
        raise ValueError(f"Polar {label} must be strictly increasing")


def _format_key(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def normalize_twa(twa: float) -> float:
    """Fold a true wind angle onto 0-180 (port and starboard are symmetric)."""
    angle = abs(twa) % 360.0
    return min(angle, 360.0 - angle)


class Polar:
    """
    Boat polar for performance calculations.

    Holds a built-in table and an optional imported custom table;
    the custom table, when present, is the active one.
    """

    # Open intervals scanned for VMG optimum (degrees TWA)
    UPWIND_RANGE = (30.0, 90.0)
    DOWNWIND_RANGE = (90.0, 180.0)
    DEFAULT_UPWIND_ANGLE = 45.0
    DEFAULT_DOWNWIND_ANGLE = 135.0

    def __init__(self, table: Optional[PolarTable] = None):
        self._default = table or PolarTable.default_cruiser()
        self._custom: Optional[PolarTable] = None

    @classmethod
    def from_json(cls, filepath: str) -> 'Polar':
        """Load polar from JSON file."""
        with open(filepath, 'r') as f:
            data = json.load(f)
        return cls(PolarTable.from_dict(data))

    @property
    def table(self) -> PolarTable:
        """Active table."""
        return self._custom or self._default

    def set_custom_polar(self, table: PolarTable):
        """Replace the active table wholesale."""
        self._custom = table
        logger.info(f"Polar set to '{table.name}'")

    def clear_custom_polar(self):
        """Revert to the built-in table."""
        self._custom = None

    def get_boat_speed(self, tws: float, twa: float) -> float:
        """
        Get polar boat speed.

        Args:
            tws: True wind speed (knots)
            twa: True wind angle (degrees, any sign/range)

        Returns:
            Boat speed (knots)
        """
        table = self.table
        angle = normalize_twa(twa)

        i0, i1, frac = self._find_indices(table.wind_speeds, tws)
        lower = float(np.interp(angle, table.angles, table.matrix[i0]))
        if i0 == i1:
            return lower
        upper = float(np.interp(angle, table.angles, table.matrix[i1]))
        return lower + (upper - lower) * frac

    def get_target_speed(self, tws: float, twa: float) -> float:
        return self.get_boat_speed(tws, twa)

    @staticmethod
    def _find_indices(arr: Sequence[float], val: float) -> Tuple[int, int, float]:
        """Find bracketing indices and interpolation factor, clamped at the ends."""
        if val <= arr[0]:
            return (0, 0, 0.0)
        if val >= arr[-1]:
            return (len(arr) - 1, len(arr) - 1, 0.0)

        # Exact matches land on the lower index with frac 0
        i = bisect.bisect_right(arr, val) - 1
        frac = (val - arr[i]) / (arr[i + 1] - arr[i])
        return (i, i + 1, frac)

    def calculate_vmg(self, tws: float, twa: float, target_angle: float = 0.0) -> float:
        """Boat speed component along target_angle (degrees from the wind)."""
        boat_speed = self.get_boat_speed(tws, twa)
        return boat_speed * math.cos(math.radians(abs(twa - target_angle)))

    def find_optimal_vmg_angles(self, tws: float, target_angle: float = 0.0) -> VMGAngles:
        """
        Find the sampled angles giving best upwind and downwind VMG.

        Only the table's own angles are evaluated, so the optimum is
        limited to the table's angular resolution.

        Args:
            tws: True wind speed (knots)
            target_angle: Direction VMG is measured along, relative to the wind

        Returns:
            VMGAngles with upwind and downwind optimum
        """
        up_lo, up_hi = self.UPWIND_RANGE
        down_lo, down_hi = self.DOWNWIND_RANGE

        upwind = OptimalAngle(self.DEFAULT_UPWIND_ANGLE, 0.0)
        downwind = OptimalAngle(self.DEFAULT_DOWNWIND_ANGLE, 0.0)

        for angle in self.table.angles:
            if up_lo < angle < up_hi:
                vmg = self.calculate_vmg(tws, angle, target_angle)
                if vmg > upwind.vmg:
                    upwind = OptimalAngle(angle, vmg)

            if down_lo < angle < down_hi:
                vmg = self.calculate_vmg(tws, angle, target_angle + 180.0)
                if vmg > downwind.vmg:
                    downwind = OptimalAngle(angle, vmg)

        return VMGAngles(upwind=upwind, downwind=downwind)

    def get_performance_ratio(self, actual_speed: float, tws: float, twa: float) -> float:
        """
        Calculate performance as a fraction of polar target.

        Returns:
            Performance ratio (1.0 = on the polar, 0 when target is 0).
            Multiply by 100 for a percentage display.
        """
        target = self.get_target_speed(tws, twa)
        if target <= 0:
            return 0.0
        return actual_speed / target

    def import_json(self, text: str) -> bool:
        """
        Import a polar from JSON text.

        Invalid input is rejected and the active table left unchanged.

        Returns:
            True if the table was accepted
        """
        try:
            table = PolarTable.from_dict(json.loads(text))
        except (ValueError, TypeError) as e:
            logger.warning(f"Rejected polar import: {e}")
            return False
        self.set_custom_polar(table)
        return True

    def export_json(self) -> str:
        """Active table as JSON text."""
        return json.dumps(self.table.to_dict(), indent=2)
