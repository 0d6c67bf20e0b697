"""
Unit tests for Polar Diagram module.

Tests table validation, polar interpolation, VMG optimization, import
and export, and performance ratio calculations.
"""

import json
import math

import numpy as np
import pytest

from sailnav.performance.polar import Polar, PolarTable, normalize_twa


def small_polar_dict(**overrides):
    data = {
        'name': 'Test',
        'hullSpeed': 6.0,
        'angles': [0, 45, 90, 180],
        'speeds': {
            '6': [0, 3.0, 4.0, 2.0],
            '12': [0, 5.0, 6.0, 4.0],
        },
    }
    data.update(overrides)
    return data


class TestPolarTable:
    """Tests for PolarTable validation."""

    def test_default_cruiser_structure(self):
        table = PolarTable.default_cruiser()
        assert table.name == 'Default 35ft Cruiser'
        assert table.hull_speed == 7.5
        assert len(table.angles) == 12
        assert table.wind_speeds == (5.0, 10.0, 15.0, 20.0, 25.0, 30.0)
        assert table.matrix.shape == (6, 12)

    def test_from_dict_sorts_wind_speeds(self):
        data = small_polar_dict(speeds={
            '12': [0, 5.0, 6.0, 4.0],
            '6': [0, 3.0, 4.0, 2.0],
        })
        table = PolarTable.from_dict(data)
        assert table.wind_speeds == (6.0, 12.0)
        assert table.speeds[6.0] == [0, 3.0, 4.0, 2.0]

    @pytest.mark.parametrize("field", ['name', 'angles', 'speeds'])
    def test_missing_field_rejected(self, field):
        data = small_polar_dict()
        del data[field]
        with pytest.raises(ValueError, match="missing"):
            PolarTable.from_dict(data)

    def test_non_rectangular_rejected(self):
        data = small_polar_dict(speeds={'6': [0, 3.0, 4.0]})
        with pytest.raises(ValueError, match="expected 4"):
            PolarTable.from_dict(data)

    def test_unsorted_angles_rejected(self):
        with pytest.raises(ValueError, match="increasing"):
            PolarTable.from_dict(small_polar_dict(angles=[0, 90, 45, 180]))

    def test_angles_out_of_range_rejected(self):
        with pytest.raises(ValueError, match="0-180"):
            PolarTable.from_dict(small_polar_dict(angles=[0, 45, 90, 200]))

    def test_non_numeric_rejected(self):
        data = small_polar_dict(speeds={'6': [0, 'fast', 4.0, 2.0]})
        with pytest.raises(ValueError, match="non-numeric"):
            PolarTable.from_dict(data)

    def test_negative_speed_rejected(self):
        data = small_polar_dict(speeds={'6': [0, -3.0, 4.0, 2.0]})
        with pytest.raises(ValueError):
            PolarTable.from_dict(data)

    def test_duplicate_wind_speed_rejected(self):
        """'6' and '6.0' are the same wind speed."""
        data = small_polar_dict(speeds={
            '6': [0, 3.0, 4.0, 2.0],
            '6.0': [0, 3.5, 4.5, 2.5],
        })
        with pytest.raises(ValueError, match="duplicate"):
            PolarTable.from_dict(data)

    def test_import_duplicate_wind_speed_leaves_table(self, polar):
        data = small_polar_dict(speeds={
            '6': [0, 3.0, 4.0, 2.0],
            '6.0': [0, 3.5, 4.5, 2.5],
        })
        assert polar.import_json(json.dumps(data)) is False
        assert polar.table.name == 'Default 35ft Cruiser'

    def test_matrix_is_read_only(self, polar):
        with pytest.raises(ValueError):
            polar.table.matrix[1, 2] = 99.0
        assert polar.get_boat_speed(tws=10, twa=45) == pytest.approx(4.5)

    def test_scaled_matrix_is_read_only(self):
        table = PolarTable.for_boat(40, 'racer')
        with pytest.raises(ValueError):
            table.matrix[0, 0] = 1.0

    def test_source_array_not_shared(self):
        source = np.array([[0.0, 3.0, 4.0, 2.0]])
        table = PolarTable('Shared', 6.0, (0.0, 45.0, 90.0, 180.0), (6.0,), source)
        source[0, 1] = 9.0
        assert table.matrix[0, 1] == 3.0

    def test_dict_round_trip(self):
        table = PolarTable.default_cruiser()
        assert PolarTable.from_dict(table.to_dict()) == table


class TestForBoat:
    """Tests for boat-size scaled polars."""

    def test_hull_speed(self):
        table = PolarTable.for_boat(35, 'cruiser')
        assert table.hull_speed == pytest.approx(1.34 * math.sqrt(0.9 * 35), abs=0.01)

    def test_type_factor(self):
        cruiser = PolarTable.for_boat(35, 'cruiser')
        racer = PolarTable.for_boat(35, 'racer')
        ratio = racer.matrix[1, 5] / cruiser.matrix[1, 5]
        assert ratio == pytest.approx(1.15, abs=0.01)

    def test_longer_boat_is_faster(self):
        short = PolarTable.for_boat(25)
        long = PolarTable.for_boat(45)
        assert np.all(long.matrix >= short.matrix)
        assert long.matrix[1, 5] > short.matrix[1, 5]

    def test_invalid_inputs(self):
        with pytest.raises(ValueError):
            PolarTable.for_boat(0)
        with pytest.raises(ValueError):
            PolarTable.for_boat(35, 'submarine')


class TestGetTargetSpeed:
    """Tests for polar interpolation."""

    def test_exact_grid_point(self, polar):
        assert polar.get_target_speed(tws=10, twa=45) == pytest.approx(4.5)
        assert polar.get_target_speed(tws=20, twa=110) == pytest.approx(8.0)

    def test_interpolates_wind_speed(self, polar):
        """Halfway between the 5 and 10 knot rows."""
        speed = polar.get_boat_speed(tws=7.5, twa=90)
        assert speed == pytest.approx((4.2 + 6.5) / 2)

    def test_interpolates_angle(self, polar):
        speed = polar.get_boat_speed(tws=10, twa=52.5)
        assert speed == pytest.approx((4.5 + 5.5) / 2)

    def test_bilinear(self, polar):
        speed = polar.get_boat_speed(tws=12.5, twa=52.5)
        expected = ((4.5 + 5.5) / 2 + (5.5 + 6.5) / 2) / 2
        assert speed == pytest.approx(expected)

    def test_clamps_wind_speed(self, polar):
        assert polar.get_boat_speed(tws=2, twa=45) == pytest.approx(2.5)
        assert polar.get_boat_speed(tws=0, twa=45) == pytest.approx(2.5)
        assert polar.get_boat_speed(tws=40, twa=90) == pytest.approx(6.8)

    def test_no_speed_in_irons(self, polar):
        assert polar.get_boat_speed(tws=15, twa=0) == 0.0
        assert polar.get_boat_speed(tws=15, twa=30) == 0.0

    def test_twa_is_symmetric(self, polar):
        starboard = polar.get_boat_speed(tws=10, twa=60)
        assert polar.get_boat_speed(tws=10, twa=-60) == pytest.approx(starboard)
        assert polar.get_boat_speed(tws=10, twa=300) == pytest.approx(starboard)

    def test_twa_beyond_180_folds(self, polar):
        # 200 folds to 160, between 150 and 165
        speed = polar.get_boat_speed(tws=10, twa=200)
        assert speed == pytest.approx(4.5 - 0.7 * 10 / 15)

    @pytest.mark.parametrize("twa,expected", [
        (0, 0), (45, 45), (-45, 45), (180, 180), (270, 90), (-190, 170), (720, 0),
    ])
    def test_normalize_twa(self, twa, expected):
        assert normalize_twa(twa) == pytest.approx(expected)


class TestVMG:
    """Tests for VMG calculations."""

    def test_calculate_vmg_upwind(self, polar):
        vmg = polar.calculate_vmg(tws=10, twa=45)
        assert vmg == pytest.approx(4.5 * math.cos(math.radians(45)))

    def test_calculate_vmg_beam_reach(self, polar):
        assert polar.calculate_vmg(tws=10, twa=90) == pytest.approx(0.0, abs=1e-9)

    def test_optimal_angles_at_10_knots(self, polar):
        angles = polar.find_optimal_vmg_angles(tws=10)
        assert angles.upwind.angle == 45
        assert angles.upwind.vmg == pytest.approx(4.5 * math.cos(math.radians(45)))
        assert angles.downwind.angle == 150
        assert angles.downwind.vmg > 0

    def test_optimal_angles_only_from_table(self, polar):
        angles = polar.find_optimal_vmg_angles(tws=17)
        assert angles.upwind.angle in polar.table.angles
        assert angles.downwind.angle in polar.table.angles

    def test_optimal_angle_defaults_without_drive(self):
        """A table with no speed anywhere keeps the default angles."""
        data = small_polar_dict(speeds={'6': [0, 0, 0, 0]})
        polar = Polar(PolarTable.from_dict(data))
        angles = polar.find_optimal_vmg_angles(tws=6)
        assert angles.upwind.angle == Polar.DEFAULT_UPWIND_ANGLE
        assert angles.downwind.angle == Polar.DEFAULT_DOWNWIND_ANGLE


class TestImportExport:
    """Tests for custom polar import and export."""

    def test_import_replaces_table(self, polar):
        assert polar.import_json(json.dumps(small_polar_dict())) is True
        assert polar.table.name == 'Test'
        assert polar.get_boat_speed(tws=9, twa=90) == pytest.approx(5.0)

    def test_import_missing_angles_leaves_table(self, polar):
        before = polar.table
        data = small_polar_dict()
        del data['angles']
        assert polar.import_json(json.dumps(data)) is False
        assert polar.table is before

    def test_import_missing_speeds_leaves_table(self, polar):
        data = small_polar_dict()
        del data['speeds']
        assert polar.import_json(json.dumps(data)) is False
        assert polar.table.name == 'Default 35ft Cruiser'

    def test_import_invalid_json(self, polar):
        assert polar.import_json("{not json") is False
        assert polar.import_json("[1, 2, 3]") is False
        assert polar.table.name == 'Default 35ft Cruiser'

    def test_export_import_round_trip(self, polar):
        other = Polar()
        other.import_json(json.dumps(small_polar_dict()))
        assert polar.import_json(other.export_json()) is True
        assert polar.table == other.table

    def test_clear_custom_polar(self, polar):
        polar.import_json(json.dumps(small_polar_dict()))
        polar.clear_custom_polar()
        assert polar.table.name == 'Default 35ft Cruiser'

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "polar.json"
        path.write_text(json.dumps(small_polar_dict()))
        polar = Polar.from_json(str(path))
        assert polar.table.name == 'Test'
        assert polar.get_boat_speed(tws=6, twa=45) == pytest.approx(3.0)


class TestPerformanceRatio:
    """Tests for performance ratio."""

    def test_on_polar(self, polar):
        assert polar.get_performance_ratio(4.5, tws=10, twa=45) == pytest.approx(1.0)

    def test_below_polar(self, polar):
        ratio = polar.get_performance_ratio(3.25, tws=10, twa=90)
        assert ratio == pytest.approx(0.5)

    def test_zero_target(self, polar):
        assert polar.get_performance_ratio(2.0, tws=10, twa=0) == 0.0
