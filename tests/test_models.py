"""
Tests for the adjustment data models.
"""

import json

import pytest

from lightsift.models import (
    AdjustmentParameters, CropRect, Flag, Rotation, clamp_rating
)


class TestEnums:
    """Test flag and rotation decoding."""

    @pytest.mark.parametrize("value,expected", [
        ('pick', Flag.PICK), ('REJECT', Flag.REJECT), (' none ', Flag.NONE),
        ('maybe', Flag.NONE), (None, Flag.NONE), (Flag.PICK, Flag.PICK),
    ])
    def test_flag_parse(self, value, expected):
        assert Flag.parse(value) == expected

    @pytest.mark.parametrize("value,expected", [
        (90, Rotation.DEG_90), ('180', Rotation.DEG_180), (270.0, Rotation.DEG_270),
        (45, Rotation.DEG_0), ('sideways', Rotation.DEG_0), (None, Rotation.DEG_0),
        ('inf', Rotation.DEG_0), ('1e999', Rotation.DEG_0), ('nan', Rotation.DEG_0),
    ])
    def test_rotation_parse(self, value, expected):
        assert Rotation.parse(value) == expected

    @pytest.mark.parametrize("value,expected", [
        (3, 3), (-2, 0), (9, 5), ('4', 4), ('x', 0), (None, 0), (3.7, 3),
        ('inf', 5), ('1e999', 5), ('-inf', 0), ('nan', 0),
    ])
    def test_clamp_rating(self, value, expected):
        assert clamp_rating(value) == expected


class TestCropRect:
    """Test normalized crop conversion."""

    def test_full_frame(self):
        assert CropRect().to_pixel_box(640, 480) == (0, 0, 640, 480)

    def test_from_pixel_box(self):
        rect = CropRect.from_pixel_box(100, 50, 200, 100, 400, 200)
        assert rect == CropRect(0.25, 0.25, 0.75, 0.75)
        assert rect.to_pixel_box(400, 200) == (100, 50, 300, 150)

    def test_clamped_to_bounds(self):
        assert CropRect(-1.0, -1.0, 2.0, 2.0).to_pixel_box(10, 20) == (0, 0, 10, 20)

    def test_swapped_edges(self):
        assert CropRect(0.75, 0.0, 0.25, 1.0).to_pixel_box(8, 8) == (2, 0, 6, 8)

    def test_at_least_one_pixel(self):
        assert CropRect(1.0, 1.0, 1.0, 1.0).to_pixel_box(10, 10) == (9, 9, 10, 10)
        assert CropRect(0.0, 0.0, 0.0, 0.0).to_pixel_box(10, 10) == (0, 0, 1, 1)

    def test_non_finite_edges(self):
        box = CropRect(float('nan'), 0.0, float('inf'), 1.0).to_pixel_box(10, 10)
        assert box == (0, 0, 10, 10)

    def test_from_dict(self):
        assert CropRect.from_dict({'left': '0.1', 'right': 0.9}) == CropRect(0.1, 0.0, 0.9, 1.0)
        assert CropRect.from_dict(None) is None
        assert CropRect.from_dict({'left': 'abc'}) is None


class TestAdjustmentParameters:
    """Test defaults, normalization and serialization."""

    def test_defaults_are_neutral(self):
        params = AdjustmentParameters()
        assert params.rating == 0
        assert params.flag == Flag.NONE
        assert params.crop is None
        assert params.rotation == Rotation.DEG_0
        assert params.exposure == 0.0
        assert params.white_balance_temp == 5500.0
        assert params.sharpening_radius == 1.0

    def test_normalized_on_construction(self):
        params = AdjustmentParameters(rating=12, flag='pick', rotation=90,
                                      crop={'left': 0.2, 'top': 0.2, 'right': 0.8, 'bottom': 0.8})
        assert params.rating == 5
        assert params.flag == Flag.PICK
        assert params.rotation == Rotation.DEG_90
        assert params.crop == CropRect(0.2, 0.2, 0.8, 0.8)

    def test_dict_round_trip(self):
        params = AdjustmentParameters(rating=2, flag=Flag.REJECT, crop=CropRect(0.1, 0.0, 1.0, 0.9),
                                      exposure=-0.4, vibrance=25.0, rotation=Rotation.DEG_270)
        data = params.to_dict()
        assert data['flag'] == 'reject'
        assert data['rotation'] == 270
        assert data['crop'] == {'left': 0.1, 'top': 0.0, 'right': 1.0, 'bottom': 0.9}
        assert AdjustmentParameters.from_dict(data) == params

    def test_json_is_plain(self):
        params = AdjustmentParameters(exposure=1.25)
        decoded = json.loads(params.to_json())
        assert decoded['exposure'] == 1.25
        assert AdjustmentParameters.from_json(params.to_json()) == params

    def test_from_dict_tolerates_junk(self):
        params = AdjustmentParameters.from_dict({
            'exposure': 'bright', 'contrast': float('nan'), 'saturation': '15',
            'unknown_field': 3, 'flag': 42,
        })
        assert params.exposure == 0.0
        assert params.contrast == 0.0
        assert params.saturation == 15.0
        assert params.flag == Flag.NONE

    def test_unbounded_percentages_kept(self):
        assert AdjustmentParameters(contrast=250.0).contrast == 250.0
