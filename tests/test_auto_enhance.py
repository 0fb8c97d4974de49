"""
Tests for auto-enhance suggestions and blending.
"""

import pytest
import numpy as np

from lightsift.analysis.statistics import ImageStatistics
from lightsift.models import AdjustmentParameters, BLENDED_FIELDS, CropRect, Flag, Rotation
from lightsift.processing.auto_enhance import (
    AiSuggestion, AutoEnhancer, analyze_image, blend, calculate_confidence, suggest
)
from lightsift.processing.scene_classifier import SceneDetails, classify


def stats_with(**overrides):
    values = dict(mean_brightness=128.0, contrast_level=0.33, saturation_level=0.35,
                  center_brightness=128.0, edge_brightness=128.0)
    values.update(overrides)
    return ImageStatistics(**values)


def suggest_for(stats):
    return suggest(stats, classify(stats))


class TestSuggestionRules:
    """Test the suggestion rule table."""

    def test_mid_gray_raster(self):
        """Uniform mid-gray needs no exposure change and more contrast."""
        raster = np.full((64, 64, 3), 128, dtype=np.uint8)
        suggestion = analyze_image(raster)

        assert suggestion.exposure == pytest.approx(0.0)
        assert suggestion.contrast == pytest.approx(33.0)
        assert suggestion.white_balance_temp == pytest.approx(5500.0)
        assert suggestion.white_balance_tint == pytest.approx(0.0)
        assert suggestion.scene_type == 'general'
        assert suggestion.confidence >= 0.3
        # Gray point found: 0.85 + 0.05
        assert suggestion.confidence == pytest.approx(0.9)

    def test_exposure_clamped(self):
        assert suggest_for(stats_with(mean_brightness=0.0)).exposure == pytest.approx(2.5)
        assert suggest_for(stats_with(mean_brightness=255.0)).exposure == pytest.approx(-2.5)

    def test_highlight_recovery_caps_exposure(self):
        suggestion = suggest_for(stats_with(mean_brightness=60.0, highlights_clipped=0.08))
        assert suggestion.highlights == pytest.approx(-40.0)
        assert suggestion.exposure == pytest.approx(0.5)

    def test_shadow_recovery(self):
        suggestion = suggest_for(stats_with(shadows_clipped=0.05))
        assert suggestion.shadows == pytest.approx(15.0)
        assert suggest_for(stats_with(shadows_clipped=0.5)).shadows == pytest.approx(100.0)

    def test_backlit_compensation(self):
        stats = stats_with(mean_brightness=60.0, center_brightness=50.0, edge_brightness=120.0)
        suggestion = suggest_for(stats)
        assert suggestion.scene_type == 'backlit'
        assert suggestion.exposure == pytest.approx((110 - 60) / 50 + 0.5)
        assert suggestion.shadows == pytest.approx(30.0)

    def test_night_target_brightness(self):
        stats = stats_with(mean_brightness=30.0, shadows_clipped=0.2)
        suggestion = suggest_for(stats)
        assert suggestion.scene_type == 'night'
        assert suggestion.exposure == pytest.approx(min((80 - 30) / 50, 2.5))

    def test_white_balance_from_gray_point(self):
        """A blue-leaning gray point lowers temperature."""
        stats = stats_with(gray_point=(100.0, 110.0, 120.0))
        suggestion = suggest_for(stats)
        avg = 110.0
        r_dev = (avg - 100.0) / avg * 1000
        b_dev = (avg - 120.0) / avg * 1000
        assert suggestion.white_balance_temp == pytest.approx(5500 + (b_dev - r_dev) * 2)
        assert suggestion.white_balance_tint == pytest.approx(0.0)

    def test_white_balance_from_bias(self):
        suggestion = suggest_for(stats_with(color_temp_bias=10.0, tint_bias=-1.0))
        assert suggestion.white_balance_temp == pytest.approx(5000.0)
        assert suggestion.white_balance_tint == pytest.approx(30.0)

        extreme = suggest_for(stats_with(color_temp_bias=-100.0, tint_bias=5.0))
        assert extreme.white_balance_temp == pytest.approx(8000.0)
        assert extreme.white_balance_tint == pytest.approx(-50.0)

    def test_sunset_keeps_warmth(self):
        stats = stats_with(warm_color_ratio=0.3, color_temp_bias=40.0)
        suggestion = suggest_for(stats)
        assert suggestion.scene_type == 'sunset'
        assert suggestion.white_balance_temp == pytest.approx(5800.0)
        assert suggestion.saturation == pytest.approx(10.0)

    def test_portrait_rules(self):
        suggestion = suggest_for(stats_with(skin_tone_ratio=0.2, saturation_level=0.0))
        assert suggestion.scene_type == 'portrait'
        assert suggestion.saturation == pytest.approx(10.0)
        assert suggestion.vibrance == pytest.approx(18.0)
        assert suggestion.sharpening_amount == pytest.approx(15.0)
        assert suggestion.contrast == pytest.approx((0.28 - 0.33) * 100)

    def test_landscape_boosts(self):
        stats = stats_with(green_ratio=0.3, contrast_level=0.38, saturation_level=0.40)
        suggestion = suggest_for(stats)
        assert suggestion.scene_type == 'landscape'
        assert suggestion.contrast == pytest.approx(5.0)
        assert suggestion.saturation == pytest.approx(5.0)
        assert suggestion.vibrance == pytest.approx(10.0)
        assert suggestion.sharpening_amount == pytest.approx(35.0)

    def test_noise_handling(self):
        noisy = suggest_for(stats_with(noise_estimate=120.0))
        assert noisy.noise_reduction == pytest.approx(50.0)
        assert noisy.sharpening_amount == pytest.approx(12.5)

        mild = suggest_for(stats_with(noise_estimate=30.0))
        assert mild.noise_reduction == pytest.approx(7.5)
        assert mild.sharpening_amount == pytest.approx(25.0)

        clean = suggest_for(stats_with(noise_estimate=10.0))
        assert clean.noise_reduction == 0.0


class TestConfidence:
    """Test confidence scoring."""

    def test_baseline(self):
        stats = stats_with()
        assert calculate_confidence(stats, classify(stats)) == pytest.approx(0.85)

    def test_penalties(self):
        stats = stats_with(mean_brightness=10.0, highlights_clipped=0.5, noise_estimate=100.0)
        assert calculate_confidence(stats, classify(stats)) == pytest.approx(0.4)

    def test_moderate_clipping(self):
        stats = stats_with(shadows_clipped=0.07)
        assert calculate_confidence(stats, classify(stats)) == pytest.approx(0.75)

    def test_bonuses_capped(self):
        stats = stats_with(skin_tone_ratio=0.2, gray_point=(128.0, 128.0, 128.0))
        assert calculate_confidence(stats, classify(stats)) == pytest.approx(0.95)

    def test_always_in_range(self, rng):
        for _ in range(20):
            raster = rng.integers(0, 256, size=(24, 24, 3), dtype=np.uint8)
            assert 0.3 <= analyze_image(raster).confidence <= 0.95


class TestBlend:
    """Test strength-blended application of suggestions."""

    @pytest.fixture
    def current(self):
        return AdjustmentParameters(
            rating=4, flag=Flag.PICK, crop=CropRect(0.1, 0.1, 0.9, 0.9),
            straighten_angle=2.5, rotation=Rotation.DEG_90,
            exposure=-0.3, contrast=10.0, highlights=-5.0, shadows=7.0,
            white_balance_temp=4800.0, white_balance_tint=3.0,
            saturation=-4.0, vibrance=6.0, sharpening_amount=12.0,
            sharpening_radius=2.0, noise_reduction=1.0,
        )

    @pytest.fixture
    def suggestion(self):
        return AiSuggestion(
            exposure=0.7, contrast=-12.3, highlights=-40.0, shadows=25.0,
            white_balance_temp=6100.0, white_balance_tint=-7.7,
            saturation=13.0, vibrance=21.0, sharpening_amount=35.0,
            noise_reduction=18.0, confidence=0.8, scene_type='landscape',
        )

    def test_strength_zero_keeps_current(self, current, suggestion):
        result = blend(current, suggestion, 0.0)
        for name in BLENDED_FIELDS:
            assert getattr(result, name) == getattr(current, name)

    def test_strength_one_takes_suggestion(self, current, suggestion):
        result = blend(current, suggestion, 1.0)
        for name in BLENDED_FIELDS:
            assert getattr(result, name) == getattr(suggestion, name)

    def test_intermediate_is_linear(self, current, suggestion):
        result = blend(current, suggestion, 0.25)
        for name in BLENDED_FIELDS:
            c, s = getattr(current, name), getattr(suggestion, name)
            assert getattr(result, name) == c + (s - c) * 0.25

    def test_strength_is_clamped(self, current, suggestion):
        assert blend(current, suggestion, 3.0).exposure == suggestion.exposure
        assert blend(current, suggestion, -1.0).exposure == current.exposure

    @pytest.mark.parametrize("strength", [float('nan'), float('inf'), float('-inf')])
    def test_non_finite_strength_keeps_current(self, current, suggestion, strength):
        assert blend(current, suggestion, strength) == current

    def test_other_fields_pass_through(self, current, suggestion):
        result = blend(current, suggestion, 0.6)
        assert result.rating == 4
        assert result.flag == Flag.PICK
        assert result.crop == current.crop
        assert result.rotation == Rotation.DEG_90
        assert result.straighten_angle == 2.5
        assert result.sharpening_radius == 2.0

    def test_current_not_modified(self, current, suggestion):
        before = current.to_dict()
        blend(current, suggestion, 0.5)
        assert current.to_dict() == before


class TestAutoEnhancer:
    """Test the analyze helper."""

    def test_suggestion_serializes(self):
        raster = np.full((16, 16, 3), 90, dtype=np.uint8)
        data = AutoEnhancer().analyze(raster).to_dict()
        assert data['scene_type'] == data['scene_details']['scene_type']
        assert isinstance(data['scene_details'], dict)

    def test_scene_details_attached(self):
        stats = stats_with(mean_brightness=30.0, shadows_clipped=0.2)
        scene = classify(stats)
        suggestion = suggest(stats, scene)
        assert suggestion.scene_details is scene
        assert isinstance(suggestion.scene_details, SceneDetails)
