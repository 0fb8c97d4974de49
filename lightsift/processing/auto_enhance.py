"""
Heuristic auto-enhance: statistics and scene flags to suggested adjustments.

``suggest`` is a pure rule table; ``blend`` moves an existing adjustment set
toward a suggestion by a strength factor.
"""

from dataclasses import dataclass, field, asdict, replace
from typing import Any, Dict
import logging
import math

import numpy as np

from lightsift.analysis.statistics import ImageStatistics, compute_statistics
from lightsift.models import AdjustmentParameters, BLENDED_FIELDS, NEUTRAL_TEMPERATURE
from lightsift.processing.scene_classifier import SceneClassifier, SceneDetails

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.3
MAX_CONFIDENCE = 0.95


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


@dataclass
class AiSuggestion:
    """Suggested adjustment values with the scene they were derived for"""
    exposure: float = 0.0
    contrast: float = 0.0
    highlights: float = 0.0
    shadows: float = 0.0
    white_balance_temp: float = NEUTRAL_TEMPERATURE
    white_balance_tint: float = 0.0
    saturation: float = 0.0
    vibrance: float = 0.0
    sharpening_amount: float = 0.0
    noise_reduction: float = 0.0
    confidence: float = MIN_CONFIDENCE
    scene_type: str = 'general'
    scene_details: SceneDetails = field(default_factory=SceneDetails)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['scene_details'] = self.scene_details.to_dict()
        return data


def suggest(stats: ImageStatistics, scene: SceneDetails) -> AiSuggestion:
    """
    Derive suggested adjustments from statistics and scene flags

    Args:
        stats: Image statistics
        scene: Scene details computed from the same statistics

    Returns:
        AiSuggestion with confidence in [0.3, 0.95]
    """
    # Exposure toward a scene-dependent target brightness
    if scene.is_night:
        target_brightness = 80.0
    elif scene.is_backlit:
        target_brightness = 110.0
    else:
        target_brightness = 128.0
    exposure = _clamp((target_brightness - stats.mean_brightness) / 50.0, -2.5, 2.5)

    highlights = 0.0
    if stats.highlights_clipped > 0.01:
        highlights = _clamp(-stats.highlights_clipped * 500.0, -100.0, 0.0)
        exposure = min(exposure, 0.5)

    shadows = 0.0
    if stats.shadows_clipped > 0.01:
        shadows = _clamp(stats.shadows_clipped * 300.0, 0.0, 100.0)

    if scene.is_backlit:
        shadows += 30.0
        exposure += 0.5

    if scene.is_portrait:
        target_contrast = 0.28
    elif scene.is_landscape:
        target_contrast = 0.38
    else:
        target_contrast = 0.33
    contrast = _clamp((target_contrast - stats.contrast_level) * 100.0, -30.0, 40.0)

    temperature, tint = _white_balance(stats)
    if scene.is_sunset:
        temperature = max(temperature, 5800.0)

    if scene.is_sunset:
        target_saturation = 0.45
    elif scene.is_portrait:
        target_saturation = 0.30
    elif scene.is_landscape:
        target_saturation = 0.40
    else:
        target_saturation = 0.35
    saturation_diff = target_saturation - stats.saturation_level
    saturation = _clamp(saturation_diff * 100.0, -25.0, 35.0)
    vibrance = _clamp(saturation_diff * 60.0, -15.0, 30.0)

    if scene.is_portrait:
        saturation = min(saturation, 10.0)
        vibrance = max(vibrance, 15.0)

    if scene.is_landscape:
        saturation += 5.0
        vibrance += 10.0
        contrast += 5.0

    if scene.is_portrait:
        sharpening = 15.0
    elif scene.is_landscape:
        sharpening = 35.0
    elif scene.is_macro:
        sharpening = 40.0
    else:
        sharpening = 25.0
    if scene.is_high_iso:
        sharpening *= 0.5

    if scene.is_high_iso:
        noise_reduction = _clamp(stats.noise_estimate / 2.0, 10.0, 50.0)
    elif stats.noise_estimate > 20.0:
        noise_reduction = _clamp(stats.noise_estimate / 4.0, 0.0, 25.0)
    else:
        noise_reduction = 0.0

    return AiSuggestion(
        exposure=exposure,
        contrast=contrast,
        highlights=highlights,
        shadows=shadows,
        white_balance_temp=temperature,
        white_balance_tint=tint,
        saturation=saturation,
        vibrance=vibrance,
        sharpening_amount=sharpening,
        noise_reduction=noise_reduction,
        confidence=calculate_confidence(stats, scene),
        scene_type=scene.scene_type,
        scene_details=scene,
    )


def _white_balance(stats: ImageStatistics):
    """Temperature and tint from the gray point, else from channel bias"""
    if stats.gray_point is not None:
        r, g, b = stats.gray_point
        avg = (r + g + b) / 3.0
        # Gray candidates have luminance >= 50, so avg is never 0
        r_dev = (avg - r) / avg * 1000.0
        b_dev = (avg - b) / avg * 1000.0
        temperature = _clamp(NEUTRAL_TEMPERATURE + (b_dev - r_dev) * 2.0, 2500.0, 10000.0)
        tint = _clamp((avg - g) / avg * 100.0, -100.0, 100.0)
        return temperature, tint

    temperature = _clamp(NEUTRAL_TEMPERATURE - stats.color_temp_bias * 50.0, 3000.0, 8000.0)
    tint = _clamp(-stats.tint_bias * 30.0, -50.0, 50.0)
    return temperature, tint


def calculate_confidence(stats: ImageStatistics, scene: SceneDetails) -> float:
    confidence = 0.85

    if stats.highlights_clipped > 0.1 or stats.shadows_clipped > 0.1:
        confidence -= 0.2
    elif stats.highlights_clipped > 0.05 or stats.shadows_clipped > 0.05:
        confidence -= 0.1

    if stats.mean_brightness < 30.0 or stats.mean_brightness > 225.0:
        confidence -= 0.15

    if scene.is_high_iso:
        confidence -= 0.1

    if scene.has_primary_scene:
        confidence += 0.05

    if stats.gray_point is not None:
        confidence += 0.05

    return _clamp(confidence, MIN_CONFIDENCE, MAX_CONFIDENCE)


def blend(params: AdjustmentParameters, suggestion: AiSuggestion,
          strength: float) -> AdjustmentParameters:
    """
    Move the photographic fields of ``params`` toward a suggestion

    Args:
        params: Current adjustments, not modified
        suggestion: Target values
        strength: Interpolation factor, clamped to [0, 1]; non-finite values count as 0

    Returns:
        New AdjustmentParameters; rating, flag, crop, rotation, straighten
        angle and sharpening radius are carried over unchanged
    """
    strength = float(strength)
    if not math.isfinite(strength):
        strength = 0.0
    strength = _clamp(strength, 0.0, 1.0)
    updates = {}
    for name in BLENDED_FIELDS:
        current = getattr(params, name)
        target = getattr(suggestion, name)
        if strength == 1.0:
            updates[name] = target
        else:
            updates[name] = current + (target - current) * strength
    return replace(params, **updates)


class AutoEnhancer:
    """Runs statistics, classification and suggestion for a raster"""

    def __init__(self, classifier: SceneClassifier = None):
        self.classifier = classifier or SceneClassifier()

    def analyze(self, raster: np.ndarray) -> AiSuggestion:
        stats = compute_statistics(raster)
        scene = self.classifier.classify(stats)
        suggestion = suggest(stats, scene)
        logger.debug(f"Suggestion for {scene.scene_type} scene: "
                     f"exposure={suggestion.exposure:.2f}, confidence={suggestion.confidence:.2f}")
        return suggestion


_default_enhancer = AutoEnhancer()


def analyze_image(raster: np.ndarray) -> AiSuggestion:
    """Statistics, classification and suggestion in one call"""
    return _default_enhancer.analyze(raster)
