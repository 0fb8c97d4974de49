"""
Scene classification for auto-enhance
Maps image statistics to scene flags, a color cast and a dynamic range label
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict
import logging

from lightsift.analysis.statistics import ImageStatistics

logger = logging.getLogger(__name__)

# Primary scene label priority, first match wins
SCENE_PRIORITY = ('sunset', 'backlit', 'portrait', 'macro', 'landscape', 'night')


@dataclass
class SceneDetails:
    """Non-exclusive scene flags plus categorical labels"""
    is_backlit: bool = False
    is_sunset: bool = False
    is_portrait: bool = False
    is_macro: bool = False
    is_landscape: bool = False
    is_night: bool = False
    is_high_iso: bool = False
    color_cast: str = 'neutral'
    dynamic_range: str = 'normal'

    @property
    def scene_type(self) -> str:
        for scene in SCENE_PRIORITY:
            if getattr(self, f'is_{scene}'):
                return scene
        return 'general'

    @property
    def has_primary_scene(self) -> bool:
        """Whether a clearly recognizable subject type was found"""
        return self.is_portrait or self.is_landscape or self.is_sunset

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['scene_type'] = self.scene_type
        return data


class SceneClassifier:
    """Classify scenes from statistics using fixed thresholds"""

    def __init__(self,
                 backlit_difference: float = 30.0,
                 backlit_center_max: float = 100.0,
                 sunset_warm_ratio: float = 0.15,
                 sunset_temp_bias: float = 10.0,
                 portrait_skin_range: tuple = (0.05, 0.4),
                 macro_local_variance: float = 500.0,
                 macro_saturation: float = 0.3,
                 landscape_green_ratio: float = 0.2,
                 landscape_contrast: float = 0.25,
                 night_brightness: float = 50.0,
                 night_shadows_clipped: float = 0.15,
                 high_iso_noise: float = 50.0):
        """
        Initialize scene classifier

        Args:
            backlit_difference: Edge minus center brightness above which a scene is backlit
            backlit_center_max: Center brightness must stay below this to be backlit
            sunset_warm_ratio: Minimum warm pixel ratio for a sunset
            sunset_temp_bias: Minimum color temperature bias for a sunset
            portrait_skin_range: Exclusive (low, high) skin tone ratio for a portrait
            macro_local_variance: Minimum local variance for macro detail
            macro_saturation: Minimum mean saturation for macro
            landscape_green_ratio: Minimum green pixel ratio for a landscape
            landscape_contrast: Minimum contrast level for a landscape
            night_brightness: Mean brightness below which a scene may be night
            night_shadows_clipped: Minimum shadow clipping for night
            high_iso_noise: Noise estimate above which an image counts as noisy
        """
        self.backlit_difference = backlit_difference
        self.backlit_center_max = backlit_center_max
        self.sunset_warm_ratio = sunset_warm_ratio
        self.sunset_temp_bias = sunset_temp_bias
        self.portrait_skin_range = portrait_skin_range
        self.macro_local_variance = macro_local_variance
        self.macro_saturation = macro_saturation
        self.landscape_green_ratio = landscape_green_ratio
        self.landscape_contrast = landscape_contrast
        self.night_brightness = night_brightness
        self.night_shadows_clipped = night_shadows_clipped
        self.high_iso_noise = high_iso_noise

    def classify(self, stats: ImageStatistics) -> SceneDetails:
        """
        Classify a scene

        Args:
            stats: Statistics of the image

        Returns:
            SceneDetails with every flag evaluated independently
        """
        brightness_diff = stats.edge_brightness - stats.center_brightness
        skin_low, skin_high = self.portrait_skin_range

        details = SceneDetails(
            is_backlit=(brightness_diff > self.backlit_difference and
                        stats.center_brightness < self.backlit_center_max),
            is_sunset=(stats.warm_color_ratio > self.sunset_warm_ratio and
                       stats.color_temp_bias > self.sunset_temp_bias),
            is_portrait=skin_low < stats.skin_tone_ratio < skin_high,
            is_macro=(stats.local_variance > self.macro_local_variance and
                      stats.saturation_level > self.macro_saturation),
            is_landscape=(stats.green_ratio > self.landscape_green_ratio and
                          stats.contrast_level > self.landscape_contrast),
            is_night=(stats.mean_brightness < self.night_brightness and
                      stats.shadows_clipped > self.night_shadows_clipped),
            is_high_iso=stats.noise_estimate > self.high_iso_noise,
            color_cast=self._detect_color_cast(stats),
            dynamic_range=self._detect_dynamic_range(stats),
        )

        logger.debug(f"Scene: {details.scene_type}, cast={details.color_cast}, "
                     f"range={details.dynamic_range}")
        return details

    def _detect_color_cast(self, stats: ImageStatistics) -> str:
        if stats.color_temp_bias > 15.0:
            return 'warm'
        if stats.color_temp_bias < -15.0:
            return 'cool'
        if stats.tint_bias > 10.0:
            return 'green'
        if stats.tint_bias < -10.0:
            return 'magenta'
        return 'neutral'

    def _detect_dynamic_range(self, stats: ImageStatistics) -> str:
        if stats.highlights_clipped > 0.02 or stats.shadows_clipped > 0.02:
            return 'high'
        if stats.contrast_level < 0.2:
            return 'low'
        return 'normal'


_default_classifier = SceneClassifier()


def classify(stats: ImageStatistics) -> SceneDetails:
    """Classify with the default thresholds"""
    return _default_classifier.classify(stats)
