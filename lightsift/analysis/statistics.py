"""
Image statistics used by scene classification and auto-enhance.

A single vectorized pass over every pixel builds the brightness histogram and
the aggregate color/tone measurements; a second, sampled pass estimates noise
from local 4-neighbor variance.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Any
import logging

from lightsift.utils.raster import as_rgb

logger = logging.getLogger(__name__)

# Rec.601 luma weights
LUMA_WEIGHTS = (0.299, 0.587, 0.114)

# Guards truncation of exact integer luminances against float rounding
_BIN_EPSILON = 1e-6

GRAY_POINT_MIN_CANDIDATES = 11
NOISE_SAMPLE_TARGET = 1000


@dataclass
class ImageStatistics:
    """Aggregate statistics for one raster; recomputed on every analysis."""
    histogram: np.ndarray = field(default_factory=lambda: np.zeros(256, dtype=np.int64))
    mean_brightness: float = 0.0
    std_brightness: float = 0.0
    mean_rgb: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    color_temp_bias: float = 0.0        # (R - B) as % of full scale
    tint_bias: float = 0.0              # G vs. R/B average as % of full scale
    saturation_level: float = 0.0       # Mean (max - min) / max
    contrast_level: float = 0.0         # std_brightness / 128
    highlights_clipped: float = 0.0     # Fraction in bins 245-255
    shadows_clipped: float = 0.0        # Fraction in bins 0-9
    highlights_headroom: float = 0.0    # Fraction in bins 200-244
    shadows_headroom: float = 0.0       # Fraction in bins 10-54
    center_brightness: float = 0.0
    edge_brightness: float = 0.0
    skin_tone_ratio: float = 0.0
    warm_color_ratio: float = 0.0
    green_ratio: float = 0.0
    noise_estimate: float = 0.0         # 25th percentile of local variance
    local_variance: float = 0.0         # Mean of sampled local variance
    gray_point: Optional[Tuple[float, float, float]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {k: v for k, v in self.__dict__.items() if k != 'histogram'}
        data['histogram'] = self.histogram.tolist()
        data['gray_point'] = list(self.gray_point) if self.gray_point else None
        data['mean_rgb'] = list(self.mean_rgb)
        return data


def luminance_bins(rgb: np.ndarray) -> np.ndarray:
    """Per-pixel perceptual luminance truncated to an integer bin 0-255."""
    channels = rgb.astype(np.float64)
    luma = (LUMA_WEIGHTS[0] * channels[..., 0] +
            LUMA_WEIGHTS[1] * channels[..., 1] +
            LUMA_WEIGHTS[2] * channels[..., 2])
    return np.clip(np.floor(luma + _BIN_EPSILON), 0, 255).astype(np.int64)


def compute_statistics(raster: np.ndarray) -> ImageStatistics:
    """
    Compute histogram and derived statistics for a raster

    Args:
        raster: uint8 RGB ``(H, W, 3)`` or luminance ``(H, W)`` array

    Returns:
        ImageStatistics for the raster
    """
    rgb = as_rgb(raster)
    height, width = rgb.shape[:2]
    total = height * width
    if total == 0:
        logger.warning("Statistics requested for an empty raster")
        return ImageStatistics()

    r = rgb[..., 0].astype(np.float64)
    g = rgb[..., 1].astype(np.float64)
    b = rgb[..., 2].astype(np.float64)

    bins = luminance_bins(rgb)
    histogram = np.bincount(bins.ravel(), minlength=256)

    mean_brightness = float(bins.sum() / total)
    levels = np.arange(256, dtype=np.float64)
    variance = float(np.sum(histogram * (levels - mean_brightness) ** 2) / total)
    std_brightness = float(np.sqrt(variance))

    mean_r, mean_g, mean_b = float(r.mean()), float(g.mean()), float(b.mean())

    max_c = np.maximum(np.maximum(r, g), b)
    min_c = np.minimum(np.minimum(r, g), b)
    saturation = np.divide(max_c - min_c, max_c, out=np.zeros_like(max_c), where=max_c > 0)

    center_brightness, edge_brightness = _center_edge_brightness(bins, mean_brightness)

    skin = ((r > 95) & (g > 40) & (b > 20) &
            (r > g) & (r > b) &
            (np.abs(r - g) > 15) & (r - b > 15) &
            (saturation > 0.1) & (saturation < 0.7))
    warm = (r > 150) & (g > 50) & (g < 180) & (b < 150) & (r > g) & (g > b)
    green = (g > r) & (g > b) & (g > 80)

    gray_mask = (saturation < 0.1) & (bins >= 50) & (bins <= 200)
    gray_count = int(np.count_nonzero(gray_mask))
    gray_point = None
    if gray_count >= GRAY_POINT_MIN_CANDIDATES:
        gray_point = (float(r[gray_mask].mean()),
                      float(g[gray_mask].mean()),
                      float(b[gray_mask].mean()))

    noise_estimate, local_variance = _sampled_local_variance(r, g, b)

    return ImageStatistics(
        histogram=histogram,
        mean_brightness=mean_brightness,
        std_brightness=std_brightness,
        mean_rgb=(mean_r, mean_g, mean_b),
        color_temp_bias=(mean_r - mean_b) / 255.0 * 100.0,
        tint_bias=(mean_g - (mean_r + mean_b) / 2.0) / 255.0 * 100.0,
        saturation_level=float(saturation.mean()),
        contrast_level=std_brightness / 128.0,
        highlights_clipped=float(histogram[245:].sum() / total),
        shadows_clipped=float(histogram[:10].sum() / total),
        highlights_headroom=float(histogram[200:245].sum() / total),
        shadows_headroom=float(histogram[10:55].sum() / total),
        center_brightness=center_brightness,
        edge_brightness=edge_brightness,
        skin_tone_ratio=float(np.count_nonzero(skin) / total),
        warm_color_ratio=float(np.count_nonzero(warm) / total),
        green_ratio=float(np.count_nonzero(green) / total),
        noise_estimate=noise_estimate,
        local_variance=local_variance,
        gray_point=gray_point,
    )


def _center_edge_brightness(bins: np.ndarray, fallback: float) -> Tuple[float, float]:
    """
    Mean brightness inside the center disk and beyond twice its radius

    The disk is centered on (W//2, H//2) with radius min(W, H)//4; distances
    are truncated to whole pixels. Empty regions report ``fallback``.
    """
    height, width = bins.shape
    radius = min(width, height) // 4
    ys, xs = np.indices((height, width))
    dist = np.floor(np.sqrt((xs - width // 2) ** 2 + (ys - height // 2) ** 2))

    center = dist < radius
    edge = dist > radius * 2

    center_brightness = float(bins[center].mean()) if center.any() else fallback
    edge_brightness = float(bins[edge].mean()) if edge.any() else fallback
    return center_brightness, edge_brightness


def _sampled_local_variance(r: np.ndarray, g: np.ndarray, b: np.ndarray) -> Tuple[float, float]:
    """
    Noise estimate from the variance against the 4 axis neighbors

    Interior pixels are sampled on a grid with stride max(1, pixels/1000) in
    both directions. Returns the 25th percentile and the mean variance.
    """
    height, width = r.shape
    if height < 3 or width < 3:
        return 0.0, 0.0

    step = max(1, (height * width) // NOISE_SAMPLE_TARGET)
    ys = np.arange(1, height - 1, step)
    xs = np.arange(1, width - 1, step)

    lum = (r + g + b) / 3.0
    center = lum[np.ix_(ys, xs)]
    variance = np.zeros_like(center)
    for dy, dx in ((0, -1), (0, 1), (-1, 0), (1, 0)):
        neighbor = lum[np.ix_(ys + dy, xs + dx)]
        variance += (center - neighbor) ** 2
    variance = np.sort((variance / 4.0).ravel())

    noise_estimate = float(variance[len(variance) // 4])
    local_variance = float(variance.mean())
    return noise_estimate, local_variance
