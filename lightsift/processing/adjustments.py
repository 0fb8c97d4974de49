"""
Per-pixel tone and color operators.

Each operator takes float channel values and returns new ones; the stage
runner clamps and truncates to 8-bit resolution after every operator so the
next one sees exactly what would have been written. Operators whose
parameters are neutral are skipped entirely, which keeps the neutral
parameter set an exact identity.
"""

import numpy as np
from typing import Callable, List

from lightsift.models import AdjustmentParameters, NEUTRAL_TEMPERATURE
from lightsift.utils.raster import quantize

LUMA_R, LUMA_G, LUMA_B = 0.299, 0.587, 0.114

# Largest fractional gain change from highlights/shadows recovery
RECOVERY_STRENGTH = 0.5


def luminance(pixels: np.ndarray) -> np.ndarray:
    return LUMA_R * pixels[..., 0] + LUMA_G * pixels[..., 1] + LUMA_B * pixels[..., 2]


def apply_exposure(pixels: np.ndarray, ev: float) -> np.ndarray:
    """Scale linearly by ``2 ** ev``"""
    return pixels * (2.0 ** ev)


def contrast_factor(amount: float) -> float:
    return (259.0 * (amount + 255.0)) / (255.0 * (259.0 - amount))


def apply_contrast(pixels: np.ndarray, amount: float) -> np.ndarray:
    """Stretch around mid-gray 128"""
    return contrast_factor(amount) * (pixels - 128.0) + 128.0


def apply_highlights_shadows(pixels: np.ndarray, highlights: float, shadows: float) -> np.ndarray:
    """
    Luminance-masked gain for the bright and dark ends

    Negative ``highlights`` darken pixels above mid-gray in proportion to how
    bright they are; positive ``shadows`` lift pixels below mid-gray in
    proportion to how dark they are.
    """
    y = luminance(pixels)
    highlight_mask = np.clip((y - 128.0) / 127.0, 0.0, 1.0)
    shadow_mask = np.clip((128.0 - y) / 128.0, 0.0, 1.0)

    highlight_pull = -highlights / 100.0 * RECOVERY_STRENGTH
    shadow_push = shadows / 100.0 * RECOVERY_STRENGTH

    gain = 1.0 - highlight_mask * highlight_pull + shadow_mask * shadow_push
    return pixels * gain[..., np.newaxis]


def apply_white_balance(pixels: np.ndarray, temperature: float, tint: float) -> np.ndarray:
    """Additive red/blue shift from temperature, green shift from tint"""
    shift = (temperature - NEUTRAL_TEMPERATURE) / 100.0
    result = pixels.copy()
    result[..., 0] += shift
    result[..., 1] -= tint
    result[..., 2] -= shift
    return result


def apply_saturation(pixels: np.ndarray, amount: float) -> np.ndarray:
    """Move each channel toward or away from the pixel's luminance gray"""
    factor = 1.0 + amount / 100.0
    gray = luminance(pixels)[..., np.newaxis]
    return gray + factor * (pixels - gray)


def apply_vibrance(pixels: np.ndarray, amount: float) -> np.ndarray:
    """Saturation scaled by ``1 - saturation`` so vivid pixels move least"""
    max_c = pixels.max(axis=-1)
    min_c = pixels.min(axis=-1)
    saturation = np.divide(max_c - min_c, max_c, out=np.zeros_like(max_c), where=max_c > 0)

    factor = 1.0 + (amount / 100.0) * (1.0 - saturation)
    gray = luminance(pixels)[..., np.newaxis]
    return gray + factor[..., np.newaxis] * (pixels - gray)


def build_operators(params: AdjustmentParameters) -> List[Callable[[np.ndarray], np.ndarray]]:
    """Ordered list of the non-neutral per-pixel operators for ``params``"""
    ops = []
    if params.exposure != 0.0:
        ops.append(lambda p: apply_exposure(p, params.exposure))
    if params.contrast != 0.0:
        ops.append(lambda p: apply_contrast(p, params.contrast))
    if params.highlights != 0.0 or params.shadows != 0.0:
        ops.append(lambda p: apply_highlights_shadows(p, params.highlights, params.shadows))
    if params.white_balance_temp != NEUTRAL_TEMPERATURE or params.white_balance_tint != 0.0:
        ops.append(lambda p: apply_white_balance(p, params.white_balance_temp, params.white_balance_tint))
    if params.saturation != 0.0:
        ops.append(lambda p: apply_saturation(p, params.saturation))
    if params.vibrance != 0.0:
        ops.append(lambda p: apply_vibrance(p, params.vibrance))
    return ops


def apply_operators(rows: np.ndarray, ops: List[Callable[[np.ndarray], np.ndarray]]) -> np.ndarray:
    """Run operators in order over uint8 rows, quantizing after each one"""
    pixels = rows.astype(np.float64)
    for op in ops:
        pixels = quantize(op(pixels))
    return pixels.astype(np.uint8)
