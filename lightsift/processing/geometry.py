"""
Geometric operations: crop, right-angle rotation and resizing
"""

import cv2
import numpy as np
from typing import Optional
import logging

from lightsift.models import CropRect, Rotation

logger = logging.getLogger(__name__)


def crop(raster: np.ndarray, rect: Optional[CropRect]) -> np.ndarray:
    """Crop to a normalized rectangle, clamped to at least 1x1"""
    if rect is None:
        return raster
    height, width = raster.shape[:2]
    x0, y0, x1, y1 = rect.to_pixel_box(width, height)
    return np.ascontiguousarray(raster[y0:y1, x0:x1])


def rotate(raster: np.ndarray, rotation: Rotation) -> np.ndarray:
    """Rotate clockwise by a right angle; any other value is a no-op"""
    quarter_turns = {
        Rotation.DEG_90: 1,
        Rotation.DEG_180: 2,
        Rotation.DEG_270: 3,
    }.get(rotation, 0)
    if not quarter_turns:
        return raster
    # np.rot90 turns counter-clockwise for positive k
    return np.ascontiguousarray(np.rot90(raster, k=-quarter_turns))


def resize_to_fit(raster: np.ndarray, max_size: int) -> np.ndarray:
    """
    Downscale so neither side exceeds ``max_size``, keeping aspect ratio

    Rasters already within bounds are returned unchanged.
    """
    height, width = raster.shape[:2]
    if width <= max_size and height <= max_size:
        return raster

    scale = max_size / max(width, height)
    new_width = max(1, int(width * scale))
    new_height = max(1, int(height * scale))
    logger.debug(f"Resizing {width}x{height} -> {new_width}x{new_height}")
    return cv2.resize(raster, (new_width, new_height), interpolation=cv2.INTER_LANCZOS4)
