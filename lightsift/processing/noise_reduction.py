"""
Noise reduction by blending each pixel with the mean of its 8 neighbors
"""

import numpy as np
from typing import Optional

from lightsift.utils.raster import (
    DEFAULT_MIN_ROWS_PER_CHUNK, process_rows, to_uint8
)


def _denoise_rows(source: np.ndarray, start: int, end: int, strength: float) -> np.ndarray:
    height = source.shape[0]
    block = source[start:end].copy()

    y0, y1 = max(start, 1), min(end, height - 1)
    if y1 <= y0:
        return block

    window = source[y0 - 1:y1 + 1].astype(np.float64)
    rows, width = window.shape[0], window.shape[1]
    center = window[1:-1, 1:-1]
    neighborhood = np.zeros_like(center)
    for dy in (-1, 0, 1):
        for dx in (-1, 0, 1):
            if dy == 0 and dx == 0:
                continue
            neighborhood += window[1 + dy:rows - 1 + dy, 1 + dx:width - 1 + dx]

    neighbor_mean = neighborhood / 8.0
    block[y0 - start:y1 - start, 1:-1] = to_uint8(
        center * (1.0 - strength) + neighbor_mean * strength
    )
    return block


def reduce_noise(raster: np.ndarray, amount: float, workers: Optional[int] = None,
                 min_rows: int = DEFAULT_MIN_ROWS_PER_CHUNK) -> np.ndarray:
    """
    Smooth an RGB raster

    Args:
        raster: uint8 ``(H, W, 3)`` array, not modified
        amount: Strength in percent, clamped to [0, 100]
        workers: Thread count for row chunks
        min_rows: Minimum rows per chunk

    Returns:
        New raster; the input itself when ``amount <= 0`` or smaller than 3x3
    """
    height, width = raster.shape[:2]
    if amount <= 0 or height < 3 or width < 3:
        return raster

    strength = min(max(amount / 100.0, 0.0), 1.0)
    return process_rows(
        raster,
        lambda src, start, end: _denoise_rows(src, start, end, strength),
        workers=workers,
        min_rows=min_rows,
    )
