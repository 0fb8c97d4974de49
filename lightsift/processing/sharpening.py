"""
Unsharp sharpening over the axis-aligned 4-neighborhood.

Reads a frozen source raster and writes a separate output; border pixels
pass through unchanged.
"""

import numpy as np
from typing import Optional

from lightsift.utils.raster import (
    DEFAULT_MIN_ROWS_PER_CHUNK, process_rows, to_uint8
)


def _sharpen_rows(source: np.ndarray, start: int, end: int, factor: float) -> np.ndarray:
    height = source.shape[0]
    block = source[start:end].copy()

    y0, y1 = max(start, 1), min(end, height - 1)
    if y1 <= y0:
        return block

    window = source[y0 - 1:y1 + 1].astype(np.float64)
    center = window[1:-1, 1:-1]
    top = window[:-2, 1:-1]
    bottom = window[2:, 1:-1]
    left = window[1:-1, :-2]
    right = window[1:-1, 2:]

    laplacian = 4.0 * center - top - bottom - left - right
    block[y0 - start:y1 - start, 1:-1] = to_uint8(center + factor * laplacian)
    return block


def sharpen(raster: np.ndarray, amount: float, workers: Optional[int] = None,
            min_rows: int = DEFAULT_MIN_ROWS_PER_CHUNK) -> np.ndarray:
    """
    Sharpen an RGB raster

    Args:
        raster: uint8 ``(H, W, 3)`` array, not modified
        amount: Strength in percent; ``amount / 100`` scales the Laplacian
        workers: Thread count for row chunks
        min_rows: Minimum rows per chunk

    Returns:
        New raster; the input itself when ``amount <= 0`` or smaller than 3x3
    """
    height, width = raster.shape[:2]
    if amount <= 0 or height < 3 or width < 3:
        return raster

    factor = amount / 100.0
    return process_rows(
        raster,
        lambda src, start, end: _sharpen_rows(src, start, end, factor),
        workers=workers,
        min_rows=min_rows,
    )
