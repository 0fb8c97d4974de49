"""
Raster helpers shared by the processing stages
"""

import os
import numpy as np
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional, Tuple
import logging

from lightsift.errors import UnsupportedOperation

logger = logging.getLogger(__name__)

DEFAULT_MIN_ROWS_PER_CHUNK = 64

RowFunction = Callable[[np.ndarray, int, int], np.ndarray]


def as_rgb(raster: np.ndarray) -> np.ndarray:
    """
    Promote a raster to 3-channel uint8 RGB

    Luminance rasters are replicated across channels and an alpha channel
    is dropped. RGB input is returned without copying.

    Raises:
        UnsupportedOperation: for any other array shape
    """
    raster = np.asarray(raster)
    if raster.dtype != np.uint8:
        raster = np.clip(raster, 0, 255).astype(np.uint8)

    if raster.ndim == 2:
        return np.repeat(raster[:, :, np.newaxis], 3, axis=2)
    if raster.ndim == 3 and raster.shape[2] == 1:
        return np.repeat(raster, 3, axis=2)
    if raster.ndim == 3 and raster.shape[2] == 4:
        return np.ascontiguousarray(raster[:, :, :3])
    if raster.ndim == 3 and raster.shape[2] == 3:
        return raster

    raise UnsupportedOperation(f"Unsupported raster shape: {raster.shape}")


def quantize(values: np.ndarray) -> np.ndarray:
    """Clamp to the channel range and truncate to whole channel values"""
    return np.trunc(np.clip(values, 0.0, 255.0))


def to_uint8(values: np.ndarray) -> np.ndarray:
    return quantize(values).astype(np.uint8)


def default_workers() -> int:
    return os.cpu_count() or 1


def row_chunks(height: int, workers: int,
               min_rows: int = DEFAULT_MIN_ROWS_PER_CHUNK) -> List[Tuple[int, int]]:
    """
    Partition ``[0, height)`` into contiguous row ranges

    At most ``workers`` ranges are produced and each holds at least
    ``min_rows`` rows, except when the whole raster is smaller than that.
    """
    if height <= 0:
        return []
    count = max(1, min(int(workers), height // max(int(min_rows), 1)))
    bounds = np.linspace(0, height, count + 1).astype(int)
    return [(int(bounds[i]), int(bounds[i + 1]))
            for i in range(count) if bounds[i + 1] > bounds[i]]


def process_rows(source: np.ndarray, func: RowFunction,
                 workers: Optional[int] = None,
                 min_rows: int = DEFAULT_MIN_ROWS_PER_CHUNK) -> np.ndarray:
    """
    Run a row-range function over a raster into a fresh output buffer

    ``func(source, start, end)`` must return the output rows ``start:end``.
    It may read any row of ``source`` but never writes to it; each worker
    fills a disjoint slice of the output.

    Args:
        source: Frozen input raster
        func: Row-range function
        workers: Thread count (defaults to CPU count)
        min_rows: Minimum rows per chunk

    Returns:
        New raster with the same shape and dtype as ``source``
    """
    workers = workers or default_workers()
    height = source.shape[0]
    output = np.empty_like(source)
    chunks = row_chunks(height, workers, min_rows)

    if len(chunks) <= 1:
        if height:
            output[:] = func(source, 0, height)
        return output

    with ThreadPoolExecutor(max_workers=len(chunks)) as executor:
        future_to_chunk = {
            executor.submit(func, source, start, end): (start, end)
            for start, end in chunks
        }
        for future in as_completed(future_to_chunk):
            start, end = future_to_chunk[future]
            output[start:end] = future.result()

    return output
