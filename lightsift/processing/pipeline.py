"""
Transform pipeline: turns a decoded raster plus an adjustment set into a
rendered raster.

Stage order is fixed:

1. crop
2. per-pixel tone/color (exposure, contrast, highlights/shadows, white
   balance, saturation, vibrance), data-parallel across row chunks
3. sharpening (reads a frozen copy of stage 2's output)
4. noise reduction (reads a frozen copy of stage 3's output)
5. right-angle rotation

The straighten angle is carried by AdjustmentParameters but not rendered.
"""

import numpy as np
from typing import Any, Dict, Optional
import logging

from lightsift.models import AdjustmentParameters
from lightsift.processing.adjustments import apply_operators, build_operators
from lightsift.processing.geometry import crop, rotate
from lightsift.processing.noise_reduction import reduce_noise
from lightsift.processing.sharpening import sharpen
from lightsift.utils.raster import (
    DEFAULT_MIN_ROWS_PER_CHUNK, as_rgb, default_workers, process_rows
)

logger = logging.getLogger(__name__)


class TransformPipeline:
    """Renders adjustment parameters onto rasters"""

    def __init__(self, workers: Optional[int] = None,
                 min_rows_per_chunk: int = DEFAULT_MIN_ROWS_PER_CHUNK):
        """
        Initialize pipeline

        Args:
            workers: Threads used for the per-pixel and neighborhood passes
            min_rows_per_chunk: Smallest row range handed to one worker
        """
        self.workers = workers or default_workers()
        self.min_rows_per_chunk = min_rows_per_chunk

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'TransformPipeline':
        pipeline_config = config.get('pipeline', {}) if config else {}
        return cls(
            workers=pipeline_config.get('workers'),
            min_rows_per_chunk=pipeline_config.get('min_rows_per_chunk', DEFAULT_MIN_ROWS_PER_CHUNK),
        )

    def render(self, raster: np.ndarray, params: AdjustmentParameters) -> np.ndarray:
        """
        Apply an adjustment set to a raster

        Args:
            raster: uint8 RGB or luminance array; never modified
            params: Adjustments to apply

        Returns:
            New uint8 RGB raster
        """
        image = as_rgb(raster)

        image = crop(image, params.crop)

        ops = build_operators(params)
        if ops:
            image = process_rows(
                image,
                lambda src, start, end: apply_operators(src[start:end], ops),
                workers=self.workers,
                min_rows=self.min_rows_per_chunk,
            )

        image = sharpen(image, params.sharpening_amount,
                        workers=self.workers, min_rows=self.min_rows_per_chunk)
        image = reduce_noise(image, params.noise_reduction,
                             workers=self.workers, min_rows=self.min_rows_per_chunk)

        image = rotate(image, params.rotation)

        # Callers own the result; never hand back a view of the input
        if np.may_share_memory(image, raster):
            image = image.copy()
        return image


_default_pipeline = TransformPipeline()


def render(raster: np.ndarray, params: AdjustmentParameters) -> np.ndarray:
    """Render with the default pipeline"""
    return _default_pipeline.render(raster, params)
