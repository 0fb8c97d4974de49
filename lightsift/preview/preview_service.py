"""
Interactive preview rendering.

Decoded, resized sources are cached per ``(path, max_size)``; adjustments
are applied on every request on top of the cached raster.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging

import numpy as np

from lightsift.io.export import encode_raster
from lightsift.io.raw import RasterSource
from lightsift.models import AdjustmentParameters
from lightsift.preview.cache import PreviewCache, DEFAULT_CAPACITY
from lightsift.processing.geometry import resize_to_fit
from lightsift.processing.pipeline import TransformPipeline

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 1600
DEFAULT_JPEG_QUALITY = 85


class PreviewService:
    """Renders edited previews from cached, resized sources"""

    def __init__(self,
                 source: Optional[RasterSource] = None,
                 pipeline: Optional[TransformPipeline] = None,
                 cache: Optional[PreviewCache] = None,
                 max_size: int = DEFAULT_MAX_SIZE,
                 jpeg_quality: int = DEFAULT_JPEG_QUALITY):
        self.source = source or RasterSource()
        self.pipeline = pipeline or TransformPipeline()
        self.cache = cache if cache is not None else PreviewCache(DEFAULT_CAPACITY)
        self.max_size = max_size
        self.jpeg_quality = jpeg_quality

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'PreviewService':
        preview_config = config.get('preview', {})
        raw_config = config.get('raw', {})
        source_kwargs = {}
        if 'min_preview_bytes' in raw_config:
            source_kwargs['min_preview_bytes'] = raw_config['min_preview_bytes']
        return cls(
            source=RasterSource(**source_kwargs),
            pipeline=TransformPipeline.from_config(config),
            cache=PreviewCache(preview_config.get('cache_capacity', DEFAULT_CAPACITY)),
            max_size=preview_config.get('max_size', DEFAULT_MAX_SIZE),
            jpeg_quality=preview_config.get('jpeg_quality', DEFAULT_JPEG_QUALITY),
        )

    def get_source(self, image_path: Union[str, Path], max_size: Optional[int] = None) -> np.ndarray:
        """
        Decoded source resized to fit ``max_size``, from cache when possible

        Raises:
            DecodeError: if the image cannot be decoded
        """
        max_size = int(max_size or self.max_size)
        key = (str(image_path), max_size)

        def load():
            logger.debug(f"Preview cache miss for {key}")
            return resize_to_fit(self.source.load(image_path), max_size)

        return self.cache.get_or_load(key, load)

    def render_preview(self, image_path: Union[str, Path], params: AdjustmentParameters,
                       max_size: Optional[int] = None) -> np.ndarray:
        """Rendered preview raster"""
        return self.pipeline.render(self.get_source(image_path, max_size), params)

    def get_preview(self, image_path: Union[str, Path], params: AdjustmentParameters,
                    max_size: Optional[int] = None) -> bytes:
        """
        Rendered preview as JPEG bytes

        Raises:
            DecodeError: if the image cannot be decoded
            EncodeError: if the preview cannot be encoded
        """
        rendered = self.render_preview(image_path, params, max_size)
        return encode_raster(rendered, 'jpeg', self.jpeg_quality)
