"""
Encoding rendered rasters and exporting finished images
"""

import cv2
import numpy as np
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging

from lightsift.errors import EncodeError, LightsiftError
from lightsift.io.raw import RasterSource, load_image
from lightsift.models import AdjustmentParameters
from lightsift.processing.geometry import resize_to_fit
from lightsift.processing.pipeline import TransformPipeline, render

logger = logging.getLogger(__name__)

FORMAT_EXTENSIONS = {
    'jpeg': 'jpg',
    'jpg': 'jpg',
    'png': 'png',
}


@dataclass
class ExportOptions:
    """Output format and resize policy for an export"""
    format: str = 'jpeg'
    quality: int = 92
    resize_value: Optional[int] = None  # Longest side in pixels

    @property
    def extension(self) -> str:
        return FORMAT_EXTENSIONS.get(self.format.lower(), 'jpg')

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'ExportOptions':
        export_config = config.get('export', {}) if config else {}
        return cls(
            format=export_config.get('format', 'jpeg'),
            quality=int(export_config.get('quality', 92)),
            resize_value=export_config.get('resize_value'),
        )


@dataclass
class ExportResult:
    """Outcome of exporting one image"""
    success: bool
    source_id: str
    destination_path: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def encode_raster(raster: np.ndarray, fmt: str = 'jpeg', quality: int = 85) -> bytes:
    """
    Encode a raster to image file bytes

    Args:
        raster: uint8 RGB or luminance array
        fmt: 'jpeg'/'jpg' (lossy, at ``quality``) or 'png' (lossless)
        quality: JPEG quality 1-100

    Returns:
        Encoded bytes

    Raises:
        EncodeError: for an unknown format or a codec failure
    """
    extension = FORMAT_EXTENSIONS.get(str(fmt).lower())
    if extension is None:
        raise EncodeError(f"Unsupported export format: {fmt}")

    image = np.ascontiguousarray(raster, dtype=np.uint8)
    if image.ndim == 3:
        image = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)

    if extension == 'jpg':
        quality = min(max(int(quality), 1), 100)
        params = [cv2.IMWRITE_JPEG_QUALITY, quality]
    else:
        params = [cv2.IMWRITE_PNG_COMPRESSION, 9]

    try:
        ok, buffer = cv2.imencode(f'.{extension}', image, params)
    except cv2.error as e:
        raise EncodeError(f"Encode failed: {e}") from e
    if not ok:
        raise EncodeError(f"Encode failed for format {fmt}")
    return buffer.tobytes()


def export_image(image_path: Union[str, Path], file_id: str,
                 destination: Union[str, Path],
                 params: AdjustmentParameters,
                 options: ExportOptions,
                 source: Optional[RasterSource] = None,
                 pipeline: Optional[TransformPipeline] = None) -> ExportResult:
    """
    Decode, render and write one image

    The output is named after the source file stem with the extension of the
    export format and written into ``destination``, which is created if
    needed. Failures are reported in the result rather than raised.

    Returns:
        ExportResult for this image
    """
    image_path = Path(image_path)
    stem = image_path.stem or file_id
    dest_path = Path(destination) / f"{stem}.{options.extension}"

    try:
        raster = source.load(image_path) if source else load_image(image_path)
        rendered = pipeline.render(raster, params) if pipeline else render(raster, params)
        if options.resize_value:
            rendered = resize_to_fit(rendered, int(options.resize_value))

        data = encode_raster(rendered, options.format, options.quality)

        dest_path.parent.mkdir(parents=True, exist_ok=True)
        dest_path.write_bytes(data)
    except (LightsiftError, OSError) as e:
        logger.error(f"Export failed for {image_path}: {e}")
        return ExportResult(success=False, source_id=file_id, error=str(e))

    logger.info(f"Exported {image_path.name} -> {dest_path}")
    return ExportResult(success=True, source_id=file_id, destination_path=str(dest_path))
