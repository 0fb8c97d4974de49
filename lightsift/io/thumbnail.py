"""
On-disk thumbnail generation
"""

from pathlib import Path
from typing import Optional, Union
import logging

from PIL import Image

from lightsift.config import get_thumbnail_dir
from lightsift.errors import DecodeError
from lightsift.io.raw import RasterSource, make_placeholder, load_image

logger = logging.getLogger(__name__)

THUMBNAIL_SIZE = 256
THUMBNAIL_QUALITY = 85


def thumbnail_path_for(file_id: str, thumb_dir: Optional[Union[str, Path]] = None) -> Path:
    thumb_dir = Path(thumb_dir) if thumb_dir else get_thumbnail_dir()
    return thumb_dir / f"{file_id}.jpg"


def generate_thumbnail(image_path: Union[str, Path], file_id: str,
                       thumb_dir: Optional[Union[str, Path]] = None,
                       size: int = THUMBNAIL_SIZE,
                       source: Optional[RasterSource] = None) -> Path:
    """
    Write ``<thumb_dir>/<file_id>.jpg`` unless it already exists

    Images that cannot be decoded get the checkerboard placeholder so every
    thumbnail slot is filled.

    Args:
        image_path: Source image
        file_id: Identifier used as the thumbnail file name
        thumb_dir: Thumbnail directory (configured default if omitted)
        size: Bounding box edge in pixels
        source: Raster source to decode with

    Returns:
        Path of the thumbnail file
    """
    thumb_path = thumbnail_path_for(file_id, thumb_dir)
    thumb_path.parent.mkdir(parents=True, exist_ok=True)

    if thumb_path.exists():
        return thumb_path

    try:
        raster = source.load(image_path) if source else load_image(image_path)
    except DecodeError as e:
        logger.warning(f"Using placeholder thumbnail for {image_path}: {e}")
        raster = make_placeholder()

    img = Image.fromarray(raster)
    img.thumbnail((size, size), Image.Resampling.LANCZOS)
    img.save(thumb_path, 'JPEG', quality=THUMBNAIL_QUALITY)

    logger.debug(f"Wrote thumbnail {thumb_path}")
    return thumb_path
