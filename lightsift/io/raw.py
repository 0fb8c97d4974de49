"""
Raster loading for Lightsift
Decodes standard image files and camera RAW files into 8-bit numpy rasters
"""

import io
import rawpy
import numpy as np
from pathlib import Path
from typing import List, Optional, Tuple, Union
import logging
from PIL import Image

from lightsift.errors import DecodeError

logger = logging.getLogger(__name__)

RAW_EXTENSIONS = (
    "cr2", "cr3", "nef", "nrw", "arw", "srf", "sr2", "raf", "orf", "rw2",
    "dng", "pef", "erf", "3fr", "fff", "iiq", "rwl", "srw", "x3f", "mrw",
)

IMAGE_EXTENSIONS = (
    "jpg", "jpeg", "png", "tiff", "tif", "webp", "heic", "heif",
)

JPEG_SOI = b'\xff\xd8'
JPEG_EOI = b'\xff\xd9'

# Embedded JPEGs at or below this size are treated as tiny thumbnails
DEFAULT_MIN_PREVIEW_BYTES = 10000

PLACEHOLDER_SIZE = 256
PLACEHOLDER_BLOCK = 16
PLACEHOLDER_LIGHT = 204
PLACEHOLDER_DARK = 153
PLACEHOLDER_MARKER = 96
PLACEHOLDER_MARKER_SIZE = 48


def _normalize_extension(ext: str) -> str:
    return ext.lower().lstrip('.')


def is_raw_extension(ext: str) -> bool:
    """Check whether a file extension belongs to a camera RAW format"""
    return _normalize_extension(ext) in RAW_EXTENSIONS


def is_supported_extension(ext: str) -> bool:
    """Check whether a file extension can be loaded at all"""
    ext = _normalize_extension(ext)
    return ext in RAW_EXTENSIONS or ext in IMAGE_EXTENSIONS


def find_jpeg_segments(data: bytes) -> List[Tuple[int, int]]:
    """
    Locate embedded JPEG streams in a byte buffer

    Segments run from an SOI marker through the next EOI marker. The scan
    goes left to right and segments never overlap.

    Args:
        data: Raw file contents

    Returns:
        List of ``(start, end)`` offsets, ``end`` exclusive, in discovery order
    """
    segments = []
    position = 0

    while True:
        start = data.find(JPEG_SOI, position)
        if start < 0:
            break
        end = data.find(JPEG_EOI, start + len(JPEG_SOI))
        if end < 0:
            break
        end += len(JPEG_EOI)
        segments.append((start, end))
        position = end

    return segments


def rank_preview_candidates(segments: List[Tuple[int, int]],
                            min_bytes: int = DEFAULT_MIN_PREVIEW_BYTES) -> List[Tuple[int, int]]:
    """
    Order embedded JPEG segments by how they should be tried

    Segments larger than ``min_bytes`` come first, largest to smallest;
    then every segment follows in discovery order as a last resort.
    """
    large = [s for s in segments if (s[1] - s[0]) > min_bytes]
    large.sort(key=lambda s: s[1] - s[0], reverse=True)
    return large + list(segments)


def make_placeholder() -> np.ndarray:
    """
    Build the deterministic placeholder used when no raster can be produced

    A 256x256 luminance checkerboard of 16px blocks with a solid marker block
    in the middle.
    """
    ys, xs = np.indices((PLACEHOLDER_SIZE, PLACEHOLDER_SIZE))
    checker = ((ys // PLACEHOLDER_BLOCK) + (xs // PLACEHOLDER_BLOCK)) % 2
    placeholder = np.where(checker == 0, PLACEHOLDER_LIGHT, PLACEHOLDER_DARK).astype(np.uint8)

    lo = (PLACEHOLDER_SIZE - PLACEHOLDER_MARKER_SIZE) // 2
    hi = lo + PLACEHOLDER_MARKER_SIZE
    placeholder[lo:hi, lo:hi] = PLACEHOLDER_MARKER
    return placeholder


def _image_to_array(image: Image.Image) -> np.ndarray:
    """Convert a PIL image to an 8-bit RGB or luminance array"""
    if image.mode == 'L':
        return np.array(image, dtype=np.uint8)
    if image.mode != 'RGB':
        image = image.convert('RGB')
    return np.array(image, dtype=np.uint8)


class RasterSource:
    """Turns image files into rasters, degrading gracefully for RAW files"""

    def __init__(self, min_preview_bytes: int = DEFAULT_MIN_PREVIEW_BYTES):
        """
        Initialize raster source

        Args:
            min_preview_bytes: Embedded JPEGs must exceed this size to be
                preferred over the discovery-order fallback
        """
        self.min_preview_bytes = min_preview_bytes

    def load(self, file_path: Union[str, Path]) -> np.ndarray:
        """
        Decode a file into a raster

        Args:
            file_path: Path to the image or RAW file

        Returns:
            uint8 array, ``(H, W, 3)`` RGB or ``(H, W)`` luminance

        Raises:
            DecodeError: if the file cannot be decoded
        """
        file_path = Path(file_path)
        if is_raw_extension(file_path.suffix):
            return self._load_raw(file_path)
        return self._load_standard(file_path)

    def _load_standard(self, file_path: Path) -> np.ndarray:
        try:
            with Image.open(file_path) as image:
                image.load()
                return _image_to_array(image)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise DecodeError(f"Failed to open image ({e})", file_path) from e

    def _load_raw(self, file_path: Path) -> np.ndarray:
        try:
            with rawpy.imread(str(file_path)) as raw:
                rgb = raw.postprocess(
                    use_camera_wb=True,
                    no_auto_bright=False,
                    output_bps=8
                )
            logger.debug(f"Decoded RAW sensor data: {file_path}")
            return np.ascontiguousarray(rgb, dtype=np.uint8)
        except (rawpy.LibRawError, OSError, ValueError) as e:
            logger.debug(f"Full RAW decode failed for {file_path}: {e}; trying embedded preview")

        try:
            data = file_path.read_bytes()
        except OSError as e:
            raise DecodeError(f"Read failed ({e})", file_path) from e

        raster = self.extract_embedded_preview(data)
        if raster is None:
            raise DecodeError("unsupported format", file_path)

        logger.info(f"Using embedded preview for {file_path.name}")
        return raster

    def extract_embedded_preview(self, data: bytes) -> Optional[np.ndarray]:
        """
        Decode the best embedded JPEG found in a RAW byte stream

        Args:
            data: Raw file contents

        Returns:
            Decoded raster, or None if no segment decodes
        """
        segments = find_jpeg_segments(data)
        if not segments:
            return None

        tried = set()
        for start, end in rank_preview_candidates(segments, self.min_preview_bytes):
            if (start, end) in tried:
                continue
            tried.add((start, end))
            try:
                with Image.open(io.BytesIO(data[start:end])) as image:
                    image.load()
                    raster = _image_to_array(image)
                logger.debug(f"Embedded JPEG at {start} ({end - start} bytes) decoded")
                return raster
            except (OSError, ValueError, Image.DecompressionBombError) as e:
                logger.debug(f"Embedded JPEG at {start} ({end - start} bytes) rejected: {e}")

        return None


_default_source = RasterSource()


def load_image(file_path: Union[str, Path]) -> np.ndarray:
    """Decode a file with the default raster source"""
    return _default_source.load(file_path)
