"""
Input/output: raster decoding, directory scanning, thumbnails and export
"""

from .raw import RasterSource, load_image, make_placeholder
from .filesystem import ImageFile, scan_directory, xmp_path_for
from .export import ExportOptions, ExportResult, encode_raster, export_image
from .thumbnail import generate_thumbnail

__all__ = [
    'RasterSource',
    'load_image',
    'make_placeholder',
    'ImageFile',
    'scan_directory',
    'xmp_path_for',
    'ExportOptions',
    'ExportResult',
    'encode_raster',
    'export_image',
    'generate_thumbnail',
]
