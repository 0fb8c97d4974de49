"""
Lightsift: photo triage and editing backend

Scans folders of images (camera RAW included), renders previews through a
non-destructive adjustment stack, persists edits as XMP sidecars and offers
a statistics-driven auto-enhance suggestion.
"""

__version__ = "0.1.0"

# Core imports for easy access
from .config import load_config
from .errors import DecodeError, EncodeError, LightsiftError, UnsupportedOperation
from .models import AdjustmentParameters, CropRect, Flag, Rotation

__all__ = [
    "load_config",
    "AdjustmentParameters",
    "CropRect",
    "Flag",
    "Rotation",
    "LightsiftError",
    "DecodeError",
    "EncodeError",
    "UnsupportedOperation",
]
