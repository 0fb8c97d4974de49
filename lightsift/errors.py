"""
Exception types raised at the I/O boundary of Lightsift.

The pixel engine itself (render, statistics, classification, suggestion,
blending) never raises for a valid raster; only decoding and encoding can fail.
"""

from pathlib import Path
from typing import Optional, Union


class LightsiftError(Exception):
    """Base exception for Lightsift operations."""
    pass


class DecodeError(LightsiftError):
    """Raised when a file cannot be turned into a raster."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.path = str(path) if path is not None else None
        if self.path:
            message = f"{message}: {self.path}"
        super().__init__(message)


class EncodeError(LightsiftError):
    """Raised when a rendered raster cannot be serialized or written."""
    pass


class UnsupportedOperation(LightsiftError):
    """Raised when an operation cannot be applied to the given input."""
    pass


class FileNotFoundInSession(LightsiftError, KeyError):
    """Raised when a file id is not registered in the current session."""

    def __init__(self, file_id: str):
        self.file_id = file_id
        super().__init__(f"File not found: {file_id}")

    def __str__(self) -> str:
        return f"File not found: {self.file_id}"
