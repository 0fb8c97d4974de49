"""
Preview rendering with a bounded source cache
"""

from .cache import PreviewCache
from .preview_service import PreviewService

__all__ = ['PreviewCache', 'PreviewService']
