"""
Image analysis modules for Lightsift
"""

from .statistics import ImageStatistics, compute_statistics

__all__ = ['ImageStatistics', 'compute_statistics']
