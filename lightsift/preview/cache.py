"""
Bounded in-memory cache of decoded, resized preview rasters
"""

import threading
from collections import OrderedDict
from typing import Callable, Dict, Hashable, Optional, Union
import logging

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 10


class PreviewCache:
    """
    FIFO cache for preview rasters.

    Entries are evicted strictly in insertion order; reads do not refresh an
    entry. Keys must encode everything that affects the cached pixels (the
    source path and the resize target); edits are applied after retrieval
    and never cached.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        self.capacity = max(int(capacity), 1)
        self.cache: OrderedDict[Hashable, np.ndarray] = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    def get(self, key: Hashable) -> Optional[np.ndarray]:
        """Get a raster without changing eviction order."""
        with self._lock:
            raster = self.cache.get(key)
            if raster is None:
                self._misses += 1
            else:
                self._hits += 1
            return raster

    def put(self, key: Hashable, raster: np.ndarray):
        """Insert a raster, evicting the oldest entries once over capacity."""
        with self._lock:
            if key in self.cache:
                # Replacing keeps the original insertion slot
                self.cache[key] = raster
                return

            while len(self.cache) >= self.capacity:
                old_key, _ = self.cache.popitem(last=False)
                logger.debug(f"Evicted preview {old_key} from cache")

            self.cache[key] = raster

    def get_or_load(self, key: Hashable, loader: Callable[[], np.ndarray]) -> np.ndarray:
        """
        Return the cached raster or load and insert it

        The loader runs outside the lock, so two concurrent misses on the
        same key may both decode; the later insert simply replaces the first.
        """
        raster = self.get(key)
        if raster is not None:
            return raster
        raster = loader()
        self.put(key, raster)
        return raster

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self.cache

    def __len__(self) -> int:
        with self._lock:
            return len(self.cache)

    def clear(self):
        """Clear all cached items."""
        with self._lock:
            self.cache.clear()

    def get_stats(self) -> Dict[str, Union[int, float]]:
        """Get cache statistics."""
        with self._lock:
            lookups = self._hits + self._misses
            return {
                'items': len(self.cache),
                'capacity': self.capacity,
                'memory_mb': sum(r.nbytes for r in self.cache.values()) / 1024 / 1024,
                'hit_ratio': self._hits / lookups if lookups else 0.0,
            }
