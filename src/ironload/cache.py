"""
Read-through cache for slow-changing reference data (exercise catalog and
muscle splits).

The cache is an explicit object owned by a repository and passed by
reference; any write to catalog data must call ``invalidate()``.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Optional

from .domain import ExerciseCatalogEntry

logger = logging.getLogger(__name__)

CatalogLoader = Callable[[], Dict[str, ExerciseCatalogEntry]]


class ReferenceDataCache:
    """Caches the exercise catalog between invalidations."""

    def __init__(self):
        self._catalog: Optional[Dict[str, ExerciseCatalogEntry]] = None
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get_catalog(self, loader: CatalogLoader) -> Dict[str, ExerciseCatalogEntry]:
        """
        Return the cached catalog, loading it on first use.

        Args:
            loader: Callable that reads the catalog from its source

        Returns:
            Exercise id -> catalog entry
        """
        with self._lock:
            if self._catalog is not None:
                self.hits += 1
                return self._catalog

            self.misses += 1
            catalog = loader()
            self._catalog = catalog
            logger.debug(f"Catalog cache loaded {len(catalog)} exercises")
            return catalog

    def invalidate(self):
        """Drop cached data after a catalog write."""
        with self._lock:
            if self._catalog is not None:
                logger.debug("Catalog cache invalidated")
            self._catalog = None
