"""Model catalog cache.

Model listings change rarely but are requested every time a settings form or
model picker renders, so the ``{id: id}`` map is cached in memory with a TTL.

Key Features:
    - TTL expiration via cachetools TTLCache
    - Thread-safe: All operations protected by threading.Lock
    - Explicit refresh for "Refresh models" style actions
    - Hit/miss statistics
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from cachetools import TTLCache

if TYPE_CHECKING:
    from llmd_bridge.client.sync import OrchestratorClient

logger = logging.getLogger(__name__)

_CACHE_KEY = "llmd:models"


class ModelCatalog:
    """Caches the orchestrator's model listing.

    Attributes:
        client: Orchestrator client used to fetch the listing.
        ttl_seconds: Lifetime of a cached listing. 0 disables caching.
    """

    def __init__(self, client: OrchestratorClient, ttl_seconds: int = 3600) -> None:
        self.client = client
        self.ttl_seconds = ttl_seconds
        self._cache: TTLCache[str, dict[str, str]] = TTLCache(
            maxsize=1, ttl=max(ttl_seconds, 1)
        )
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()

    def get_models(self) -> dict[str, str]:
        """Return the cached listing, fetching it on a miss.

        Raises:
            BridgeError: Whatever ``OrchestratorClient.list_models`` raises on
                a miss. Failures are not cached.
        """
        with self._lock:
            cached = self._cache.get(_CACHE_KEY) if self.ttl_seconds else None
            if cached is not None:
                self._hits += 1
                return dict(cached)
            self._misses += 1

        models = self._fetch()
        if self.ttl_seconds:
            with self._lock:
                self._cache[_CACHE_KEY] = models
        return dict(models)

    def refresh(self) -> dict[str, str]:
        """Drop the cached listing and fetch a fresh one."""
        self.clear()
        return self.get_models()

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def _fetch(self) -> dict[str, str]:
        descriptors = self.client.list_models()
        logger.info("Fetched %d models from orchestrator", len(descriptors))
        return {model.id: model.id for model in descriptors}

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            total = self._hits + self._misses
            return {
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / total if total > 0 else 0.0,
                "cached": _CACHE_KEY in self._cache,
            }


__all__ = ["ModelCatalog"]
