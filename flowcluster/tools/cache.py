"""
Caller-side memoization of cluster trees and aggregated flows.

The core never decides when to recompute. Callers pass their own cache keys,
which must change whenever the inputs do: ``(locations, weights)`` for trees
and ``(flows, tree)`` for aggregated flows.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Hashable

from cachetools import LRUCache

from ..clustering.tree import ClusterTree
from ..flows.aggregation import ClusteredFlowsByZoom


class FlowMapCache:
    """LRU caches for trees and per-zoom flows."""

    def __init__(self, maxsize: int = 8):
        self._tree_cache = LRUCache(maxsize=maxsize)
        self._flows_cache = LRUCache(maxsize=maxsize)
        self.hits = 0
        self.misses = 0

    def _get(self, cache: LRUCache, key: Hashable, compute: Callable[[], Any]) -> Any:
        if key in cache:
            self.hits += 1
            return cache[key]
        self.misses += 1
        value = compute()
        cache[key] = value
        return value

    def get_tree(self, key: Hashable, build: Callable[[], ClusterTree]) -> ClusterTree:
        """Return the tree cached under ``key``, building it on a miss."""
        return self._get(self._tree_cache, key, build)

    def get_flows_by_zoom(self, key: Hashable, compute: Callable[[], ClusteredFlowsByZoom]) -> ClusteredFlowsByZoom:
        """Return the aggregated flows cached under ``key``, computing them on a miss."""
        return self._get(self._flows_cache, key, compute)

    def clear(self) -> None:
        """Clear all caches."""
        self._tree_cache.clear()
        self._flows_cache.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        return {
            "tree_cache": {
                "size": len(self._tree_cache),
                "maxsize": self._tree_cache.maxsize,
            },
            "flows_cache": {
                "size": len(self._flows_cache),
                "maxsize": self._flows_cache.maxsize,
            },
            "hits": self.hits,
            "misses": self.misses,
        }
