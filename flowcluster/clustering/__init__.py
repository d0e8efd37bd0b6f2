"""
flowcluster.clustering: Zoom-dependent location clustering.

This module provides the greedy multi-level clusterer and the cluster tree
that indexes its output (or an externally supplied hierarchy).
"""

from .types import (
    Cluster,
    ClusterLevel,
    Item,
    ItemKind,
    Leaf,
    Location,
    LocationAccessors,
    is_cluster,
    is_leaf,
)
from .clusterer import (
    ClusteringOptions,
    ClusteringResult,
    cluster_locations,
)
from .tree import (
    ClusterTree,
    build_cluster_tree_or_none,
    nearest_available_zoom,
)

__all__ = [
    "Cluster",
    "ClusterLevel",
    "Item",
    "ItemKind",
    "Leaf",
    "Location",
    "LocationAccessors",
    "is_cluster",
    "is_leaf",
    "ClusteringOptions",
    "ClusteringResult",
    "cluster_locations",
    "ClusterTree",
    "build_cluster_tree_or_none",
    "nearest_available_zoom",
]
