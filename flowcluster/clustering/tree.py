"""
Multi-level cluster tree.

A :class:`ClusterTree` indexes the items of every available zoom level and
answers the lookups a flow map needs while zooming: which items to draw,
which cluster a location is hidden in, and which locations a cluster stands
for. Trees are built either from :func:`cluster_locations` output or from an
externally supplied hierarchy (e.g. administrative regions); both paths end
in the same constructor and the tree is read-only afterwards.
"""

from __future__ import annotations

import logging
import math
from bisect import bisect_right
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set

import numpy as np
import pandas as pd
from pydantic import ValidationError

from ..errors import ConfigurationError, FlowClusterError, IntegrityError
from .clusterer import ClusteringOptions, cluster_locations
from .schemas import ClusterHierarchyModel, ClusterNodeModel
from .types import Cluster, ClusterLevel, Item, Leaf, LocationAccessors, is_cluster

logger = logging.getLogger(__name__)


def nearest_available_zoom(available_zoom_levels: Sequence[int], target_zoom: float) -> int:
    """
    Pick the level to display for a (possibly fractional) map zoom.

    Returns the greatest available level not above ``floor(target_zoom)``,
    or the smallest available level when all of them are above it.

    Raises:
        ConfigurationError: If no levels are available
    """
    if not available_zoom_levels:
        raise ConfigurationError("No available zoom levels")
    i = bisect_right(available_zoom_levels, math.floor(target_zoom))
    return available_zoom_levels[max(i - 1, 0)]


def _check_zoom_levels(zooms: List[int]) -> None:
    if not zooms:
        raise ConfigurationError("Could not determine min or max zoom: no zoom levels")
    if len(set(zooms)) != len(zooms):
        raise ConfigurationError(f"Duplicate zoom levels in {sorted(zooms)}")
    if sorted(zooms) != list(range(min(zooms), max(zooms) + 1)):
        raise ConfigurationError(f"Zoom levels {sorted(zooms)} are not contiguous")


class ClusterTree:
    """Read-only index over clustered items on contiguous zoom levels."""

    def __init__(
        self,
        levels: Sequence[ClusterLevel],
        locations: Sequence[Any],
        location_accessors: Optional[LocationAccessors] = None,
    ):
        if location_accessors is None:
            location_accessors = LocationAccessors()
        zooms = [level.zoom for level in levels]
        _check_zoom_levels(zooms)

        self.locations = list(locations)
        self.location_accessors = location_accessors
        self.available_zoom_levels: List[int] = sorted(zooms)
        self.min_zoom = self.available_zoom_levels[0]
        self.max_zoom = self.available_zoom_levels[-1]

        self._items_by_zoom: Dict[int, List[Item]] = {}
        self._clusters_by_id: Dict[str, Cluster] = {}
        self._min_zoom_by_location: Dict[str, int] = {}
        self._parent_by_id: Dict[str, str] = {}
        self._locations_by_id = {location_accessors.get_location_id(loc): loc for loc in self.locations}

        for level in sorted(levels, key=lambda lv: lv.zoom, reverse=True):
            self._items_by_zoom[level.zoom] = list(level.items)
            for item in level.items:
                if is_cluster(item):
                    self._clusters_by_id.setdefault(item.id, item)
                    for child_id in item.children:
                        self._parent_by_id.setdefault(child_id, item.id)
                else:
                    self._min_zoom_by_location[item.id] = level.zoom

        self._leaf_to_ancestor_by_zoom = self._build_leaf_to_ancestor()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_locations(
        cls,
        locations: Sequence[Any],
        location_accessors: Optional[LocationAccessors] = None,
        get_location_weight: Optional[Callable[[str], float]] = None,
        options: Optional[ClusteringOptions] = None,
    ) -> "ClusterTree":
        """Cluster ``locations`` and index the result."""
        result = cluster_locations(locations, location_accessors, get_location_weight, options)
        return cls(result.levels, locations, location_accessors)

    @classmethod
    def from_hierarchy(
        cls,
        hierarchy: Iterable[Mapping[str, Any]],
        locations: Sequence[Any],
        location_accessors: Optional[LocationAccessors] = None,
    ) -> "ClusterTree":
        """
        Index a fixed hierarchy of ``{zoom, clusters: [{id, name, centroid, children}]}`` levels.

        Locations not covered by any cluster listed on a level are shown on
        that level as leaves. When the finest level still contains clusters,
        a leaf-only level is added one zoom above it.

        Raises:
            ConfigurationError: Malformed input, no levels, or non-contiguous zooms
            IntegrityError: A referenced cluster has no recorded children
        """
        try:
            model = ClusterHierarchyModel(levels=list(hierarchy))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid cluster hierarchy: {exc}") from exc

        if location_accessors is None:
            location_accessors = LocationAccessors()
        levels = _levels_from_hierarchy(model, locations, location_accessors)
        return cls(levels, locations, location_accessors)

    def _build_leaf_to_ancestor(self) -> Dict[int, Dict[str, Item]]:
        """
        Map every merged location to the item containing it, per zoom.

        Works from the finest zoom down, reusing the finer zoom's location
        sets of each child cluster, so every cluster is expanded only once.
        """
        by_zoom: Dict[int, Dict[str, Item]] = {self.max_zoom: {}}
        finer_members: Dict[str, List[str]] = {}

        for zoom in range(self.max_zoom - 1, self.min_zoom - 1, -1):
            leaves_to_clusters: Dict[str, Item] = {}
            members: Dict[str, List[str]] = {}
            for item in self._items_by_zoom[zoom]:
                if not is_cluster(item):
                    continue
                leaf_ids = finer_members.get(item.id)
                if leaf_ids is None:
                    leaf_ids = []
                    for child_id in item.children:
                        child = self._clusters_by_id.get(child_id)
                        if child is None:
                            leaf_ids.append(child_id)
                        elif child_id in finer_members:
                            leaf_ids.extend(finer_members[child_id])
                        else:
                            logger.warning(
                                f"Cluster {child_id} is not on zoom {zoom + 1}; expanding it directly"
                            )
                            leaf_ids.extend(self.expand(child, self.max_zoom))
                for leaf_id in leaf_ids:
                    leaves_to_clusters[leaf_id] = item
                members[item.id] = leaf_ids
            by_zoom[zoom] = leaves_to_clusters
            finer_members = members
        return by_zoom

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def items_for(self, zoom: Optional[int] = None) -> Optional[List[Item]]:
        """Items on ``zoom``, or every location as a leaf when ``zoom`` is None."""
        if zoom is None:
            return [Leaf(id=self.location_accessors.get_location_id(loc), location=loc) for loc in self.locations]
        return self._items_by_zoom.get(zoom)

    def item_id(self, item: Item) -> str:
        return item.id

    def cluster_by_id(self, cluster_id: str) -> Optional[Cluster]:
        return self._clusters_by_id.get(cluster_id)

    def parent_id(self, item_id: str) -> Optional[str]:
        """Id of the cluster that first absorbs the item, if any."""
        return self._parent_by_id.get(item_id)

    def children_of(self, cluster: Cluster) -> List[Item]:
        children: List[Item] = []
        for child_id in cluster.children:
            child = self._clusters_by_id.get(child_id)
            children.append(child if child is not None else Leaf(id=child_id, location=self._locations_by_id.get(child_id)))
        return children

    def min_zoom_for(self, location_id: str) -> int:
        """Lowest zoom on which the location is shown as its own item."""
        return self._min_zoom_by_location.get(location_id, self.min_zoom)

    def expand(self, item: Item, target_zoom: Optional[int] = None) -> List[str]:
        """
        Ids of the items ``item`` breaks into on ``target_zoom``.

        Clusters that already exist on ``target_zoom`` are kept whole;
        with the default (max zoom) target this lists the locations.
        """
        if target_zoom is None:
            target_zoom = self.max_zoom
        ids: List[str] = []
        self._push_expanded_ids(item, target_zoom, ids)
        return ids

    def _push_expanded_ids(self, item: Item, target_zoom: int, ids: List[str]) -> None:
        if not is_cluster(item):
            ids.append(item.id)
        elif target_zoom <= item.zoom:
            ids.append(item.id)
        else:
            for child_id in item.children:
                child = self._clusters_by_id.get(child_id)
                if child is None:
                    ids.append(child_id)
                else:
                    self._push_expanded_ids(child, target_zoom, ids)

    def ancestor_item_at(self, location_id: str, zoom: int) -> Optional[Item]:
        leaves_to_clusters = self._leaf_to_ancestor_by_zoom.get(zoom)
        if leaves_to_clusters is None:
            return None
        return leaves_to_clusters.get(location_id)

    def ancestor_at(self, location_id: str, zoom: int) -> Optional[str]:
        """Id of the cluster hiding ``location_id`` on ``zoom``, or None when it is not merged."""
        item = self.ancestor_item_at(location_id, zoom)
        return item.id if item is not None else None

    # ------------------------------------------------------------------
    # Export and diagnostics
    # ------------------------------------------------------------------

    def cluster_levels(self) -> List[Dict[str, Any]]:
        """Export levels in the form accepted by :meth:`from_hierarchy`."""
        exported = []
        for zoom in self.available_zoom_levels:
            nodes = []
            for item in self._items_by_zoom[zoom]:
                if is_cluster(item):
                    nodes.append({
                        "id": item.id,
                        "name": item.name,
                        "centroid": list(item.centroid),
                        "children": list(item.children),
                    })
                else:
                    nodes.append({"id": item.id})
            exported.append({"zoom": zoom, "nodes": nodes})
        return exported

    def summary(self) -> pd.DataFrame:
        """Per-zoom item counts."""
        rows = []
        for zoom in self.available_zoom_levels:
            items = self._items_by_zoom[zoom]
            num_clusters = sum(1 for item in items if is_cluster(item))
            rows.append({
                "zoom": zoom,
                "num_items": len(items),
                "num_clusters": num_clusters,
                "num_leaves": len(items) - num_clusters,
            })
        return pd.DataFrame(rows, columns=["zoom", "num_items", "num_clusters", "num_leaves"])


def _levels_from_hierarchy(
    model: ClusterHierarchyModel,
    locations: Sequence[Any],
    location_accessors: LocationAccessors,
) -> List[ClusterLevel]:
    get_id = location_accessors.get_location_id
    get_centroid = location_accessors.get_location_centroid
    locations_by_id = {get_id(loc): loc for loc in locations}
    leaves = {loc_id: Leaf(id=loc_id, location=loc) for loc_id, loc in locations_by_id.items()}

    zooms = [level.zoom for level in model.levels]
    _check_zoom_levels(zooms)

    # clusters keep the finest zoom they are listed on
    nodes_by_id: Dict[str, ClusterNodeModel] = {}
    zoom_by_id: Dict[str, int] = {}
    for level in sorted(model.levels, key=lambda lv: lv.zoom, reverse=True):
        for node in level.clusters:
            if not node.children:
                continue
            known = nodes_by_id.get(node.id)
            if known is None:
                nodes_by_id[node.id] = node
                zoom_by_id[node.id] = level.zoom
            elif known.children != node.children:
                raise IntegrityError(f"Cluster {node.id} is listed with different children on zoom {level.zoom}")

    leaf_ids_by_cluster: Dict[str, List[str]] = {}

    def leaf_ids(cluster_id: str, path: Set[str]) -> List[str]:
        if cluster_id in leaf_ids_by_cluster:
            return leaf_ids_by_cluster[cluster_id]
        if cluster_id in path:
            raise IntegrityError(f"Cluster {cluster_id} contains itself")
        ids: List[str] = []
        for child_id in nodes_by_id[cluster_id].children:
            if child_id in nodes_by_id:
                ids.extend(leaf_ids(child_id, path | {cluster_id}))
            elif child_id in locations_by_id:
                ids.append(child_id)
            else:
                raise IntegrityError(
                    f"Cluster {child_id} referenced by {cluster_id} doesn't have children"
                )
        leaf_ids_by_cluster[cluster_id] = ids
        return ids

    clusters: Dict[str, Cluster] = {}
    for cluster_id, node in nodes_by_id.items():
        ids = leaf_ids(cluster_id, set())
        centroid = node.centroid
        if centroid is None:
            coords = np.asarray([get_centroid(locations_by_id[i]) for i in ids], dtype=float)
            centroid = tuple(float(v) for v in coords.mean(axis=0))
        clusters[cluster_id] = Cluster(
            id=cluster_id,
            zoom=zoom_by_id[cluster_id],
            centroid=tuple(centroid),
            name=node.name if node.name is not None else cluster_id,
            children=tuple(node.children),
            num_points=len(ids),
        )

    levels: List[ClusterLevel] = []
    for level in sorted(model.levels, key=lambda lv: lv.zoom):
        items: List[Item] = []
        covered: Set[str] = set()
        for node in level.clusters:
            if node.children:
                items.append(clusters[node.id])
                covered.update(leaf_ids_by_cluster[node.id])
            elif node.id in leaves:
                items.append(leaves[node.id])
                covered.add(node.id)
            else:
                raise IntegrityError(f"Cluster {node.id} on zoom {level.zoom} doesn't have children")
        items.extend(leaf for loc_id, leaf in leaves.items() if loc_id not in covered)
        levels.append(ClusterLevel(zoom=level.zoom, items=items))

    if any(is_cluster(item) for item in levels[-1].items):
        levels.append(ClusterLevel(zoom=levels[-1].zoom + 1, items=list(leaves.values())))
    return levels


def build_cluster_tree_or_none(
    locations: Sequence[Any],
    location_accessors: Optional[LocationAccessors] = None,
    get_location_weight: Optional[Callable[[str], float]] = None,
    options: Optional[ClusteringOptions] = None,
    hierarchy: Optional[Iterable[Mapping[str, Any]]] = None,
) -> Optional[ClusterTree]:
    """
    Build a tree, or return None so the caller can show locations unclustered.

    Uses ``hierarchy`` when given, otherwise clusters ``locations``.
    """
    try:
        if hierarchy is not None:
            return ClusterTree.from_hierarchy(hierarchy, locations, location_accessors)
        return ClusterTree.from_locations(locations, location_accessors, get_location_weight, options)
    except FlowClusterError as exc:
        logger.error(f"Cluster tree construction failed, falling back to flat display: {exc}")
        return None
