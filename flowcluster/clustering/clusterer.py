"""
Greedy agglomerative clustering of locations across zoom levels.

Locations are projected onto the unit square and clustered at the finest
zoom first; the survivors of each level are clustered again at the next
coarser zoom with a radius twice as large. Each pass walks the points in
the order carried over from the previous level, so which point seeds a
cluster depends on input order rather than geometry. Identical inputs in
identical order always yield identical clusters and ids.

The grid-free approach follows mapbox/supercluster:
1. Each unvisited point absorbs every unvisited neighbour within the radius
2. Absorbed points are replaced by one cluster at their weighted centroid
3. Points without neighbours pass through to the next level unchanged
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..errors import ConfigurationError
from ..spatial.index import SpatialIndex
from ..spatial.projection import from_plane, project_array
from .types import Cluster, ClusterLevel, Item, ItemKind, Leaf, LocationAccessors

logger = logging.getLogger(__name__)

# numeric cluster ids pack the zoom into the low five bits
MAX_SUPPORTED_ZOOM = 30

CLUSTER_ID_PREFIX = "cluster::"


def default_cluster_name(cluster_id: int, num_points: int, children: Sequence[Item]) -> str:
    return f"Cluster #{cluster_id} of {num_points} locations"


def default_cluster_id(cluster_id: int) -> str:
    return f"{CLUSTER_ID_PREFIX}{cluster_id}"


@dataclass
class ClusteringOptions:
    """Configuration for :func:`cluster_locations`."""

    min_zoom: int = 0
    """Coarsest zoom to generate clusters on."""

    max_zoom: int = 16
    """Finest zoom to generate clusters on."""

    radius: float = 40
    """Cluster radius in pixels."""

    extent: float = 512
    """Tile extent in pixels; the radius is relative to it."""

    node_size: int = 64
    """KD-tree leaf size, affects performance only."""

    make_cluster_name: Callable[[int, int, Sequence[Item]], str] = default_cluster_name
    """Formats a display name from the numeric id, location count and children."""

    make_cluster_id: Callable[[int], str] = default_cluster_id
    """Maps numeric ids into a namespace disjoint from location ids."""

    def validate(self) -> None:
        """Raise :class:`ConfigurationError` for unusable settings."""
        if self.min_zoom < 0 or self.max_zoom > MAX_SUPPORTED_ZOOM:
            raise ConfigurationError(
                f"Zoom range [{self.min_zoom}, {self.max_zoom}] must lie within "
                f"[0, {MAX_SUPPORTED_ZOOM}]"
            )
        if self.min_zoom > self.max_zoom:
            raise ConfigurationError(
                f"min_zoom ({self.min_zoom}) is greater than max_zoom ({self.max_zoom})"
            )
        if self.radius <= 0 or self.extent <= 0:
            raise ConfigurationError("radius and extent must be positive")
        if self.node_size < 1:
            raise ConfigurationError("node_size must be at least 1")


@dataclass
class _Point:
    """Mutable per-run state of a point or cluster being clustered."""

    kind: ItemKind
    x: float
    y: float
    weight: float
    num_points: int = 1
    index: int = -1
    """Index of the source location (leaves only)."""

    cluster_id: int = -1
    """Numeric cluster id (clusters only)."""

    zoom: float = float("inf")
    """Last zoom the point was processed at."""

    parent_id: int = -1


@dataclass
class ClusteringResult:
    """Per-zoom output of :func:`cluster_locations`."""

    levels: List[ClusterLevel]
    """Levels within the effective zoom range, coarsest first."""

    point_counts: Dict[int, int] = field(default_factory=dict)
    """Number of surviving points per zoom, including ``max_zoom + 1`` (raw input)."""

    min_zoom: int = 0
    max_zoom: int = 0


def _cluster_level(points: List[_Point], zoom: int, index: SpatialIndex, options: ClusteringOptions) -> List[_Point]:
    """Run one greedy merge pass and return the points surviving at ``zoom``."""
    survivors: List[_Point] = []
    r = options.radius / (options.extent * 2 ** zoom)

    for i, p in enumerate(points):
        if p.zoom <= zoom:
            continue
        p.zoom = zoom

        weight = p.weight
        num_points = p.num_points
        wx = p.x * weight
        wy = p.y * weight
        absorbed = 0

        # encode both the seed's position in this level and the zoom
        cluster_id = (i << 5) + (zoom + 1)

        for j in index.within(p.x, p.y, r):
            q = points[j]
            if q.zoom <= zoom:
                continue
            q.zoom = zoom

            wx += q.x * q.weight
            wy += q.y * q.weight
            weight += q.weight
            num_points += q.num_points
            q.parent_id = cluster_id
            absorbed += 1

        if absorbed == 0:
            survivors.append(p)
        else:
            p.parent_id = cluster_id
            survivors.append(_Point(
                kind=ItemKind.CLUSTER,
                x=wx / weight,
                y=wy / weight,
                weight=weight,
                num_points=num_points,
                cluster_id=cluster_id,
            ))

    return survivors


def _effective_zoom_range(point_counts: Dict[int, int], min_zoom: int, max_zoom: int) -> Tuple[int, int]:
    """
    Derive the exposed zoom range from the surviving-point histogram.

    The effective max is the coarsest zoom that still holds as many points as
    the raw input; the effective min is the finest zoom that holds as few as
    the configured min zoom. Counts never grow towards coarser zooms, so these
    are the ends of the two plateaus of the histogram.
    """
    zooms = range(min_zoom, max_zoom + 2)
    raw_count = point_counts[max_zoom + 1]
    coarsest_count = point_counts[min_zoom]
    effective_max = next(z for z in zooms if point_counts[z] == raw_count)
    effective_min = max(z for z in zooms if point_counts[z] == coarsest_count)
    return min(effective_min, effective_max), effective_max


def cluster_locations(
    locations: Sequence[Any],
    location_accessors: Optional[LocationAccessors] = None,
    get_location_weight: Optional[Callable[[str], float]] = None,
    options: Optional[ClusteringOptions] = None,
) -> ClusteringResult:
    """
    Cluster ``locations`` on every zoom from ``options.max_zoom`` down to ``options.min_zoom``.

    Args:
        locations: Caller location records, in a fixed order
        location_accessors: Id and centroid accessors (defaults read ``.id``/``.centroid``)
        get_location_weight: Weight per location id; missing or zero weights count as 1
        options: Clustering configuration (uses defaults if None)

    Returns:
        ClusteringResult whose levels span the effective zoom range. The finest
        level lists every location as a leaf, in input order.
    """
    if options is None:
        options = ClusteringOptions()
    options.validate()
    if location_accessors is None:
        location_accessors = LocationAccessors()
    get_id = location_accessors.get_location_id
    get_centroid = location_accessors.get_location_centroid

    location_ids = [get_id(location) for location in locations]
    projected = project_array([get_centroid(location) for location in locations])

    points: List[_Point] = []
    for i, (x, y) in enumerate(projected):
        weight = get_location_weight(location_ids[i]) if get_location_weight else None
        points.append(_Point(kind=ItemKind.LEAF, x=float(x), y=float(y), weight=weight or 1, index=i))

    def make_index(pts: List[_Point]) -> SpatialIndex:
        return SpatialIndex([(p.x, p.y, p.weight) for p in pts], node_size=options.node_size)

    levels_by_zoom: Dict[int, List[_Point]] = {options.max_zoom + 1: points}
    children_by_zoom: Dict[int, Dict[int, List[_Point]]] = {}
    index = make_index(points)
    for zoom in range(options.max_zoom, options.min_zoom - 1, -1):
        previous = levels_by_zoom[zoom + 1]
        current = _cluster_level(previous, zoom, index, options)

        children: Dict[int, List[_Point]] = defaultdict(list)
        for p in previous:
            if p.parent_id >= 0 and p.zoom == zoom:
                children[p.parent_id].append(p)
        children_by_zoom[zoom] = children
        levels_by_zoom[zoom] = current

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"zoom {zoom}: {len(previous)} -> {len(current)} points")
        index = make_index(current)

    point_counts = {zoom: len(pts) for zoom, pts in levels_by_zoom.items()}
    min_zoom, max_zoom = _effective_zoom_range(point_counts, options.min_zoom, options.max_zoom)
    logger.info(f"Clustered {len(points)} locations, zoom range [{min_zoom}, {max_zoom}]")

    leaves = [Leaf(id=location_ids[i], location=location) for i, location in enumerate(locations)]
    clusters: Dict[int, Cluster] = {}

    def item_for(p: _Point) -> Item:
        if p.kind is ItemKind.LEAF:
            return leaves[p.index]
        return clusters[p.cluster_id]

    levels: List[ClusterLevel] = []
    for zoom in range(max_zoom, min_zoom - 1, -1):
        items: List[Item] = []
        for p in levels_by_zoom[zoom]:
            if p.kind is ItemKind.CLUSTER and p.cluster_id not in clusters:
                child_items = [item_for(c) for c in children_by_zoom[zoom][p.cluster_id]]
                clusters[p.cluster_id] = Cluster(
                    id=options.make_cluster_id(p.cluster_id),
                    zoom=zoom,
                    centroid=from_plane(p.x, p.y),
                    name=options.make_cluster_name(p.cluster_id, p.num_points, child_items),
                    children=tuple(c.id for c in child_items),
                    num_points=p.num_points,
                )
            items.append(item_for(p))
        levels.append(ClusterLevel(zoom=zoom, items=items))

    levels.reverse()
    return ClusteringResult(
        levels=levels,
        point_counts=point_counts,
        min_zoom=min_zoom,
        max_zoom=max_zoom,
    )
