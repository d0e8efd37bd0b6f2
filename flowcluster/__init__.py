"""
flowcluster: Zoom-dependent clustering of flow map locations and flows.

Locations are clustered bottom-up across zoom levels, and flows between them
are aggregated per level so a flow map can draw few large connections when
zoomed out and full detail when zoomed in.
"""

from .errors import ConfigurationError, FlowClusterError, IntegrityError
from .clustering import (
    Cluster,
    ClusterLevel,
    ClusterTree,
    ClusteringOptions,
    Item,
    ItemKind,
    Leaf,
    Location,
    LocationAccessors,
    build_cluster_tree_or_none,
    cluster_locations,
    is_cluster,
    is_leaf,
    nearest_available_zoom,
)
from .flows import (
    AggregateFlow,
    Flow,
    FlowAccessors,
    aggregate_flows,
    aggregate_flows_for_zoom,
    flows_to_frame,
    is_aggregate_flow,
    make_location_weight_getter,
)

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "FlowClusterError",
    "IntegrityError",
    "Cluster",
    "ClusterLevel",
    "ClusterTree",
    "ClusteringOptions",
    "Item",
    "ItemKind",
    "Leaf",
    "Location",
    "LocationAccessors",
    "build_cluster_tree_or_none",
    "cluster_locations",
    "is_cluster",
    "is_leaf",
    "nearest_available_zoom",
    "AggregateFlow",
    "Flow",
    "FlowAccessors",
    "aggregate_flows",
    "aggregate_flows_for_zoom",
    "flows_to_frame",
    "is_aggregate_flow",
    "make_location_weight_getter",
]
