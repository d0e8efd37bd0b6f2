"""Flow records and zoom-dependent flow aggregation."""

from .types import (
    AggregateFlow,
    Flow,
    FlowAccessors,
    FlowItem,
    is_aggregate_flow,
)
from .aggregation import (
    ClusteredFlowsByZoom,
    aggregate_flows,
    aggregate_flows_for_zoom,
    flow_item_magnitude,
    flows_to_frame,
    make_location_weight_getter,
)

__all__ = [
    "AggregateFlow",
    "Flow",
    "FlowAccessors",
    "FlowItem",
    "is_aggregate_flow",
    "ClusteredFlowsByZoom",
    "aggregate_flows",
    "aggregate_flows_for_zoom",
    "flow_item_magnitude",
    "flows_to_frame",
    "make_location_weight_getter",
]
