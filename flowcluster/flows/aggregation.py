"""
Flow aggregation consistent with a cluster tree.

For every zoom level of a :class:`~flowcluster.clustering.ClusterTree` the
flows are re-keyed by the items their endpoints are shown as on that level
and summed per ``(origin, dest)`` pair. Flows between two unmerged
locations are passed through unchanged. Self-flows of a cluster (``X -> X``)
are kept; hiding them is up to the caller.

Total magnitude is conserved on every level. Aggregates computed for a finer
level are reused on coarser levels where both endpoint items are unchanged.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from ..clustering.tree import ClusterTree
from .types import AggregateFlow, FlowAccessors, FlowItem, is_aggregate_flow

logger = logging.getLogger(__name__)

FlowKey = Tuple[str, str]
ClusteredFlowsByZoom = Dict[int, List[FlowItem]]


def _aggregate_zoom(
    tree: ClusterTree,
    flows: Sequence[Any],
    zoom: int,
    accessors: FlowAccessors,
    memo: Dict[FlowKey, AggregateFlow],
) -> Tuple[List[FlowItem], Dict[FlowKey, AggregateFlow]]:
    result: List[FlowItem] = []
    aggregates: Dict[FlowKey, AggregateFlow] = {}
    reused: set = set()

    for flow in flows:
        origin = accessors.get_flow_origin_id(flow)
        dest = accessors.get_flow_dest_id(flow)
        origin_item = tree.ancestor_at(origin, zoom) or origin
        dest_item = tree.ancestor_at(dest, zoom) or dest

        if origin_item == origin and dest_item == dest:
            result.append(flow)
            continue

        key = (origin_item, dest_item)
        if key in memo:
            # both endpoint items are unchanged since the finer zoom
            if key not in reused:
                reused.add(key)
                aggregates[key] = memo[key]
                result.append(memo[key])
            continue

        aggregate = aggregates.get(key)
        if aggregate is None:
            aggregate = AggregateFlow(origin=origin_item, dest=dest_item)
            aggregates[key] = aggregate
            result.append(aggregate)
        aggregate.magnitude += accessors.get_flow_magnitude(flow)

    return result, aggregates


def aggregate_flows(
    tree: ClusterTree,
    flows: Iterable[Any],
    accessors: Optional[FlowAccessors] = None,
) -> ClusteredFlowsByZoom:
    """
    Aggregate ``flows`` for every available zoom of ``tree``.

    Args:
        tree: Cluster tree the flows' endpoints belong to
        flows: Caller flow records
        accessors: Endpoint and magnitude accessors (defaults read ``.origin``/``.dest``/``.magnitude``)

    Returns:
        Mapping of zoom to flow items. The max zoom maps to the input flows.
    """
    if accessors is None:
        accessors = FlowAccessors()
    flows = list(flows)

    flows_by_zoom: ClusteredFlowsByZoom = {tree.max_zoom: flows}
    memo: Dict[FlowKey, AggregateFlow] = {}
    for zoom in range(tree.max_zoom - 1, tree.min_zoom - 1, -1):
        zoom_flows, aggregates = _aggregate_zoom(tree, flows, zoom, accessors, memo)
        memo.update(aggregates)
        flows_by_zoom[zoom] = zoom_flows
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"zoom {zoom}: {len(flows)} flows -> {len(zoom_flows)} ({len(aggregates)} aggregates)")
    return flows_by_zoom


def aggregate_flows_for_zoom(
    tree: ClusterTree,
    flows: Iterable[Any],
    zoom: int,
    accessors: Optional[FlowAccessors] = None,
) -> List[FlowItem]:
    """Aggregate ``flows`` for a single zoom; flows are returned as-is at or above the max zoom."""
    if accessors is None:
        accessors = FlowAccessors()
    flows = list(flows)
    if zoom >= tree.max_zoom:
        return flows
    zoom_flows, _ = _aggregate_zoom(tree, flows, zoom, accessors, {})
    return zoom_flows


def flow_item_magnitude(flow: FlowItem, accessors: Optional[FlowAccessors] = None) -> float:
    if is_aggregate_flow(flow):
        return flow.magnitude
    if accessors is None:
        accessors = FlowAccessors()
    return accessors.get_flow_magnitude(flow)


def make_location_weight_getter(
    flows: Iterable[Any],
    accessors: Optional[FlowAccessors] = None,
) -> Callable[[str], float]:
    """
    Weight locations by the larger of their absolute incoming and outgoing totals.

    Incoming magnitudes are summed by destination and outgoing ones by origin.
    Locations without flows get weight 0.
    """
    if accessors is None:
        accessors = FlowAccessors()
    frame = pd.DataFrame(
        [
            (accessors.get_flow_origin_id(f), accessors.get_flow_dest_id(f), accessors.get_flow_magnitude(f))
            for f in flows
        ],
        columns=["origin", "dest", "magnitude"],
    )
    if frame.empty:
        return lambda location_id: 0.0

    incoming = frame.groupby("dest")["magnitude"].sum().abs()
    outgoing = frame.groupby("origin")["magnitude"].sum().abs()
    totals = pd.concat([incoming, outgoing], axis=1).max(axis=1).to_dict()
    return lambda location_id: float(totals.get(location_id, 0.0))


def flows_to_frame(
    flows_by_zoom: ClusteredFlowsByZoom,
    accessors: Optional[FlowAccessors] = None,
) -> pd.DataFrame:
    """Flatten per-zoom flow items into one ``zoom, origin, dest, magnitude, aggregate`` table."""
    if accessors is None:
        accessors = FlowAccessors()
    rows = []
    for zoom in sorted(flows_by_zoom):
        for flow in flows_by_zoom[zoom]:
            if is_aggregate_flow(flow):
                rows.append((zoom, flow.origin, flow.dest, flow.magnitude, True))
            else:
                rows.append((
                    zoom,
                    accessors.get_flow_origin_id(flow),
                    accessors.get_flow_dest_id(flow),
                    accessors.get_flow_magnitude(flow),
                    False,
                ))
    return pd.DataFrame(rows, columns=["zoom", "origin", "dest", "magnitude", "aggregate"])
