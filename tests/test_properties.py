"""
Property Tests over a seeded random dataset

Checks the structural guarantees of cluster trees and flow aggregation:
partitioning, reachability, monotonic coarsening, conservation of flow
magnitude and determinism.
"""

from collections import Counter

import pytest

from flowcluster import (
    ClusterTree,
    aggregate_flows,
    is_cluster,
    make_location_weight_getter,
)
from flowcluster.flows import flow_item_magnitude


@pytest.fixture
def weighted_tree(random_locations, random_flows) -> ClusterTree:
    weight = make_location_weight_getter(random_flows)
    return ClusterTree.from_locations(random_locations, get_location_weight=weight)


def _leaf_sets(tree: ClusterTree, zoom: int):
    return [frozenset(tree.expand(item, tree.max_zoom)) for item in tree.items_for(zoom)]


# ==============================================================================
# Tree Structure
# ==============================================================================

class TestTreeProperties:
    """Test structural guarantees on every zoom."""

    def test_produces_several_levels(self, weighted_tree):
        """Test that the dataset actually exercises clustering."""
        assert len(weighted_tree.available_zoom_levels) > 3
        assert any(is_cluster(item) for item in weighted_tree.items_for(weighted_tree.min_zoom))

    def test_max_zoom_all_leaves(self, weighted_tree, random_locations):
        """Test that no merging happens at the max zoom."""
        items = weighted_tree.items_for(weighted_tree.max_zoom)

        assert not any(is_cluster(item) for item in items)
        assert [item.location for item in items] == random_locations

    def test_partition(self, weighted_tree, random_locations):
        """Test that every location belongs to exactly one item per zoom."""
        all_ids = Counter(loc.id for loc in random_locations)
        for zoom in weighted_tree.available_zoom_levels:
            counts = Counter()
            for leaf_set in _leaf_sets(weighted_tree, zoom):
                counts.update(leaf_set)
            assert counts == all_ids, f"zoom {zoom}"

    def test_reachability(self, weighted_tree, random_locations):
        """Test that each location is reachable from some item on every zoom."""
        for loc in random_locations:
            for zoom in weighted_tree.available_zoom_levels:
                if zoom < weighted_tree.min_zoom_for(loc.id):
                    continue
                assert any(
                    loc.id in weighted_tree.expand(item, weighted_tree.max_zoom)
                    for item in weighted_tree.items_for(zoom)
                )

    def test_monotonic_coarsening(self, weighted_tree):
        """Test that coarser items contain whole finer items."""
        zooms = weighted_tree.available_zoom_levels
        for coarse, fine in zip(zooms, zooms[1:]):
            coarse_sets = _leaf_sets(weighted_tree, coarse)
            for fine_set in _leaf_sets(weighted_tree, fine):
                assert any(fine_set <= coarse_set for coarse_set in coarse_sets)

    def test_ancestor_consistent_with_items(self, weighted_tree, random_locations):
        """Test that ancestor lookups agree with item membership."""
        for zoom in weighted_tree.available_zoom_levels:
            owner = {}
            for item in weighted_tree.items_for(zoom):
                for leaf_id in weighted_tree.expand(item, weighted_tree.max_zoom):
                    owner[leaf_id] = item.id
            for loc in random_locations:
                ancestor = weighted_tree.ancestor_at(loc.id, zoom)
                assert (ancestor or loc.id) == owner[loc.id]

    def test_min_zoom_for_matches_leaves(self, weighted_tree, random_locations):
        """Test that locations are unmerged from their min zoom upwards."""
        for loc in random_locations:
            min_zoom = weighted_tree.min_zoom_for(loc.id)
            for zoom in weighted_tree.available_zoom_levels:
                merged = weighted_tree.ancestor_at(loc.id, zoom) is not None
                assert merged == (zoom < min_zoom)

    def test_cluster_num_points(self, weighted_tree):
        """Test that cluster sizes match their expansion."""
        for zoom in weighted_tree.available_zoom_levels:
            for item in weighted_tree.items_for(zoom):
                if is_cluster(item):
                    assert item.num_points == len(weighted_tree.expand(item))

    def test_unique_cluster_ids(self, weighted_tree, random_locations):
        """Test that cluster ids never collide with each other or with locations."""
        location_ids = {loc.id for loc in random_locations}
        for zoom in weighted_tree.available_zoom_levels:
            ids = [item.id for item in weighted_tree.items_for(zoom)]
            assert len(ids) == len(set(ids))
            for item in weighted_tree.items_for(zoom):
                if is_cluster(item):
                    assert item.id not in location_ids
                    assert weighted_tree.cluster_by_id(item.id) is item

    def test_determinism(self, random_locations, random_flows):
        """Test that rebuilding from the same inputs gives the same tree."""
        weight = make_location_weight_getter(random_flows)
        first = ClusterTree.from_locations(random_locations, get_location_weight=weight)
        second = ClusterTree.from_locations(random_locations, get_location_weight=weight)

        assert first.available_zoom_levels == second.available_zoom_levels
        for zoom in first.available_zoom_levels:
            assert [i.id for i in first.items_for(zoom)] == [i.id for i in second.items_for(zoom)]


# ==============================================================================
# Flow Aggregation
# ==============================================================================

class TestFlowProperties:
    """Test flow aggregation guarantees on every zoom."""

    def test_conservation(self, weighted_tree, random_flows):
        """Test that total magnitude is the same on every zoom."""
        total = sum(flow.magnitude for flow in random_flows)
        flows_by_zoom = aggregate_flows(weighted_tree, random_flows)

        for zoom, flows in flows_by_zoom.items():
            assert sum(flow_item_magnitude(f) for f in flows) == pytest.approx(total), f"zoom {zoom}"

    def test_endpoints_are_visible_items(self, weighted_tree, random_flows):
        """Test that every flow connects items shown on its zoom."""
        flows_by_zoom = aggregate_flows(weighted_tree, random_flows)
        for zoom, flows in flows_by_zoom.items():
            visible = {item.id for item in weighted_tree.items_for(zoom)}
            for flow in flows:
                assert flow.origin in visible
                assert flow.dest in visible

    def test_unique_aggregate_keys(self, weighted_tree, random_flows):
        """Test that each cluster pair is aggregated at most once per zoom."""
        flows_by_zoom = aggregate_flows(weighted_tree, random_flows)
        for flows in flows_by_zoom.values():
            keys = [(f.origin, f.dest) for f in flows if getattr(f, "aggregate", False)]
            assert len(keys) == len(set(keys))
