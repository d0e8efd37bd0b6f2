"""
Pytest configuration and shared fixtures for flowcluster tests.

This file provides:
- Small synthetic location sets with known merge zooms
- Flow fixtures matching those locations
- A larger seeded random dataset for property checks
"""

from typing import List

import numpy as np
import pytest

from flowcluster import ClusterTree, Flow, Location


# ==============================================================================
# Synthetic Locations
# ==============================================================================
#
# All points lie on the equator. With the default options (radius 40 on a
# 512px extent) two points 0.001° apart merge at zoom 14, points 0.01° apart
# at zoom 11 and points 10° apart at zoom 1.

@pytest.fixture
def paired_locations() -> List[Location]:
    """A,B and C,D both merge at zoom 14."""
    return [
        Location(id="A", centroid=(0.0, 0.0), name="Alpha"),
        Location(id="B", centroid=(0.001, 0.0), name="Bravo"),
        Location(id="C", centroid=(10.0, 0.0), name="Charlie"),
        Location(id="D", centroid=(10.001, 0.0), name="Delta"),
    ]


@pytest.fixture
def flow_locations() -> List[Location]:
    """A,B merge at zoom 14; C,D only at zoom 11."""
    return [
        Location(id="A", centroid=(0.0, 0.0)),
        Location(id="B", centroid=(0.001, 0.0)),
        Location(id="C", centroid=(10.0, 0.0)),
        Location(id="D", centroid=(10.01, 0.0)),
    ]


@pytest.fixture
def sample_flows() -> List[Flow]:
    return [
        Flow(origin="A", dest="C", magnitude=5),
        Flow(origin="B", dest="C", magnitude=3),
        Flow(origin="A", dest="B", magnitude=2),
        Flow(origin="C", dest="D", magnitude=4),
    ]


@pytest.fixture
def paired_tree(paired_locations) -> ClusterTree:
    return ClusterTree.from_locations(paired_locations)


@pytest.fixture
def flow_tree(flow_locations) -> ClusterTree:
    return ClusterTree.from_locations(flow_locations)


# ==============================================================================
# Random Dataset
# ==============================================================================

@pytest.fixture
def random_locations() -> List[Location]:
    """150 locations scattered around five city centres (seeded)."""
    rng = np.random.RandomState(42)
    centres = [(13.40, 52.52), (2.35, 48.86), (-0.13, 51.51), (12.50, 41.90), (-3.70, 40.42)]
    locations = []
    for i in range(150):
        lng, lat = centres[i % len(centres)]
        locations.append(Location(
            id=f"loc{i}",
            centroid=(lng + rng.normal(scale=0.3), lat + rng.normal(scale=0.2)),
        ))
    return locations


@pytest.fixture
def random_flows(random_locations) -> List[Flow]:
    """400 flows between random locations, including some self-flows and negatives."""
    rng = np.random.RandomState(7)
    ids = [loc.id for loc in random_locations]
    flows = []
    for _ in range(400):
        origin = ids[rng.randint(len(ids))]
        dest = ids[rng.randint(len(ids))]
        flows.append(Flow(origin=origin, dest=dest, magnitude=int(rng.randint(-5, 50))))
    return flows

