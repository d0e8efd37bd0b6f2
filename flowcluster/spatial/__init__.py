"""
flowcluster.spatial: Projection and radius search utilities.

Points are projected onto the unit square (spherical mercator) and indexed
with a KD-tree for per-zoom neighbour queries.
"""

from .projection import (
    to_plane,
    from_plane,
    project_array,
)
from .index import (
    SpatialIndex,
    build_index,
    query,
)

__all__ = [
    "to_plane",
    "from_plane",
    "project_array",
    "SpatialIndex",
    "build_index",
    "query",
]
