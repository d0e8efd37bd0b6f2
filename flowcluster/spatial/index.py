"""
Radius search over projected points.

Wraps scikit-learn's :class:`~sklearn.neighbors.KDTree`. Query results are
returned sorted by insertion index so that clustering, which depends on the
order neighbours are absorbed in, is reproducible for a fixed input order.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np
from sklearn.neighbors import KDTree


class SpatialIndex:
    """Static index over weighted ``(x, y, weight)`` points."""

    def __init__(self, points: Sequence[Tuple[float, float, float]], node_size: int = 64):
        data = np.asarray(points, dtype=float).reshape(-1, 3)
        self.coords = np.ascontiguousarray(data[:, :2])
        self.weights = data[:, 2].copy()
        self.node_size = node_size
        self._tree = KDTree(self.coords, leaf_size=node_size) if len(self.coords) else None

    def __len__(self) -> int:
        return len(self.coords)

    def within(self, x: float, y: float, r: float) -> List[int]:
        """Indices of all points within Euclidean distance ``r`` of ``(x, y)``."""
        if self._tree is None:
            return []
        ind = self._tree.query_radius(np.array([[x, y]]), r=r)[0]
        return sorted(int(i) for i in ind)


def build_index(points: Sequence[Tuple[float, float, float]], node_size: int = 64) -> SpatialIndex:
    """Build a :class:`SpatialIndex` for ``points``."""
    return SpatialIndex(points, node_size=node_size)


def query(index: SpatialIndex, x: float, y: float, r: float) -> List[int]:
    return index.within(x, y, r)
