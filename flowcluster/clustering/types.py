"""
Item records shared by the clusterer and the cluster tree.

An item on a zoom level is either a :class:`Leaf` wrapping one of the
caller's locations or a :class:`Cluster` standing in for several of them.
The two are told apart by their ``kind`` tag, which is fixed when the record
is created. Clusters refer to their children by id; the tree resolves ids to
items, so the same child can be shared by clusters on different levels.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple, Union


class ItemKind(Enum):
    """Discriminator for :data:`Item`."""
    LEAF = "leaf"
    CLUSTER = "cluster"


@dataclass(frozen=True)
class Location:
    """Minimal location record understood by the default accessors."""

    id: str
    centroid: Tuple[float, float]
    """``(lng, lat)`` in degrees."""

    name: Optional[str] = None


@dataclass(frozen=True)
class LocationAccessors:
    """Functions reading ids and positions from the caller's location records."""

    get_location_id: Callable[[Any], str] = lambda location: location.id
    get_location_centroid: Callable[[Any], Tuple[float, float]] = lambda location: location.centroid


@dataclass(frozen=True)
class Leaf:
    """An original, unmerged location."""

    id: str
    location: Any = field(compare=False, repr=False)
    kind: ItemKind = field(default=ItemKind.LEAF, init=False)


@dataclass(frozen=True)
class Cluster:
    """A synthetic item for two or more locations merged at ``zoom``."""

    id: str
    zoom: int
    """Zoom level the cluster first exists at."""

    centroid: Tuple[float, float]
    name: str
    children: Tuple[str, ...]
    """Ids of the child items, each a location id or a cluster id."""

    num_points: int = 0
    """Number of locations below the cluster."""

    kind: ItemKind = field(default=ItemKind.CLUSTER, init=False)


Item = Union[Leaf, Cluster]


def is_cluster(item: Item) -> bool:
    return item.kind is ItemKind.CLUSTER


def is_leaf(item: Item) -> bool:
    return item.kind is ItemKind.LEAF


@dataclass
class ClusterLevel:
    """All items visible on one zoom level."""

    zoom: int
    items: List[Item] = field(default_factory=list)
