"""Flow records and accessors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Union


@dataclass(frozen=True)
class Flow:
    """Minimal flow record understood by the default accessors."""

    origin: str
    dest: str
    magnitude: float


@dataclass
class AggregateFlow:
    """Sum of the flows whose endpoints fall into the same pair of items."""

    origin: str
    dest: str
    magnitude: float = 0.0
    aggregate: bool = field(default=True, init=False)


FlowItem = Union[Any, AggregateFlow]
"""A caller flow passed through unchanged, or an :class:`AggregateFlow`."""


@dataclass(frozen=True)
class FlowAccessors:
    """Functions reading endpoints and magnitude from the caller's flow records."""

    get_flow_origin_id: Callable[[Any], str] = lambda flow: flow.origin
    get_flow_dest_id: Callable[[Any], str] = lambda flow: flow.dest
    get_flow_magnitude: Callable[[Any], float] = lambda flow: flow.magnitude


def is_aggregate_flow(flow: FlowItem) -> bool:
    return isinstance(flow, AggregateFlow)
