"""
Spherical mercator projection onto the unit square.

Longitude/latitude are mapped to ``[0, 1]²`` so that a single radius can be
used for neighbour queries at every location. ``y`` grows southwards and is
clamped at the poles.
"""

from __future__ import annotations

import math
from typing import Tuple

import numpy as np


def lng_x(lng: float) -> float:
    return lng / 360 + 0.5


def lat_y(lat: float) -> float:
    s = math.sin(lat * math.pi / 180)
    # sin(±90°) hits the log singularity; those rows clamp to the edges
    if s >= 1.0:
        return 0.0
    if s <= -1.0:
        return 1.0
    y = 0.5 - 0.25 * math.log((1 + s) / (1 - s)) / math.pi
    return min(max(y, 0.0), 1.0)


def x_lng(x: float) -> float:
    return (x - 0.5) * 360


def y_lat(y: float) -> float:
    y2 = (180 - y * 360) * math.pi / 180
    return 360 * math.atan(math.exp(y2)) / math.pi - 90


def to_plane(lng: float, lat: float) -> Tuple[float, float]:
    """Project ``(lng, lat)`` in degrees to ``(x, y)`` in the unit square."""
    return lng_x(lng), lat_y(lat)


def from_plane(x: float, y: float) -> Tuple[float, float]:
    """Inverse of :func:`to_plane`, returning ``(lng, lat)`` in degrees."""
    return x_lng(x), y_lat(y)


def project_array(coords: np.ndarray) -> np.ndarray:
    """
    Vectorised :func:`to_plane` for an ``(n, 2)`` array of ``(lng, lat)`` rows.

    Returns:
        ``(n, 2)`` float64 array of ``(x, y)`` rows.
    """
    coords = np.asarray(coords, dtype=float).reshape(-1, 2)
    x = coords[:, 0] / 360 + 0.5
    s = np.sin(np.radians(coords[:, 1]))
    with np.errstate(divide="ignore", invalid="ignore"):
        y = 0.5 - 0.25 * np.log((1 + s) / (1 - s)) / np.pi
    # the poles produce ±inf, which the clip folds back onto the edges
    y = np.clip(y, 0.0, 1.0)
    return np.column_stack([x, y])
