"""
Liquid Glass - Math Primitives

Scalar helpers used by effect functions. Every helper works on plain
floats and on numpy arrays (elementwise), so the same effect can be
evaluated one pixel at a time or over a whole coordinate grid.
"""

from typing import NamedTuple

import numpy as np


class Coord(NamedTuple):
    """An (x, y) pair. Components may be floats or equally shaped arrays."""
    x: object
    y: object


def clamp_unit(t):
    """Clamp t into [0, 1]."""
    return np.clip(t, 0.0, 1.0)


def mix(a, b, t):
    """Linear interpolation from a to b."""
    return a + (b - a) * t


def smooth_step(edge0, edge1, x):
    """Cubic Hermite step between edge0 and edge1.

    edge0 may be greater than edge1, which gives a falling step.
    When edge0 == edge1 the step is hard: 0 where x < edge0, 1 elsewhere.
    """
    if edge0 == edge1:
        return np.where(np.asarray(x) < edge0, 0.0, 1.0)
    t = clamp_unit((x - edge0) / (edge1 - edge0))
    return t * t * (3.0 - 2.0 * t)


def length_2d(x, y):
    """Euclidean length of (x, y)."""
    return np.sqrt(x * x + y * y)


def rounded_box_sdf(px, py, half_width, half_height, radius):
    """Signed distance from (px, py) to a rounded rectangle centred at 0.

    Negative inside, zero on the boundary, positive outside.
    """
    qx = np.abs(px) - half_width + radius
    qy = np.abs(py) - half_height + radius
    outside = length_2d(np.maximum(qx, 0.0), np.maximum(qy, 0.0))
    inside = np.minimum(np.maximum(qx, qy), 0.0)
    return inside + outside - radius
