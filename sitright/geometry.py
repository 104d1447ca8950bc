"""Small vector helpers for landmark geometry.

Points and vectors are anything with ``x``, ``y`` and ``z`` attributes.
"""

from __future__ import annotations

import math
from types import SimpleNamespace


def _dot(v1, v2) -> float:
    return v1.x * v2.x + v1.y * v2.y + v1.z * v2.z


def _magnitude(v) -> float:
    return math.sqrt(v.x * v.x + v.y * v.y + v.z * v.z)


def vector(x: float, y: float, z: float = 0.0) -> SimpleNamespace:
    return SimpleNamespace(x=x, y=y, z=z)


def vector_angle(v1, v2) -> float:
    """Unsigned angle between two vectors in radians.

    A zero-length vector has no direction; the angle is reported as 0.0.
    """
    mag1 = _magnitude(v1)
    mag2 = _magnitude(v2)
    if mag1 == 0 or mag2 == 0:
        return 0.0
    cos_theta = clamp(_dot(v1, v2) / (mag1 * mag2), -1.0, 1.0)
    return math.acos(cos_theta)


def to_degrees(radians: float) -> float:
    return radians * 180.0 / math.pi


def midpoint(p1, p2) -> SimpleNamespace:
    return vector((p1.x + p2.x) / 2.0, (p1.y + p2.y) / 2.0, (p1.z + p2.z) / 2.0)


def normalize(v) -> SimpleNamespace:
    mag = _magnitude(v)
    if mag == 0:
        return vector(0.0, 0.0, 0.0)
    return vector(v.x / mag, v.y / mag, v.z / mag)


def clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)
