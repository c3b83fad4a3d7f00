"""Geometry helpers shared by the solver, hit-tester and renderer contract.

Points are float ``(3,)`` numpy arrays. Planar routines work in the XY working
plane and carry z through unchanged.
"""
from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np

EPS = 1e-10


def cross2(a: Sequence[float], b: Sequence[float]) -> float:
    """Z component of the cross product of two vectors in the XY plane."""
    return float(a[0]) * float(b[1]) - float(a[1]) * float(b[0])


def normalize(v: np.ndarray) -> Optional[np.ndarray]:
    length = float(np.linalg.norm(v))
    if length < EPS:
        return None
    return v / length


def circle_points(center: Sequence[float], radius: float, samples: int = 64) -> np.ndarray:
    """Sample a closed circle in the XY plane through ``center``."""
    angle = np.linspace(0.0, 2.0 * math.pi, samples + 1, endpoint=True)
    cx, cy, cz = float(center[0]), float(center[1]), float(center[2])
    x = cx + radius * np.cos(angle)
    y = cy + radius * np.sin(angle)
    return np.column_stack((x, y, np.full_like(x, cz)))


def point_to_segment_distance(point: np.ndarray, a: np.ndarray, b: np.ndarray) -> float:
    ab = b - a
    denom = float(np.dot(ab, ab))
    if denom <= EPS:
        return float(np.linalg.norm(point - a))
    t = float(np.dot(point - a, ab)) / denom
    t = max(0.0, min(1.0, t))
    return float(np.linalg.norm(point - (a + ab * t)))


# ---------------------------------------------------------------------------
# Ray helpers


def ray_segment_distance(origin: np.ndarray, direction: np.ndarray, a: np.ndarray, b: np.ndarray) -> float:
    """Minimum distance between the ray ``origin + t*direction`` (t >= 0) and segment ``ab``.

    The closest points come from the cross product of the two directions. A
    (near) parallel pair, or a zero-length segment, measures the distance from
    the segment to the ray's line; a segment wholly behind the origin measures
    from the origin instead.
    """
    seg = b - a
    cross = np.cross(direction, seg)
    if float(np.linalg.norm(cross)) < EPS:
        dd = float(np.dot(direction, direction))
        if dd < EPS:
            return point_to_segment_distance(origin, a, b)
        if max(float(np.dot(a - origin, direction)), float(np.dot(b - origin, direction))) < 0.0:
            return point_to_segment_distance(origin, a, b)
        return float(np.linalg.norm(np.cross(a - origin, direction))) / math.sqrt(dd)

    w0 = origin - a
    dd = float(np.dot(direction, direction))
    ds = float(np.dot(direction, seg))
    ss = float(np.dot(seg, seg))
    dw = float(np.dot(direction, w0))
    sw = float(np.dot(seg, w0))
    denom = dd * ss - ds * ds
    s = max(0.0, min(1.0, (dd * sw - ds * dw) / denom))
    # Re-project after clamping so both parameters stay consistent.
    t = max(0.0, float(np.dot(a + seg * s - origin, direction)) / dd)
    if ss > EPS:
        s = max(0.0, min(1.0, float(np.dot(origin + direction * t - a, seg)) / ss))
    closest_ray = origin + direction * t
    closest_seg = a + seg * s
    return float(np.linalg.norm(closest_ray - closest_seg))


def ray_plane_intersection(
    origin: np.ndarray,
    direction: np.ndarray,
    plane_normal: np.ndarray,
    plane_point: np.ndarray,
) -> Optional[float]:
    """Return the ray parameter where it meets the plane, or ``None`` if parallel."""
    denom = float(np.dot(plane_normal, direction))
    if abs(denom) < EPS:
        return None
    t = float(np.dot(plane_normal, plane_point - origin)) / denom
    if t < 0.0:
        return None
    return t


def ray_sphere_intersection(origin: np.ndarray, direction: np.ndarray, center: np.ndarray, radius: float) -> Optional[float]:
    d = normalize(direction)
    if d is None:
        return None
    oc = origin - center
    b = float(np.dot(oc, d))
    c = float(np.dot(oc, oc)) - radius * radius
    disc = b * b - c
    if disc < 0.0:
        return None
    root = math.sqrt(disc)
    t = -b - root
    if t < 0.0:
        t = -b + root
    if t < 0.0:
        return None
    return t / float(np.linalg.norm(direction))


def polygon_normal(points: np.ndarray) -> Optional[np.ndarray]:
    """Newell normal of a (roughly planar) polygon."""
    normal = np.zeros(3, dtype=float)
    count = points.shape[0]
    for i in range(count):
        cur = points[i]
        nxt = points[(i + 1) % count]
        normal[0] += (cur[1] - nxt[1]) * (cur[2] + nxt[2])
        normal[1] += (cur[2] - nxt[2]) * (cur[0] + nxt[0])
        normal[2] += (cur[0] - nxt[0]) * (cur[1] + nxt[1])
    return normalize(normal)


def point_in_polygon(point: np.ndarray, polygon: np.ndarray, normal: np.ndarray) -> bool:
    """Even-odd test after dropping the dominant axis of ``normal``."""
    axis = int(np.argmax(np.abs(normal)))
    keep = [i for i in range(3) if i != axis]
    px, py = float(point[keep[0]]), float(point[keep[1]])
    inside = False
    count = polygon.shape[0]
    j = count - 1
    for i in range(count):
        xi, yi = float(polygon[i][keep[0]]), float(polygon[i][keep[1]])
        xj, yj = float(polygon[j][keep[0]]), float(polygon[j][keep[1]])
        if (yi > py) != (yj > py):
            x_cross = (xj - xi) * (py - yi) / (yj - yi) + xi
            if px < x_cross:
                inside = not inside
        j = i
    return inside


__all__ = [
    "EPS",
    "cross2",
    "normalize",
    "circle_points",
    "point_to_segment_distance",
    "ray_segment_distance",
    "ray_plane_intersection",
    "ray_sphere_intersection",
    "polygon_normal",
    "point_in_polygon",
]
