"""Circular arc solver.

Pure functions over plain points. Arcs are solved in the XY working plane;
z components ride along (the fitted center takes the mean z of its inputs and
edited points keep the z they are given).
"""
from __future__ import annotations

import math
from typing import Literal, NamedTuple, Sequence

import numpy as np

from .geometry import EPS, cross2, normalize

Endpoint = Literal["start", "end"]

DETERMINANT_EPS = 1e-10
FALLBACK_OFFSET_RATIO = 0.1
PREVIEW_BULGE_RATIO = 0.3


class ArcFit(NamedTuple):
    center: np.ndarray
    radius: float
    clockwise: bool


class ArcPoints(NamedTuple):
    center: np.ndarray
    start: np.ndarray
    end: np.ndarray


def _pt(value: Sequence[float]) -> np.ndarray:
    arr = np.asarray(value, dtype=float).reshape(-1)
    if arr.shape[0] == 2:
        arr = np.append(arr, 0.0)
    return arr


def _perpendicular(v: np.ndarray) -> np.ndarray:
    return np.array([-v[1], v[0], 0.0], dtype=float)


def compute_center_and_orientation(p0: Sequence[float], p1: Sequence[float], p2: Sequence[float]) -> ArcFit:
    """Fit the circle through three points.

    ``p0`` and ``p2`` are the arc ends and ``p1`` a point the arc passes
    through. The center is the intersection of the perpendicular bisectors of
    chords (p0, p1) and (p1, p2). Nearly collinear input falls back to the
    midpoint of p0 and p2.
    """
    a, b, c = _pt(p0), _pt(p1), _pt(p2)
    mid_ab = (a + b) / 2.0
    mid_bc = (b + c) / 2.0
    dir_ab = _perpendicular(b - a)
    dir_bc = _perpendicular(c - b)

    det = cross2(dir_ab, dir_bc)
    if abs(det) < DETERMINANT_EPS:
        center = (a + c) / 2.0
    else:
        t = cross2(mid_bc - mid_ab, dir_bc) / det
        center = mid_ab + dir_ab * t
    center[2] = (a[2] + b[2] + c[2]) / 3.0

    clockwise = cross2(a - center, b - center) < 0.0
    radius = float(math.hypot(a[0] - center[0], a[1] - center[1]))
    return ArcFit(center=center, radius=radius, clockwise=clockwise)


def update_endpoint_preserving_radius(
    center: Sequence[float],
    start: Sequence[float],
    end: Sequence[float],
    endpoint: Endpoint,
    new_pos: Sequence[float],
) -> ArcPoints:
    """Move one endpoint and re-center the arc so its radius is kept.

    The new center sits on the perpendicular bisector of the new chord, at the
    Pythagorean distance ``sqrt(r^2 - (chord/2)^2)`` from the chord midpoint, on
    the same side as the old center. A chord longer than the diameter gets a
    small offset instead, which changes the radius.
    """
    old_center = _pt(center)
    moved = _pt(new_pos)
    if endpoint == "start":
        other = _pt(end)
    elif endpoint == "end":
        other = _pt(start)
    else:
        raise ValueError(f"Unknown arc endpoint '{endpoint}'")

    radius = float(math.hypot(other[0] - old_center[0], other[1] - old_center[1]))
    chord = other - moved
    chord[2] = 0.0
    chord_len = float(np.linalg.norm(chord))

    if chord_len < DETERMINANT_EPS:
        new_center = old_center.copy()
    else:
        half_chord = chord_len / 2.0
        midpoint = (moved + other) / 2.0
        perp = _perpendicular(chord) / chord_len
        if radius > half_chord:
            offset = math.sqrt(radius * radius - half_chord * half_chord)
        else:
            offset = half_chord * FALLBACK_OFFSET_RATIO
        to_old = old_center - midpoint
        side = -1.0 if float(to_old[0] * perp[0] + to_old[1] * perp[1]) < 0.0 else 1.0
        new_center = midpoint + perp * (offset * side)
        new_center[2] = old_center[2]

    if endpoint == "start":
        return ArcPoints(center=new_center, start=moved, end=other)
    return ArcPoints(center=new_center, start=other, end=moved)


def update_radius(center: Sequence[float], start: Sequence[float], end: Sequence[float], scale: float) -> ArcPoints:
    """Scale both endpoints about the fixed center."""
    c = _pt(center)
    return ArcPoints(
        center=c,
        start=c + (_pt(start) - c) * scale,
        end=c + (_pt(end) - c) * scale,
    )


def slide_endpoint_on_circle(center: Sequence[float], endpoint_pos: Sequence[float], target: Sequence[float]) -> np.ndarray:
    """Project ``target`` onto the circle the endpoint currently lies on."""
    c = _pt(center)
    current = _pt(endpoint_pos)
    radius = float(np.linalg.norm(current - c))
    direction = normalize(_pt(target) - c)
    if direction is None:
        return current
    return c + direction * radius


def arc_sweep(center: Sequence[float], start: Sequence[float], end: Sequence[float], clockwise: bool) -> tuple[float, float]:
    """Return ``(start_angle, signed_sweep)`` in radians for the arc."""
    c, s, e = _pt(center), _pt(start), _pt(end)
    start_angle = math.atan2(s[1] - c[1], s[0] - c[0])
    end_angle = math.atan2(e[1] - c[1], e[0] - c[0])
    sweep = end_angle - start_angle
    if clockwise:
        if sweep > 0.0:
            sweep -= 2.0 * math.pi
    elif sweep < 0.0:
        sweep += 2.0 * math.pi
    return start_angle, sweep


def arc_points(
    center: Sequence[float],
    start: Sequence[float],
    end: Sequence[float],
    clockwise: bool,
    segments: int = 32,
) -> np.ndarray:
    """Sample the arc as a ``(segments + 1, 3)`` polyline from start to end."""
    c = _pt(center)
    s = _pt(start)
    radius = float(math.hypot(s[0] - c[0], s[1] - c[1]))
    start_angle, sweep = arc_sweep(c, s, end, clockwise)
    angles = start_angle + sweep * np.linspace(0.0, 1.0, segments + 1)
    x = c[0] + radius * np.cos(angles)
    y = c[1] + radius * np.sin(angles)
    return np.column_stack((x, y, np.full_like(x, c[2])))


def preview_through_point(start: Sequence[float], end: Sequence[float], toward: Sequence[float]) -> np.ndarray:
    """Initial on-arc point for previews: chord midpoint pushed out by 30 % of the chord.

    The bulge goes to the side of the chord ``toward`` lies on (left of the
    start-to-end direction when it lies on the chord line).
    """
    s, e, p = _pt(start), _pt(end), _pt(toward)
    midpoint = (s + e) / 2.0
    height = float(np.linalg.norm((e - s)[:2])) * PREVIEW_BULGE_RATIO
    perp = normalize(_perpendicular(e - s))
    if perp is None or height < EPS:
        return midpoint
    side = -1.0 if float(np.dot((p - midpoint)[:2], perp[:2])) < 0.0 else 1.0
    return midpoint + perp * (height * side)


__all__ = [
    "Endpoint",
    "ArcFit",
    "ArcPoints",
    "compute_center_and_orientation",
    "update_endpoint_preserving_radius",
    "update_radius",
    "slide_endpoint_on_circle",
    "arc_sweep",
    "arc_points",
    "preview_through_point",
]
