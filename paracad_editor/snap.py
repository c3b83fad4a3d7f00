"""Object-snap index over the geometry graph.

Candidates are endpoints, midpoints and arc centers of line-like shapes.
``find_snap_point`` returns the nearest candidate strictly inside the snap
threshold, or the cursor position unchanged.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from .graph import GeometryGraph
from .model import CircularArc, LineSegment, as_point

logger = logging.getLogger(__name__)

DEFAULT_SNAP_THRESHOLD = 0.5


class SnapType(str, Enum):
    ENDPOINT = "endpoint"
    MIDPOINT = "midpoint"
    ARC_CENTER = "arc_center"


@dataclass(frozen=True)
class SnapPoint:
    position: np.ndarray
    type: SnapType
    source_shape_id: str
    description: str = ""


@dataclass(frozen=True)
class SnapResult:
    position: np.ndarray
    snap_point: Optional[SnapPoint]
    distance: float

    @property
    def snapped(self) -> bool:
        return self.snap_point is not None


@dataclass(frozen=True)
class SnapVisualState:
    """What the overlay should draw for the last snap query."""

    position: Optional[np.ndarray] = None
    type: Optional[SnapType] = None

    @property
    def active(self) -> bool:
        return self.position is not None


class SnapIndex:
    def __init__(self, graph: GeometryGraph, threshold: float = DEFAULT_SNAP_THRESHOLD):
        self.graph = graph
        self.threshold = float(threshold)
        self._visual = SnapVisualState()

    def collect_snap_points(self, exclude_shape_id: Optional[str] = None) -> List[SnapPoint]:
        points: List[SnapPoint] = []
        for shape in self.graph.shapes:
            if shape.id == exclude_shape_id:
                continue
            geometry = shape.geometry
            if isinstance(geometry, LineSegment):
                positions = self.graph.vertex_positions((geometry.start_vertex_id, geometry.end_vertex_id))
                if positions is None:
                    logger.warning("Line %s references a missing vertex; no snap points", shape.id)
                    continue
                start, end = positions
                points.append(SnapPoint(start, SnapType.ENDPOINT, shape.id, "Line start"))
                points.append(SnapPoint(end, SnapType.ENDPOINT, shape.id, "Line end"))
                points.append(SnapPoint((start + end) / 2.0, SnapType.MIDPOINT, shape.id, "Line midpoint"))
            elif isinstance(geometry, CircularArc):
                positions = self.graph.vertex_positions(
                    (geometry.center_vertex_id, geometry.start_vertex_id, geometry.end_vertex_id)
                )
                if positions is None:
                    logger.warning("Arc %s references a missing vertex; no snap points", shape.id)
                    continue
                center, start, end = positions
                points.append(SnapPoint(center, SnapType.ARC_CENTER, shape.id, "Arc center"))
                points.append(SnapPoint(start, SnapType.ENDPOINT, shape.id, "Arc start"))
                points.append(SnapPoint(end, SnapType.ENDPOINT, shape.id, "Arc end"))
                points.append(SnapPoint((start + end) / 2.0, SnapType.MIDPOINT, shape.id, "Arc chord midpoint"))
        return points

    def find_snap_point(self, position: Sequence[float], exclude_shape_id: Optional[str] = None) -> SnapResult:
        """Snap ``position`` to the nearest candidate within the threshold."""
        cursor = as_point(position)
        best: Optional[SnapPoint] = None
        best_dist = self.threshold
        for candidate in self.collect_snap_points(exclude_shape_id):
            dist = float(np.linalg.norm(candidate.position - cursor))
            # strict: ties keep the earlier candidate
            if dist < best_dist:
                best = candidate
                best_dist = dist

        if best is None:
            self._visual = SnapVisualState()
            return SnapResult(position=cursor, snap_point=None, distance=float("inf"))
        self._visual = SnapVisualState(position=best.position.copy(), type=best.type)
        return SnapResult(position=best.position.copy(), snap_point=best, distance=best_dist)

    def is_snapped(self, position: Sequence[float], exclude_shape_id: Optional[str] = None) -> bool:
        return self.find_snap_point(position, exclude_shape_id).snapped

    @property
    def visual_state(self) -> SnapVisualState:
        return self._visual

    def reset_visual_state(self) -> None:
        self._visual = SnapVisualState()


__all__ = [
    "DEFAULT_SNAP_THRESHOLD",
    "SnapType",
    "SnapPoint",
    "SnapResult",
    "SnapVisualState",
    "SnapIndex",
]
