"""Per-frame bridge between the geometry graph and a renderer."""
from __future__ import annotations

import logging
from typing import Optional, Protocol

import numpy as np

from . import arc_solver
from .geometry import circle_points
from .graph import DirtySnapshot, GeometryGraph
from .model import Circle, CircularArc, LineSegment, PolygonLike, Primitive3D, Shape
from .selection import SelectionController

logger = logging.getLogger(__name__)


def shape_outline(
    graph: GeometryGraph,
    shape: Shape,
    arc_segments: int = 32,
    circle_segments: int = 64,
) -> Optional[np.ndarray]:
    """Current defining polyline of ``shape``; ``None`` for primitives or broken references."""
    geometry = shape.geometry
    if isinstance(geometry, Primitive3D):
        return None
    if isinstance(geometry, LineSegment):
        points = graph.vertex_positions((geometry.start_vertex_id, geometry.end_vertex_id))
        return None if points is None else np.vstack(points)
    if isinstance(geometry, PolygonLike):
        points = graph.vertex_positions(geometry.vertex_ids)
        if points is None:
            return None
        return np.vstack(points + [points[0]])
    if isinstance(geometry, Circle):
        center = graph.vertex_position(geometry.center_vertex_id)
        curve = graph.get_curve_by_id(geometry.curve_id)
        if center is None or curve is None:
            return None
        return circle_points(center, curve.radius, circle_segments)
    if isinstance(geometry, CircularArc):
        points = graph.vertex_positions((geometry.center_vertex_id, geometry.start_vertex_id, geometry.end_vertex_id))
        if points is None:
            return None
        center, start, end = points
        return arc_solver.arc_points(center, start, end, geometry.clockwise, arc_segments)
    raise TypeError(f"Unknown shape geometry {type(geometry).__name__}")


class Renderer(Protocol):
    def create(self, shape: Shape, outline: Optional[np.ndarray]) -> None: ...

    def update(self, shape: Shape, outline: Optional[np.ndarray]) -> None: ...

    def destroy(self, shape_id: str) -> None: ...

    def set_selected(self, shape_id: str, selected: bool) -> None: ...


class FrameSync:
    """Drains the graph once per frame and replays the changes on a renderer."""

    def __init__(
        self,
        graph: GeometryGraph,
        renderer: Renderer,
        selection: SelectionController,
        arc_segments: int = 32,
        circle_segments: int = 64,
    ):
        self.graph = graph
        self.renderer = renderer
        self.selection = selection
        self.arc_segments = arc_segments
        self.circle_segments = circle_segments
        self._live: set[str] = set()

    def sync(self) -> DirtySnapshot:
        snapshot = self.graph.drain_dirty()
        for shape_id in sorted(snapshot.removed):
            if shape_id in self._live:
                self.renderer.destroy(shape_id)
                self._live.discard(shape_id)

        for shape in self.graph.shapes:
            if shape.id not in snapshot.shapes:
                continue
            outline = shape_outline(self.graph, shape, self.arc_segments, self.circle_segments)
            if outline is None and shape.is_vertex_defined:
                logger.warning("Shape %s has a broken vertex reference; not drawn", shape.id)
                continue
            if shape.id in self._live:
                self.renderer.update(shape, outline)
            else:
                self.renderer.create(shape, outline)
                self._live.add(shape.id)

        selected_id = self.selection.current_selection()
        for shape_id in sorted(snapshot.selection):
            if shape_id in self._live:
                self.renderer.set_selected(shape_id, shape_id == selected_id)
        return snapshot


__all__ = ["shape_outline", "Renderer", "FrameSync"]
