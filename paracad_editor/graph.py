"""Authoritative geometry graph: vertices, circle curves and shapes.

The graph allocates ids from one counter shared by every entity kind and keeps
explicit dirty-id sets. Mutations push the ids they touch; the per-frame
consumer calls :meth:`GeometryGraph.drain_dirty` to read and clear them. The
graph never clears dirty state on its own.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from . import arc_solver
from .arc_solver import ArcPoints, Endpoint
from .model import (
    Circle,
    CircleCurve,
    CircularArc,
    LineSegment,
    Polygon,
    Primitive3D,
    PrimitiveKind,
    Rectangle,
    Shape,
    ShapeGeometry,
    Transform,
    Triangle,
    Vertex,
    as_point,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirtySnapshot:
    """Ids that changed since the previous drain."""

    vertices: frozenset = frozenset()
    curves: frozenset = frozenset()
    shapes: frozenset = frozenset()
    selection: frozenset = frozenset()
    removed: frozenset = frozenset()

    @property
    def is_empty(self) -> bool:
        return not (self.vertices or self.curves or self.shapes or self.selection or self.removed)


def _triple(value: Sequence[float]) -> Tuple[float, float, float]:
    arr = as_point(value)
    return (float(arr[0]), float(arr[1]), float(arr[2]))


class GeometryGraph:
    """Vertex/curve/shape store with dirty propagation."""

    def __init__(self) -> None:
        self._vertices: Dict[str, Vertex] = {}
        self._curves: Dict[str, CircleCurve] = {}
        self._shapes: Dict[str, Shape] = {}
        self._counter = 0
        self._dirty_vertices: set[str] = set()
        self._dirty_curves: set[str] = set()
        self._dirty_shapes: set[str] = set()
        self._selection_dirty: set[str] = set()
        self._removed_shapes: set[str] = set()

    # ------------------------------------------------------------------
    # Id allocation & read access
    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}{self._counter:04d}"

    @property
    def vertices(self) -> List[Vertex]:
        return list(self._vertices.values())

    @property
    def curves(self) -> List[CircleCurve]:
        return list(self._curves.values())

    @property
    def shapes(self) -> List[Shape]:
        return list(self._shapes.values())

    def get_vertex_by_id(self, vertex_id: str) -> Optional[Vertex]:
        return self._vertices.get(vertex_id)

    def get_curve_by_id(self, curve_id: str) -> Optional[CircleCurve]:
        return self._curves.get(curve_id)

    def get_shape_by_id(self, shape_id: Optional[str]) -> Optional[Shape]:
        if shape_id is None:
            return None
        return self._shapes.get(shape_id)

    def vertex_position(self, vertex_id: str) -> Optional[np.ndarray]:
        """Copy of the vertex position, or ``None`` when the id is unknown."""
        vertex = self._vertices.get(vertex_id)
        if vertex is None:
            return None
        return vertex.copy_position()

    def vertex_positions(self, vertex_ids: Iterable[str]) -> Optional[List[np.ndarray]]:
        positions: List[np.ndarray] = []
        for vid in vertex_ids:
            pos = self.vertex_position(vid)
            if pos is None:
                return None
            positions.append(pos)
        return positions

    # ------------------------------------------------------------------
    # References
    @staticmethod
    def vertex_ids_of(shape: Shape) -> Tuple[str, ...]:
        geometry = shape.geometry
        if isinstance(geometry, Primitive3D):
            return ()
        if isinstance(geometry, LineSegment):
            return (geometry.start_vertex_id, geometry.end_vertex_id)
        if isinstance(geometry, (Rectangle, Triangle, Polygon)):
            return tuple(geometry.vertex_ids)
        if isinstance(geometry, Circle):
            return (geometry.center_vertex_id,)
        if isinstance(geometry, CircularArc):
            return (geometry.center_vertex_id, geometry.start_vertex_id, geometry.end_vertex_id)
        raise TypeError(f"Unknown shape geometry {type(geometry).__name__}")

    @staticmethod
    def curve_ids_of(shape: Shape) -> Tuple[str, ...]:
        if isinstance(shape.geometry, Circle):
            return (shape.geometry.curve_id,)
        return ()

    def shapes_referencing_vertex(self, vertex_id: str) -> List[Shape]:
        return [shape for shape in self._shapes.values() if vertex_id in self.vertex_ids_of(shape)]

    def shapes_referencing_curve(self, curve_id: str) -> List[Shape]:
        return [shape for shape in self._shapes.values() if curve_id in self.curve_ids_of(shape)]

    def _vertex_referenced(self, vertex_id: str) -> bool:
        if any(vertex_id in self.vertex_ids_of(shape) for shape in self._shapes.values()):
            return True
        return any(curve.center_vertex_id == vertex_id for curve in self._curves.values())

    # ------------------------------------------------------------------
    # Creation
    def add_vertex(self, position: Sequence[float]) -> Vertex:
        vertex = Vertex(id=self._next_id("V"), position=as_point(position))
        self._vertices[vertex.id] = vertex
        self._dirty_vertices.add(vertex.id)
        return vertex

    def add_curve(self, center_vertex_id: str, radius: float) -> CircleCurve:
        if center_vertex_id not in self._vertices:
            raise ValueError(f"Curve center vertex '{center_vertex_id}' does not exist")
        if radius <= 0.0:
            raise ValueError("Circle curve requires a positive radius")
        curve = CircleCurve(id=self._next_id("C"), center_vertex_id=center_vertex_id, radius=float(radius))
        self._curves[curve.id] = curve
        self._dirty_curves.add(curve.id)
        return curve

    def _add_shape(self, geometry: ShapeGeometry, transform: Optional[Transform] = None) -> Shape:
        shape = Shape(id=self._next_id("S"), geometry=geometry, transform=transform or Transform())
        self._shapes[shape.id] = shape
        self._dirty_shapes.add(shape.id)
        return shape

    def add_primitive(
        self,
        kind: PrimitiveKind | str,
        position: Sequence[float] = (0.0, 0.0, 0.0),
        rotation: Sequence[float] = (0.0, 0.0, 0.0),
        scale: Sequence[float] = (1.0, 1.0, 1.0),
    ) -> Shape:
        try:
            kind = PrimitiveKind(kind)
        except ValueError as exc:
            raise ValueError(f"Unknown primitive kind '{kind}'") from exc
        transform = Transform(position=_triple(position), rotation=_triple(rotation), scale=_triple(scale))
        return self._add_shape(Primitive3D(kind=kind), transform)

    def add_line_segment(self, start: Sequence[float], end: Sequence[float]) -> Shape:
        start_vertex = self.add_vertex(start)
        end_vertex = self.add_vertex(end)
        return self._add_shape(LineSegment(start_vertex_id=start_vertex.id, end_vertex_id=end_vertex.id))

    def _add_vertex_loop(self, points: Sequence[Sequence[float]]) -> Tuple[str, ...]:
        return tuple(self.add_vertex(p).id for p in points)

    def add_rectangle(self, points: Sequence[Sequence[float]]) -> Shape:
        if len(points) != 4:
            raise ValueError(f"Rectangle requires exactly 4 points, got {len(points)}")
        return self._add_shape(Rectangle(vertex_ids=self._add_vertex_loop(points)))

    def add_triangle(self, points: Sequence[Sequence[float]]) -> Shape:
        if len(points) != 3:
            raise ValueError(f"Triangle requires exactly 3 points, got {len(points)}")
        return self._add_shape(Triangle(vertex_ids=self._add_vertex_loop(points)))

    def add_polygon(self, points: Sequence[Sequence[float]]) -> Shape:
        if len(points) < 3:
            raise ValueError(f"Polygon requires at least 3 points, got {len(points)}")
        return self._add_shape(Polygon(vertex_ids=self._add_vertex_loop(points)))

    def add_circle(self, center: Sequence[float], radius: float) -> Shape:
        if radius <= 0.0:
            raise ValueError("Circle requires a positive radius")
        center_vertex = self.add_vertex(center)
        curve = self.add_curve(center_vertex.id, radius)
        return self._add_shape(Circle(center_vertex_id=center_vertex.id, curve_id=curve.id))

    def add_circular_arc(self, start: Sequence[float], end: Sequence[float], through: Sequence[float]) -> Shape:
        """Create an arc from ``start`` to ``end`` passing through ``through``."""
        fit = arc_solver.compute_center_and_orientation(start, through, end)
        center_vertex = self.add_vertex(fit.center)
        start_vertex = self.add_vertex(start)
        end_vertex = self.add_vertex(end)
        return self._add_shape(
            CircularArc(
                center_vertex_id=center_vertex.id,
                start_vertex_id=start_vertex.id,
                end_vertex_id=end_vertex.id,
                clockwise=fit.clockwise,
            )
        )

    # ------------------------------------------------------------------
    # Mutation
    def update_vertex(self, vertex_id: str, position: Sequence[float]) -> bool:
        vertex = self._vertices.get(vertex_id)
        if vertex is None:
            logger.warning("update_vertex: vertex %s not found; skipping", vertex_id)
            return False
        vertex.position = as_point(position)
        self._dirty_vertices.add(vertex_id)
        for shape in self.shapes_referencing_vertex(vertex_id):
            self._dirty_shapes.add(shape.id)
        return True

    def update_shape(
        self,
        shape_id: str,
        *,
        position: Optional[Sequence[float]] = None,
        rotation: Optional[Sequence[float]] = None,
        scale: Optional[Sequence[float]] = None,
        color: Optional[str] = None,
        visible: Optional[bool] = None,
    ) -> bool:
        shape = self._shapes.get(shape_id)
        if shape is None:
            logger.warning("update_shape: shape %s not found; skipping", shape_id)
            return False
        if position is not None:
            shape.transform.position = _triple(position)
        if rotation is not None:
            shape.transform.rotation = _triple(rotation)
        if scale is not None:
            shape.transform.scale = _triple(scale)
        if color is not None:
            shape.color = color
        if visible is not None:
            shape.visible = bool(visible)
        self._dirty_shapes.add(shape_id)
        return True

    def update_curve_radius(self, curve_id: str, radius: float) -> bool:
        curve = self._curves.get(curve_id)
        if curve is None:
            logger.warning("update_curve_radius: curve %s not found; skipping", curve_id)
            return False
        if radius <= 0.0:
            raise ValueError("Circle curve requires a positive radius")
        curve.radius = float(radius)
        self._dirty_curves.add(curve_id)
        for shape in self.shapes_referencing_curve(curve_id):
            self._dirty_shapes.add(shape.id)
        return True

    def mark_selection_dirty(self, shape_id: str) -> None:
        if shape_id in self._shapes:
            self._selection_dirty.add(shape_id)

    # ------------------------------------------------------------------
    # Arc editing
    def _arc_geometry(self, arc_id: str) -> Optional[CircularArc]:
        shape = self._shapes.get(arc_id)
        if shape is None:
            logger.warning("Arc %s not found; skipping", arc_id)
            return None
        if not isinstance(shape.geometry, CircularArc):
            logger.warning("Shape %s is a %s, not an arc; skipping", arc_id, shape.type_name)
            return None
        return shape.geometry

    def arc_points(self, arc_id: str) -> Optional[ArcPoints]:
        """Current center/start/end positions of an arc."""
        geometry = self._arc_geometry(arc_id)
        if geometry is None:
            return None
        positions = self.vertex_positions(
            (geometry.center_vertex_id, geometry.start_vertex_id, geometry.end_vertex_id)
        )
        if positions is None:
            logger.warning("Arc %s references a missing vertex; skipping", arc_id)
            return None
        return ArcPoints(center=positions[0], start=positions[1], end=positions[2])

    def set_arc_points(self, arc_id: str, points: ArcPoints) -> bool:
        geometry = self._arc_geometry(arc_id)
        if geometry is None:
            return False
        ok = self.update_vertex(geometry.center_vertex_id, points.center)
        ok = self.update_vertex(geometry.start_vertex_id, points.start) and ok
        ok = self.update_vertex(geometry.end_vertex_id, points.end) and ok
        return ok

    def update_arc_endpoint(self, arc_id: str, endpoint: Endpoint, position: Sequence[float]) -> bool:
        """Move an arc endpoint while keeping its radius."""
        current = self.arc_points(arc_id)
        if current is None:
            return False
        solved = arc_solver.update_endpoint_preserving_radius(
            current.center, current.start, current.end, endpoint, position
        )
        return self.set_arc_points(arc_id, solved)

    def update_arc_radius(self, arc_id: str, scale: float) -> bool:
        current = self.arc_points(arc_id)
        if current is None:
            return False
        return self.set_arc_points(arc_id, arc_solver.update_radius(current.center, current.start, current.end, scale))

    def slide_arc_endpoint(self, arc_id: str, endpoint: Endpoint, target: Sequence[float]) -> bool:
        geometry = self._arc_geometry(arc_id)
        current = self.arc_points(arc_id)
        if geometry is None or current is None:
            return False
        if endpoint == "start":
            vertex_id, position = geometry.start_vertex_id, current.start
        elif endpoint == "end":
            vertex_id, position = geometry.end_vertex_id, current.end
        else:
            raise ValueError(f"Unknown arc endpoint '{endpoint}'")
        return self.update_vertex(vertex_id, arc_solver.slide_endpoint_on_circle(current.center, position, target))

    # ------------------------------------------------------------------
    # Deletion
    def delete_vertex(self, vertex_id: str) -> bool:
        if vertex_id not in self._vertices:
            logger.warning("delete_vertex: vertex %s not found", vertex_id)
            return False
        if self._vertex_referenced(vertex_id):
            logger.warning("delete_vertex: vertex %s is still referenced; rejected", vertex_id)
            return False
        del self._vertices[vertex_id]
        self._dirty_vertices.discard(vertex_id)
        return True

    def delete_curve(self, curve_id: str) -> bool:
        if curve_id not in self._curves:
            logger.warning("delete_curve: curve %s not found", curve_id)
            return False
        if self.shapes_referencing_curve(curve_id):
            logger.warning("delete_curve: curve %s is still referenced; rejected", curve_id)
            return False
        del self._curves[curve_id]
        self._dirty_curves.discard(curve_id)
        return True

    def remove_shape(self, shape_id: str) -> bool:
        """Remove a shape and any vertices/curves nothing else references."""
        shape = self._shapes.pop(shape_id, None)
        if shape is None:
            logger.warning("remove_shape: shape %s not found", shape_id)
            return False
        self._dirty_shapes.discard(shape_id)
        self._selection_dirty.discard(shape_id)
        self._removed_shapes.add(shape_id)
        for curve_id in self.curve_ids_of(shape):
            if curve_id in self._curves:
                self.delete_curve(curve_id)
        for vertex_id in self.vertex_ids_of(shape):
            if vertex_id in self._vertices and not self._vertex_referenced(vertex_id):
                self.delete_vertex(vertex_id)
        return True

    def clear(self) -> None:
        """Drop every entity. The id counter keeps running."""
        self._removed_shapes.update(self._shapes)
        self._shapes.clear()
        self._curves.clear()
        self._vertices.clear()
        self._dirty_vertices.clear()
        self._dirty_curves.clear()
        self._dirty_shapes.clear()
        self._selection_dirty.clear()

    # ------------------------------------------------------------------
    # Dirty tracking
    def is_dirty(self, entity_id: str) -> bool:
        return (
            entity_id in self._dirty_shapes
            or entity_id in self._dirty_vertices
            or entity_id in self._dirty_curves
        )

    def is_selection_dirty(self, shape_id: str) -> bool:
        return shape_id in self._selection_dirty

    def drain_dirty(self) -> DirtySnapshot:
        """Return everything changed since the last drain and reset the sets."""
        snapshot = DirtySnapshot(
            vertices=frozenset(self._dirty_vertices),
            curves=frozenset(self._dirty_curves),
            shapes=frozenset(self._dirty_shapes),
            selection=frozenset(self._selection_dirty),
            removed=frozenset(self._removed_shapes),
        )
        self._dirty_vertices.clear()
        self._dirty_curves.clear()
        self._dirty_shapes.clear()
        self._selection_dirty.clear()
        self._removed_shapes.clear()
        return snapshot


__all__ = ["DirtySnapshot", "GeometryGraph"]
