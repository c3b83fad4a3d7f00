"""Data model for the ParaCAD editor.

Shapes never own their geometry. Line-like and planar shapes reference shared
vertices (and circle curves) by id, and primitives carry only their transform.
The ``geometry`` field of :class:`Shape` is a closed set of payload classes;
code that interprets a shape matches on the payload type and raises
``TypeError`` for anything else.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence, Tuple, Union

import numpy as np

Vec3 = Tuple[float, float, float]

DEFAULT_COLOR = "#0078d4"


def as_point(value: Sequence[float]) -> np.ndarray:
    """Coerce a 2D or 3D sequence into a float ``(3,)`` array."""
    arr = np.asarray(value, dtype=float).reshape(-1)
    if arr.shape[0] == 2:
        arr = np.append(arr, 0.0)
    if arr.shape[0] != 3:
        raise ValueError(f"Expected a 2D or 3D point, got {len(arr)} components")
    return arr


class PrimitiveKind(str, Enum):
    SPHERE = "sphere"
    CUBE = "cube"
    CYLINDER = "cylinder"
    CONE = "cone"
    TORUS = "torus"


@dataclass
class Vertex:
    id: str
    position: np.ndarray

    def copy_position(self) -> np.ndarray:
        return self.position.copy()


@dataclass
class CircleCurve:
    """Circle definition shared by circle shapes."""

    id: str
    center_vertex_id: str
    radius: float


@dataclass
class Transform:
    position: Vec3 = (0.0, 0.0, 0.0)
    rotation: Vec3 = (0.0, 0.0, 0.0)
    scale: Vec3 = (1.0, 1.0, 1.0)


# ---------------------------------------------------------------------------
# Shape payloads


@dataclass(frozen=True)
class Primitive3D:
    kind: PrimitiveKind


@dataclass(frozen=True)
class LineSegment:
    start_vertex_id: str
    end_vertex_id: str


@dataclass(frozen=True)
class Rectangle:
    vertex_ids: Tuple[str, ...]


@dataclass(frozen=True)
class Triangle:
    vertex_ids: Tuple[str, ...]


@dataclass(frozen=True)
class Polygon:
    vertex_ids: Tuple[str, ...]


@dataclass(frozen=True)
class Circle:
    center_vertex_id: str
    curve_id: str


@dataclass(frozen=True)
class CircularArc:
    center_vertex_id: str
    start_vertex_id: str
    end_vertex_id: str
    clockwise: bool = False


ShapeGeometry = Union[Primitive3D, LineSegment, Rectangle, Triangle, Polygon, Circle, CircularArc]
PolygonLike = (Rectangle, Triangle, Polygon)


@dataclass
class Shape:
    id: str
    geometry: ShapeGeometry
    transform: Transform = field(default_factory=Transform)
    color: str = DEFAULT_COLOR
    visible: bool = True

    @property
    def type_name(self) -> str:
        geometry = self.geometry
        if isinstance(geometry, Primitive3D):
            return geometry.kind.value
        if isinstance(geometry, LineSegment):
            return "lineSegment"
        if isinstance(geometry, Rectangle):
            return "rectangle"
        if isinstance(geometry, Triangle):
            return "triangle"
        if isinstance(geometry, Polygon):
            return "polygon"
        if isinstance(geometry, Circle):
            return "circle"
        if isinstance(geometry, CircularArc):
            return "circularArc"
        raise TypeError(f"Unknown shape geometry {type(geometry).__name__}")

    @property
    def is_vertex_defined(self) -> bool:
        """True when the shape's placement lives in its vertices, not its transform."""
        return not isinstance(self.geometry, Primitive3D)


__all__ = [
    "Vec3",
    "DEFAULT_COLOR",
    "as_point",
    "PrimitiveKind",
    "Vertex",
    "CircleCurve",
    "Transform",
    "Primitive3D",
    "LineSegment",
    "Rectangle",
    "Triangle",
    "Polygon",
    "Circle",
    "CircularArc",
    "ShapeGeometry",
    "PolygonLike",
    "Shape",
]
