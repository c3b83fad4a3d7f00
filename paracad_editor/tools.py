"""Interactive tools driven by the :class:`~paracad_editor.tool_manager.ToolStateMachine`.

Each tool implements the full event interface. Drag tools capture an anchor
snapshot on pointer-down and compute every update from it and the gesture's
start pointer, then hand control back to the select tool on pointer-up.
"""
from __future__ import annotations

import logging
import math
from enum import Enum
from typing import TYPE_CHECKING, Dict, Optional, Tuple

import numpy as np
from PySide6.QtCore import Qt

from . import arc_solver
from .arc_solver import ArcPoints
from .context import EditorContext
from .events import KeyEvent, PointerEvent, WheelEvent
from .geometry import EPS
from .model import CircularArc, LineSegment, Primitive3D, PrimitiveKind, Shape

if TYPE_CHECKING:
    from .tool_manager import ToolStateMachine

logger = logging.getLogger(__name__)

Point = Tuple[float, float]

ESCAPE_KEYS = (Qt.Key.Key_Escape,)
DELETE_KEYS = (Qt.Key.Key_Delete, Qt.Key.Key_Backspace)

# Exactly one modifier picks the rotation axis; the first match wins.
ROTATION_AXIS_MODIFIERS = (
    (Qt.KeyboardModifier.AltModifier, "x"),
    (Qt.KeyboardModifier.ShiftModifier, "y"),
    (Qt.KeyboardModifier.ControlModifier, "z"),
)


class ToolType(str, Enum):
    SELECT = "select"
    MOVE_SHAPE = "move_shape"
    ROTATE_SHAPE = "rotate_shape"
    MOVE_LINE_ENDPOINT = "move_line_endpoint"
    MOVE_ARC_ENDPOINT = "move_arc_endpoint"
    MOVE_ARC = "move_arc"
    CREATE_LINE_SEGMENT = "create_line_segment"
    CREATE_PRIMITIVE_3D = "create_primitive_3d"
    CREATE_CIRCULAR_ARC = "create_circular_arc"


def _travel(a: Point, b: Point) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def rotation_axis_for(event: PointerEvent) -> Optional[str]:
    for modifier, axis in ROTATION_AXIS_MODIFIERS:
        if event.has(modifier):
            return axis
    return None


class ToolBase:
    """Common interface every tool implements."""

    tool_type: ToolType

    def __init__(self, ctx: EditorContext, machine: "ToolStateMachine"):
        self.ctx = ctx
        self.machine = machine

    def activate(self) -> None:
        self.reset()

    def deactivate(self) -> None:
        self.reset()

    def reset(self) -> None:
        """Drop any in-progress gesture state."""

    def mouse_press(self, event: PointerEvent) -> None:
        pass

    def mouse_move(self, event: PointerEvent) -> None:
        pass

    def mouse_release(self, event: PointerEvent) -> None:
        pass

    def wheel(self, event: WheelEvent) -> None:
        pass

    def key_press(self, event: KeyEvent) -> None:
        if event.key in ESCAPE_KEYS:
            self.finish()

    # ------------------------------------------------------------------
    def finish(self) -> None:
        self.machine.activate(ToolType.SELECT)

    def working_plane_point(self, event: PointerEvent, z: float = 0.0) -> Optional[np.ndarray]:
        return self.ctx.hit_tester.screen_to_world_on_plane(event.pos, self.ctx.camera, (0.0, 0.0, 1.0), (0.0, 0.0, z))

    def view_plane_point(self, event: PointerEvent, through: np.ndarray) -> Optional[np.ndarray]:
        """Pointer projected on the camera-facing plane through ``through``."""
        normal = -self.ctx.camera.view_direction
        return self.ctx.hit_tester.screen_to_world_on_plane(event.pos, self.ctx.camera, normal, through)


# ---------------------------------------------------------------------------
# Selection & view navigation


class SelectTool(ToolBase):
    """Pick shapes, start edit gestures on the selection, orbit/pan/zoom the view."""

    tool_type = ToolType.SELECT

    def __init__(self, ctx, machine):
        super().__init__(ctx, machine)
        self.reset()

    def reset(self) -> None:
        self._press_pos: Point | None = None
        self._mode: Optional[str] = None
        self._orbit_start: Tuple[float, float] = (0.0, 0.0)
        self._pan_start: Optional[Tuple[np.ndarray, np.ndarray]] = None

    def _hand_off(self, tool_type: ToolType, event: PointerEvent, *args) -> None:
        tool = self.machine.activate(tool_type)
        tool.arm(*args)
        tool.mouse_press(event)

    def mouse_press(self, event: PointerEvent) -> None:
        if event.button != Qt.MouseButton.LeftButton:
            return
        ctx = self.ctx
        selected = ctx.selection.current_selected_shape()
        if selected is not None:
            self._press_selected(selected, event)
            return

        self._press_pos = event.pos
        if event.has(Qt.KeyboardModifier.ControlModifier):
            self._mode = "orbit"
            self._orbit_start = ctx.camera.orbit_angles()
        else:
            self._mode = "pending"
            self._pan_start = (ctx.camera.position.copy(), ctx.camera.look_at.copy())

    def _press_selected(self, selected: Shape, event: PointerEvent) -> None:
        ctx = self.ctx
        handle = ctx.hit_tester.handle_at_screen_point(event.pos, ctx.camera, selected.id)
        if handle is not None:
            if isinstance(selected.geometry, LineSegment):
                self._hand_off(ToolType.MOVE_LINE_ENDPOINT, event, selected.id, handle.role)
            elif handle.role == "center":
                self._hand_off(ToolType.MOVE_ARC, event, selected.id, "translate")
            else:
                self._hand_off(ToolType.MOVE_ARC_ENDPOINT, event, selected.id, handle.role)
            return

        hit = ctx.hit_tester.nearest_shape_at_screen_point(event.pos, ctx.camera)
        if hit == selected.id:
            axis = rotation_axis_for(event)
            if isinstance(selected.geometry, Primitive3D) and axis is not None:
                self._hand_off(ToolType.ROTATE_SHAPE, event, selected.id, axis)
            elif isinstance(selected.geometry, CircularArc) and event.has(Qt.KeyboardModifier.ControlModifier):
                self._hand_off(ToolType.MOVE_ARC, event, selected.id, "radius")
            else:
                self._hand_off(ToolType.MOVE_SHAPE, event, selected.id)
            return

        if hit is None:
            ctx.selection.clear()
        else:
            ctx.selection.select(hit)

    def mouse_move(self, event: PointerEvent) -> None:
        if self._press_pos is None:
            return
        dx = event.x - self._press_pos[0]
        dy = event.y - self._press_pos[1]
        if self._mode == "orbit":
            self._orbit(dx, dy)
        elif self._mode in ("pending", "pan"):
            if self._mode == "pending" and math.hypot(dx, dy) >= self.ctx.config.move_threshold_px:
                self._mode = "pan"
            if self._mode == "pan":
                self._pan(dx, dy)

    def mouse_release(self, event: PointerEvent) -> None:
        if self._press_pos is None:
            return
        if self._mode == "pending":
            hit = self.ctx.hit_tester.nearest_shape_at_screen_point(event.pos, self.ctx.camera)
            if hit is not None:
                self.ctx.selection.select(hit)
        self.reset()

    def _orbit(self, dx: float, dy: float) -> None:
        cfg = self.ctx.config
        azimuth0, elevation0 = self._orbit_start
        azimuth = azimuth0 - dx * cfg.orbit_sensitivity
        limit = math.pi / 2.0 - cfg.elevation_margin
        elevation = max(-limit, min(limit, elevation0 + dy * cfg.orbit_sensitivity))
        self.ctx.camera.place_on_sphere(azimuth, elevation, cfg.orbit_radius)

    def _pan(self, dx: float, dy: float) -> None:
        if self._pan_start is None:
            return
        camera = self.ctx.camera
        position0, target0 = self._pan_start
        right, true_up, _ = camera.basis()
        scale = camera.world_per_pixel()
        offset = right * (-dx * scale) + true_up * (dy * scale)
        camera.set_pose(position0 + offset, target0 + offset, camera.up)

    def wheel(self, event: WheelEvent) -> None:
        if event.delta_y == 0:
            return
        cfg = self.ctx.config
        factor = 1.0 - cfg.zoom_speed if event.delta_y > 0 else 1.0 + cfg.zoom_speed
        size = self.ctx.camera.frustum_size * factor
        self.ctx.camera.set_frustum_size(max(cfg.min_frustum_size, min(cfg.max_frustum_size, size)))

    def key_press(self, event: KeyEvent) -> None:
        selection = self.ctx.selection
        if event.key in ESCAPE_KEYS:
            self.reset()
            if selection.current_selection() is not None:
                selection.clear()
            else:
                self.ctx.camera.reset()
        elif event.key in DELETE_KEYS:
            shape_id = selection.current_selection()
            if shape_id is not None:
                selection.clear()
                self.ctx.graph.remove_shape(shape_id)
                logger.info("Deleted shape %s", shape_id)


# ---------------------------------------------------------------------------
# Drag edit tools


class MoveShapeTool(ToolBase):
    tool_type = ToolType.MOVE_SHAPE

    def __init__(self, ctx, machine):
        super().__init__(ctx, machine)
        self.shape_id: Optional[str] = None
        self.reset()

    def arm(self, shape_id: str) -> None:
        self.shape_id = shape_id

    def reset(self) -> None:
        self._anchor_point: Optional[np.ndarray] = None
        self._start_world: Optional[np.ndarray] = None
        self._anchor_transform: Optional[np.ndarray] = None
        self._anchor_vertices: Dict[str, np.ndarray] = {}

    def mouse_press(self, event: PointerEvent) -> None:
        shape = self.ctx.graph.get_shape_by_id(self.shape_id)
        if shape is None:
            logger.warning("Move: shape %s not found", self.shape_id)
            self.finish()
            return
        if shape.is_vertex_defined:
            for vid in self.ctx.graph.vertex_ids_of(shape):
                position = self.ctx.graph.vertex_position(vid)
                if position is not None:
                    self._anchor_vertices[vid] = position
            if not self._anchor_vertices:
                self.finish()
                return
            self._anchor_point = np.mean(list(self._anchor_vertices.values()), axis=0)
        else:
            self._anchor_transform = np.array(shape.transform.position, dtype=float)
            self._anchor_point = self._anchor_transform.copy()
        self._start_world = self.view_plane_point(event, self._anchor_point)

    def mouse_move(self, event: PointerEvent) -> None:
        if self._start_world is None or self._anchor_point is None:
            return
        current = self.view_plane_point(event, self._anchor_point)
        if current is None:
            return
        delta = current - self._start_world
        graph = self.ctx.graph
        if self._anchor_transform is not None:
            graph.update_shape(self.shape_id, position=self._anchor_transform + delta)
        for vid, anchor in self._anchor_vertices.items():
            graph.update_vertex(vid, anchor + delta)

    def mouse_release(self, event: PointerEvent) -> None:
        self.finish()


class RotateShapeTool(ToolBase):
    tool_type = ToolType.ROTATE_SHAPE

    def __init__(self, ctx, machine):
        super().__init__(ctx, machine)
        self.shape_id: Optional[str] = None
        self.axis = "z"
        self.reset()

    def arm(self, shape_id: str, axis: str) -> None:
        if axis not in ("x", "y", "z"):
            raise ValueError(f"Unknown rotation axis '{axis}'")
        self.shape_id = shape_id
        self.axis = axis

    def reset(self) -> None:
        self._start_pos: Point | None = None
        self._initial_rotation: Optional[Tuple[float, float, float]] = None

    def mouse_press(self, event: PointerEvent) -> None:
        shape = self.ctx.graph.get_shape_by_id(self.shape_id)
        if shape is None:
            logger.warning("Rotate: shape %s not found", self.shape_id)
            self.finish()
            return
        self._start_pos = event.pos
        self._initial_rotation = tuple(shape.transform.rotation)

    def mouse_move(self, event: PointerEvent) -> None:
        if self._start_pos is None or self._initial_rotation is None:
            return
        sensitivity = self.ctx.config.rotation_sensitivity
        dx = (event.x - self._start_pos[0]) * sensitivity
        dy = (event.y - self._start_pos[1]) * sensitivity
        rx, ry, rz = self._initial_rotation
        if self.axis == "x":
            rx += dy
        elif self.axis == "y":
            ry += dx
        else:
            rz -= dx
        self.ctx.graph.update_shape(self.shape_id, rotation=(rx, ry, rz))

    def mouse_release(self, event: PointerEvent) -> None:
        self.finish()


class MoveLineEndpointTool(ToolBase):
    tool_type = ToolType.MOVE_LINE_ENDPOINT

    def __init__(self, ctx, machine):
        super().__init__(ctx, machine)
        self.shape_id: Optional[str] = None
        self.role = "start"
        self.reset()

    def arm(self, shape_id: str, role: str) -> None:
        if role not in ("start", "end"):
            raise ValueError(f"Unknown line endpoint '{role}'")
        self.shape_id = shape_id
        self.role = role

    def reset(self) -> None:
        self._vertex_id: Optional[str] = None
        self._anchor: Optional[np.ndarray] = None

    def mouse_press(self, event: PointerEvent) -> None:
        shape = self.ctx.graph.get_shape_by_id(self.shape_id)
        if shape is None or not isinstance(shape.geometry, LineSegment):
            logger.warning("Line endpoint drag: %s is not a line segment", self.shape_id)
            self.finish()
            return
        geometry = shape.geometry
        self._vertex_id = geometry.start_vertex_id if self.role == "start" else geometry.end_vertex_id
        self._anchor = self.ctx.graph.vertex_position(self._vertex_id)
        if self._anchor is None:
            self.finish()

    def mouse_move(self, event: PointerEvent) -> None:
        if self._vertex_id is None or self._anchor is None:
            return
        world = self.view_plane_point(event, self._anchor)
        if world is None:
            return
        snapped = self.ctx.snap.find_snap_point(world, exclude_shape_id=self.shape_id)
        self.ctx.graph.update_vertex(self._vertex_id, snapped.position)

    def mouse_release(self, event: PointerEvent) -> None:
        self.finish()

    def deactivate(self) -> None:
        self.ctx.snap.reset_visual_state()
        super().deactivate()


class MoveArcEndpointTool(ToolBase):
    """Drag an arc endpoint. Ctrl slides it along the circle instead."""

    tool_type = ToolType.MOVE_ARC_ENDPOINT

    def __init__(self, ctx, machine):
        super().__init__(ctx, machine)
        self.shape_id: Optional[str] = None
        self.role: arc_solver.Endpoint = "start"
        self.reset()

    def arm(self, shape_id: str, role: str) -> None:
        if role not in ("start", "end"):
            raise ValueError(f"Unknown arc endpoint '{role}'")
        self.shape_id = shape_id
        self.role = role  # type: ignore[assignment]

    def reset(self) -> None:
        self._anchor: Optional[ArcPoints] = None

    def mouse_press(self, event: PointerEvent) -> None:
        self._anchor = self.ctx.graph.arc_points(self.shape_id) if self.shape_id else None
        if self._anchor is None:
            self.finish()

    def mouse_move(self, event: PointerEvent) -> None:
        if self._anchor is None:
            return
        world = self.working_plane_point(event, float(self._anchor.center[2]))
        if world is None:
            return
        graph = self.ctx.graph
        if event.has(Qt.KeyboardModifier.ControlModifier):
            self.ctx.snap.reset_visual_state()
            graph.slide_arc_endpoint(self.shape_id, self.role, world)
            return
        snapped = self.ctx.snap.find_snap_point(world, exclude_shape_id=self.shape_id)
        anchor = self._anchor
        solved = arc_solver.update_endpoint_preserving_radius(
            anchor.center, anchor.start, anchor.end, self.role, snapped.position
        )
        graph.set_arc_points(self.shape_id, solved)

    def mouse_release(self, event: PointerEvent) -> None:
        self.finish()

    def deactivate(self) -> None:
        self.ctx.snap.reset_visual_state()
        super().deactivate()


class MoveArcTool(ToolBase):
    """Translate an arc by its center, or (``radius`` mode) scale it about the center."""

    tool_type = ToolType.MOVE_ARC

    def __init__(self, ctx, machine):
        super().__init__(ctx, machine)
        self.shape_id: Optional[str] = None
        self.mode = "translate"
        self.reset()

    def arm(self, shape_id: str, mode: str = "translate") -> None:
        if mode not in ("translate", "radius"):
            raise ValueError(f"Unknown arc move mode '{mode}'")
        self.shape_id = shape_id
        self.mode = mode

    def reset(self) -> None:
        self._anchor: Optional[ArcPoints] = None
        self._initial_distance = 0.0

    def mouse_press(self, event: PointerEvent) -> None:
        self._anchor = self.ctx.graph.arc_points(self.shape_id) if self.shape_id else None
        if self._anchor is None:
            self.finish()
            return
        if self.mode == "radius":
            world = self.working_plane_point(event, float(self._anchor.center[2]))
            if world is not None:
                self._initial_distance = float(np.linalg.norm((world - self._anchor.center)[:2]))

    def mouse_move(self, event: PointerEvent) -> None:
        anchor = self._anchor
        if anchor is None:
            return
        world = self.working_plane_point(event, float(anchor.center[2]))
        if world is None:
            return
        target = self.ctx.snap.find_snap_point(world, exclude_shape_id=self.shape_id).position
        if self.mode == "translate":
            offset = target - anchor.center
            offset[2] = 0.0
            moved = ArcPoints(anchor.center + offset, anchor.start + offset, anchor.end + offset)
            self.ctx.graph.set_arc_points(self.shape_id, moved)
            return
        if self._initial_distance < EPS:
            return
        scale = float(np.linalg.norm((target - anchor.center)[:2])) / self._initial_distance
        if scale < EPS:
            return
        self.ctx.graph.set_arc_points(
            self.shape_id, arc_solver.update_radius(anchor.center, anchor.start, anchor.end, scale)
        )

    def mouse_release(self, event: PointerEvent) -> None:
        self.finish()

    def deactivate(self) -> None:
        self.ctx.snap.reset_visual_state()
        super().deactivate()


# ---------------------------------------------------------------------------
# Creation tools


def classify_gesture(travel_px: float, elapsed_ms: float, move_threshold_px: float, click_threshold_ms: float) -> str:
    """Return ``"click"``, ``"hold"`` or ``"drag"`` for a finished press/release pair."""
    if travel_px >= move_threshold_px:
        return "drag"
    if elapsed_ms < click_threshold_ms:
        return "click"
    return "hold"


class CreateLineSegmentTool(ToolBase):
    tool_type = ToolType.CREATE_LINE_SEGMENT

    def __init__(self, ctx, machine):
        super().__init__(ctx, machine)
        self.reset()

    def reset(self) -> None:
        self._down_pos: Point | None = None
        self._down_time = 0.0
        self._start_world: Optional[np.ndarray] = None
        self.preview: Optional[Tuple[np.ndarray, np.ndarray]] = None

    def _snapped(self, event: PointerEvent) -> Optional[np.ndarray]:
        world = self.working_plane_point(event)
        if world is None:
            return None
        return self.ctx.snap.find_snap_point(world).position

    def mouse_press(self, event: PointerEvent) -> None:
        if event.button != Qt.MouseButton.LeftButton:
            return
        self._down_pos = event.pos
        self._down_time = self.ctx.clock()
        self._start_world = self._snapped(event)

    def mouse_move(self, event: PointerEvent) -> None:
        if self._down_pos is None or self._start_world is None:
            return
        if _travel(self._down_pos, event.pos) < self.ctx.config.move_threshold_px:
            return
        current = self._snapped(event)
        if current is not None:
            self.preview = (self._start_world, current)

    def mouse_release(self, event: PointerEvent) -> None:
        if self._down_pos is None:
            return
        cfg = self.ctx.config
        gesture = classify_gesture(
            _travel(self._down_pos, event.pos), self.ctx.clock() - self._down_time, cfg.move_threshold_px, cfg.click_threshold_ms
        )
        end = self._snapped(event)
        shape = None
        if end is not None:
            if gesture == "drag" and self._start_world is not None:
                shape = self.ctx.graph.add_line_segment(self._start_world, end)
            else:
                half = np.array([cfg.default_line_length / 2.0, 0.0, 0.0])
                shape = self.ctx.graph.add_line_segment(end - half, end + half)
        if shape is not None:
            logger.debug("Created line %s from %s gesture", shape.id, gesture)
            self.ctx.selection.select(shape.id)
        self.ctx.snap.reset_visual_state()
        self.finish()


class CreatePrimitive3DTool(ToolBase):
    tool_type = ToolType.CREATE_PRIMITIVE_3D

    def __init__(self, ctx, machine):
        super().__init__(ctx, machine)
        self.kind = PrimitiveKind.CUBE
        self.reset()

    def set_kind(self, kind: PrimitiveKind | str) -> None:
        self.kind = PrimitiveKind(kind)

    def reset(self) -> None:
        self._down_pos: Point | None = None
        self._down_time = 0.0
        self._start_world: Optional[np.ndarray] = None

    def mouse_press(self, event: PointerEvent) -> None:
        if event.button != Qt.MouseButton.LeftButton:
            return
        self._down_pos = event.pos
        self._down_time = self.ctx.clock()
        self._start_world = self.working_plane_point(event)

    def mouse_release(self, event: PointerEvent) -> None:
        if self._down_pos is None:
            return
        cfg = self.ctx.config
        gesture = classify_gesture(
            _travel(self._down_pos, event.pos), self.ctx.clock() - self._down_time, cfg.move_threshold_px, cfg.click_threshold_ms
        )
        end = self.working_plane_point(event)
        start = self._start_world
        self.reset()
        if end is None:
            return
        if gesture == "drag" and start is not None:
            size = float(np.linalg.norm(end - start)) / 2.0
            shape = self.ctx.graph.add_primitive(self.kind, position=(start + end) / 2.0, scale=(size, size, size))
        else:
            shape = self.ctx.graph.add_primitive(self.kind, position=end)
        logger.debug("Created %s %s from %s gesture", self.kind.value, shape.id, gesture)
        self.ctx.selection.select(shape.id)


class CreateCircularArcTool(ToolBase):
    """Three presses: start point, end point, then a point the arc passes through."""

    tool_type = ToolType.CREATE_CIRCULAR_ARC

    def __init__(self, ctx, machine):
        super().__init__(ctx, machine)
        self.reset()

    def reset(self) -> None:
        self._start: Optional[np.ndarray] = None
        self._end: Optional[np.ndarray] = None
        self.preview_line: Optional[Tuple[np.ndarray, np.ndarray]] = None
        self.preview_arc: Optional[np.ndarray] = None

    @property
    def stage(self) -> str:
        if self._start is None:
            return "pick_start"
        if self._end is None:
            return "pick_end"
        return "pick_through"

    def _snapped(self, event: PointerEvent) -> Optional[np.ndarray]:
        world = self.working_plane_point(event)
        if world is None:
            return None
        return self.ctx.snap.find_snap_point(world).position

    def mouse_press(self, event: PointerEvent) -> None:
        if event.button != Qt.MouseButton.LeftButton:
            return
        point = self._snapped(event)
        if point is None:
            return
        if self._start is None:
            self._start = point
        elif self._end is None:
            self._end = point
            self.preview_line = None
            self._update_preview_arc(arc_solver.preview_through_point(self._start, self._end, point))
        else:
            shape = self.ctx.graph.add_circular_arc(self._start, self._end, point)
            logger.debug("Created arc %s", shape.id)
            self.ctx.selection.select(shape.id)
            self.ctx.snap.reset_visual_state()
            self.reset()

    def mouse_move(self, event: PointerEvent) -> None:
        if self._start is None:
            return
        point = self._snapped(event)
        if point is None:
            return
        if self._end is None:
            self.preview_line = (self._start, point)
        else:
            self._update_preview_arc(point)

    def _update_preview_arc(self, through: np.ndarray) -> None:
        fit = arc_solver.compute_center_and_orientation(self._start, through, self._end)
        self.preview_arc = arc_solver.arc_points(
            fit.center, self._start, self._end, fit.clockwise, self.ctx.config.arc_segments
        )


__all__ = [
    "ToolType",
    "ToolBase",
    "SelectTool",
    "MoveShapeTool",
    "RotateShapeTool",
    "MoveLineEndpointTool",
    "MoveArcEndpointTool",
    "MoveArcTool",
    "CreateLineSegmentTool",
    "CreatePrimitive3DTool",
    "CreateCircularArcTool",
    "classify_gesture",
    "rotation_axis_for",
]
