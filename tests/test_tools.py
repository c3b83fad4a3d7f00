"""
Tests for the tool state machine and the interactive tools.

Gestures are driven through ``ToolStateMachine.handle_*`` exactly as a view
would forward them; the fake clock decides quick clicks from holds.
"""

import math

import numpy as np
import pytest
from PySide6.QtCore import Qt

from conftest import screen_of
from paracad_editor.events import NO_MODIFIER, KeyEvent, PointerEvent, WheelEvent
from paracad_editor.model import LineSegment
from paracad_editor.tools import ToolType, classify_gesture

ALT = Qt.KeyboardModifier.AltModifier
SHIFT = Qt.KeyboardModifier.ShiftModifier
CTRL = Qt.KeyboardModifier.ControlModifier


def press(machine, pos, modifiers=NO_MODIFIER):
    machine.handle_mouse_press(PointerEvent(pos[0], pos[1], modifiers=modifiers))


def move(machine, pos, modifiers=NO_MODIFIER):
    machine.handle_mouse_move(PointerEvent(pos[0], pos[1], modifiers=modifiers))


def release(machine, pos, modifiers=NO_MODIFIER):
    machine.handle_mouse_release(PointerEvent(pos[0], pos[1], modifiers=modifiers))


def key(machine, qt_key):
    machine.handle_key_press(KeyEvent(qt_key))


def drag(machine, start, end, modifiers=NO_MODIFIER):
    press(machine, start, modifiers)
    move(machine, end, modifiers)
    release(machine, end, modifiers)


def line_points(graph, shape):
    return graph.vertex_positions(graph.vertex_ids_of(shape))


# ============== State machine ==============

class TestToolStateMachine:
    """Test the dispatch table and activation rules."""

    def test_starts_in_select(self, machine):
        assert machine.active_type == ToolType.SELECT

    def test_activate_returns_new_tool(self, machine):
        tool = machine.activate(ToolType.CREATE_LINE_SEGMENT)

        assert tool is machine.active_tool
        assert machine.active_type == ToolType.CREATE_LINE_SEGMENT

    def test_activate_accepts_names(self, machine):
        machine.activate("create_circular_arc")

        assert machine.active_type == ToolType.CREATE_CIRCULAR_ARC

    def test_unknown_tool_type(self, machine):
        with pytest.raises(ValueError):
            machine.activate("lasso")

    def test_every_tool_implements_full_interface(self, machine):
        for tool in machine.tools.values():
            for name in ("activate", "deactivate", "mouse_press", "mouse_move", "mouse_release", "wheel", "key_press"):
                assert callable(getattr(tool, name))
        assert set(machine.tools) == set(ToolType)

    def test_switching_discards_gesture(self, machine, graph):
        """Deactivation drops a half-finished gesture."""
        machine.activate(ToolType.CREATE_LINE_SEGMENT)
        press(machine, screen_of(0, 0))

        machine.activate(ToolType.SELECT)
        machine.activate(ToolType.CREATE_LINE_SEGMENT)
        release(machine, screen_of(3, 0))

        assert graph.shapes == []

    def test_reentrant_dispatch_rejected(self, machine, monkeypatch):
        select = machine.get_tool(ToolType.SELECT)
        monkeypatch.setattr(select, "mouse_press", lambda event: machine.handle_mouse_move(event))

        with pytest.raises(RuntimeError):
            press(machine, (10, 10))

        # dispatch is usable again afterwards
        move(machine, (10, 10))


class TestClassifyGesture:
    """Test click / hold / drag classification."""

    @pytest.mark.parametrize("travel,elapsed,expected", [
        (0.0, 10.0, "click"),
        (4.9, 149.0, "click"),
        (0.0, 150.0, "hold"),
        (5.0, 10.0, "drag"),
        (40.0, 900.0, "drag"),
    ])
    def test_classification(self, travel, elapsed, expected):
        assert classify_gesture(travel, elapsed, 5.0, 150.0) == expected


# ============== Creation tools ==============

class TestCreateLineSegment:
    """Test line creation by click, hold and drag."""

    def test_quick_click_creates_default_line(self, machine, graph, ctx, clock):
        """A quick click makes a default-length horizontal line centred on the pointer."""
        machine.activate(ToolType.CREATE_LINE_SEGMENT)
        press(machine, screen_of(1, 0))
        clock.advance(50)
        release(machine, screen_of(1, 0))

        (line,) = graph.shapes
        start, end = line_points(graph, line)
        assert np.allclose(start, [0.0, 0.0, 0.0])
        assert np.allclose(end, [2.0, 0.0, 0.0])
        assert ctx.selection.current_selection() == line.id
        assert machine.active_type == ToolType.SELECT

    def test_drag_spans_press_and_release(self, machine, graph, clock):
        machine.activate(ToolType.CREATE_LINE_SEGMENT)
        press(machine, screen_of(0, 0))
        move(machine, screen_of(1, 0))
        clock.advance(50)
        release(machine, screen_of(2, 1))

        (line,) = graph.shapes
        start, end = line_points(graph, line)
        assert np.allclose(start, [0.0, 0.0, 0.0])
        assert np.allclose(end, [2.0, 1.0, 0.0])

    def test_hold_without_moving_creates_default_line(self, machine, graph, clock):
        machine.activate(ToolType.CREATE_LINE_SEGMENT)
        press(machine, screen_of(-2, 3))
        clock.advance(600)
        release(machine, screen_of(-2, 3))

        (line,) = graph.shapes
        start, end = line_points(graph, line)
        assert np.allclose(start, [-3.0, 3.0, 0.0])
        assert np.allclose(end, [-1.0, 3.0, 0.0])

    def test_preview_while_dragging(self, machine):
        tool = machine.activate(ToolType.CREATE_LINE_SEGMENT)
        press(machine, screen_of(0, 0))
        move(machine, screen_of(0, 2))

        start, end = tool.preview
        assert np.allclose(end, [0.0, 2.0, 0.0])

    def test_drag_end_snaps(self, machine, graph, clock):
        graph.add_line_segment((5, 5, 0), (6, 5, 0))
        machine.activate(ToolType.CREATE_LINE_SEGMENT)
        press(machine, screen_of(0, 0))
        clock.advance(50)
        release(machine, screen_of(5.1, 5.1))

        line = graph.shapes[-1]
        _, end = line_points(graph, line)
        assert np.array_equal(end, [5.0, 5.0, 0.0])

    def test_escape_cancels(self, machine, graph):
        machine.activate(ToolType.CREATE_LINE_SEGMENT)
        press(machine, screen_of(0, 0))
        move(machine, screen_of(2, 0))
        key(machine, Qt.Key.Key_Escape)
        release(machine, screen_of(2, 0))

        assert graph.shapes == []
        assert machine.active_type == ToolType.SELECT


class TestCreatePrimitive3D:
    """Test primitive placement."""

    def test_click_places_unit_primitive(self, machine, graph, ctx, clock):
        tool = machine.activate(ToolType.CREATE_PRIMITIVE_3D)
        tool.set_kind("sphere")
        press(machine, screen_of(1, 0))
        clock.advance(20)
        release(machine, screen_of(1, 0))

        (shape,) = graph.shapes
        assert shape.type_name == "sphere"
        assert shape.transform.position == pytest.approx((1.0, 0.0, 0.0))
        assert shape.transform.scale == pytest.approx((1.0, 1.0, 1.0))
        assert ctx.selection.current_selection() == shape.id

    def test_drag_sizes_primitive(self, machine, graph):
        machine.activate(ToolType.CREATE_PRIMITIVE_3D)
        drag(machine, screen_of(0, 0), screen_of(4, 0))

        (shape,) = graph.shapes
        assert shape.type_name == "cube"
        assert shape.transform.position == pytest.approx((2.0, 0.0, 0.0))
        assert shape.transform.scale == pytest.approx((2.0, 2.0, 2.0))

    def test_unknown_kind(self, machine):
        tool = machine.get_tool(ToolType.CREATE_PRIMITIVE_3D)

        with pytest.raises(ValueError):
            tool.set_kind("teapot")


class TestCreateCircularArc:
    """Test three-press arc creation."""

    def test_three_presses_create_arc(self, machine, graph, ctx):
        tool = machine.activate(ToolType.CREATE_CIRCULAR_ARC)
        for point in ((1, 0), (-1, 0), (0, 1)):
            press(machine, screen_of(*point))
            release(machine, screen_of(*point))

        (arc,) = graph.shapes
        points = graph.arc_points(arc.id)
        assert np.allclose(points.center, [0.0, 0.0, 0.0])
        assert arc.geometry.clockwise is False
        assert ctx.selection.current_selection() == arc.id
        assert tool.stage == "pick_start"
        assert machine.active_type == ToolType.CREATE_CIRCULAR_ARC

    def test_preview_after_second_press(self, machine):
        tool = machine.activate(ToolType.CREATE_CIRCULAR_ARC)
        press(machine, screen_of(1, 0))
        move(machine, screen_of(0, 0.5))
        assert tool.preview_line is not None

        press(machine, screen_of(-1, 0))
        assert tool.stage == "pick_through"
        assert tool.preview_arc is not None

        move(machine, screen_of(0, -1))
        assert np.allclose(tool.preview_arc[len(tool.preview_arc) // 2], [0.0, -1.0, 0.0])

    def test_escape_returns_to_select(self, machine, graph):
        machine.activate(ToolType.CREATE_CIRCULAR_ARC)
        press(machine, screen_of(1, 0))
        key(machine, Qt.Key.Key_Escape)

        assert machine.active_type == ToolType.SELECT
        assert graph.shapes == []


# ============== Select tool ==============

class TestSelectTool:
    """Test picking, deletion and view navigation."""

    def test_click_selects_shape(self, machine, graph, ctx):
        line = graph.add_line_segment((0, 0, 0), (2, 0, 0))
        press(machine, screen_of(1, 0))
        release(machine, screen_of(1, 0))

        assert ctx.selection.current_selection() == line.id

    def test_click_on_empty_space_selects_nothing(self, machine, graph, ctx):
        graph.add_line_segment((0, 0, 0), (2, 0, 0))
        press(machine, screen_of(5, 5))
        release(machine, screen_of(5, 5))

        assert ctx.selection.current_selection() is None

    def test_press_elsewhere_clears_selection(self, machine, graph, ctx):
        cube = graph.add_primitive("cube")
        ctx.selection.select(cube.id)

        press(machine, screen_of(6, 6))
        release(machine, screen_of(6, 6))

        assert ctx.selection.current_selection() is None

    def test_press_other_shape_switches_selection(self, machine, graph, ctx):
        cube = graph.add_primitive("cube", position=(5, 0, 0))
        line = graph.add_line_segment((0, 0, 0), (2, 0, 0))
        ctx.selection.select(cube.id)

        press(machine, screen_of(1, 0))
        release(machine, screen_of(1, 0))

        assert ctx.selection.current_selection() == line.id

    def test_delete_removes_selected(self, machine, graph, ctx):
        cube = graph.add_primitive("cube")
        ctx.selection.select(cube.id)

        key(machine, Qt.Key.Key_Delete)

        assert graph.get_shape_by_id(cube.id) is None
        assert ctx.selection.current_selection() is None

    def test_escape_clears_selection(self, machine, graph, ctx):
        cube = graph.add_primitive("cube")
        ctx.selection.select(cube.id)

        key(machine, Qt.Key.Key_Escape)

        assert ctx.selection.current_selection() is None

    def test_wheel_zoom(self, machine, camera):
        machine.handle_wheel(WheelEvent(120))
        assert camera.frustum_size == pytest.approx(18.0)

        machine.handle_wheel(WheelEvent(-120))
        assert camera.frustum_size == pytest.approx(19.8)

    def test_wheel_zoom_is_clamped(self, machine, camera):
        for _ in range(60):
            machine.handle_wheel(WheelEvent(120))
        assert camera.frustum_size == pytest.approx(1.0)

        for _ in range(80):
            machine.handle_wheel(WheelEvent(-120))
        assert camera.frustum_size == pytest.approx(100.0)

    def test_drag_pans_camera(self, machine, camera, ctx):
        drag(machine, (400, 300), (430, 300))

        assert np.allclose(camera.position, [-1.0, 0.0, 15.0])
        assert np.allclose(camera.look_at, [-1.0, 0.0, 0.0])
        assert ctx.selection.current_selection() is None

    def test_escape_resets_camera(self, machine, camera):
        drag(machine, (400, 300), (500, 250))

        key(machine, Qt.Key.Key_Escape)

        assert np.allclose(camera.position, [0.0, 0.0, 15.0])
        assert np.allclose(camera.look_at, [0.0, 0.0, 0.0])
        assert np.allclose(camera.up, [0.0, 1.0, 0.0])


class TestOrbit:
    """Test ctrl-drag camera orbit."""

    def test_zero_displacement_keeps_camera(self, machine, camera):
        press(machine, (100, 100), CTRL)
        move(machine, (100, 100), CTRL)

        assert np.allclose(camera.position, [0.0, 0.0, 15.0])
        assert np.allclose(camera.view_direction, [0.0, 0.0, -1.0])

    def test_horizontal_drag_changes_azimuth(self, machine, camera):
        press(machine, (400, 300), CTRL)
        move(machine, (500, 300), CTRL)

        assert np.allclose(camera.position, [15 * math.sin(-0.5), 0.0, 15 * math.cos(-0.5)])
        assert camera.orbit_angles() == pytest.approx((-0.5, 0.0))
        assert np.allclose(camera.look_at, [0.0, 0.0, 0.0])

    def test_elevation_is_clamped(self, machine, camera):
        press(machine, (400, 300), CTRL)
        move(machine, (400, 10300), CTRL)

        _, elevation = camera.orbit_angles()
        assert elevation == pytest.approx(math.pi / 2 - 0.1)
        assert np.linalg.norm(camera.position) == pytest.approx(15.0)


# ============== Drag edit tools ==============

class TestMoveAndRotate:
    """Test shape moves and rotations started from the select tool."""

    def test_move_primitive(self, machine, graph, ctx):
        cube = graph.add_primitive("cube")
        ctx.selection.select(cube.id)

        press(machine, (400, 300))
        assert machine.active_type == ToolType.MOVE_SHAPE
        move(machine, screen_of(1, 0))
        move(machine, screen_of(2, -1))
        release(machine, screen_of(2, -1))

        assert cube.transform.position == pytest.approx((2.0, -1.0, 0.0))
        assert machine.active_type == ToolType.SELECT

    def test_move_line_moves_vertices(self, machine, graph, ctx):
        """Vertex-defined shapes move through their vertices, not their transform."""
        line = graph.add_line_segment((0, 0, 0), (2, 0, 0))
        ctx.selection.select(line.id)

        drag(machine, screen_of(1, 0), screen_of(1, 1))

        start, end = line_points(graph, line)
        assert np.allclose(start, [0.0, 1.0, 0.0])
        assert np.allclose(end, [2.0, 1.0, 0.0])
        assert line.transform.position == (0.0, 0.0, 0.0)

    @pytest.mark.parametrize("modifier,target,expected", [
        (SHIFT, (450, 300), (0.0, 0.5, 0.0)),
        (ALT, (400, 320), (0.2, 0.0, 0.0)),
        (CTRL, (450, 300), (0.0, 0.0, -0.5)),
    ])
    def test_rotate_axis_by_modifier(self, machine, graph, ctx, modifier, target, expected):
        cube = graph.add_primitive("cube")
        ctx.selection.select(cube.id)

        press(machine, (400, 300), modifier)
        assert machine.active_type == ToolType.ROTATE_SHAPE
        move(machine, target, modifier)
        release(machine, target, modifier)

        assert cube.transform.rotation == pytest.approx(expected)

    def test_rotation_uses_total_displacement(self, machine, graph, ctx):
        cube = graph.add_primitive("cube", rotation=(0.0, 1.0, 0.0))
        ctx.selection.select(cube.id)

        press(machine, (400, 300), SHIFT)
        for x in range(401, 451):
            move(machine, (x, 300), SHIFT)

        assert cube.transform.rotation[1] == pytest.approx(1.5)

    def test_escape_ends_drag(self, machine, graph, ctx):
        cube = graph.add_primitive("cube")
        ctx.selection.select(cube.id)
        press(machine, (400, 300))

        key(machine, Qt.Key.Key_Escape)

        assert machine.active_type == ToolType.SELECT


class TestEndpointTools:
    """Test handle drags on lines and arcs."""

    def test_line_endpoint_drag(self, machine, graph, ctx):
        line = graph.add_line_segment((0, 0, 0), (2, 0, 0))
        ctx.selection.select(line.id)

        press(machine, screen_of(0, 0))
        assert machine.active_type == ToolType.MOVE_LINE_ENDPOINT
        move(machine, screen_of(0, 1))
        release(machine, screen_of(0, 1))

        start, end = line_points(graph, line)
        assert np.allclose(start, [0.0, 1.0, 0.0])
        assert np.allclose(end, [2.0, 0.0, 0.0])
        assert machine.active_type == ToolType.SELECT

    def test_line_endpoint_snaps_to_other_line(self, machine, graph, ctx):
        line = graph.add_line_segment((0, 0, 0), (2, 0, 0))
        graph.add_line_segment((0, 3, 0), (1, 3, 0))
        ctx.selection.select(line.id)

        drag(machine, screen_of(2, 0), screen_of(0.1, 2.9))

        _, end = line_points(graph, line)
        assert np.array_equal(end, [0.0, 3.0, 0.0])

    def test_arc_endpoint_keeps_radius(self, machine, graph, ctx):
        arc = graph.add_circular_arc((1, 0, 0), (-1, 0, 0), (0, 1, 0))
        ctx.selection.select(arc.id)

        press(machine, screen_of(1, 0))
        assert machine.active_type == ToolType.MOVE_ARC_ENDPOINT
        move(machine, screen_of(0, -1))
        release(machine, screen_of(0, -1))

        points = graph.arc_points(arc.id)
        assert np.allclose(points.start, [0.0, -1.0, 0.0])
        assert np.allclose(points.end, [-1.0, 0.0, 0.0])
        assert np.linalg.norm(points.start - points.center) == pytest.approx(1.0)
        assert np.linalg.norm(points.end - points.center) == pytest.approx(1.0)

    def test_arc_endpoint_ctrl_slides(self, machine, graph, ctx):
        arc = graph.add_circular_arc((1, 0, 0), (-1, 0, 0), (0, 1, 0))
        ctx.selection.select(arc.id)

        press(machine, screen_of(1, 0))
        move(machine, screen_of(2, 2), CTRL)
        release(machine, screen_of(2, 2), CTRL)

        points = graph.arc_points(arc.id)
        assert np.allclose(points.start, [math.sqrt(0.5), math.sqrt(0.5), 0.0])
        assert np.allclose(points.center, [0.0, 0.0, 0.0])
        assert np.allclose(points.end, [-1.0, 0.0, 0.0])

    def test_arc_center_translates_arc(self, machine, graph, ctx):
        arc = graph.add_circular_arc((1, 0, 0), (-1, 0, 0), (0, 1, 0))
        ctx.selection.select(arc.id)

        press(machine, screen_of(0, 0))
        assert machine.active_type == ToolType.MOVE_ARC
        move(machine, screen_of(2, 0))
        release(machine, screen_of(2, 0))

        points = graph.arc_points(arc.id)
        assert np.allclose(points.center, [2.0, 0.0, 0.0])
        assert np.allclose(points.start, [3.0, 0.0, 0.0])
        assert np.allclose(points.end, [1.0, 0.0, 0.0])

    def test_arc_ctrl_drag_scales_radius(self, machine, graph, ctx):
        arc = graph.add_circular_arc((1, 0, 0), (-1, 0, 0), (0, 1, 0))
        ctx.selection.select(arc.id)

        press(machine, screen_of(0, 1), CTRL)
        assert machine.active_type == ToolType.MOVE_ARC
        move(machine, screen_of(0, 1.5), CTRL)
        move(machine, screen_of(0, 2), CTRL)
        release(machine, screen_of(0, 2), CTRL)

        points = graph.arc_points(arc.id)
        assert np.allclose(points.center, [0.0, 0.0, 0.0])
        assert np.allclose(points.start, [2.0, 0.0, 0.0])
        assert np.allclose(points.end, [-2.0, 0.0, 0.0])

    def test_endpoint_tool_only_accepts_lines(self, machine, graph):
        cube = graph.add_primitive("cube")
        tool = machine.activate(ToolType.MOVE_LINE_ENDPOINT)
        tool.arm(cube.id, "start")

        press(machine, (400, 300))

        assert machine.active_type == ToolType.SELECT
        assert not isinstance(cube.geometry, LineSegment)
