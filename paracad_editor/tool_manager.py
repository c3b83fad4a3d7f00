"""Tool state machine: one active tool, explicit dispatch table."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Type

from .context import EditorContext
from .events import KeyEvent, PointerEvent, WheelEvent
from .tools import (
    CreateCircularArcTool,
    CreateLineSegmentTool,
    CreatePrimitive3DTool,
    MoveArcEndpointTool,
    MoveArcTool,
    MoveLineEndpointTool,
    MoveShapeTool,
    RotateShapeTool,
    SelectTool,
    ToolBase,
    ToolType,
)

logger = logging.getLogger(__name__)

TOOL_CLASSES: Dict[ToolType, Type[ToolBase]] = {
    ToolType.SELECT: SelectTool,
    ToolType.MOVE_SHAPE: MoveShapeTool,
    ToolType.ROTATE_SHAPE: RotateShapeTool,
    ToolType.MOVE_LINE_ENDPOINT: MoveLineEndpointTool,
    ToolType.MOVE_ARC_ENDPOINT: MoveArcEndpointTool,
    ToolType.MOVE_ARC: MoveArcTool,
    ToolType.CREATE_LINE_SEGMENT: CreateLineSegmentTool,
    ToolType.CREATE_PRIMITIVE_3D: CreatePrimitive3DTool,
    ToolType.CREATE_CIRCULAR_ARC: CreateCircularArcTool,
}


class ToolStateMachine:
    """Routes input events to exactly one active tool."""

    def __init__(self, ctx: EditorContext):
        self.ctx = ctx
        self.tools: Dict[ToolType, ToolBase] = {tool_type: cls(ctx, self) for tool_type, cls in TOOL_CLASSES.items()}
        self._active: Optional[ToolBase] = None
        self._dispatching = False
        self.activate(ToolType.SELECT)

    @property
    def active_tool(self) -> ToolBase:
        assert self._active is not None
        return self._active

    @property
    def active_type(self) -> ToolType:
        return self.active_tool.tool_type

    def get_tool(self, tool_type: ToolType | str) -> ToolBase:
        try:
            return self.tools[ToolType(tool_type)]
        except ValueError as exc:
            raise ValueError(f"Unknown tool type '{tool_type}'") from exc

    def activate(self, tool_type: ToolType | str) -> ToolBase:
        """Deactivate the current tool and make ``tool_type`` active."""
        tool = self.get_tool(tool_type)
        if self._active is not None:
            self._active.deactivate()
        self._active = tool
        tool.activate()
        logger.debug("Active tool: %s", tool.tool_type.value)
        return tool

    # ------------------------------------------------------------------
    @contextmanager
    def _dispatch(self) -> Iterator[ToolBase]:
        if self._dispatching:
            raise RuntimeError("Re-entrant event dispatch; tools must not feed events back into the machine")
        self._dispatching = True
        try:
            yield self.active_tool
        finally:
            self._dispatching = False

    def handle_mouse_press(self, event: PointerEvent) -> None:
        with self._dispatch() as tool:
            tool.mouse_press(event)

    def handle_mouse_move(self, event: PointerEvent) -> None:
        with self._dispatch() as tool:
            tool.mouse_move(event)

    def handle_mouse_release(self, event: PointerEvent) -> None:
        with self._dispatch() as tool:
            tool.mouse_release(event)

    def handle_wheel(self, event: WheelEvent) -> None:
        with self._dispatch() as tool:
            tool.wheel(event)

    def handle_key_press(self, event: KeyEvent) -> None:
        with self._dispatch() as tool:
            tool.key_press(event)


__all__ = ["TOOL_CLASSES", "ToolStateMachine", "ToolType"]
