"""
Pytest configuration and shared fixtures for the ParaCAD editor tests.

The default camera sits at (0, 0, 15) looking at the origin with a frustum of
20 world units over a 800x600 viewport, so world (x, y, 0) appears at screen
(400 + 30x, 300 - 30y).
"""

import pytest

from paracad_editor.camera import OrthographicCamera
from paracad_editor.config import EditorConfig
from paracad_editor.context import EditorContext
from paracad_editor.graph import GeometryGraph
from paracad_editor.tool_manager import ToolStateMachine

PIXELS_PER_UNIT = 30.0


def screen_of(x: float, y: float) -> tuple:
    """Screen position of world point (x, y, 0) under the default camera."""
    return (400.0 + PIXELS_PER_UNIT * x, 300.0 - PIXELS_PER_UNIT * y)


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


# ============== Model Fixtures ==============

@pytest.fixture
def graph() -> GeometryGraph:
    """Create an empty geometry graph."""
    return GeometryGraph()


@pytest.fixture
def config() -> EditorConfig:
    """Default editor configuration."""
    return EditorConfig()


@pytest.fixture
def camera() -> OrthographicCamera:
    """Front-facing orthographic camera at the home pose."""
    return OrthographicCamera()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============== Editor Fixtures ==============

@pytest.fixture
def ctx(graph, config, camera, clock) -> EditorContext:
    """Editor context wired around the shared graph, camera and fake clock."""
    return EditorContext.create(config=config, camera=camera, clock=clock, graph=graph)


@pytest.fixture
def machine(ctx) -> ToolStateMachine:
    """Tool state machine starting in the select tool."""
    return ToolStateMachine(ctx)
