"""Editor context: every collaborator a tool needs, wired once at startup."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from .camera import Camera, OrthographicCamera
from .config import EditorConfig
from .graph import GeometryGraph
from .hit_test import HitTester
from .selection import SelectionController
from .snap import SnapIndex


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass
class EditorContext:
    graph: GeometryGraph
    selection: SelectionController
    snap: SnapIndex
    hit_tester: HitTester
    camera: Camera
    config: EditorConfig = field(default_factory=EditorConfig)
    clock: Callable[[], float] = monotonic_ms

    @classmethod
    def create(
        cls,
        config: Optional[EditorConfig] = None,
        camera: Optional[Camera] = None,
        clock: Optional[Callable[[], float]] = None,
        graph: Optional[GeometryGraph] = None,
    ) -> "EditorContext":
        config = config or EditorConfig()
        graph = graph or GeometryGraph()
        return cls(
            graph=graph,
            selection=SelectionController(graph),
            snap=SnapIndex(graph, config.snap_threshold),
            hit_tester=HitTester(graph, config),
            camera=camera or OrthographicCamera(),
            config=config,
            clock=clock or monotonic_ms,
        )


__all__ = ["monotonic_ms", "EditorContext"]
