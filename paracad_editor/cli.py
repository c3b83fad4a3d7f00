"""Command line interface for the ParaCAD editor core."""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List

from . import arc_solver
from .config import load_config
from .context import EditorContext
from .events import (
    KeyEvent,
    PointerEvent,
    WheelEvent,
    button_from_name,
    key_from_name,
    modifiers_from_names,
)
from .graph import GeometryGraph
from .tool_manager import ToolStateMachine
from .tools import CreatePrimitive3DTool

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> None:
    """Configure console logging for the CLI."""
    level = logging.DEBUG if debug else logging.INFO
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%H:%M:%S")
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)
    logger.debug("Logging initialized at %s level", "DEBUG" if debug else "INFO")


class ReplayClock:
    """Clock advanced by the ``t`` field (milliseconds) of replayed events."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _pointer(step: Dict[str, Any]) -> PointerEvent:
    return PointerEvent(
        x=float(step["x"]),
        y=float(step["y"]),
        button=button_from_name(step.get("button", "left")),
        modifiers=modifiers_from_names(step.get("modifiers", [])),
    )


def replay_events(machine: ToolStateMachine, steps: Iterable[Dict[str, Any]], clock: ReplayClock) -> None:
    """Feed recorded steps through ``machine``.

    Each step is an object with a ``type`` of ``tool``, ``press``, ``move``,
    ``release``, ``wheel`` or ``key``.
    """
    for index, step in enumerate(steps):
        if not isinstance(step, dict) or "type" not in step:
            raise ValueError(f"Step {index} must be an object with a 'type'")
        if "t" in step:
            clock.now = float(step["t"])
        kind = step["type"]
        if kind == "tool":
            tool = machine.activate(step["tool"])
            if isinstance(tool, CreatePrimitive3DTool) and "kind" in step:
                tool.set_kind(step["kind"])
        elif kind == "press":
            machine.handle_mouse_press(_pointer(step))
        elif kind == "move":
            machine.handle_mouse_move(_pointer(step))
        elif kind == "release":
            machine.handle_mouse_release(_pointer(step))
        elif kind == "wheel":
            machine.handle_wheel(WheelEvent(delta_y=float(step["delta"]), x=float(step.get("x", 0.0)), y=float(step.get("y", 0.0))))
        elif kind == "key":
            machine.handle_key_press(
                KeyEvent(key=key_from_name(step["key"]), modifiers=modifiers_from_names(step.get("modifiers", [])))
            )
        else:
            raise ValueError(f"Step {index} has unknown type '{kind}'")


def summarize_graph(graph: GeometryGraph) -> List[Dict[str, Any]]:
    summary: List[Dict[str, Any]] = []
    for shape in graph.shapes:
        entry: Dict[str, Any] = {"id": shape.id, "type": shape.type_name}
        if shape.is_vertex_defined:
            points = graph.vertex_positions(graph.vertex_ids_of(shape)) or []
            entry["vertices"] = [[round(float(v), 6) for v in p] for p in points]
        else:
            entry["position"] = [round(float(v), 6) for v in shape.transform.position]
            entry["rotation"] = [round(float(v), 6) for v in shape.transform.rotation]
            entry["scale"] = [round(float(v), 6) for v in shape.transform.scale]
        summary.append(entry)
    return summary


def _cmd_fit_arc(args: argparse.Namespace) -> None:
    c = args.coords
    fit = arc_solver.compute_center_and_orientation((c[0], c[1]), (c[2], c[3]), (c[4], c[5]))
    direction = "clockwise" if fit.clockwise else "counter-clockwise"
    print(f"center=({fit.center[0]:.6f}, {fit.center[1]:.6f}) radius={fit.radius:.6f} {direction}")


def _cmd_replay(args: argparse.Namespace) -> None:
    path = Path(args.file)
    with path.open("r", encoding="utf-8") as handle:
        steps = json.load(handle)
    if not isinstance(steps, list):
        raise ValueError("Replay file must contain a list of steps")
    clock = ReplayClock()
    ctx = EditorContext.create(config=load_config(args.config), clock=clock)
    machine = ToolStateMachine(ctx)
    replay_events(machine, steps, clock)
    summary = summarize_graph(ctx.graph)
    logger.info("Replayed %d steps into %d shapes", len(steps), len(summary))
    if args.json:
        print(json.dumps(summary, indent=2))
        return
    for entry in summary:
        detail = entry.get("vertices", entry.get("position"))
        print(f"{entry['id']} {entry['type']} {detail}")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="paracad-editor",
        description="ParaCAD editor core command line interface",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", help="Path to an editor config JSON file")
    sub = parser.add_subparsers(dest="command", required=True)

    fit = sub.add_parser("fit-arc", help="Fit the circle through start, on-arc and end points")
    fit.add_argument("coords", nargs=6, type=float, metavar=("X0", "Y0", "X1", "Y1", "X2", "Y2"))
    fit.set_defaults(func=_cmd_fit_arc)

    replay = sub.add_parser("replay", help="Replay recorded input events headlessly and print the shapes")
    replay.add_argument("file", help="JSON file with a list of event steps")
    replay.add_argument("--json", action="store_true", help="Print the shape summary as JSON")
    replay.set_defaults(func=_cmd_replay)

    return parser


def main(argv: Iterable[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.debug)
    try:
        args.func(args)
    except (OSError, ValueError, KeyError) as exc:
        parser.error(str(exc))
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
