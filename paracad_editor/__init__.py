"""ParaCAD editor core: parametric geometry graph, arc solving, snapping and tools."""

__version__ = "0.1.0"

from .config import EditorConfig, load_config
from .context import EditorContext
from .graph import DirtySnapshot, GeometryGraph
from .model import PrimitiveKind, Shape
from .tool_manager import ToolStateMachine
from .tools import ToolType

__all__ = [
    "__version__",
    "EditorConfig",
    "load_config",
    "EditorContext",
    "DirtySnapshot",
    "GeometryGraph",
    "PrimitiveKind",
    "Shape",
    "ToolStateMachine",
    "ToolType",
]
