"""Single-shape selection with toggle semantics."""
from __future__ import annotations

from typing import Optional

from .graph import GeometryGraph
from .model import Shape


class SelectionController:
    def __init__(self, graph: GeometryGraph):
        self.graph = graph
        self._selected_id: Optional[str] = None

    def select(self, shape_id: Optional[str]) -> Optional[str]:
        """Select ``shape_id``; selecting the current selection again clears it.

        Both the previous and the new shape are marked selection-dirty. An id
        with no shape in the graph is stored as ``None`` rather than kept as a
        dangling selection. Returns the resulting selection.
        """
        previous = self._selected_id
        if previous is not None:
            self.graph.mark_selection_dirty(previous)
        if shape_id is not None and shape_id == previous:
            self._selected_id = None
            return None
        if shape_id is not None and self.graph.get_shape_by_id(shape_id) is None:
            shape_id = None
        if shape_id is not None:
            self.graph.mark_selection_dirty(shape_id)
        self._selected_id = shape_id
        return shape_id

    def clear(self) -> None:
        if self._selected_id is not None:
            self.graph.mark_selection_dirty(self._selected_id)
        self._selected_id = None

    def current_selection(self) -> Optional[str]:
        if self._selected_id is not None and self.graph.get_shape_by_id(self._selected_id) is None:
            return None
        return self._selected_id

    def current_selected_shape(self) -> Optional[Shape]:
        return self.graph.get_shape_by_id(self.current_selection())


__all__ = ["SelectionController"]
