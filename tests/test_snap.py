"""
Unit tests for SnapIndex.
"""

import numpy as np
import pytest

from paracad_editor.snap import SnapIndex, SnapType


@pytest.fixture
def snap(graph) -> SnapIndex:
    return SnapIndex(graph, threshold=0.5)


class TestCollectSnapPoints:
    """Test candidate collection."""

    def test_line_candidates(self, graph, snap):
        line = graph.add_line_segment((0, 0, 0), (2, 0, 0))

        points = snap.collect_snap_points()

        assert [p.type for p in points] == [SnapType.ENDPOINT, SnapType.ENDPOINT, SnapType.MIDPOINT]
        assert all(p.source_shape_id == line.id for p in points)
        assert np.allclose(points[2].position, [1.0, 0.0, 0.0])

    def test_arc_candidates(self, graph, snap):
        graph.add_circular_arc((1, 0, 0), (-1, 0, 0), (0, 1, 0))

        types = [p.type for p in snap.collect_snap_points()]

        assert types == [SnapType.ARC_CENTER, SnapType.ENDPOINT, SnapType.ENDPOINT, SnapType.MIDPOINT]

    def test_primitives_and_polygons_have_no_candidates(self, graph, snap):
        graph.add_primitive("cube")
        graph.add_triangle([(0, 0), (1, 0), (0, 1)])

        assert snap.collect_snap_points() == []

    def test_exclude_shape(self, graph, snap):
        line = graph.add_line_segment((0, 0, 0), (2, 0, 0))
        other = graph.add_line_segment((0, 3, 0), (2, 3, 0))

        points = snap.collect_snap_points(exclude_shape_id=line.id)

        assert {p.source_shape_id for p in points} == {other.id}


class TestFindSnapPoint:
    """Test nearest-within-threshold snapping."""

    def test_snaps_to_endpoint(self, graph, snap):
        graph.add_line_segment((0, 0, 0), (2, 0, 0))

        result = snap.find_snap_point((0.1, 0.1, 0.0))

        assert result.snapped
        assert result.snap_point.type == SnapType.ENDPOINT
        assert np.array_equal(result.position, [0.0, 0.0, 0.0])

    def test_snaps_to_midpoint(self, graph, snap):
        graph.add_line_segment((0, 0, 0), (2, 0, 0))

        result = snap.find_snap_point((1.2, 0.0, 0.0))

        assert result.snap_point.type == SnapType.MIDPOINT
        assert np.allclose(result.position, [1.0, 0.0, 0.0])

    def test_outside_threshold_returns_input(self, graph, snap):
        graph.add_line_segment((0, 0, 0), (2, 0, 0))

        result = snap.find_snap_point((5.0, 5.0, 0.0))

        assert not result.snapped
        assert np.array_equal(result.position, [5.0, 5.0, 0.0])
        assert not snap.visual_state.active

    def test_threshold_is_strict(self, graph, snap):
        """A candidate exactly at the threshold distance does not snap."""
        graph.add_line_segment((0, 0, 0), (2, 0, 0))

        result = snap.find_snap_point((0.5, 0.0, 0.0))

        assert not result.snapped

    def test_returned_position_is_a_copy(self, graph, snap):
        line = graph.add_line_segment((0, 0, 0), (2, 0, 0))
        result = snap.find_snap_point((0.1, 0.0, 0.0))
        result.position[0] = 42.0

        assert np.allclose(graph.vertex_position(line.geometry.start_vertex_id), [0.0, 0.0, 0.0])

    def test_visual_state_tracks_last_snap(self, graph, snap):
        graph.add_circular_arc((1, 0, 0), (-1, 0, 0), (0, 1, 0))

        assert snap.is_snapped((0.05, 0.05, 0.0))
        assert snap.visual_state.type == SnapType.ARC_CENTER

        snap.reset_visual_state()
        assert not snap.visual_state.active

    def test_excluded_shape_is_ignored(self, graph, snap):
        line = graph.add_line_segment((0, 0, 0), (2, 0, 0))

        assert not snap.is_snapped((0.1, 0.0, 0.0), exclude_shape_id=line.id)
