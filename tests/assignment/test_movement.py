"""Tests for movement accounting."""

from segmentplacement.assignment.movement import (
    MovementSummary,
    count_moves_per_instance,
    summarize_movement,
)
from segmentplacement.assignment.utils import count_segments_per_instance

ON = "ONLINE"


class TestCountMovesPerInstance:
    """Test count_moves_per_instance."""

    def test_single_segment_move(self):
        """Test moving a replica from A to C."""
        old = {"s1": {"A": ON, "B": ON}}
        new = {"s1": {"B": ON, "C": ON}}

        moves = count_moves_per_instance(old, new)

        assert moves == {"C": 1}
        assert moves.get("A", 0) == 0
        assert "B" not in moves

    def test_multiple_segments(self):
        """Test moves are summed per instance."""
        old = {
            "s1": {"A": ON},
            "s2": {"A": ON},
            "s3": {"B": ON},
        }
        new = {
            "s1": {"C": ON},
            "s2": {"C": ON},
            "s3": {"B": ON, "A": ON},
        }

        assert count_moves_per_instance(old, new) == {"C": 2, "A": 1}

    def test_added_and_removed_segments_ignored(self):
        """Test segments in only one assignment are not attributed."""
        old = {"s1": {"A": ON}, "gone": {"A": ON}}
        new = {"s1": {"A": ON}, "added": {"B": ON}}

        assert count_moves_per_instance(old, new) == {}

    def test_state_change_is_not_a_move(self):
        """Test changing only the state label is not a move."""
        old = {"s1": {"A": "OFFLINE"}}
        new = {"s1": {"A": ON}}

        assert count_moves_per_instance(old, new) == {}


class TestSummarizeMovement:
    """Test summarize_movement."""

    def test_summary(self):
        """Test summary fields."""
        old = {
            "s1": {"A": ON, "B": ON},
            "s2": {"A": ON, "B": ON},
            "gone": {"A": ON},
        }
        new = {
            "s1": {"B": ON, "C": ON},
            "s2": {"A": ON, "B": ON},
            "added": {"C": ON},
        }

        summary = summarize_movement(old, new)

        assert summary.moves_per_instance == {"C": 1}
        assert summary.total_moves == 1
        assert summary.segments_moved == 1
        assert summary.segments_added == 1
        assert summary.segments_removed == 1
        assert summary.segments_per_instance == {"A": 1, "B": 2, "C": 2}

    def test_no_change(self):
        """Test identical assignments."""
        assignment = {"s1": {"A": ON}}

        assert summarize_movement(assignment, assignment) == MovementSummary(
            segments_per_instance={"A": 1},
        )

    def test_to_dict(self):
        """Test dictionary form."""
        summary = summarize_movement({"s1": {"A": ON}}, {"s1": {"B": ON}})

        assert summary.to_dict() == {
            "moves_per_instance": {"B": 1},
            "total_moves": 1,
            "segments_moved": 1,
            "segments_added": 0,
            "segments_removed": 0,
            "segments_per_instance": {"B": 1},
        }


class TestCountSegmentsPerInstance:
    """Test count_segments_per_instance."""

    def test_all_instances(self):
        """Test counting every instance."""
        assignment = {"s1": {"A": ON, "B": ON}, "s2": {"A": ON}}

        assert count_segments_per_instance(assignment) == {"A": 2, "B": 1}

    def test_restricted_instances(self):
        """Test counting a fixed instance list."""
        assignment = {"s1": {"A": ON, "B": ON}, "s2": {"A": ON}}

        assert count_segments_per_instance(assignment, ["A", "C"]) == {"A": 2, "C": 0}
