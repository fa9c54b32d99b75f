"""
Segment movement accounting.

Reporting only: these helpers describe the difference between two
assignments and never feed back into placement.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping

from segmentplacement.assignment.utils import count_segments_per_instance


def count_moves_per_instance(
    old_assignment: Mapping[str, Mapping[str, str]],
    new_assignment: Mapping[str, Mapping[str, str]],
) -> Dict[str, int]:
    """
    Count segments each instance has to receive.

    Only segments present in both assignments are compared; an instance in
    the new instance set but not the old one receives one move. Added and
    removed segments are not attributed to any instance.

    Args:
        old_assignment: Assignment before rebalance
        new_assignment: Assignment after rebalance

    Returns:
        Instance -> number of incoming segments (instances with no incoming
        segment are absent)
    """
    moves: Dict[str, int] = {}
    for segment, new_instance_state_map in new_assignment.items():
        old_instance_state_map = old_assignment.get(segment)
        if old_instance_state_map is None:
            continue
        for instance in new_instance_state_map:
            if instance not in old_instance_state_map:
                moves[instance] = moves.get(instance, 0) + 1
    return moves


@dataclass
class MovementSummary:
    """
    Summary of the movement implied by a rebalance.

    Attributes:
        moves_per_instance: Instance -> incoming segments
        total_moves: Sum of incoming segments
        segments_moved: Segments whose instance set changed
        segments_added: Segments only in the new assignment
        segments_removed: Segments only in the old assignment
        segments_per_instance: Instance -> segments hosted after rebalance
    """
    moves_per_instance: Dict[str, int] = field(default_factory=dict)
    total_moves: int = 0
    segments_moved: int = 0
    segments_added: int = 0
    segments_removed: int = 0
    segments_per_instance: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "moves_per_instance": dict(self.moves_per_instance),
            "total_moves": self.total_moves,
            "segments_moved": self.segments_moved,
            "segments_added": self.segments_added,
            "segments_removed": self.segments_removed,
            "segments_per_instance": dict(self.segments_per_instance),
        }


def summarize_movement(
    old_assignment: Mapping[str, Mapping[str, str]],
    new_assignment: Mapping[str, Mapping[str, str]],
) -> MovementSummary:
    """Summarize the movement between two assignments."""
    moves = count_moves_per_instance(old_assignment, new_assignment)

    segments_moved = sum(
        1
        for segment, instance_state_map in new_assignment.items()
        if segment in old_assignment
        and set(instance_state_map) != set(old_assignment[segment])
    )

    return MovementSummary(
        moves_per_instance=moves,
        total_moves=sum(moves.values()),
        segments_moved=segments_moved,
        segments_added=sum(1 for s in new_assignment if s not in old_assignment),
        segments_removed=sum(1 for s in old_assignment if s not in new_assignment),
        segments_per_instance=count_segments_per_instance(new_assignment),
    )
