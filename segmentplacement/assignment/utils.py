"""
Shared helpers for segment assignment.

A segment assignment (placement map) maps segment name to a map of
instance name -> state label. Labels are opaque to placement; replicas that
stay on an instance keep theirs and new replicas start ONLINE.
"""

from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Sequence

SegmentAssignment = Dict[str, Dict[str, str]]


class SegmentState(str, Enum):
    """State label given to newly placed replicas."""

    ONLINE = "ONLINE"


def get_instance_state_map(
    instances: Sequence[str],
    state: str = SegmentState.ONLINE.value,
    previous: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Build the instance state map for a segment.

    Instances already present in ``previous`` keep their label.
    """
    previous = previous or {}
    return {instance: previous.get(instance, state) for instance in instances}


def count_segments_per_instance(
    assignment: Mapping[str, Mapping[str, str]],
    instances: Optional[Iterable[str]] = None,
) -> Dict[str, int]:
    """
    Count segments hosted by each instance.

    Args:
        assignment: Segment assignment
        instances: If given, only these instances are counted and every one
            of them appears in the result (possibly with zero)

    Returns:
        Instance -> number of segments
    """
    if instances is not None:
        counts = {instance: 0 for instance in instances}
        for instance_state_map in assignment.values():
            for instance in instance_state_map:
                if instance in counts:
                    counts[instance] += 1
        return counts

    counts: Dict[str, int] = {}
    for instance_state_map in assignment.values():
        for instance in instance_state_map:
            counts[instance] = counts.get(instance, 0) + 1
    return counts


def copy_assignment(assignment: Mapping[str, Mapping[str, str]]) -> SegmentAssignment:
    """Deep copy an assignment so callers never share inner maps."""
    return {segment: dict(states) for segment, states in assignment.items()}
