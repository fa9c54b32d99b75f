"""
Segment assignment and table rebalance.

Chooses instances for new segments and computes target assignments for
tables, including tiered tables and dimension tables.
"""

from segmentplacement.assignment.movement import (
    MovementSummary,
    count_moves_per_instance,
    summarize_movement,
)
from segmentplacement.assignment.offline import OfflineSegmentAssignment, RebalanceConfig
from segmentplacement.assignment.selector import select_strategies
from segmentplacement.assignment.strategy import (
    AssignmentStrategy,
    ConfigurationStateError,
    StrategyKind,
    assign_segment,
    parse_strategy_kind,
    reassign_all,
)
from segmentplacement.assignment.tier_router import route_tiers, split_by_tier
from segmentplacement.assignment.utils import (
    SegmentAssignment,
    SegmentState,
    count_segments_per_instance,
)

__all__ = [
    # Orchestration
    "OfflineSegmentAssignment",
    "RebalanceConfig",
    # Strategies
    "AssignmentStrategy",
    "StrategyKind",
    "ConfigurationStateError",
    "assign_segment",
    "reassign_all",
    "parse_strategy_kind",
    "select_strategies",
    # Tiers
    "route_tiers",
    "split_by_tier",
    # Movement
    "MovementSummary",
    "count_moves_per_instance",
    "summarize_movement",
    # Assignment maps
    "SegmentAssignment",
    "SegmentState",
    "count_segments_per_instance",
]
