"""
Tier routing for rebalance.

Splits a table's current assignment by tier, places each tier's segments on
the tier's own instance pool and hands back whatever no tier claimed.
"""

from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from segmentplacement.assignment.strategy import (
    AssignmentStrategy,
    ConfigurationStateError,
    reassign_all,
)
from segmentplacement.assignment.utils import SegmentAssignment, copy_assignment
from segmentplacement.core.instance.pool import InstancePool, PoolRole
from segmentplacement.core.tier.tier import Tier
from segmentplacement.utils.logging import get_logger

logger = get_logger(__name__)


def split_by_tier(
    current_assignment: Mapping[str, Mapping[str, str]],
    sorted_tiers: Sequence[Tier],
) -> Tuple[Dict[str, SegmentAssignment], SegmentAssignment]:
    """
    Split an assignment into per-tier subsets and a residual.

    Each segment goes to the first tier (in priority order) that matches.

    Returns:
        (tier name -> segments claimed, in tier order without empty tiers;
        unclaimed segments)
    """
    tier_assignments: Dict[str, SegmentAssignment] = {}
    residual: SegmentAssignment = {}

    for segment, instance_state_map in current_assignment.items():
        for tier in sorted_tiers:
            if tier.matches(segment):
                tier_assignments.setdefault(tier.name, {})[segment] = dict(instance_state_map)
                break
        else:
            residual[segment] = dict(instance_state_map)

    order = {tier.name: i for i, tier in enumerate(sorted_tiers)}
    ordered = {name: tier_assignments[name] for name in sorted(tier_assignments, key=order.__getitem__)}
    return ordered, residual


def route_tiers(
    table_name: str,
    current_assignment: Mapping[str, Mapping[str, str]],
    sorted_tiers: Optional[Sequence[Tier]],
    tier_instance_pools: Optional[Mapping[str, InstancePool]],
    bootstrap: bool,
    strategy: AssignmentStrategy,
    role: PoolRole,
) -> Tuple[List[SegmentAssignment], SegmentAssignment]:
    """
    Rebalance the tiered part of a table.

    Args:
        table_name: Table name (for errors and logs)
        current_assignment: Current table assignment
        sorted_tiers: Tiers in priority order, or None
        tier_instance_pools: Tier name -> instance pool
        bootstrap: Recompute tier segments from scratch
        strategy: Strategy used for every tier
        role: Pool role of the base strategy

    Returns:
        (new assignment per non-empty tier, residual current assignment)

    Raises:
        ConfigurationStateError: If a tier holding segments has no pool
    """
    if not sorted_tiers:
        return [], copy_assignment(current_assignment)

    tier_current_assignments, residual = split_by_tier(current_assignment, sorted_tiers)
    tier_instance_pools = tier_instance_pools or {}

    for tier in sorted_tiers:
        if tier.name not in tier_current_assignments:
            logger.warning("Skipping tier with no segments", table=table_name, tier=tier.name)

    new_tier_assignments = []
    for tier_name, tier_current_assignment in tier_current_assignments.items():
        tier_pool = tier_instance_pools.get(tier_name)
        if tier_pool is None:
            raise ConfigurationStateError(
                f"Failed to find instance pool for tier: {tier_name} of table: {table_name}"
            )

        logger.info(
            "Rebalancing tier",
            table=table_name,
            tier=tier_name,
            pool=tier_pool.name,
            segments=len(tier_current_assignment),
            bootstrap=bootstrap,
        )

        new_tier_assignments.append(
            reassign_all(strategy, tier_current_assignment, tier_pool, role, bootstrap)
        )

    return new_tier_assignments, residual
