"""
Segment assignment strategies.

A strategy is a plain value tagged with its kind. ``assign_segment`` and
``reassign_all`` switch on the tag:

- balanced: spread ``replication`` replicas over a single instance list,
  always preferring the least loaded instances
- replica_group: one replica per replica group, at the same position in
  every group, inside the segment's partition
- dimension_table: every segment on every instance, replication ignored

Incremental reassignment only touches segments that no longer conform to
the strategy (instance left the pool, replication changed). Bootstrap
reassignment ignores the current placement and recomputes every segment.
"""

import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from segmentplacement.assignment.utils import (
    SegmentAssignment,
    count_segments_per_instance,
    get_instance_state_map,
)
from segmentplacement.core.instance.pool import InstancePool, PoolRole
from segmentplacement.utils.logging import get_logger

logger = get_logger(__name__)

PartitionIdFn = Callable[[str], int]


class ConfigurationStateError(Exception):
    """Assignment inputs are missing or inconsistent; not retryable."""
    pass


class StrategyKind(str, Enum):
    """Segment assignment strategy variants."""

    BALANCED = "balanced"
    REPLICA_GROUP = "replica_group"
    DIMENSION_TABLE = "dimension_table"


def parse_strategy_kind(name: str) -> StrategyKind:
    """
    Resolve a strategy name (case-insensitive).

    Raises:
        ValueError: If the name is unknown
    """
    try:
        return StrategyKind(name.strip().lower())
    except ValueError:
        raise ValueError(f"Unknown assignment strategy: {name}") from None


def default_partition_id(segment_name: str) -> int:
    """Stable partition id derived from the segment name."""
    return int(hashlib.md5(segment_name.encode("utf-8")).hexdigest(), 16)


@dataclass(frozen=True)
class AssignmentStrategy:
    """
    Strategy for one table role.

    Attributes:
        kind: Strategy variant
        table_name: Table the strategy was built for (used in errors and logs)
        replication: Replicas per segment (balanced, replica_group)
        dimension_instances: Tenant servers used when a dimension table has
            no instance pool
        partition_id_fn: Segment -> partition id (replica_group). Defaults to
            a hash of the segment name.
    """
    kind: StrategyKind
    table_name: str
    replication: int = 1
    dimension_instances: Tuple[str, ...] = ()
    partition_id_fn: Optional[PartitionIdFn] = None

    @property
    def is_dimension_table(self) -> bool:
        return self.kind == StrategyKind.DIMENSION_TABLE


def assign_segment(
    strategy: AssignmentStrategy,
    segment_name: str,
    current_assignment: Mapping[str, Mapping[str, str]],
    pool: Optional[InstancePool],
    role: PoolRole,
) -> List[str]:
    """
    Choose the instances for one segment.

    Args:
        strategy: Strategy to apply
        segment_name: Segment to place
        current_assignment: Current table assignment (used for load)
        pool: Instance pool for the role; may be None for dimension tables
        role: Pool role

    Returns:
        Ordered list of instances

    Raises:
        ConfigurationStateError: If the pool is missing or unusable
    """
    if strategy.kind == StrategyKind.DIMENSION_TABLE:
        return _dimension_instances(strategy, pool)

    pool = _require_pool(strategy, pool, role)

    if strategy.kind == StrategyKind.REPLICA_GROUP:
        return _assign_with_replica_group(strategy, segment_name, current_assignment, pool)

    return _assign_balanced(strategy, current_assignment, pool)


def reassign_all(
    strategy: AssignmentStrategy,
    current_assignment: Mapping[str, Mapping[str, str]],
    pool: Optional[InstancePool],
    role: PoolRole,
    bootstrap: bool = False,
) -> SegmentAssignment:
    """
    Compute a new assignment for every segment of ``current_assignment``.

    Args:
        strategy: Strategy to apply
        current_assignment: Segments to place and their current instances
        pool: Instance pool; may be None for dimension tables
        role: Pool role
        bootstrap: Recompute every segment from scratch

    Returns:
        New assignment with the same segment keys
    """
    if bootstrap:
        return _bootstrap_segments(strategy, current_assignment, pool, role)

    if strategy.kind == StrategyKind.DIMENSION_TABLE:
        return _reassign_dimension_table(strategy, current_assignment, pool)

    pool = _require_pool(strategy, pool, role)

    if strategy.kind == StrategyKind.REPLICA_GROUP:
        return _reassign_with_replica_group(strategy, current_assignment, pool)

    return _reassign_balanced(strategy, current_assignment, pool)


def _require_pool(
    strategy: AssignmentStrategy,
    pool: Optional[InstancePool],
    role: PoolRole,
) -> InstancePool:
    if pool is None:
        raise ConfigurationStateError(
            f"Failed to find {role.value} instance pool for table: {strategy.table_name}"
        )
    return pool


def _bootstrap_segments(
    strategy: AssignmentStrategy,
    current_assignment: Mapping[str, Mapping[str, str]],
    pool: Optional[InstancePool],
    role: PoolRole,
) -> SegmentAssignment:
    new_assignment: SegmentAssignment = {}
    for segment in sorted(current_assignment):
        instances = assign_segment(strategy, segment, new_assignment, pool, role)
        new_assignment[segment] = get_instance_state_map(instances)
    return new_assignment


def _pick_least_loaded(
    candidates: Sequence[str],
    loads: Mapping[str, int],
    count: int,
    exclude: Sequence[str] = (),
) -> List[str]:
    # Ties go to the earlier pool position.
    ranked = sorted(
        (loads.get(instance, 0), position, instance)
        for position, instance in enumerate(candidates)
        if instance not in exclude
    )
    return [instance for _, _, instance in ranked[:count]]


# Balanced

def _balanced_instances(strategy: AssignmentStrategy, pool: InstancePool) -> Tuple[str, ...]:
    if pool.num_partitions != 1 or pool.num_replica_groups != 1:
        raise ConfigurationStateError(
            f"Instance pool {pool.name} must have 1 partition and 1 replica group for "
            f"balanced assignment of table: {strategy.table_name}, found "
            f"{pool.num_partitions} partitions and {pool.num_replica_groups} replica groups"
        )

    instances = tuple(dict.fromkeys(pool.get_instances(0, 0)))
    if len(instances) < strategy.replication:
        raise ConfigurationStateError(
            f"Number of instances: {len(instances)} in pool {pool.name} is less than "
            f"replication: {strategy.replication} for table: {strategy.table_name}"
        )
    return instances


def _assign_balanced(
    strategy: AssignmentStrategy,
    current_assignment: Mapping[str, Mapping[str, str]],
    pool: InstancePool,
) -> List[str]:
    instances = _balanced_instances(strategy, pool)
    loads = count_segments_per_instance(current_assignment, instances)
    return _pick_least_loaded(instances, loads, strategy.replication)


def _reassign_balanced(
    strategy: AssignmentStrategy,
    current_assignment: Mapping[str, Mapping[str, str]],
    pool: InstancePool,
) -> SegmentAssignment:
    instances = _balanced_instances(strategy, pool)
    position = {instance: i for i, instance in enumerate(instances)}
    replication = strategy.replication

    new_assignment: SegmentAssignment = {}
    to_fix = []
    for segment in sorted(current_assignment):
        instance_state_map = current_assignment[segment]
        if len(instance_state_map) == replication and all(i in position for i in instance_state_map):
            new_assignment[segment] = dict(instance_state_map)
        else:
            to_fix.append(segment)

    loads = count_segments_per_instance(new_assignment, instances)
    for segment in to_fix:
        instance_state_map = current_assignment[segment]
        kept = sorted(
            (i for i in instance_state_map if i in position),
            key=position.__getitem__,
        )[:replication]
        chosen = kept + _pick_least_loaded(instances, loads, replication - len(kept), exclude=kept)
        for instance in chosen:
            loads[instance] += 1
        new_assignment[segment] = get_instance_state_map(chosen, previous=instance_state_map)

    logger.debug(
        "Reassigned segments with balanced strategy",
        table=strategy.table_name,
        pool=pool.name,
        segments=len(new_assignment),
        segments_fixed=len(to_fix),
    )

    return new_assignment


# Replica group

def _validate_replica_groups(strategy: AssignmentStrategy, pool: InstancePool) -> int:
    # One replica per replica group, so the group count must equal replication
    num_replica_groups = pool.num_replica_groups
    if num_replica_groups != strategy.replication:
        raise ConfigurationStateError(
            f"Number of replica groups: {num_replica_groups} in pool {pool.name} does not "
            f"match replication: {strategy.replication} for table: {strategy.table_name}"
        )

    for partition_id in range(pool.num_partitions):
        groups = [
            pool.get_instances(partition_id, replica_group_id)
            for replica_group_id in range(num_replica_groups)
        ]
        sizes = {len(group) for group in groups}
        if len(sizes) != 1 or 0 in sizes:
            raise ConfigurationStateError(
                f"Replica groups of partition {partition_id} in pool {pool.name} must be "
                f"non-empty and of equal size for table: {strategy.table_name}"
            )

        num_instances = sum(len(group) for group in groups)
        if len({instance for group in groups for instance in group}) != num_instances:
            raise ConfigurationStateError(
                f"Replica groups of partition {partition_id} in pool {pool.name} must not "
                f"share instances for table: {strategy.table_name}"
            )
    return num_replica_groups


def _partition_id(strategy: AssignmentStrategy, segment_name: str, pool: InstancePool) -> int:
    num_partitions = pool.num_partitions
    if num_partitions == 1:
        return 0
    partition_id_fn = strategy.partition_id_fn or default_partition_id
    return partition_id_fn(segment_name) % num_partitions


def _assign_with_replica_group(
    strategy: AssignmentStrategy,
    segment_name: str,
    current_assignment: Mapping[str, Mapping[str, str]],
    pool: InstancePool,
) -> List[str]:
    num_replica_groups = _validate_replica_groups(strategy, pool)
    partition_id = _partition_id(strategy, segment_name, pool)

    # Position is chosen on replica group 0 and mirrored to the others
    first_group = pool.get_instances(partition_id, 0)
    loads = count_segments_per_instance(current_assignment, first_group)
    index = min(range(len(first_group)), key=lambda i: (loads[first_group[i]], i))

    return [
        pool.get_instances(partition_id, replica_group_id)[index]
        for replica_group_id in range(num_replica_groups)
    ]


def _reassign_with_replica_group(
    strategy: AssignmentStrategy,
    current_assignment: Mapping[str, Mapping[str, str]],
    pool: InstancePool,
) -> SegmentAssignment:
    num_replica_groups = _validate_replica_groups(strategy, pool)

    segments_per_partition: Dict[int, List[str]] = {}
    for segment in sorted(current_assignment):
        partition_id = _partition_id(strategy, segment, pool)
        segments_per_partition.setdefault(partition_id, []).append(segment)

    new_assignment: SegmentAssignment = {}
    num_fixed = 0
    for partition_id, segments in sorted(segments_per_partition.items()):
        groups = [
            pool.get_instances(partition_id, replica_group_id)
            for replica_group_id in range(num_replica_groups)
        ]
        slots = [frozenset(group[i] for group in groups) for i in range(len(groups[0]))]
        slot_index = {}
        for i, slot in enumerate(slots):
            slot_index.setdefault(slot, i)
        slot_loads = [0] * len(slots)

        to_fix = []
        for segment in segments:
            instance_state_map = current_assignment[segment]
            index = slot_index.get(frozenset(instance_state_map))
            if index is None:
                to_fix.append(segment)
            else:
                new_assignment[segment] = dict(instance_state_map)
                slot_loads[index] += 1

        for segment in to_fix:
            instance_state_map = current_assignment[segment]
            index = min(
                range(len(slots)),
                key=lambda i: (-len(slots[i].intersection(instance_state_map)), slot_loads[i], i),
            )
            slot_loads[index] += 1
            chosen = [group[index] for group in groups]
            new_assignment[segment] = get_instance_state_map(chosen, previous=instance_state_map)

        num_fixed += len(to_fix)

    logger.debug(
        "Reassigned segments with replica-group strategy",
        table=strategy.table_name,
        pool=pool.name,
        segments=len(new_assignment),
        segments_fixed=num_fixed,
    )

    return new_assignment


# Dimension table

def _dimension_instances(strategy: AssignmentStrategy, pool: Optional[InstancePool]) -> List[str]:
    if pool is not None:
        instances = pool.all_instances()
    else:
        instances = list(dict.fromkeys(strategy.dimension_instances))

    if not instances:
        raise ConfigurationStateError(
            f"No instances available for dimension table: {strategy.table_name}"
        )
    return instances


def _reassign_dimension_table(
    strategy: AssignmentStrategy,
    current_assignment: Mapping[str, Mapping[str, str]],
    pool: Optional[InstancePool],
) -> SegmentAssignment:
    instances = _dimension_instances(strategy, pool)

    return {
        segment: get_instance_state_map(instances, previous=current_assignment[segment])
        for segment in sorted(current_assignment)
    }
