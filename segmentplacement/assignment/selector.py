"""
Strategy selection.

Builds the role -> strategy map for a table. The map is returned as a new
value on every call; nothing is cached between calls.
"""

from typing import Dict, Mapping, Optional, Sequence

from segmentplacement.assignment.strategy import (
    AssignmentStrategy,
    PartitionIdFn,
    StrategyKind,
    parse_strategy_kind,
)
from segmentplacement.core.instance.pool import InstancePool, PoolRole
from segmentplacement.core.table.config import TableConfig
from segmentplacement.utils.logging import get_logger

logger = get_logger(__name__)


def select_strategies(
    table_config: TableConfig,
    instance_pools: Mapping[PoolRole, InstancePool],
    server_instances: Optional[Sequence[str]] = None,
    partition_id_fn: Optional[PartitionIdFn] = None,
) -> Dict[PoolRole, AssignmentStrategy]:
    """
    Choose a strategy for each role of a table.

    Dimension tables always get a single OFFLINE dimension-table strategy,
    whether or not a pool exists. Other tables get one strategy per role
    present in ``instance_pools``: the configured hint if any, else balanced
    for single replica-group pools and replica_group otherwise.

    Args:
        table_config: Table configuration
        instance_pools: Role -> instance pool
        server_instances: Tenant servers, used by dimension tables
        partition_id_fn: Segment -> partition id for replica-group strategies

    Returns:
        Role -> strategy
    """
    table_name = table_config.table_name

    if table_config.is_dimension_table:
        strategy = AssignmentStrategy(
            kind=StrategyKind.DIMENSION_TABLE,
            table_name=table_name,
            replication=table_config.replication,
            dimension_instances=tuple(server_instances or ()),
        )
        logger.debug("Selected dimension table strategy", table=table_name)
        return {PoolRole.OFFLINE: strategy}

    strategies = {}
    for role, pool in instance_pools.items():
        hint = table_config.segment_assignment_strategies.get(role)
        if hint is not None:
            kind = parse_strategy_kind(hint)
        elif pool.num_replica_groups == 1:
            kind = StrategyKind.BALANCED
        else:
            kind = StrategyKind.REPLICA_GROUP

        strategies[role] = AssignmentStrategy(
            kind=kind,
            table_name=table_name,
            replication=table_config.replication,
            dimension_instances=tuple(server_instances or ()),
            partition_id_fn=partition_id_fn,
        )

        logger.debug("Selected assignment strategy", table=table_name, role=role.value, strategy=kind.value)

    return strategies
