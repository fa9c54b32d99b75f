"""
Segment assignment for offline tables.

Entry point for placing a new segment and for rebalancing a whole table.
Rebalance runs the tiers first, places the remaining segments with the
table's base strategy and merges both into one assignment.
"""

from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from segmentplacement.assignment.movement import summarize_movement
from segmentplacement.assignment.selector import select_strategies
from segmentplacement.assignment.strategy import (
    ConfigurationStateError,
    PartitionIdFn,
    assign_segment,
    reassign_all,
)
from segmentplacement.assignment.tier_router import route_tiers
from segmentplacement.assignment.utils import SegmentAssignment
from segmentplacement.core.instance.pool import InstancePool, PoolRole
from segmentplacement.core.table.config import TableConfig
from segmentplacement.core.tier.tier import Tier
from segmentplacement.utils.config import Config
from segmentplacement.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BOOTSTRAP = False


@dataclass(frozen=True)
class RebalanceConfig:
    """
    Options for a table rebalance.

    Attributes:
        bootstrap: Recompute every segment instead of only the
            non-conforming ones
    """
    bootstrap: bool = DEFAULT_BOOTSTRAP

    @staticmethod
    def from_config(config: Config) -> "RebalanceConfig":
        """Read rebalance options from the ``rebalance`` section."""
        return RebalanceConfig(
            bootstrap=config.get_bool("rebalance.bootstrap", DEFAULT_BOOTSTRAP),
        )


class OfflineSegmentAssignment:
    """
    Segment assignment for an offline table.

    Holds only read-only inputs. The role -> strategy map is computed on
    every call, so one instance may serve concurrent calls; the caller
    serializes calls for the same table.
    """

    def __init__(
        self,
        table_config: TableConfig,
        server_instances: Optional[Sequence[str]] = None,
        partition_id_fn: Optional[PartitionIdFn] = None,
    ):
        """
        Initialize offline segment assignment.

        Args:
            table_config: Table configuration
            server_instances: Tenant servers, used by dimension tables
            partition_id_fn: Segment -> partition id for replica-group tables
        """
        self.table_config = table_config
        self.table_name = table_config.table_name
        self.server_instances = tuple(server_instances or ())
        self.partition_id_fn = partition_id_fn

    def _select_strategies(self, instance_pools: Mapping[PoolRole, InstancePool]):
        return select_strategies(
            self.table_config,
            instance_pools,
            server_instances=self.server_instances,
            partition_id_fn=self.partition_id_fn,
        )

    def _require_offline_pool(
        self,
        instance_pools: Mapping[PoolRole, InstancePool],
    ) -> InstancePool:
        pool = instance_pools.get(PoolRole.OFFLINE)
        if pool is None:
            raise ConfigurationStateError(
                f"Failed to find OFFLINE instance pool for table: {self.table_name}"
            )
        return pool

    def assign_segment(
        self,
        segment_name: str,
        current_assignment: Mapping[str, Mapping[str, str]],
        instance_pools: Mapping[PoolRole, InstancePool],
    ) -> List[str]:
        """
        Choose the instances for a new segment.

        Args:
            segment_name: Segment to place
            current_assignment: Current table assignment
            instance_pools: Role -> instance pool

        Returns:
            Ordered list of instances

        Raises:
            ConfigurationStateError: If the OFFLINE pool is missing for a
                non-dimension table
        """
        strategy = self._select_strategies(instance_pools).get(PoolRole.OFFLINE)

        # Dimension tables may legitimately have no pool
        if strategy is not None and strategy.is_dimension_table:
            return assign_segment(
                strategy,
                segment_name,
                current_assignment,
                instance_pools.get(PoolRole.OFFLINE),
                PoolRole.OFFLINE,
            )

        pool = self._require_offline_pool(instance_pools)

        logger.info(
            "Assigning segment",
            table=self.table_name,
            segment=segment_name,
            pool=pool.name,
            strategy=strategy.kind.value,
        )

        instances = assign_segment(strategy, segment_name, current_assignment, pool, PoolRole.OFFLINE)

        logger.info(
            "Assigned segment",
            table=self.table_name,
            segment=segment_name,
            instances=instances,
        )

        return instances

    def rebalance_table(
        self,
        current_assignment: Mapping[str, Mapping[str, str]],
        instance_pools: Mapping[PoolRole, InstancePool],
        sorted_tiers: Optional[Sequence[Tier]] = None,
        tier_instance_pools: Optional[Mapping[str, InstancePool]] = None,
        config: Optional[RebalanceConfig] = None,
    ) -> SegmentAssignment:
        """
        Compute the target assignment for the table.

        Args:
            current_assignment: Current table assignment (not modified)
            instance_pools: Role -> instance pool
            sorted_tiers: Tiers in priority order
            tier_instance_pools: Tier name -> instance pool
            config: Rebalance options (bootstrap defaults to False)

        Returns:
            New assignment

        Raises:
            ConfigurationStateError: If a required pool is missing or unusable
        """
        config = config or RebalanceConfig()
        strategy = self._select_strategies(instance_pools).get(PoolRole.OFFLINE)
        offline_pool = instance_pools.get(PoolRole.OFFLINE)

        # Dimension tables skip tiers and the pool precondition
        if strategy is not None and strategy.is_dimension_table:
            logger.info("Rebalancing dimension table", table=self.table_name)
            return reassign_all(
                strategy,
                current_assignment,
                offline_pool,
                PoolRole.OFFLINE,
                config.bootstrap,
            )

        offline_pool = self._require_offline_pool(instance_pools)
        bootstrap = config.bootstrap

        tier_assignments, non_tier_assignment = route_tiers(
            self.table_name,
            current_assignment,
            sorted_tiers,
            tier_instance_pools,
            bootstrap,
            strategy,
            PoolRole.OFFLINE,
        )

        logger.info(
            "Rebalancing table",
            table=self.table_name,
            pool=offline_pool.name,
            strategy=strategy.kind.value,
            bootstrap=bootstrap,
            segments=len(non_tier_assignment),
        )

        new_assignment = reassign_all(
            strategy,
            non_tier_assignment,
            offline_pool,
            PoolRole.OFFLINE,
            bootstrap,
        )

        # Tier and non-tier segment sets are disjoint
        for tier_assignment in tier_assignments:
            new_assignment.update(tier_assignment)

        summary = summarize_movement(current_assignment, new_assignment)
        logger.info(
            "Rebalanced table",
            table=self.table_name,
            segments_moved=summary.segments_moved,
            moves_per_instance=summary.moves_per_instance,
        )

        return new_assignment
