"""Tests for strategy selection."""

import pytest

from segmentplacement.assignment.selector import select_strategies
from segmentplacement.assignment.strategy import StrategyKind
from segmentplacement.core.instance.pool import InstancePool, PoolRole
from segmentplacement.core.table.config import TableConfig


@pytest.fixture
def single_group_pool():
    return InstancePool.from_instances("events_OFFLINE", ["h1", "h2", "h3"])


@pytest.fixture
def two_group_pool():
    return InstancePool.from_replica_groups("events_OFFLINE", [["a1", "a2"], ["b1", "b2"]])


class TestSelectStrategies:
    """Test select_strategies."""

    def test_single_replica_group_is_balanced(self, single_group_pool):
        """Test default strategy for a flat pool."""
        table_config = TableConfig(table_name="events_OFFLINE", replication=2)

        strategies = select_strategies(table_config, {PoolRole.OFFLINE: single_group_pool})

        strategy = strategies[PoolRole.OFFLINE]
        assert strategy.kind == StrategyKind.BALANCED
        assert strategy.replication == 2
        assert strategy.table_name == "events_OFFLINE"

    def test_multiple_replica_groups(self, two_group_pool):
        """Test replica-group strategy for a grouped pool."""
        table_config = TableConfig(table_name="events_OFFLINE", replication=2)

        strategies = select_strategies(table_config, {PoolRole.OFFLINE: two_group_pool})

        assert strategies[PoolRole.OFFLINE].kind == StrategyKind.REPLICA_GROUP

    def test_configured_hint(self, single_group_pool):
        """Test an explicit hint overrides the default."""
        table_config = TableConfig(
            table_name="events_OFFLINE",
            segment_assignment_strategies={PoolRole.OFFLINE: "Replica_Group"},
        )

        strategies = select_strategies(table_config, {PoolRole.OFFLINE: single_group_pool})

        assert strategies[PoolRole.OFFLINE].kind == StrategyKind.REPLICA_GROUP

    def test_unknown_hint(self, single_group_pool):
        """Test unknown hint is rejected."""
        table_config = TableConfig(
            table_name="events_OFFLINE",
            segment_assignment_strategies={PoolRole.OFFLINE: "random"},
        )

        with pytest.raises(ValueError, match="Unknown assignment strategy"):
            select_strategies(table_config, {PoolRole.OFFLINE: single_group_pool})

    def test_one_strategy_per_role(self, single_group_pool, two_group_pool):
        """Test each pool role gets its own strategy."""
        table_config = TableConfig(table_name="events", replication=2)

        strategies = select_strategies(
            table_config,
            {PoolRole.CONSUMING: single_group_pool, PoolRole.COMPLETED: two_group_pool},
        )

        assert set(strategies) == {PoolRole.CONSUMING, PoolRole.COMPLETED}
        assert strategies[PoolRole.CONSUMING].kind == StrategyKind.BALANCED
        assert strategies[PoolRole.COMPLETED].kind == StrategyKind.REPLICA_GROUP

    def test_no_pool_no_strategy(self):
        """Test roles without pools get no strategy."""
        table_config = TableConfig(table_name="events_OFFLINE")

        assert select_strategies(table_config, {}) == {}

    def test_dimension_table_without_pool(self):
        """Test dimension tables always get an OFFLINE strategy."""
        table_config = TableConfig(table_name="lookup_OFFLINE", is_dimension_table=True)

        strategies = select_strategies(table_config, {}, server_instances=["d1", "d2"])

        strategy = strategies[PoolRole.OFFLINE]
        assert strategy.is_dimension_table
        assert strategy.dimension_instances == ("d1", "d2")

    def test_fresh_map_per_call(self, single_group_pool):
        """Test the strategy map is not shared between calls."""
        table_config = TableConfig(table_name="events_OFFLINE")
        pools = {PoolRole.OFFLINE: single_group_pool}

        first = select_strategies(table_config, pools)
        second = select_strategies(table_config, pools)

        assert first == second
        assert first is not second
