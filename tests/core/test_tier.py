"""Tests for tiers and tier segment selectors."""

import pytest

from segmentplacement.core.table.config import TableConfig, TierConfig
from segmentplacement.core.tier.tier import (
    FixedSegmentSelector,
    Tier,
    TimeBasedSegmentSelector,
    build_tiers,
    parse_period_ms,
    sort_tiers,
)

NOW_SECONDS = 1_000_000.0
NOW_MS = 1_000_000_000
DAY_MS = 24 * 60 * 60 * 1000


def fixed_clock():
    return NOW_SECONDS


class TestParsePeriod:
    """Test parse_period_ms."""

    @pytest.mark.parametrize(
        "period,expected",
        [
            ("500ms", 500),
            ("30s", 30000),
            ("5m", 300000),
            ("2h", 7200000),
            ("7d", 7 * DAY_MS),
            ("1d12h", DAY_MS + 12 * 60 * 60 * 1000),
            (" 7D ", 7 * DAY_MS),
        ],
    )
    def test_valid_periods(self, period, expected):
        """Test supported units."""
        assert parse_period_ms(period) == expected

    @pytest.mark.parametrize("period", ["", "7", "d7", "7x", "7d x", None])
    def test_invalid_periods(self, period):
        """Test malformed periods."""
        with pytest.raises(ValueError, match="Invalid period"):
            parse_period_ms(period)


class TestSelectors:
    """Test tier segment selectors."""

    def test_fixed_selector(self):
        """Test fixed selector matches listed segments only."""
        selector = FixedSegmentSelector(["s1", "s2"])

        assert selector.select("s1")
        assert not selector.select("s3")

    def test_time_based_selector(self):
        """Test time-based selector compares segment end time with age."""
        end_times = {
            "old": NOW_MS - 5000,
            "new": NOW_MS - 10,
        }
        selector = TimeBasedSegmentSelector(1000, end_times.get, clock=fixed_clock)

        assert selector.select("old")
        assert not selector.select("new")

    def test_time_based_unknown_end_time(self):
        """Test segments without end time never match."""
        selector = TimeBasedSegmentSelector(1000, lambda segment: None, clock=fixed_clock)

        assert not selector.select("unknown")

    def test_tier_matches_delegates(self):
        """Test Tier.matches uses its selector."""
        tier = Tier(name="cold", selector=FixedSegmentSelector(["s1"]))

        assert tier.matches("s1")
        assert not tier.matches("s2")

    def test_selector_types(self):
        """Test selectors report the config type they are built from."""
        assert FixedSegmentSelector([]).type == "fixed"
        assert TimeBasedSegmentSelector(1000, lambda s: None).type == "time"


class TestSortTiers:
    """Test tier ordering."""

    def test_fixed_first_then_oldest(self):
        """Test fixed tiers first, then time tiers by descending age."""
        warm = Tier("warm", TimeBasedSegmentSelector(7 * DAY_MS, lambda s: None))
        pinned = Tier("pinned", FixedSegmentSelector(["s1"]))
        cold = Tier("cold", TimeBasedSegmentSelector(30 * DAY_MS, lambda s: None))

        assert [t.name for t in sort_tiers([warm, pinned, cold])] == ["pinned", "cold", "warm"]

    def test_stable_for_equal_priority(self):
        """Test equal priority keeps input order."""
        a = Tier("a", FixedSegmentSelector([]))
        b = Tier("b", FixedSegmentSelector([]))

        assert sort_tiers([b, a]) == [b, a]


class TestBuildTiers:
    """Test build_tiers."""

    def test_build_from_table_config(self):
        """Test tiers are built and sorted."""
        table_config = TableConfig(
            table_name="events_OFFLINE",
            tiers=[
                TierConfig(name="warm", segment_age="7d"),
                TierConfig(name="cold", segment_age="30d", server_tag="cold_OFFLINE"),
                TierConfig(name="pinned", segment_selector_type="fixed", segments=["s9"]),
            ],
        )
        end_times = {"s1": NOW_MS - 40 * DAY_MS, "s2": NOW_MS - 10 * DAY_MS}

        tiers = build_tiers(table_config, end_times.get, clock=fixed_clock)

        assert [t.name for t in tiers] == ["pinned", "cold", "warm"]
        assert tiers[1].server_tag == "cold_OFFLINE"
        assert tiers[0].matches("s9")
        assert tiers[1].matches("s1")
        assert not tiers[1].matches("s2")
        assert tiers[2].matches("s2")

    def test_time_tier_without_lookup_matches_nothing(self):
        """Test missing end time lookup."""
        table_config = TableConfig(
            table_name="events_OFFLINE",
            tiers=[TierConfig(name="cold", segment_age="30d")],
        )

        tiers = build_tiers(table_config)

        assert not tiers[0].matches("s1")

    def test_unknown_selector_type(self):
        """Test unknown selector type."""
        table_config = TableConfig(
            table_name="events_OFFLINE",
            tiers=[TierConfig(name="cold", segment_selector_type="size")],
        )

        with pytest.raises(ValueError, match="Unknown tier segment selector type"):
            build_tiers(table_config)

    def test_time_tier_requires_age(self):
        """Test time tier without segment age."""
        table_config = TableConfig(
            table_name="events_OFFLINE",
            tiers=[TierConfig(name="cold")],
        )

        with pytest.raises(ValueError, match="has no segment age"):
            build_tiers(table_config)
