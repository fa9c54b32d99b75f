"""
Storage tiers and tier segment selectors.

A tier routes a subset of a table's segments (typically the older ones) to
its own instance pool. Membership is decided by the tier's selector; the
segment metadata a selector needs (end times) is looked up through a
callable supplied by the caller.
"""

import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from segmentplacement.core.table.config import (
    FIXED_SEGMENT_SELECTOR_TYPE,
    TIME_SEGMENT_SELECTOR_TYPE,
    TableConfig,
)
from segmentplacement.utils.logging import get_logger

logger = get_logger(__name__)

EndTimeLookup = Callable[[str], Optional[int]]

_PERIOD_UNITS_MS = {
    "ms": 1,
    "s": 1000,
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
}
_PERIOD_PART = re.compile(r"(\d+)(ms|s|m|h|d)")


def parse_period_ms(period: str) -> int:
    """
    Convert a period string such as ``7d`` or ``1d12h`` to milliseconds.

    Raises:
        ValueError: If the period is empty or malformed
    """
    text = (period or "").strip().lower()
    if not text:
        raise ValueError(f"Invalid period: {period!r}")

    total = 0
    pos = 0
    for match in _PERIOD_PART.finditer(text):
        if match.start() != pos:
            raise ValueError(f"Invalid period: {period!r}")
        total += int(match.group(1)) * _PERIOD_UNITS_MS[match.group(2)]
        pos = match.end()

    if pos != len(text):
        raise ValueError(f"Invalid period: {period!r}")
    return total


class TierSegmentSelector(ABC):
    """Decides whether a segment belongs to a tier."""

    type: str = ""

    @abstractmethod
    def select(self, segment_name: str) -> bool:
        """Return True if the segment belongs to the tier."""
        pass


class FixedSegmentSelector(TierSegmentSelector):
    """Selects an explicit set of segments."""

    type = FIXED_SEGMENT_SELECTOR_TYPE

    def __init__(self, segments: Iterable[str]):
        self.segments = frozenset(segments)

    def select(self, segment_name: str) -> bool:
        return segment_name in self.segments

    def __repr__(self) -> str:
        return f"FixedSegmentSelector(segments={len(self.segments)})"


class TimeBasedSegmentSelector(TierSegmentSelector):
    """
    Selects segments whose end time is older than a given age.

    Segments with unknown end time are never selected.
    """

    type = TIME_SEGMENT_SELECTOR_TYPE

    def __init__(
        self,
        segment_age_ms: int,
        end_time_lookup: EndTimeLookup,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize selector.

        Args:
            segment_age_ms: Minimum segment age in milliseconds
            end_time_lookup: Segment name -> end time in epoch ms (or None)
            clock: Returns current time in seconds
        """
        self.segment_age_ms = segment_age_ms
        self._end_time_lookup = end_time_lookup
        self._clock = clock

    def select(self, segment_name: str) -> bool:
        end_time_ms = self._end_time_lookup(segment_name)
        if end_time_ms is None:
            return False
        now_ms = int(self._clock() * 1000)
        return now_ms - end_time_ms > self.segment_age_ms

    def __repr__(self) -> str:
        return f"TimeBasedSegmentSelector(segment_age_ms={self.segment_age_ms})"


@dataclass(frozen=True)
class Tier:
    """
    A storage tier.

    Attributes:
        name: Tier name, also the key of its instance pool
        selector: Membership predicate
        server_tag: Tag of the servers backing the tier
    """
    name: str
    selector: TierSegmentSelector
    server_tag: Optional[str] = None

    def matches(self, segment_name: str) -> bool:
        return self.selector.select(segment_name)


def _tier_sort_key(indexed_tier):
    index, tier = indexed_tier
    if tier.selector.type == TIME_SEGMENT_SELECTOR_TYPE:
        return (1, -tier.selector.segment_age_ms, index)
    return (0, 0, index)


def sort_tiers(tiers: Iterable[Tier]) -> List[Tier]:
    """
    Sort tiers into priority order.

    Fixed selectors come first in their given order, then time-based
    selectors from the oldest age to the youngest.
    """
    return [tier for _, tier in sorted(enumerate(tiers), key=_tier_sort_key)]


def build_tiers(
    table_config: TableConfig,
    end_time_lookup: Optional[EndTimeLookup] = None,
    clock: Callable[[], float] = time.time,
) -> List[Tier]:
    """
    Build the sorted tier list for a table.

    Args:
        table_config: Table configuration
        end_time_lookup: Segment end time lookup for time-based tiers
        clock: Returns current time in seconds

    Returns:
        Tiers in priority order

    Raises:
        ValueError: On an unknown selector type or a missing segment age
    """
    tiers = []
    for tier_config in table_config.tiers:
        selector_type = tier_config.segment_selector_type.lower()

        if selector_type == TIME_SEGMENT_SELECTOR_TYPE:
            if tier_config.segment_age is None:
                raise ValueError(
                    f"Tier {tier_config.name} of table {table_config.table_name} has no segment age"
                )
            selector = TimeBasedSegmentSelector(
                parse_period_ms(tier_config.segment_age),
                end_time_lookup or (lambda segment_name: None),
                clock,
            )
        elif selector_type == FIXED_SEGMENT_SELECTOR_TYPE:
            selector = FixedSegmentSelector(tier_config.segments)
        else:
            raise ValueError(f"Unknown tier segment selector type: {tier_config.segment_selector_type}")

        tiers.append(Tier(name=tier_config.name, selector=selector, server_tag=tier_config.server_tag))

    sorted_tiers = sort_tiers(tiers)

    logger.debug(
        "Built tiers",
        table=table_config.table_name,
        tiers=[tier.name for tier in sorted_tiers],
    )

    return sorted_tiers
