"""Storage tiers."""

from segmentplacement.core.tier.tier import (
    FixedSegmentSelector,
    Tier,
    TierSegmentSelector,
    TimeBasedSegmentSelector,
    build_tiers,
    parse_period_ms,
    sort_tiers,
)

__all__ = [
    "Tier",
    "TierSegmentSelector",
    "FixedSegmentSelector",
    "TimeBasedSegmentSelector",
    "build_tiers",
    "sort_tiers",
    "parse_period_ms",
]
