"""
segmentplacement - Segment placement and rebalance for analytical tables.

Decides which server instances hold each immutable segment of a table and
recomputes that placement when instances, replication or tiers change:
- Balanced, replica-group and dimension-table assignment strategies
- Tier routing of aging segments onto dedicated instance pools
- Incremental (minimal movement) and bootstrap rebalance
- Per-instance movement accounting
"""

__version__ = "0.1.0"

from segmentplacement.assignment import (
    ConfigurationStateError,
    OfflineSegmentAssignment,
    RebalanceConfig,
)

__all__ = [
    "ConfigurationStateError",
    "OfflineSegmentAssignment",
    "RebalanceConfig",
]
