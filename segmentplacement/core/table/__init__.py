"""Table configuration."""

from segmentplacement.core.table.config import TableConfig, TierConfig

__all__ = ["TableConfig", "TierConfig"]
