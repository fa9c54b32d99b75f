"""
Table configuration consumed by segment assignment.

Only the fields placement reads are modelled: replication, the dimension
table flag, per-role strategy hints and tier definitions.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from segmentplacement.core.instance.pool import PoolRole

TIME_SEGMENT_SELECTOR_TYPE = "time"
FIXED_SEGMENT_SELECTOR_TYPE = "fixed"


@dataclass(frozen=True)
class TierConfig:
    """
    Definition of a storage tier.

    Attributes:
        name: Tier name
        segment_selector_type: "time" or "fixed"
        segment_age: Period string (e.g. "30d") for time-based selectors
        segments: Segment names for fixed selectors
        server_tag: Tag of the servers backing the tier
    """
    name: str
    segment_selector_type: str = TIME_SEGMENT_SELECTOR_TYPE
    segment_age: Optional[str] = None
    segments: List[str] = field(default_factory=list)
    server_tag: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "segment_selector_type": self.segment_selector_type,
            "segment_age": self.segment_age,
            "segments": list(self.segments),
            "server_tag": self.server_tag,
        }

    @staticmethod
    def from_dict(data: dict) -> "TierConfig":
        """Create from dictionary."""
        return TierConfig(
            name=data["name"],
            segment_selector_type=data.get("segment_selector_type", TIME_SEGMENT_SELECTOR_TYPE),
            segment_age=data.get("segment_age"),
            segments=list(data.get("segments", [])),
            server_tag=data.get("server_tag"),
        )


@dataclass(frozen=True)
class TableConfig:
    """
    Read-only table configuration.

    Attributes:
        table_name: Table name with type (e.g. ``events_OFFLINE``)
        replication: Number of instances per non-dimension segment
        is_dimension_table: Whether every segment goes to every instance
        segment_assignment_strategies: Role -> strategy name hint
        tiers: Tier definitions, in declaration order
    """
    table_name: str
    replication: int = 1
    is_dimension_table: bool = False
    segment_assignment_strategies: Dict[PoolRole, str] = field(default_factory=dict)
    tiers: List[TierConfig] = field(default_factory=list)

    def __post_init__(self):
        if self.replication < 1:
            raise ValueError(
                f"Invalid replication: {self.replication} for table: {self.table_name}"
            )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "table_name": self.table_name,
            "replication": self.replication,
            "is_dimension_table": self.is_dimension_table,
            "segment_assignment_strategies": {
                role.value: name
                for role, name in self.segment_assignment_strategies.items()
            },
            "tiers": [tier.to_dict() for tier in self.tiers],
        }

    @staticmethod
    def from_dict(data: dict) -> "TableConfig":
        """Create from dictionary."""
        return TableConfig(
            table_name=data["table_name"],
            replication=int(data.get("replication", 1)),
            is_dimension_table=bool(data.get("is_dimension_table", False)),
            segment_assignment_strategies={
                PoolRole(role): name
                for role, name in data.get("segment_assignment_strategies", {}).items()
            },
            tiers=[TierConfig.from_dict(t) for t in data.get("tiers", [])],
        )
