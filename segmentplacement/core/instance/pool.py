"""
Instance pool structures.

An instance pool holds the ordered candidate instances for one role of a
table, split by partition and replica group. Order inside each list is
significant: it is the tie-breaker that makes placement reproducible.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Mapping, Sequence, Tuple


KEY_SEPARATOR = "_"


class PoolRole(str, Enum):
    """Roles an instance pool can serve for a table."""

    OFFLINE = "OFFLINE"
    CONSUMING = "CONSUMING"
    COMPLETED = "COMPLETED"


def pool_key(partition_id: int, replica_group_id: int) -> str:
    """Build the ``<partition>_<replica_group>`` key."""
    return f"{partition_id}{KEY_SEPARATOR}{replica_group_id}"


def parse_pool_key(key: str) -> Tuple[int, int]:
    """
    Parse a ``<partition>_<replica_group>`` key.

    Raises:
        ValueError: If the key is malformed
    """
    parts = key.split(KEY_SEPARATOR)
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid instance pool key: {key}")
    return int(parts[0]), int(parts[1])


@dataclass(frozen=True)
class InstancePool:
    """
    Ordered candidate instances for one table role.

    Attributes:
        name: Pool name (e.g. ``myTable_OFFLINE`` or ``myTable_TIER_cold``)
        partitions: ``<partition>_<replica_group>`` -> ordered instances
    """
    name: str
    partitions: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self):
        if not self.partitions:
            raise ValueError(f"Instance pool {self.name} has no partitions")
        frozen = {}
        for key, instances in self.partitions.items():
            parse_pool_key(key)
            frozen[key] = tuple(instances)
        object.__setattr__(self, "partitions", frozen)

    @property
    def num_partitions(self) -> int:
        return max(parse_pool_key(k)[0] for k in self.partitions) + 1

    @property
    def num_replica_groups(self) -> int:
        return max(parse_pool_key(k)[1] for k in self.partitions) + 1

    def get_instances(self, partition_id: int, replica_group_id: int) -> Tuple[str, ...]:
        """
        Get the ordered instances for a partition and replica group.

        Missing entries are returned as an empty tuple.
        """
        return self.partitions.get(pool_key(partition_id, replica_group_id), ())

    def all_instances(self) -> List[str]:
        """Every instance in the pool, deduplicated, in key then list order."""
        seen = {}
        for key in sorted(self.partitions, key=parse_pool_key):
            for instance in self.partitions[key]:
                seen.setdefault(instance, None)
        return list(seen)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "partitions": {k: list(v) for k, v in self.partitions.items()},
        }

    @staticmethod
    def from_dict(data: dict) -> "InstancePool":
        """Create from dictionary."""
        return InstancePool(name=data["name"], partitions=data["partitions"])

    @staticmethod
    def from_instances(name: str, instances: Sequence[str]) -> "InstancePool":
        """Create a single partition, single replica-group pool."""
        return InstancePool(name=name, partitions={pool_key(0, 0): tuple(instances)})

    @staticmethod
    def from_replica_groups(
        name: str,
        replica_groups: Sequence[Sequence[str]],
        partition_id: int = 0,
    ) -> "InstancePool":
        """Create a pool with one list per replica group for a single partition."""
        return InstancePool(
            name=name,
            partitions={
                pool_key(partition_id, rg): tuple(instances)
                for rg, instances in enumerate(replica_groups)
            },
        )
