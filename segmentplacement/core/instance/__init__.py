"""Instance pools."""

from segmentplacement.core.instance.pool import InstancePool, PoolRole

__all__ = ["InstancePool", "PoolRole"]
