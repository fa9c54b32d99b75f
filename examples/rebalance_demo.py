#!/usr/bin/env python3
"""
Demo of segment assignment and table rebalance.

Places a handful of segments on three servers, then adds a cold tier and a
fourth server and shows what an incremental and a bootstrap rebalance do.
"""

import time

from segmentplacement.assignment import OfflineSegmentAssignment, RebalanceConfig, summarize_movement
from segmentplacement.core.instance import InstancePool, PoolRole
from segmentplacement.core.table import TableConfig, TierConfig
from segmentplacement.core.tier import build_tiers
from segmentplacement.utils.config import get_config
from segmentplacement.utils.logging import configure_from_config

DAY_MS = 24 * 60 * 60 * 1000


def print_assignment(assignment):
    for segment in sorted(assignment):
        print(f"  {segment}: {sorted(assignment[segment])}")


def main():
    config = get_config()
    configure_from_config(config)

    print("=" * 60)
    print("Segment placement - Rebalance Demo")
    print("=" * 60)

    table_config = TableConfig(
        table_name="events_OFFLINE",
        replication=2,
        tiers=[TierConfig(name="cold", segment_age="30d")],
    )
    assignment = OfflineSegmentAssignment(table_config)

    pools = {PoolRole.OFFLINE: InstancePool.from_instances("events_OFFLINE", ["server1", "server2", "server3"])}

    # Assign new segments
    print("\n[1] Assigning 6 segments...")
    current = {}
    for day in range(6):
        segment = f"events_day_{day}"
        instances = assignment.assign_segment(segment, current, pools)
        current[segment] = {instance: "ONLINE" for instance in instances}
    print_assignment(current)

    # Add a server and a cold tier
    print("\n[2] Adding server4 and a cold tier for segments older than 30 days...")
    now_ms = int(time.time() * 1000)
    end_times = {f"events_day_{day}": now_ms - (60 - day * 10) * DAY_MS for day in range(6)}
    tiers = build_tiers(table_config, end_times.get)
    pools = {
        PoolRole.OFFLINE: InstancePool.from_instances(
            "events_OFFLINE", ["server1", "server2", "server3", "server4"]
        )
    }
    tier_pools = {"cold": InstancePool.from_instances("events_OFFLINE_TIER_cold", ["cold1", "cold2"])}

    for bootstrap in (False, True):
        print(f"\n[3] Rebalancing with bootstrap={bootstrap}...")
        new_assignment = assignment.rebalance_table(
            current,
            pools,
            tiers,
            tier_pools,
            RebalanceConfig(bootstrap=bootstrap),
        )
        print_assignment(new_assignment)

        summary = summarize_movement(current, new_assignment)
        print(f"  moves per instance: {summary.moves_per_instance}")
        print(f"  segments moved: {summary.segments_moved}")

    print("\n" + "=" * 60)
    print("Demo complete")
    print("=" * 60)


if __name__ == "__main__":
    main()
