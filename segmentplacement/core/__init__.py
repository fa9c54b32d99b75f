"""Core data model: instance pools, table configuration and tiers."""
