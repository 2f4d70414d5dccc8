"""Monitoring core — snapshots, change detection, aggregation, scheduling."""
