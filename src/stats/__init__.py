"""Aggregation, version-label merging and reporting."""
