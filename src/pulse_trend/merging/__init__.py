"""Merging partial shard results into a canonical run report."""

from pulse_trend.merging.discovery import (
    cleanup_shard_directories,
    discover_result_snapshots,
    discover_shard_reports,
    discover_worker_result_files,
    merge_attachments,
    shard_directories,
)
from pulse_trend.merging.merger import MergeSummary, ShardMerger, collapse_retries, write_canonical_report


__all__ = [
    "MergeSummary",
    "ShardMerger",
    "cleanup_shard_directories",
    "collapse_retries",
    "discover_result_snapshots",
    "discover_shard_reports",
    "discover_worker_result_files",
    "merge_attachments",
    "shard_directories",
    "write_canonical_report",
]
