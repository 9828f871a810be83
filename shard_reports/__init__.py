"""
Shard Reports — CI tooling for sharded Playwright runs.

Merges per-shard blob reports into one HTML report per OS/browser matrix
cell and renders the landing page that links them.
"""

from __future__ import annotations

from shard_reports.errors import (
    CellDiscoveryEmpty,
    CellProcessingError,
    InputDirectoryMissing,
    MatrixConfigError,
    ShardReportError,
    UsageError,
)
from shard_reports.index_page import IndexSummary, populate_reports
from shard_reports.matrix import DEFAULT_MATRIX, MatrixCell, load_matrix
from shard_reports.merger import ConsolidationStrategy, ShardReportMerger, merge_shard_reports
from shard_reports.models import CellResult, MergeMetadata, RunSummary

__all__ = [
    "CellDiscoveryEmpty",
    "CellProcessingError",
    "CellResult",
    "ConsolidationStrategy",
    "DEFAULT_MATRIX",
    "IndexSummary",
    "InputDirectoryMissing",
    "MatrixCell",
    "MatrixConfigError",
    "MergeMetadata",
    "RunSummary",
    "ShardReportError",
    "ShardReportMerger",
    "UsageError",
    "load_matrix",
    "merge_shard_reports",
    "populate_reports",
]
