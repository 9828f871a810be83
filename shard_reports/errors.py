"""
Shard Reports — Error taxonomy.

Only :class:`UsageError`, :class:`InputDirectoryMissing` and
:class:`MatrixConfigError` are allowed to reach the process exit code.
The per-cell errors are raised inside a cell's processing and converted
into summary counters by the merger.
"""

from __future__ import annotations


class ShardReportError(Exception):
    """Base class for every error raised by the shard report tooling."""


class UsageError(ShardReportError):
    """Required command-line arguments are missing."""


class InputDirectoryMissing(ShardReportError):
    """The top-level shard artifact directory does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Directory not found: {path}")
        self.path = path


class MatrixConfigError(ShardReportError):
    """A matrix definition file is unreadable or malformed."""


class CellDiscoveryEmpty(ShardReportError):
    """No shard directories matched a matrix cell's prefix."""

    def __init__(self, cell_name: str):
        super().__init__(f"No shard reports found for {cell_name}")
        self.cell_name = cell_name


class CellProcessingError(ShardReportError):
    """Consolidation, merge or relocation failed for one matrix cell."""
