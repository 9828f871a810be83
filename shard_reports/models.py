"""
Records produced by a merge run.

:class:`MergeMetadata` is the ``matrix-info.json`` sidecar written next to
each merged report; its camelCase keys are the contract read back by the
index page renderer.  :class:`RunSummary` carries the partial-success
outcome of a run as a plain value so callers decide what counts as fatal.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from shard_reports.matrix import MatrixCell

METADATA_FILENAME = "matrix-info.json"


def _utc_now_iso() -> str:
    """Return the current UTC time in the ``2024-01-31T12:00:00.000Z`` form."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


@dataclass
class MergeMetadata:
    """Provenance of one merged report."""

    os: str
    browser: str
    node_version: str
    shards: str
    shards_count: int
    git_ref: str = "unknown"
    run_id: str = "unknown"
    timestamp: str = field(default_factory=_utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "os": self.os,
            "browser": self.browser,
            "nodeVersion": self.node_version,
            "shards": self.shards,
            "shardsCount": self.shards_count,
            "timestamp": self.timestamp,
            "gitRef": self.git_ref,
            "runId": self.run_id,
        }

    def write(self, directory: Path) -> Path:
        """Serialize the sidecar into *directory* and return its path."""
        path = directory / METADATA_FILENAME
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        return path


@dataclass(frozen=True)
class CellResult:
    """Outcome of processing a single matrix cell."""

    cell: MatrixCell
    ok: bool
    shards_count: int = 0
    destination: Path | None = None
    message: str = ""


@dataclass
class RunSummary:
    """
    Aggregate outcome of a merge run.

    Attributes:
        total_cells: Number of declared matrix cells.
        results: One :class:`CellResult` per processed cell, in the
            order the cells were processed.
    """

    total_cells: int
    results: list[CellResult] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for result in self.results if result.ok)

    @property
    def failure_count(self) -> int:
        return sum(1 for result in self.results if not result.ok)

    @property
    def all_succeeded(self) -> bool:
        return self.failure_count == 0

    def result_for(self, cell_name: str) -> CellResult | None:
        for result in self.results:
            if result.cell.cell_name == cell_name:
                return result
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "successCount": self.success_count,
            "failureCount": self.failure_count,
            "totalCells": self.total_cells,
        }
