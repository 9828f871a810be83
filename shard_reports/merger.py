"""
Shard report merger.

CI runs the browser suite as N shards per OS/browser matrix cell and
uploads one blob report artifact per shard.  This module turns that flat
pile of artifacts into one browsable HTML report per cell:

1. **Discovery** — find the shard directories belonging to a cell by
   their name prefix.
2. **Consolidation** — union the shards into one scratch directory
   (first shard wins on a filename collision), or pass the shard
   directories to the merge tool as they are.
3. **Merge** — run the external merge tool.
4. **Relocation** — move the tool's output into ``<merged>/<cell>``.
5. **Metadata** — write the ``matrix-info.json`` sidecar.

Cells are processed sequentially and independently: a failure in one
cell is logged and counted, never raised, so CI gets every report that
could be produced.  The returned :class:`~shard_reports.models.RunSummary`
tells the caller how many cells failed.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Sequence
from enum import Enum
from pathlib import Path

from shard_reports.config import Config, ci_provenance, get_config
from shard_reports.errors import CellDiscoveryEmpty, CellProcessingError, InputDirectoryMissing
from shard_reports.matrix import DEFAULT_MATRIX, MatrixCell, load_matrix
from shard_reports.merge_tool import MergeTool, PlaywrightMergeTool
from shard_reports.models import CellResult, MergeMetadata, RunSummary

logger = logging.getLogger(__name__)


class ConsolidationStrategy(str, Enum):
    """How a cell's shards are presented to the merge tool."""

    COPY = "copy"
    DIRECT = "direct"


def _remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


def _discard(path: Path) -> None:
    """Remove a scratch path, logging a warning if it survives removal."""
    if not path.exists() and not path.is_symlink():
        return
    try:
        _remove_path(path)
    except OSError as exc:
        logger.warning("Could not remove %s: %s", path, exc)
        return
    if path.exists():
        logger.warning("Could not remove %s", path)


class ShardReportMerger:
    """
    Merge per-shard report artifacts into one report per matrix cell.

    Attributes:
        merge_tool: External merge step; its ``output_dir`` is where the
            merged report is collected from.
        matrix: Cells to process, in processing order.
        artifact_kind: Leading label of the shard directory names.
        node_version: Runtime version encoded in the shard directory names.
        strategy: Consolidation strategy.
        scratch_root: Parent of the per-cell consolidation directories;
            removed at the end of every run.
        shards_label: Shard range description written to the sidecar.
        include_node_suffix: Name destinations ``<cell>-node<version>``.
    """

    def __init__(
        self,
        merge_tool: MergeTool,
        *,
        scratch_root: Path,
        matrix: Sequence[MatrixCell] = DEFAULT_MATRIX,
        artifact_kind: str = "blob-report",
        node_version: str = "20",
        strategy: ConsolidationStrategy | str = ConsolidationStrategy.COPY,
        shards_label: str = "1-4 (merged)",
        include_node_suffix: bool = False,
    ):
        self.merge_tool = merge_tool
        self.scratch_root = Path(scratch_root)
        self.matrix = tuple(matrix)
        self.artifact_kind = artifact_kind
        self.node_version = str(node_version)
        self.strategy = ConsolidationStrategy(strategy)
        self.shards_label = shards_label
        self.include_node_suffix = include_node_suffix

    # -------------------------------------------------------------------------
    # Pipeline steps
    # -------------------------------------------------------------------------

    def discover_shards(self, cell: MatrixCell, all_reports_dir: Path) -> list[Path]:
        """
        List the shard directories that belong to *cell*.

        Entries are visited in name order; files and unrelated
        directories are ignored.

        Raises:
            CellDiscoveryEmpty: If no directory matches the cell prefix.
        """
        prefix = cell.shard_prefix(self.artifact_kind, self.node_version)
        shards = [
            entry
            for entry in sorted(all_reports_dir.iterdir())
            if entry.name.startswith(prefix) and entry.is_dir()
        ]
        if not shards:
            raise CellDiscoveryEmpty(cell.cell_name)
        return shards

    def consolidate(self, shards: Sequence[Path], destination: Path) -> Path:
        """
        Copy the contents of every shard into *destination*.

        A name that already exists in *destination* is never overwritten,
        so the first shard to provide a file keeps it.

        Returns:
            The consolidated directory.
        """
        if destination.exists():
            shutil.rmtree(destination)
        destination.mkdir(parents=True)

        for shard in shards:
            for entry in sorted(shard.rglob("*")):
                if entry.is_dir():
                    continue
                relative = entry.relative_to(shard)
                target = destination / relative
                if target.exists():
                    logger.debug("Skipping %s: %s already consolidated", entry, relative)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(entry, target)
        return destination

    def relocate(self, destination: Path) -> None:
        """
        Move everything the merge tool produced into *destination*.

        Raises:
            CellProcessingError: If the tool left no output directory.
        """
        output_dir = self.merge_tool.output_dir
        if not output_dir.is_dir():
            raise CellProcessingError(f"Merge tool produced no report at {output_dir}")

        destination.mkdir(parents=True, exist_ok=True)
        for entry in list(output_dir.iterdir()):
            target = destination / entry.name
            if target.exists() or target.is_symlink():
                _remove_path(target)
            shutil.move(str(entry), str(target))
        output_dir.rmdir()

    def destination_for(self, cell: MatrixCell, merged_reports_dir: Path) -> Path:
        name = cell.cell_name
        if self.include_node_suffix:
            name = f"{name}-node{self.node_version}"
        return merged_reports_dir / name

    def build_metadata(self, cell: MatrixCell, shards_count: int) -> MergeMetadata:
        git_ref, run_id = ci_provenance()
        return MergeMetadata(
            os=cell.platform,
            browser=cell.browser_engine,
            node_version=self.node_version,
            shards=self.shards_label,
            shards_count=shards_count,
            git_ref=git_ref,
            run_id=run_id,
        )

    # -------------------------------------------------------------------------
    # Orchestration
    # -------------------------------------------------------------------------

    def process_cell(
        self, cell: MatrixCell, all_reports_dir: Path, merged_reports_dir: Path
    ) -> CellResult:
        """
        Run the full pipeline for one cell.

        Never raises for cell-level problems: every error is logged and
        returned as a failed :class:`CellResult`.  The cell's scratch
        directory is removed on every path.
        """
        logger.info("Processing: %s", cell.cell_name)
        scratch_dir = self.scratch_root / cell.cell_name
        shards: list[Path] = []

        try:
            shards = self.discover_shards(cell, all_reports_dir)
            logger.info("  Found %d shard(s) for %s", len(shards), cell.cell_name)

            # A leftover report from an earlier cell must not be collected again.
            if self.merge_tool.output_dir.exists():
                _remove_path(self.merge_tool.output_dir)

            if self.strategy is ConsolidationStrategy.COPY:
                logger.info("  Consolidating %d shard(s)", len(shards))
                inputs = [self.consolidate(shards, scratch_dir)]
            else:
                inputs = list(shards)

            logger.info("  Generating HTML report for %s", cell.cell_name)
            self.merge_tool.merge(inputs)

            destination = self.destination_for(cell, merged_reports_dir)
            self.relocate(destination)
            self.build_metadata(cell, len(shards)).write(destination)
        except CellDiscoveryEmpty as exc:
            logger.warning("  %s", exc)
            return CellResult(cell=cell, ok=False, message=str(exc))
        except Exception as exc:
            logger.error("  Failed to merge %s: %s", cell.cell_name, exc)
            _discard(self.merge_tool.output_dir)
            return CellResult(cell=cell, ok=False, shards_count=len(shards), message=str(exc))
        finally:
            _discard(scratch_dir)

        logger.info("  Successfully merged report for %s", cell.cell_name)
        return CellResult(
            cell=cell,
            ok=True,
            shards_count=len(shards),
            destination=destination,
            message="merged",
        )

    def run(self, all_reports_dir: Path, merged_reports_dir: Path) -> RunSummary:
        """
        Merge every matrix cell found under *all_reports_dir*.

        Args:
            all_reports_dir: Directory whose immediate subdirectories are
                the downloaded shard artifacts.
            merged_reports_dir: Destination root, created with parents.

        Returns:
            The run summary; ``failure_count`` may be non-zero.

        Raises:
            InputDirectoryMissing: If *all_reports_dir* is not a
                directory.  Nothing is created in that case.
        """
        all_reports_dir = Path(all_reports_dir)
        merged_reports_dir = Path(merged_reports_dir)
        if not all_reports_dir.is_dir():
            raise InputDirectoryMissing(str(all_reports_dir))

        logger.info("Starting report merge process for %d matrix cells", len(self.matrix))
        merged_reports_dir.mkdir(parents=True, exist_ok=True)

        summary = RunSummary(total_cells=len(self.matrix))
        try:
            for cell in self.matrix:
                summary.results.append(
                    self.process_cell(cell, all_reports_dir, merged_reports_dir)
                )
        finally:
            _discard(self.scratch_root)

        logger.info(
            "Merge summary: %d successful, %d failed, %d total combinations",
            summary.success_count,
            summary.failure_count,
            summary.total_cells,
        )
        if summary.failure_count:
            logger.warning("%d combination(s) failed to merge", summary.failure_count)
        return summary


def merger_from_config(
    config_class: type[Config] | None = None,
    *,
    cwd: Path | None = None,
    merge_tool: MergeTool | None = None,
    matrix: Sequence[MatrixCell] | None = None,
    timeout: float | None = None,
    **overrides,
) -> ShardReportMerger:
    """
    Build a :class:`ShardReportMerger` from a configuration class.

    Relative scratch and tool output paths are resolved against *cwd*
    (the process working directory when omitted).  Keyword *overrides*
    that are not ``None`` replace the configured merger settings.
    """
    cfg = config_class or get_config()
    base = Path(cwd) if cwd is not None else Path.cwd()

    if matrix is None:
        matrix = load_matrix(Path(cfg.MATRIX_FILE)) if cfg.MATRIX_FILE else DEFAULT_MATRIX
    if merge_tool is None:
        merge_tool = PlaywrightMergeTool(
            base / cfg.TOOL_OUTPUT_DIR,
            timeout=timeout if timeout is not None else cfg.TOOL_TIMEOUT,
            cwd=base,
        )

    settings = {
        "artifact_kind": cfg.ARTIFACT_KIND,
        "node_version": cfg.NODE_VERSION,
        "strategy": cfg.STRATEGY,
        "shards_label": cfg.SHARDS_LABEL,
        "include_node_suffix": cfg.INCLUDE_NODE_SUFFIX,
    }
    settings.update({key: value for key, value in overrides.items() if value is not None})

    return ShardReportMerger(
        merge_tool,
        scratch_root=base / cfg.SCRATCH_DIR,
        matrix=matrix,
        **settings,
    )


def merge_shard_reports(
    all_reports_dir: Path | str,
    merged_reports_dir: Path | str,
    *,
    merger: ShardReportMerger | None = None,
) -> RunSummary:
    """Merge shard reports using *merger*, or one built from the active config."""
    if merger is None:
        merger = merger_from_config()
    return merger.run(Path(all_reports_dir), Path(merged_reports_dir))
