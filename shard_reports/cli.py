"""
Command-line entry points for the CI report jobs.

``merge-shard-reports`` runs after all matrix shards have uploaded their
blob reports; ``populate-reports`` runs after the merged reports have
been assembled into the published directory.

Exit codes for ``merge-shard-reports``:

- ``0`` — the run completed, even if some cells failed to merge
- ``1`` — usage error, missing input directory or bad matrix file
  (or, with ``--fail-on-partial``, any failed cell)
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from shard_reports.config import get_config
from shard_reports.errors import MatrixConfigError, UsageError
from shard_reports.index_page import DEFAULT_REPORTS_DIR, install_default_template, populate_reports
from shard_reports.matrix import load_matrix
from shard_reports.merger import ConsolidationStrategy, merge_shard_reports, merger_from_config
from shard_reports.models import RunSummary

EXIT_OK = 0
EXIT_ERROR = 1

MERGE_USAGE = "Usage: merge-shard-reports <all-reports-dir> <merged-reports-dir>"

logger = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """Parser that reports bad arguments as :class:`UsageError` instead of exiting 2."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(message)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _build_merge_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="merge-shard-reports",
        description="Merge sharded Playwright blob reports into one HTML report per OS/browser cell.",
    )
    parser.add_argument("all_reports_dir", type=Path, help="Directory holding every downloaded shard artifact")
    parser.add_argument("merged_reports_dir", type=Path, help="Destination root for merged reports")
    parser.add_argument("--env", default=None, help="Configuration name (development, testing, production)")
    parser.add_argument("--artifact-kind", default=None, help="Shard directory prefix, e.g. blob-report")
    parser.add_argument("--node-version", default=None, help="Node version encoded in shard directory names")
    parser.add_argument(
        "--strategy",
        choices=[strategy.value for strategy in ConsolidationStrategy],
        default=None,
        help="copy shards into one directory first, or pass them to the merge tool directly",
    )
    parser.add_argument("--matrix", type=Path, default=None, help="YAML file replacing the built-in matrix")
    parser.add_argument(
        "--include-node-suffix",
        action="store_true",
        default=None,
        help="Name merged report directories <os>-<browser>-node<version>",
    )
    parser.add_argument("--timeout", type=float, default=None, help="Seconds before the merge tool is killed")
    parser.add_argument(
        "--fail-on-partial",
        action="store_true",
        help="Exit 1 when any matrix cell failed to merge",
    )
    return parser


def _print_summary(summary: RunSummary) -> None:
    """Print a per-cell results table to stdout for CI logs."""
    print("=" * 60)
    print("Merge Summary")
    print("-" * 60)
    print(f"{'Cell':<32}{'Shards':>8}{'Status':>10}")
    print("-" * 60)
    for result in summary.results:
        status = "OK" if result.ok else "FAILED"
        print(f"{result.cell.cell_name:<32}{result.shards_count:>8}{status:>10}")
    print("-" * 60)
    print(f"Successful: {summary.success_count}")
    print(f"Failed: {summary.failure_count}")
    print(f"Total combinations: {summary.total_cells}")
    print("=" * 60)


def merge_main(argv: list[str] | None = None) -> int:
    """
    Entry point for ``merge-shard-reports``.

    Returns:
        ``EXIT_OK`` when the run completed, ``EXIT_ERROR`` on usage
        errors, a missing input directory or an invalid matrix file.
    """
    parser = _build_merge_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as exc:
        print(MERGE_USAGE, file=sys.stderr)
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    cfg = get_config(args.env)
    configure_logging(cfg.LOG_LEVEL)

    if not args.all_reports_dir.is_dir():
        print(f"Error: Directory not found: {args.all_reports_dir}", file=sys.stderr)
        return EXIT_ERROR

    try:
        matrix = load_matrix(args.matrix) if args.matrix else None
        merger = merger_from_config(
            cfg,
            matrix=matrix,
            timeout=args.timeout,
            artifact_kind=args.artifact_kind,
            node_version=args.node_version,
            strategy=args.strategy,
            include_node_suffix=args.include_node_suffix,
        )
    except MatrixConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    summary = merge_shard_reports(args.all_reports_dir, args.merged_reports_dir, merger=merger)
    _print_summary(summary)

    if args.fail_on_partial and not summary.all_succeeded:
        return EXIT_ERROR
    return EXIT_OK


def populate_main(argv: list[str] | None = None) -> int:
    """Entry point for ``populate-reports``; always exits 0 like the CI step expects."""
    parser = argparse.ArgumentParser(
        prog="populate-reports",
        description="Fill the reports landing page with cards for every merged report.",
    )
    parser.add_argument(
        "reports_dir",
        nargs="?",
        type=Path,
        default=Path(DEFAULT_REPORTS_DIR),
        help="Directory holding merged report subdirectories and index.html",
    )
    parser.add_argument("--env", default=None, help="Configuration name (development, testing, production)")
    parser.add_argument("--timezone", default=None, help="IANA time zone for displayed timestamps")
    parser.add_argument(
        "--init-template",
        action="store_true",
        help="Write the bundled index.html template first if the directory has none",
    )
    args = parser.parse_args(argv)

    cfg = get_config(args.env)
    configure_logging(cfg.LOG_LEVEL)

    if args.init_template and args.reports_dir.is_dir():
        if install_default_template(args.reports_dir):
            logger.info("Installed default index template in %s", args.reports_dir)

    timezone_name = args.timezone or cfg.REPORTS_TIMEZONE
    try:
        ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        logger.error("Unknown time zone %r: %s", timezone_name, exc)
        return EXIT_OK

    populate_reports(args.reports_dir, timezone_name=timezone_name)
    return EXIT_OK
