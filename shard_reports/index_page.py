"""
Summary index page for merged reports.

After the merge job, CI publishes ``<reports-dir>/`` with one merged
report per matrix cell plus an ``index.html`` landing page.  This module
fills that landing page in: it finds every subdirectory holding an
``index.html``, reads its ``matrix-info.json`` sidecar when present, and
injects one card per report together with the report count and the time
of the most recent run.

The landing page is a static template with three fixed markers that are
replaced textually, so the template can be styled freely as long as the
markers stay intact.
"""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo

from jinja2 import Environment, PackageLoader, select_autoescape

from shard_reports.models import METADATA_FILENAME

logger = logging.getLogger(__name__)

DEFAULT_REPORTS_DIR = "final-report"
DEFAULT_TIMEZONE = "Asia/Jerusalem"
INDEX_FILENAME = "index.html"

GRID_MARKER = '<div class="report-grid" id="reportGrid">'
TOTAL_MARKER = '<span class="stat-value" id="totalReports">0</span>'
LAST_RUN_MARKER = '<span class="stat-value" id="lastRun">-</span>'

DEFAULT_TEMPLATE_PATH = Path(__file__).resolve().parent / "templates" / INDEX_FILENAME

_jinja_env = Environment(
    loader=PackageLoader("shard_reports", "templates"),
    autoescape=select_autoescape(["html"]),
)


@dataclass(frozen=True)
class ReportCard:
    """One merged report as shown on the landing page."""

    directory: str
    display_name: str
    href: str
    generated: str = ""
    timestamp: datetime | None = None


@dataclass
class IndexSummary:
    """What :func:`populate_reports` wrote into the landing page."""

    total_reports: int
    last_run: datetime | None
    last_run_display: str
    cards: list[ReportCard] = field(default_factory=list)


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse an ISO-8601 sidecar timestamp into an aware datetime.

    Naive values are taken as UTC.  Returns ``None`` for anything that
    is not a parseable string.
    """
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_card_time(moment: datetime, tz: ZoneInfo) -> str:
    """Render ``DD.MM.YYYY, HH:MM`` (24h) in *tz*."""
    return moment.astimezone(tz).strftime("%d.%m.%Y, %H:%M")


def format_last_run(moment: datetime | None, tz: ZoneInfo) -> str:
    """Render ``HH:MM`` (24h) in *tz*, or ``-`` when there was no run."""
    if moment is None:
        return "-"
    return moment.astimezone(tz).strftime("%H:%M")


def _read_matrix_info(report_dir: Path) -> dict[str, Any]:
    """
    Load the sidecar for one report directory.

    A missing or unreadable sidecar yields ``{}`` so the card falls back
    to the directory name.
    """
    meta_path = report_dir / METADATA_FILENAME
    if not meta_path.is_file():
        return {}
    try:
        data = json.loads(meta_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Could not parse matrix info for %s: %s", report_dir.name, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Could not parse matrix info for %s: not a JSON object", report_dir.name)
        return {}
    return data


def build_card(report_dir: Path, tz: ZoneInfo) -> ReportCard:
    """Describe one report directory as a :class:`ReportCard`."""
    info = _read_matrix_info(report_dir)

    if info.get("os") and info.get("browser"):
        display_name = f"{info['os']} - {info['browser']} (Node {info.get('nodeVersion', 'unknown')})"
    else:
        display_name = report_dir.name

    timestamp = parse_timestamp(info.get("timestamp"))
    return ReportCard(
        directory=report_dir.name,
        display_name=display_name,
        href=f"{report_dir.name}/{INDEX_FILENAME}",
        generated=format_card_time(timestamp, tz) if timestamp else "",
        timestamp=timestamp,
    )


def collect_cards(reports_dir: Path, tz: ZoneInfo) -> list[ReportCard]:
    """Return a card for every immediate subdirectory that holds an ``index.html``."""
    cards = []
    for item in sorted(reports_dir.iterdir()):
        if item.is_dir() and (item / INDEX_FILENAME).is_file():
            logger.info("Found report: %s", item.name)
            cards.append(build_card(item, tz))
    return cards


def render_cards(cards: list[ReportCard]) -> str:
    template = _jinja_env.get_template("report_card.html")
    return "".join(f"\n{template.render(card=card)}\n" for card in cards)


def install_default_template(reports_dir: Path) -> bool:
    """
    Copy the packaged landing page into *reports_dir* unless one exists.

    Returns:
        ``True`` if a template was written.
    """
    target = reports_dir / INDEX_FILENAME
    if target.exists():
        return False
    reports_dir.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(DEFAULT_TEMPLATE_PATH, target)
    return True


def populate_reports(
    reports_dir: Path | str = DEFAULT_REPORTS_DIR,
    *,
    timezone_name: str = DEFAULT_TIMEZONE,
) -> IndexSummary | None:
    """
    Fill the landing page in *reports_dir* with the merged reports found there.

    Args:
        reports_dir: Directory holding one subdirectory per merged report
            and the ``index.html`` template.
        timezone_name: IANA zone used to display timestamps.

    Returns:
        The summary that was written, or ``None`` if the reports
        directory or its ``index.html`` template is missing (both are
        logged, neither is raised).
    """
    reports_dir = Path(reports_dir)
    tz = ZoneInfo(timezone_name)

    logger.info("Scanning for reports in: %s", reports_dir)
    if not reports_dir.is_dir():
        logger.error("Reports directory not found: %s", reports_dir)
        return None

    cards = collect_cards(reports_dir, tz)
    timestamps = [card.timestamp for card in cards if card.timestamp is not None]
    last_run = max(timestamps) if timestamps else None

    index_path = reports_dir / INDEX_FILENAME
    if not index_path.is_file():
        logger.error("Index template not found: %s", index_path)
        return None

    logger.info("Updating index file: %s", index_path)
    last_run_display = format_last_run(last_run, tz)

    content = index_path.read_text(encoding="utf-8")
    content = content.replace(GRID_MARKER, f"{GRID_MARKER}{render_cards(cards)}")
    content = content.replace(
        TOTAL_MARKER, TOTAL_MARKER.replace(">0<", f">{len(cards)}<")
    )
    content = content.replace(
        LAST_RUN_MARKER, LAST_RUN_MARKER.replace(">-<", f">{last_run_display}<")
    )
    index_path.write_text(content, encoding="utf-8")

    logger.info("Successfully populated index with %d reports", len(cards))
    logger.info("Stats: Total Reports: %d, Last Run: %s", len(cards), last_run_display)
    if not cards:
        logger.warning("No reports found. Make sure the matrix jobs completed successfully.")

    return IndexSummary(
        total_reports=len(cards),
        last_run=last_run,
        last_run_display=last_run_display,
        cards=cards,
    )
