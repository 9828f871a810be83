"""
OS/browser matrix definition.

The CI workflow runs every shard of the suite once per matrix cell.  The
cells are not a full cross product (WebKit is never run on Windows), so
they are declared as an explicit table rather than generated from lists.

A YAML file can replace the built-in table::

    cells:
      - os: ubuntu-latest
        browser: chromium
      - os: macos-latest
        browser: webkit
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from shard_reports.errors import MatrixConfigError


@dataclass(frozen=True)
class MatrixCell:
    """One (platform, browser engine) combination of the CI matrix."""

    platform: str
    browser_engine: str

    @property
    def cell_name(self) -> str:
        return f"{self.platform}-{self.browser_engine}"

    def shard_prefix(self, artifact_kind: str, node_version: str) -> str:
        """
        Build the directory-name prefix shared by all shards of this cell.

        Args:
            artifact_kind: Leading artifact label, e.g. ``blob-report``.
            node_version: Runtime major version the shards ran on.

        Returns:
            A prefix such as
            ``blob-report-ubuntu-latest-chromium-node20-shard``.
        """
        return f"{artifact_kind}-{self.cell_name}-node{node_version}-shard"


DEFAULT_MATRIX: tuple[MatrixCell, ...] = (
    MatrixCell("ubuntu-latest", "chromium"),
    MatrixCell("ubuntu-latest", "firefox"),
    MatrixCell("ubuntu-latest", "webkit"),
    MatrixCell("windows-latest", "chromium"),
    MatrixCell("windows-latest", "firefox"),
    MatrixCell("macos-latest", "chromium"),
    MatrixCell("macos-latest", "firefox"),
    MatrixCell("macos-latest", "webkit"),
)


def load_matrix(path: Path) -> tuple[MatrixCell, ...]:
    """
    Read a matrix table from a YAML file.

    Args:
        path: YAML file with a top-level ``cells`` list whose entries
            carry ``os`` and ``browser`` keys.

    Returns:
        The cells in file order.

    Raises:
        MatrixConfigError: If the file cannot be read, has no cells,
            contains an incomplete entry, or declares a cell twice.
    """
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise MatrixConfigError(f"Could not read matrix file {path}: {exc}") from exc

    entries = data.get("cells") if isinstance(data, dict) else None
    if not isinstance(entries, list) or not entries:
        raise MatrixConfigError(f"Matrix file {path} must define a non-empty 'cells' list")

    cells: list[MatrixCell] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise MatrixConfigError(f"Matrix entry #{index} is not a mapping")
        platform = entry.get("os")
        browser = entry.get("browser")
        if not isinstance(platform, str) or not isinstance(browser, str) or not platform or not browser:
            raise MatrixConfigError(f"Matrix entry #{index} needs string 'os' and 'browser' values")

        cell = MatrixCell(platform, browser)
        if cell in cells:
            raise MatrixConfigError(f"Matrix cell {cell.cell_name} is declared twice")
        cells.append(cell)

    return tuple(cells)
