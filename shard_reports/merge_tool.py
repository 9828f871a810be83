"""
External report-merge step.

The merger never generates HTML itself; it hands a set of blob report
directories to a merge tool and collects whatever the tool writes into
its output directory.  :class:`PlaywrightMergeTool` shells out to
``npx playwright merge-reports``.  Tests substitute any object that
satisfies :class:`MergeTool`.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from shard_reports.errors import CellProcessingError

logger = logging.getLogger(__name__)

DEFAULT_MERGE_COMMAND: tuple[str, ...] = ("npx", "playwright", "merge-reports")


class MergeTool(Protocol):
    """Anything that turns blob report directories into a report tree."""

    output_dir: Path

    def merge(self, inputs: Sequence[Path]) -> None:
        """Merge *inputs* and leave the generated report in ``output_dir``."""


class PlaywrightMergeTool:
    """
    Run ``playwright merge-reports`` as a blocking subprocess.

    The HTML reporter's output folder is pinned through the
    ``PLAYWRIGHT_HTML_OUTPUT_DIR`` variable (and its older name
    ``PLAYWRIGHT_HTML_REPORT``) so the merger knows where to collect it.
    Output is streamed to the parent's stdout/stderr so it appears in
    the CI log.

    Attributes:
        output_dir: Where the HTML reporter writes the merged report.
        reporter: Reporter name passed to ``--reporter``.
        timeout: Seconds before the subprocess is killed, or ``None``.
        command: Executable and leading arguments.
        cwd: Working directory for the subprocess.
    """

    def __init__(
        self,
        output_dir: Path,
        *,
        reporter: str = "html",
        timeout: float | None = None,
        command: Sequence[str] = DEFAULT_MERGE_COMMAND,
        cwd: Path | None = None,
    ):
        self.output_dir = Path(output_dir)
        self.reporter = reporter
        self.timeout = timeout
        self.command = tuple(command)
        self.cwd = cwd

    def build_command(self, inputs: Sequence[Path]) -> list[str]:
        return [*self.command, "--reporter", self.reporter, *(str(path) for path in inputs)]

    def merge(self, inputs: Sequence[Path]) -> None:
        """
        Merge the given blob report directories.

        Args:
            inputs: One consolidated directory or several shard directories.

        Raises:
            CellProcessingError: If the tool is missing, exits non-zero,
                or exceeds ``timeout``.
        """
        if not inputs:
            raise CellProcessingError("Merge tool invoked without input directories")

        cmd = self.build_command(inputs)
        env = dict(os.environ)
        env["PLAYWRIGHT_HTML_OUTPUT_DIR"] = str(self.output_dir)
        env["PLAYWRIGHT_HTML_REPORT"] = str(self.output_dir)

        logger.debug("Running merge tool: %s", " ".join(cmd))
        try:
            subprocess.run(
                cmd,
                check=True,
                cwd=self.cwd,
                env=env,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise CellProcessingError(f"Merge tool not found: {self.command[0]}") from exc
        except subprocess.TimeoutExpired as exc:
            raise CellProcessingError(
                f"Merge tool timed out after {self.timeout}s"
            ) from exc
        except subprocess.CalledProcessError as exc:
            raise CellProcessingError(
                f"Merge tool exited with status {exc.returncode}"
            ) from exc
