"""
Shared pytest fixtures for the shard report test suite.

Every test works inside its own ``tmp_path`` so that the scratch root and
the merge tool's output directory (both relative to the working directory
in production) never leak between tests.  The real ``playwright
merge-reports`` call is replaced by :class:`FakeMergeTool`, which writes a
small synthetic report tree to its configured output directory.

Key Concepts Demonstrated:
- Factory fixtures for building shard artifact directories
- Fakes that honour the same interface as the production dependency
- Environment isolation with ``monkeypatch``
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import pytest
from faker import Faker

from shard_reports.matrix import MatrixCell
from shard_reports.merger import ShardReportMerger

fake = Faker()


# -----------------------------------------------------------------------------
# Fakes
# -----------------------------------------------------------------------------


class FakeMergeTool:
    """
    Stand-in for ``playwright merge-reports``.

    Records every call and writes ``index.html`` plus a ``data/inputs.txt``
    listing the input directories it was given, so tests can check what
    reached the tool and where its output ended up.

    Attributes:
        output_dir: Directory the fake report is written to.
        calls: Input lists received, one per ``merge`` call.
        fail_when: Substrings; an input path containing one makes the
            call raise ``RuntimeError``.
    """

    def __init__(self, output_dir: Path, fail_when: Sequence[str] = ()):
        self.output_dir = output_dir
        self.calls: list[list[Path]] = []
        self.fail_when = tuple(fail_when)
        self.snapshots: list[dict[str, bytes]] = []

    def merge(self, inputs: Sequence[Path]) -> None:
        self.calls.append(list(inputs))
        self.snapshots.append(_snapshot(inputs))
        if any(marker in str(path) for path in inputs for marker in self.fail_when):
            raise RuntimeError(f"merge-reports crashed on {inputs[0].name}")

        self.output_dir.mkdir(parents=True, exist_ok=True)
        (self.output_dir / "index.html").write_text("<html>merged</html>", encoding="utf-8")
        data_dir = self.output_dir / "data"
        data_dir.mkdir(exist_ok=True)
        (data_dir / "inputs.txt").write_text(
            "\n".join(str(path) for path in inputs), encoding="utf-8"
        )


def _snapshot(inputs: Sequence[Path]) -> dict[str, bytes]:
    """Capture the files visible to the merge tool before the merger cleans up."""
    files: dict[str, bytes] = {}
    for root in inputs:
        for path in sorted(root.rglob("*")):
            if path.is_file():
                files.setdefault(path.relative_to(root).as_posix(), path.read_bytes())
    return files


# -----------------------------------------------------------------------------
# Environment Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def clean_ci_env(monkeypatch):
    """Remove CI provenance variables so metadata defaults are predictable."""
    monkeypatch.delenv("GITHUB_REF", raising=False)
    monkeypatch.delenv("GITHUB_RUN_ID", raising=False)


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch) -> Path:
    """Run the test from an empty working directory."""
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    return work


@pytest.fixture
def all_reports_dir(tmp_path: Path) -> Path:
    """Directory the downloaded shard artifacts are placed in."""
    path = tmp_path / "all-reports"
    path.mkdir()
    return path


@pytest.fixture
def merged_reports_dir(tmp_path: Path) -> Path:
    """Destination root; not created up front."""
    return tmp_path / "out" / "merged-reports"


# -----------------------------------------------------------------------------
# Factory Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def shard_factory(all_reports_dir: Path) -> Callable[..., Path]:
    """
    Factory fixture for creating shard artifact directories.

    Example:
        def test_something(shard_factory):
            shard = shard_factory("ubuntu-latest", "chromium", 1)
            assert shard.name.endswith("-shard1")
    """

    def _create_shard(
        platform: str,
        browser: str,
        index: int,
        files: dict[str, str] | None = None,
        *,
        artifact_kind: str = "blob-report",
        node_version: str = "20",
    ) -> Path:
        shard = all_reports_dir / f"{artifact_kind}-{platform}-{browser}-node{node_version}-shard{index}"
        shard.mkdir()
        if files is None:
            files = {f"report-{platform}-{browser}-{index}.zip": fake.paragraph()}
        for name, content in files.items():
            target = shard / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return shard

    return _create_shard


@pytest.fixture
def fake_tool(workdir: Path) -> FakeMergeTool:
    """Fake merge tool writing to ``<workdir>/playwright-report``."""
    return FakeMergeTool(workdir / "playwright-report")


@pytest.fixture
def merger_factory(workdir: Path, fake_tool: FakeMergeTool) -> Callable[..., ShardReportMerger]:
    """Factory for mergers wired to the fake tool and the test's working directory."""

    def _create_merger(**kwargs) -> ShardReportMerger:
        kwargs.setdefault("scratch_root", workdir / "temp-blob-reports")
        tool = kwargs.pop("merge_tool", fake_tool)
        return ShardReportMerger(tool, **kwargs)

    return _create_merger


@pytest.fixture
def ubuntu_chromium() -> MatrixCell:
    return MatrixCell("ubuntu-latest", "chromium")
