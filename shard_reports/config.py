"""
Shard Reports — Configuration.

Defines environment-specific configuration classes for the report
merging tools.  Each class captures the naming conventions of the shard
artifacts uploaded by CI, where scratch and tool output directories live,
and how the external merge step is invoked.  The ``get_config`` factory
selects the right class based on the ``REPORTS_ENV`` environment variable
(or an explicit key).

CI provenance (``GITHUB_REF``/``GITHUB_RUN_ID``) is deliberately not a
class attribute: it is read at the moment metadata is written.
"""

from __future__ import annotations

import os


def _optional_float(name: str, default: str | None = None) -> float | None:
    """Read environment variable *name* as seconds; unset or blank means ``None``."""
    value = os.environ.get(name, default)
    if value is None or value.strip() == "":
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number of seconds, got {value!r}") from exc


class Config:
    """
    Base (shared) configuration for the shard report tools.

    Individual settings can be overridden by environment variables so the
    CI workflow can adjust naming without code changes.
    """

    # Leading label of the uploaded shard artifacts.  Blob reports are what
    # ``playwright merge-reports`` consumes.
    ARTIFACT_KIND: str = os.environ.get("MERGE_ARTIFACT_KIND", "blob-report")

    # Node major version encoded in the artifact names by the matrix job.
    NODE_VERSION: str = os.environ.get("MERGE_NODE_VERSION", "20")

    # "copy" consolidates shards into one directory first; "direct" hands
    # the shard directories straight to the merge tool.
    STRATEGY: str = os.environ.get("MERGE_STRATEGY", "copy")

    # Human-readable shard range recorded in matrix-info.json.
    SHARDS_LABEL: str = os.environ.get("MERGE_SHARDS_LABEL", "1-4 (merged)")

    # Relative paths are resolved against the working directory at run time.
    SCRATCH_DIR: str = os.environ.get("MERGE_SCRATCH_DIR", "temp-blob-reports")
    TOOL_OUTPUT_DIR: str = os.environ.get("MERGE_TOOL_OUTPUT_DIR", "playwright-report")

    # Seconds before a hung merge subprocess is killed.  Unset means wait forever.
    TOOL_TIMEOUT: float | None = _optional_float("MERGE_TOOL_TIMEOUT")

    # Optional YAML file replacing the built-in matrix table.
    MATRIX_FILE: str | None = os.environ.get("MERGE_MATRIX_FILE") or None

    # Append "-node<version>" to each merged report directory name.
    INCLUDE_NODE_SUFFIX: bool = os.environ.get("MERGE_INCLUDE_NODE_SUFFIX", "").lower() in (
        "1",
        "true",
        "yes",
    )

    # Time zone used when rendering timestamps on the index page.
    REPORTS_TIMEZONE: str = os.environ.get("REPORTS_TIMEZONE", "Asia/Jerusalem")

    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")


class DevelopmentConfig(Config):
    """Local runs: more verbose logging, otherwise the shared defaults."""

    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "DEBUG")


class TestingConfig(Config):
    """
    Test-suite overrides.

    A short tool timeout keeps tests that simulate a hung merge step fast.
    """

    TOOL_TIMEOUT: float | None = _optional_float("TEST_MERGE_TOOL_TIMEOUT", "5")
    LOG_LEVEL: str = "DEBUG"


class ProductionConfig(Config):
    """CI runs: every value comes from the workflow environment."""


# Lookup table mapping environment name strings to their config classes.
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": ProductionConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Return the configuration class for the given environment.

    Args:
        env: One of ``"development"``, ``"testing"``, or
            ``"production"``.  When *None*, the ``REPORTS_ENV``
            environment variable is consulted, falling back to
            ``"production"`` if unset.

    Returns:
        The ``Config`` subclass matching the requested environment,
        or ``ProductionConfig`` if the key is unrecognised.
    """
    if env is None:
        env = os.environ.get("REPORTS_ENV", "production")
    return config.get(env, config["default"])


def ci_provenance() -> tuple[str, str]:
    """Return ``(git_ref, run_id)`` from the CI environment, ``"unknown"`` when unset."""
    return (
        os.environ.get("GITHUB_REF") or "unknown",
        os.environ.get("GITHUB_RUN_ID") or "unknown",
    )
