"""
Playwright fixtures for the reports landing page tests.

The landing page is a static file, so instead of a live server the
fixtures build a published reports directory in ``tmp_path`` (merged by
the real merger with a fake merge tool, then populated) and point the
browser at its ``file://`` URI.

Browser tests are skipped when Playwright's Chromium build is not
installed (``playwright install chromium``).
"""

from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path

import pytest
from playwright.sync_api import Browser, BrowserContext, Error, Page, sync_playwright

from shard_reports.index_page import install_default_template, populate_reports
from shard_reports.matrix import MatrixCell
from tests.e2e.pages.report_index_page import ReportIndexPage


@pytest.fixture(scope="session")
def browser() -> Generator[Browser, None, None]:
    with sync_playwright() as playwright:
        try:
            browser = playwright.chromium.launch()
        except Error as exc:
            pytest.skip(f"Chromium is not installed for Playwright: {exc}")
        yield browser
        browser.close()


@pytest.fixture(scope="session")
def browser_context_args():
    return {"viewport": {"width": 1280, "height": 720}}


@pytest.fixture(scope="function")
def context(
    browser: Browser, browser_context_args: dict
) -> Generator[BrowserContext, None, None]:
    context = browser.new_context(**browser_context_args)
    yield context
    context.close()


@pytest.fixture(scope="function")
def page(context: BrowserContext) -> Generator[Page, None, None]:
    page = context.new_page()
    yield page
    page.close()


@pytest.fixture
def published_reports(
    merger_factory, shard_factory, all_reports_dir, tmp_path
) -> Path:
    """Merge two cells' shards and populate the landing page in UTC."""
    reports_dir = tmp_path / "final-report"
    for index in (1, 2):
        shard_factory("ubuntu-latest", "chromium", index)
    shard_factory("macos-latest", "webkit", 1)

    merger = merger_factory(
        matrix=[MatrixCell("ubuntu-latest", "chromium"), MatrixCell("macos-latest", "webkit")]
    )
    merger.run(all_reports_dir, reports_dir)
    install_default_template(reports_dir)
    populate_reports(reports_dir, timezone_name="UTC")
    return reports_dir


@pytest.fixture
def report_index_page(page: Page, published_reports: Path) -> ReportIndexPage:
    return ReportIndexPage(page, published_reports.as_uri())


@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Capture screenshot on browser test failure."""
    outcome = yield
    report = outcome.get_result()

    if report.when == "call" and report.failed:
        page = item.funcargs.get("page")
        if page:
            screenshot_dir = "test-results/screenshots"
            os.makedirs(screenshot_dir, exist_ok=True)
            test_name = item.name.replace("/", "_").replace("::", "_")
            screenshot_path = f"{screenshot_dir}/{test_name}.png"
            try:
                page.screenshot(path=screenshot_path)
                print(f"\nScreenshot saved: {screenshot_path}")
            except Error as exc:  # pragma: no cover - best effort logging
                print(f"\nFailed to capture screenshot: {exc}")
