"""
Test suite for the shard report tooling.

This package contains:
- unit/: Pure logic tests (matrix table, sidecar records, timestamp formatting)
- integration/: Full merge and index runs against temporary directory trees
- e2e/: Browser checks of the rendered landing page using Playwright
"""
