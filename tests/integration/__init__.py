"""
Integration tests for the shard report tools.

Each test builds a realistic artifact tree in a temporary directory and
runs the merger or index renderer end to end, with only the external
``playwright merge-reports`` call replaced by a fake.
"""
