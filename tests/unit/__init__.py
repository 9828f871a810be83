"""Unit tests for individual shard report building blocks."""
