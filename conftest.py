"""Pytest configuration: makes the project packages importable from tests/."""
