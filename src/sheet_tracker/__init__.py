"""Improvement sheet tracker: grade a reflection checklist per game, keep snapshots."""

__version__ = "0.3.0"
