"""Incremental multi-repository changelog engine."""

__version__ = "0.3.0"
