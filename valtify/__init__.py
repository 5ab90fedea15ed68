"""Valtify - a personal vault API with per-account encrypted items."""

__version__ = "1.0.0"
