"""Harvest and reconcile CodeMeta software metadata from project checkouts."""

__version__ = "0.4.0"

__all__ = ["__version__"]
