"""Resolve the owner of a listed property from stored listings, a side file and data providers."""

__version__ = "0.1.0"
