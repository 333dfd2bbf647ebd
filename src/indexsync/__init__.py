"""Keeps a hosted search index in sync with records from a data store."""

__version__ = "1.0.0"
