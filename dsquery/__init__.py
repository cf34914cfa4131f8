"""Compose datastore key queries with AND, OR and NOT operators and optional caching."""

__version__ = "0.1.0"
__all__ = ["keys", "query"]