"""HTTP API route handlers."""

from . import entries, summaries

__all__ = ["entries", "summaries"]
