"""smartsearch - semantic search over items, shops and categories."""

__version__ = "0.1.0"
