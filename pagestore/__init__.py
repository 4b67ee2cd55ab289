"""pagestore — typed SQLite persistence for the browser's page records."""

__version__ = "0.1.0"
