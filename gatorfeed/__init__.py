"""Command-line RSS feed aggregator with SQLite storage."""

__version__ = "0.1.0"