"""Recurring calendar events over an embedded SQLite store."""

__version__ = "0.1.0"
