"""Eventide — calendar events, todos and notes with shared collaboration spaces."""

__version__ = "0.1.0"
