"""Chorekeeper - recurrence and reminder scheduling."""

__version__ = "0.1.0"
