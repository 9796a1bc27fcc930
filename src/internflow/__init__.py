"""Internship posting and candidacy lifecycle engine."""

__version__ = "0.1.0"
