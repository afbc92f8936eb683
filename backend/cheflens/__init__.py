"""Refrigerator ingredient detection engine."""

__version__ = "1.0.0"
