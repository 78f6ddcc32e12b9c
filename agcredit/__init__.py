"""Agricultural credit statement extraction and ratio engine."""

__version__ = "2.0.0"
