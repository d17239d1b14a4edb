"""Package metadata aggregation, refresh and validation."""

__version__ = "0.1.0"
