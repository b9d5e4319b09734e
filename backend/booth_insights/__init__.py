"""Resilient aggregation layer for electoral booth statistics."""

__version__ = "0.1.0"
