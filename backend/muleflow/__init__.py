"""Collector and money-mule detection over a transaction flow graph."""

__version__ = "1.0.0"
