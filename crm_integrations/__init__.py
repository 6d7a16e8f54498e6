"""Aggregation layer over external contact, places and CRM providers."""

__version__ = "0.1.0"
