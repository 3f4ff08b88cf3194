"""Conteo event ingestion and conversion attribution core."""

__version__ = "1.0.0"
