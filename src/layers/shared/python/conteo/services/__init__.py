"""Service classes for ingestion and attribution logic."""

from conteo.services.funnel import ConversionFunnel, ConversionIntent
from conteo.services.ingestion import IngestionService, RequestMeta

__all__ = [
    "ConversionFunnel",
    "ConversionIntent",
    "IngestionService",
    "RequestMeta",
]
