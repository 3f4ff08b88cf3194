"""Repository classes for DynamoDB data access."""

from conteo.repositories.base import BaseRepository
from conteo.repositories.conversion import ConversionRepository
from conteo.repositories.events import CustomEventRepository, PageviewRepository
from conteo.repositories.site import SiteRepository

__all__ = [
    "BaseRepository",
    "ConversionRepository",
    "CustomEventRepository",
    "PageviewRepository",
    "SiteRepository",
]
