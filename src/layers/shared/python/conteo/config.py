"""Environment-based configuration for the ingestion functions."""

import os
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache


class ConversionSurface(str, Enum):
    """Which conversion intents are written to the store."""

    FUNNEL = "funnel"
    PURCHASE_ONLY = "purchase_only"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Ingestion configuration loaded from environment variables."""

    table_name: str = "conteo-dev"
    stage: str = "dev"
    conversion_events: ConversionSurface = ConversionSurface.FUNNEL
    default_currency: str = "EUR"
    strict_origin_check: bool = False
    rate_limit_enabled: bool = True
    rate_limit_per_minute: int = 120
    rate_limit_per_hour: int = 3000
    reorder_window_seconds: int = 1800

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment.

        Raises:
            ValueError: If CONVERSION_EVENTS holds an unknown mode.
        """
        return cls(
            table_name=os.environ.get("TABLE_NAME", "conteo-dev"),
            stage=os.environ.get("STAGE", "dev"),
            conversion_events=ConversionSurface(
                os.environ.get("CONVERSION_EVENTS", ConversionSurface.FUNNEL.value).strip().lower()
            ),
            default_currency=os.environ.get("DEFAULT_CURRENCY", "EUR").strip().upper(),
            strict_origin_check=_env_bool("STRICT_ORIGIN_CHECK", False),
            rate_limit_enabled=_env_bool("RATE_LIMIT_ENABLED", True),
            rate_limit_per_minute=int(os.environ.get("RATE_LIMIT_PER_MINUTE", "120")),
            rate_limit_per_hour=int(os.environ.get("RATE_LIMIT_PER_HOUR", "3000")),
            reorder_window_seconds=int(os.environ.get("FUNNEL_REORDER_WINDOW_SECONDS", "1800")),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the settings for this container (loaded once)."""
    return Settings.from_env()
