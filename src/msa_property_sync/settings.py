from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date
from functools import lru_cache

from .normalize import parse_date


DEFAULT_API_URL = ""
DEFAULT_GEOCODER_URL = (
    "https://geocoding.geo.census.gov/geocoder/geographies/coordinates"
)
DEFAULT_DB_PATH = "./msa_sync.sqlite"
DEFAULT_START_DATE = date(2025, 12, 3)


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = raw.strip()
    return v or default


def _env_int(name: str, default: int, *, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(float(raw.strip()))
    except ValueError:
        return default
    return max(minimum, value)


def _env_date(name: str, default: date) -> date:
    raw = os.getenv(name)
    if raw is None:
        return default
    return parse_date(raw) or default


@dataclass(frozen=True)
class ProviderCredentials:
    api_key: str
    api_url: str

    def __repr__(self) -> str:
        return f"ProviderCredentials(api_url={self.api_url!r}, api_key=***)"


@dataclass(frozen=True)
class Settings:
    """Runtime configuration read from the environment.

    Markets and their exclusion lists are static data in
    ``msa_property_sync.markets``, not settings.
    """

    api_key: str
    api_url: str
    db_path: str
    provider_timeout_s: int
    geocoder_timeout_s: int
    geocoder_url: str
    max_workers: int
    page_size: int
    default_start_date: date

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_key=_env_str("SFR_API_KEY", ""),
            api_url=_env_str("SFR_API_URL", DEFAULT_API_URL).rstrip("/"),
            db_path=_env_str("MSA_SYNC_DB_PATH", DEFAULT_DB_PATH),
            provider_timeout_s=_env_int("MSA_SYNC_PROVIDER_TIMEOUT_S", 30),
            geocoder_timeout_s=_env_int("MSA_SYNC_GEOCODER_TIMEOUT_S", 10),
            geocoder_url=_env_str("MSA_SYNC_GEOCODER_URL", DEFAULT_GEOCODER_URL),
            max_workers=_env_int("MSA_SYNC_MAX_WORKERS", 4),
            page_size=_env_int("MSA_SYNC_PAGE_SIZE", 100),
            default_start_date=_env_date(
                "MSA_SYNC_DEFAULT_START_DATE", DEFAULT_START_DATE
            ),
        )

    @property
    def credentials(self) -> ProviderCredentials:
        return ProviderCredentials(api_key=self.api_key, api_url=self.api_url)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def reset_settings_cache() -> None:
    """Test helper to force env re-read."""

    get_settings.cache_clear()
