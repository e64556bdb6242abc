from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class ProviderConfig:
    """
    Settings for the external listing-data provider and competitor search.
    """

    base_url: str = os.getenv("LISTING_PROVIDER_URL", "")
    api_key: str = os.getenv("LISTING_PROVIDER_API_KEY", "")
    timeout: float = 30.0
    default_location: str = os.getenv("DEFAULT_SEARCH_LOCATION", "")
    adults: int = 2
    max_competitors: int = 8
    min_competitors: int = 3
    max_search_attempts: int = 3
    request_delay: float = 1.5  # seconds between detail lookups
    retry_delay: float = 2.0  # seconds before another search attempt


DEFAULT_PROVIDER_CONFIG = ProviderConfig()
