from __future__ import annotations

import json
import logging
from typing import Any

import requests

from .config import DEFAULT_PROVIDER_CONFIG, ProviderConfig

logger = logging.getLogger(__name__)


class ListingProviderError(Exception):
    """Raised when the listing-data provider cannot deliver usable data."""


def unwrap_payload(payload: Any) -> Any:
    """
    Return the JSON document carried by a provider response.

    Providers that speak the tool-call convention wrap their result as
    ``{"content": [{"type": "text", "text": "<json>"}]}``; everything else is
    returned as-is.
    """
    if not isinstance(payload, dict) or "content" not in payload:
        return payload

    content = payload["content"]
    if not isinstance(content, list) or not content:
        raise ListingProviderError("Provider returned empty content")

    first = content[0]
    text = first.get("text") if isinstance(first, dict) else None
    if text is None:
        return first
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ListingProviderError(f"Invalid JSON in provider content: {exc}") from exc


class ListingDataClient:
    """Thin HTTP client for the listing-data provider (search + detail lookups)."""

    def __init__(
        self,
        config: ProviderConfig = DEFAULT_PROVIDER_CONFIG,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config
        self.session = session or requests.Session()
        if config.api_key:
            self.session.headers["Authorization"] = f"Bearer {config.api_key}"

    @property
    def is_configured(self) -> bool:
        return bool(self.config.base_url)

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        if not self.is_configured:
            raise ListingProviderError("Listing provider URL is not configured")

        url = f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"
        try:
            resp = self.session.get(url, params=params, timeout=self.config.timeout)
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as exc:
            raise ListingProviderError(f"Request to {url} failed: {exc}") from exc
        except ValueError as exc:
            raise ListingProviderError(f"Non-JSON response from {url}") from exc

        return unwrap_payload(payload)

    def listing_details(self, listing_id: str) -> dict[str, Any]:
        data = self._get(f"listings/{listing_id}")
        if not isinstance(data, dict) or not data:
            raise ListingProviderError(f"No data returned for listing {listing_id}")
        logger.debug("Detail keys for %s: %s", listing_id, sorted(data))
        return data

    def search(self, location: str, adults: int | None = None) -> list[dict[str, Any]]:
        params = {"location": location, "adults": adults or self.config.adults}
        data = self._get("search", params=params)
        if isinstance(data, list):
            return data
        if not isinstance(data, dict):
            return []
        results = data.get("listings") or data.get("searchResults") or []
        return [r for r in results if isinstance(r, dict)]


_client: ListingDataClient | None = None


def get_listing_client() -> ListingDataClient:
    """Return the process-wide provider client, creating it on first call."""
    global _client
    if _client is None:
        _client = ListingDataClient()
    return _client
