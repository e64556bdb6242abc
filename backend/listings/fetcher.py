from __future__ import annotations

import logging
import time

from ..analysis.models import Competitor, UserListing
from .client import ListingDataClient, ListingProviderError
from .config import DEFAULT_PROVIDER_CONFIG, ProviderConfig
from .normalize import normalize_competitor, normalize_user_listing

logger = logging.getLogger(__name__)

# Raised by normalization or model validation on payloads of an unexpected shape
_MALFORMED_PAYLOAD = (AttributeError, KeyError, TypeError, ValueError)


class NoCompetitorsFoundError(ListingProviderError):
    """Raised when every search attempt came back without usable competitors."""


def get_user_listing(client: ListingDataClient, listing_id: str) -> UserListing:
    """Fetch and normalize the listing being analysed."""
    logger.info("Fetching listing %s", listing_id)
    try:
        data = client.listing_details(listing_id)
    except ListingProviderError as exc:
        raise ListingProviderError(f"Unable to fetch listing data for {listing_id}: {exc}") from exc

    try:
        listing = normalize_user_listing(listing_id, data)
    except _MALFORMED_PAYLOAD as exc:
        raise ListingProviderError(f"Malformed listing data for {listing_id}: {exc}") from exc

    logger.info(
        "Listing %s: %r in city=%r neighborhood=%r",
        listing_id,
        listing.name,
        listing.location.city,
        listing.location.neighborhood,
    )
    return listing


def search_locations(user_listing: UserListing, config: ProviderConfig = DEFAULT_PROVIDER_CONFIG) -> list[str]:
    """Search locations from most specific to broadest."""
    city = user_listing.location.city
    neighborhood = user_listing.location.neighborhood
    candidates = [
        f"{neighborhood}, {city}" if neighborhood and city else "",
        city,
        neighborhood,
        config.default_location,
    ]
    result: list[str] = []
    for c in candidates:
        if c and c not in result:
            result.append(c)
    return result


def find_competitors(
    client: ListingDataClient,
    user_listing: UserListing,
    config: ProviderConfig = DEFAULT_PROVIDER_CONFIG,
) -> list[Competitor]:
    """
    Search the listing's area and collect up to ``max_competitors`` competitors.

    Each search attempt moves to the next broader location. Detail lookups are
    paced by ``request_delay``; failures on a single competitor are skipped.
    """
    locations = search_locations(user_listing, config)
    if not locations:
        raise NoCompetitorsFoundError(f"No search location known for listing {user_listing.id}")

    competitors: list[Competitor] = []
    seen_ids: set[str] = {user_listing.id}
    attempts = 0

    while len(competitors) < config.max_competitors and attempts < config.max_search_attempts:
        location = locations[min(attempts, len(locations) - 1)]
        attempts += 1
        logger.info("Searching for competitors near %s (attempt %d)", location, attempts)

        try:
            hits = client.search(location, adults=config.adults)
        except ListingProviderError as exc:
            logger.warning("Competitor search attempt %d failed: %s", attempts, exc)
            continue

        for hit in hits:
            hit_id = str(hit.get("id") or "")
            if not hit_id or hit_id in seen_ids:
                continue
            seen_ids.add(hit_id)

            try:
                details = client.listing_details(hit_id)
                competitor = normalize_competitor(hit, details, user_listing)
            except ListingProviderError as exc:
                logger.warning("Failed to get details for competitor %s: %s", hit_id, exc)
                continue
            except _MALFORMED_PAYLOAD as exc:
                logger.warning("Skipping competitor %s with malformed data: %s", hit_id, exc)
                continue
            finally:
                time.sleep(config.request_delay)

            if competitor.price > 0:
                competitors.append(competitor)
                logger.debug("Added competitor %s at $%.2f", competitor.name, competitor.price)

            if len(competitors) >= config.max_competitors:
                break

        if len(competitors) < config.min_competitors and attempts < config.max_search_attempts:
            logger.info("Only found %d competitors, broadening search", len(competitors))
            time.sleep(config.retry_delay)

    if not competitors:
        raise NoCompetitorsFoundError(f"No competitors found near {locations[0]}")

    logger.info("Found %d competitors for %s", len(competitors), user_listing.id)
    return competitors
