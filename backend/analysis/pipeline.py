from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from ..listings.client import ListingDataClient, get_listing_client
from ..listings.config import DEFAULT_PROVIDER_CONFIG, ProviderConfig
from ..listings.fetcher import find_competitors, get_user_listing
from ..llm.advisor import generate_description_analysis, generate_pricing_recommendations
from ..storage import store
from ..tracking.tracker import track_changes_and_generate_alerts
from .market import analyze_features, calculate_market_metrics
from .models import ListingAnalysis, utcnow

logger = logging.getLogger(__name__)

UPDATE_INTERVAL = timedelta(hours=6)


async def perform_analysis(
    listing_id: str,
    client: ListingDataClient | None = None,
    config: ProviderConfig = DEFAULT_PROVIDER_CONFIG,
) -> ListingAnalysis:
    """
    Build a fresh snapshot for ``listing_id`` without storing anything.

    Provider calls run in a worker thread; the two LLM prompts run
    concurrently and are awaited together.
    """
    client = client or get_listing_client()
    logger.info("Starting analysis for listing %s", listing_id)

    user_listing = await asyncio.to_thread(get_user_listing, client, listing_id)
    competitors = await asyncio.to_thread(find_competitors, client, user_listing, config)

    pricing, description = await asyncio.gather(
        asyncio.to_thread(generate_pricing_recommendations, user_listing, competitors),
        asyncio.to_thread(generate_description_analysis, user_listing, competitors),
    )

    analyzed_at = utcnow()
    return ListingAnalysis(
        listing_id=listing_id,
        user_listing=user_listing,
        competitors=competitors,
        pricing_recommendations=pricing,
        feature_analysis=analyze_features(user_listing, competitors),
        description_analysis=description,
        market_analysis=calculate_market_metrics(competitors),
        analyzed_at=analyzed_at,
        next_update_due=analyzed_at + UPDATE_INTERVAL,
    )


async def run_analysis(
    listing_id: str,
    client: ListingDataClient | None = None,
    config: ProviderConfig = DEFAULT_PROVIDER_CONFIG,
) -> ListingAnalysis:
    """
    Analyse a listing, persist the snapshot as its current one, then record
    alerts and competitor history against the previous snapshot.
    """
    analysis = await perform_analysis(listing_id, client=client, config=config)
    store.save_analysis(analysis)
    track_changes_and_generate_alerts(analysis, guests=config.adults)
    logger.info("Analysis completed for %s", listing_id)
    return analysis
