from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

from backend.analysis.models import (
    DescriptionAnalysis,
    FeatureAnalysis,
    ListingAnalysis,
    MarketAnalysis,
    PricingRecommendations,
    SuggestedPriceRange,
    UserListing,
)
from backend.listings.client import ListingProviderError
from backend.scheduler.config import SchedulerConfig
from backend.scheduler.jobs import build_scheduler, run_due_updates
from backend.storage import store
from backend.storage.config import StoreConfig


def _fresh_store():
    store.configure_store(StoreConfig(path=None))
    store.clear_store()


def _due_snapshot(listing_id: str) -> ListingAnalysis:
    analyzed_at = datetime.now(timezone.utc) - timedelta(hours=7)
    return ListingAnalysis(
        listing_id=listing_id,
        user_listing=UserListing(id=listing_id, name="Sunny Loft"),
        pricing_recommendations=PricingRecommendations(
            current_market_position="at_market",
            suggested_price_range=SuggestedPriceRange(min=90, max=110, optimal=100),
            reasoning="",
            competitor_comparison="",
        ),
        feature_analysis=FeatureAnalysis(),
        description_analysis=DescriptionAnalysis(),
        market_analysis=MarketAnalysis(),
        analyzed_at=analyzed_at,
        next_update_due=analyzed_at + timedelta(hours=6),
    )


@patch("backend.scheduler.jobs.asyncio.sleep", new_callable=AsyncMock)
@patch("backend.scheduler.jobs.run_analysis", new_callable=AsyncMock)
def test_run_due_updates_continues_after_failure(mock_run, mock_sleep):
    _fresh_store()
    for listing_id in ("L1", "L2", "L3"):
        store.save_analysis(_due_snapshot(listing_id))
    mock_run.side_effect = [None, ListingProviderError("down"), None]

    result = asyncio.run(run_due_updates(SchedulerConfig(listing_delay=5.0)))

    assert result == {"updated": ["L1", "L3"], "failed": ["L2"]}
    assert [c.args[0] for c in mock_run.await_args_list] == ["L1", "L2", "L3"]
    # Paced between listings, not before the first
    assert mock_sleep.await_count == 2
    mock_sleep.assert_awaited_with(5.0)


@patch("backend.scheduler.jobs.run_analysis", new_callable=AsyncMock)
def test_run_due_updates_with_nothing_due(mock_run):
    _fresh_store()

    assert asyncio.run(run_due_updates()) == {"updated": [], "failed": []}
    mock_run.assert_not_awaited()


def test_build_scheduler_registers_cron_jobs():
    scheduler = build_scheduler(SchedulerConfig())

    jobs = {job.id: job for job in scheduler.get_jobs()}
    assert set(jobs) == {"competitor-updates", "daily-cleanup"}
    assert not scheduler.running
    assert str(jobs["competitor-updates"].trigger.fields[5]) == "*/6"
    assert str(jobs["daily-cleanup"].trigger.fields[5]) == "2"


@patch("backend.scheduler.jobs.asyncio.sleep", new_callable=AsyncMock)
@patch("backend.scheduler.jobs.run_analysis", new_callable=AsyncMock)
def test_run_due_updates_survives_unexpected_errors(mock_run, mock_sleep):
    _fresh_store()
    for listing_id in ("L1", "L2"):
        store.save_analysis(_due_snapshot(listing_id))
    mock_run.side_effect = [ValueError("bad stored document"), None]

    result = asyncio.run(run_due_updates(SchedulerConfig(listing_delay=0)))

    assert result == {"updated": ["L2"], "failed": ["L1"]}
