from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

from ..analysis.models import Competitor, ListingAnalysis
from ..scheduler.config import DEFAULT_SCHEDULER_CONFIG, SchedulerConfig
from ..storage import store
from .diff import diff_snapshots
from .models import (
    Alert,
    AmenityHistoryEntry,
    AvailabilityHistoryEntry,
    CompetitorTracking,
    PriceHistoryEntry,
    RatingHistoryEntry,
)

logger = logging.getLogger(__name__)

CHECKIN_OFFSET_DAYS = 7
STAY_NIGHTS = 3
DEFAULT_GUESTS = 2


def stay_dates(today: date | None = None) -> tuple[str, str]:
    """Check-in one week out, check-out after a three-night stay."""
    today = today or datetime.now(timezone.utc).date()
    checkin = today + timedelta(days=CHECKIN_OFFSET_DAYS)
    checkout = checkin + timedelta(days=STAY_NIGHTS)
    return checkin.isoformat(), checkout.isoformat()


def _record_competitor(listing_id: str, competitor: Competitor, now: datetime, guests: int) -> None:
    tracking = store.get_tracking(listing_id, competitor.id) or CompetitorTracking(
        user_listing_id=listing_id,
        competitor_id=competitor.id,
    )
    checkin, checkout = stay_dates(now.date())

    tracking.price_history.append(PriceHistoryEntry(
        price=competitor.price,
        date=now,
        checkin=checkin,
        checkout=checkout,
        guests=guests,
    ))
    tracking.rating_history.append(RatingHistoryEntry(
        rating=competitor.rating,
        review_count=competitor.reviews,
        date=now,
    ))
    tracking.availability_history.append(AvailabilityHistoryEntry(
        is_available=competitor.availability,
        checked_dates=[checkin, checkout],
        date=now,
    ))

    previous = tracking.amenity_history[-1].amenities if tracking.amenity_history else None
    if previous is None or set(previous) != set(competitor.amenities):
        old = set(previous or [])
        new = set(competitor.amenities)
        changes = [f"+{a}" for a in competitor.amenities if a not in old]
        changes += [f"-{a}" for a in (previous or []) if a not in new]
        tracking.amenity_history.append(AmenityHistoryEntry(
            amenities=list(competitor.amenities),
            date=now,
            changes=changes,
        ))

    tracking.competitor_name = competitor.name
    tracking.location = competitor.location
    tracking.last_updated = now
    tracking.is_active = True
    store.upsert_tracking(tracking)


def track_changes_and_generate_alerts(
    analysis: ListingAnalysis,
    guests: int = DEFAULT_GUESTS,
) -> list[Alert]:
    """
    Diff ``analysis`` against the previous stored snapshot and persist the results.

    Appends the generated alerts and a history entry per competitor. Tracked
    competitors that dropped out of the market are marked inactive. Storage
    errors propagate to the caller.
    """
    listing_id = analysis.listing_id
    previous = store.get_latest_analysis(listing_id, before=analysis.analyzed_at)
    if previous is None:
        logger.info("No previous analysis found for %s - first time analysis", listing_id)

    alerts = diff_snapshots(previous, analysis)
    if alerts:
        store.insert_alerts(alerts)
        logger.info("Generated %d alerts for %s", len(alerts), listing_id)

    now = datetime.now(timezone.utc)
    current_ids = {c.id for c in analysis.competitors}
    for competitor in analysis.competitors:
        _record_competitor(listing_id, competitor, now, guests)

    for tracking in store.list_tracking(listing_id, active_only=True):
        if tracking.competitor_id not in current_ids:
            tracking.is_active = False
            tracking.last_updated = now
            store.upsert_tracking(tracking)

    return alerts


def cleanup_old_data(config: SchedulerConfig = DEFAULT_SCHEDULER_CONFIG) -> dict[str, int]:
    """Mark stale alerts read and cap per-competitor price history."""
    cutoff = datetime.now(timezone.utc) - timedelta(days=config.alert_retention_days)
    alerts_marked = store.mark_stale_alerts_read(cutoff)
    trimmed = store.trim_price_history(config.max_price_history)
    logger.info("Cleaned up %d old alerts and trimmed %d price histories", alerts_marked, trimmed)
    return {"alerts_marked_read": alerts_marked, "histories_trimmed": trimmed}
