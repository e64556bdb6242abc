"""
Snapshot comparison.

``diff_snapshots`` is a pure function: it looks at two snapshots of the same
listing and returns the alerts describing what changed between them. It
never touches the store.
"""
from __future__ import annotations

from ..analysis.market import round_half_up
from ..analysis.models import Competitor, ListingAnalysis
from .models import Alert, AlertData, AlertImpact, AlertType

PRICE_CHANGE_THRESHOLD = 5.0  # dollars
PRICE_HIGH_PCT = 15
PRICE_MEDIUM_PCT = 8
RATING_CHANGE_THRESHOLD = 0.1
MARKET_TREND_THRESHOLD = 10.0  # dollars
MARKET_HIGH_PCT = 20


def price_change_impact(change_pct: float) -> AlertImpact:
    magnitude = abs(change_pct)
    if magnitude > PRICE_HIGH_PCT:
        return AlertImpact.high
    if magnitude > PRICE_MEDIUM_PCT:
        return AlertImpact.medium
    return AlertImpact.low


def market_trend_impact(change_pct: float) -> AlertImpact:
    return AlertImpact.high if abs(change_pct) > MARKET_HIGH_PCT else AlertImpact.opportunity


def _signed(pct: int) -> str:
    return f"+{pct}" if pct > 0 else str(pct)


def _compare_competitor(listing_id: str, old: Competitor, new: Competitor) -> list[Alert]:
    alerts: list[Alert] = []

    if old.price and abs(new.price - old.price) >= PRICE_CHANGE_THRESHOLD:
        change_pct = round_half_up((new.price - old.price) / old.price * 100)
        direction = "increased" if new.price > old.price else "decreased"
        alerts.append(Alert(
            listing_id=listing_id,
            type=AlertType.price_change,
            title="Competitor Price Change",
            message=(
                f"{new.name} {direction} price from ${old.price:g} to ${new.price:g} "
                f"({_signed(change_pct)}%)"
            ),
            impact=price_change_impact(change_pct),
            data=AlertData(
                competitor_id=new.id,
                competitor_name=new.name,
                old_value=old.price,
                new_value=new.price,
                change_percentage=change_pct,
            ),
        ))

    # Ratings carry one decimal; round before comparing to absorb float error
    if old.rating and round(abs(new.rating - old.rating), 2) >= RATING_CHANGE_THRESHOLD:
        direction = "improved" if new.rating > old.rating else "decreased"
        alerts.append(Alert(
            listing_id=listing_id,
            type=AlertType.rating_change,
            title="Competitor Rating Change",
            message=f"{new.name} rating {direction} from {old.rating} to {new.rating}",
            impact=AlertImpact.medium,
            data=AlertData(
                competitor_id=new.id,
                competitor_name=new.name,
                old_value=old.rating,
                new_value=new.rating,
            ),
        ))

    added = [a for a in new.amenities if a not in old.amenities]
    if added:
        alerts.append(Alert(
            listing_id=listing_id,
            type=AlertType.amenity_update,
            title="Competitor Added Amenities",
            message=f"{new.name} added: {', '.join(added)}",
            impact=AlertImpact.medium,
            data=AlertData(
                competitor_id=new.id,
                competitor_name=new.name,
                old_value=list(old.amenities),
                new_value=added,
            ),
        ))

    if old.availability != new.availability:
        state = "available again" if new.availability else "no longer available"
        alerts.append(Alert(
            listing_id=listing_id,
            type=AlertType.availability_change,
            title="Competitor Availability Change",
            message=f"{new.name} is {state}",
            impact=AlertImpact.medium,
            data=AlertData(
                competitor_id=new.id,
                competitor_name=new.name,
                old_value=old.availability,
                new_value=new.availability,
            ),
        ))

    return alerts


def _market_trend(listing_id: str, previous: ListingAnalysis, current: ListingAnalysis) -> Alert | None:
    prev_avg = previous.market_analysis.average_price
    curr_avg = current.market_analysis.average_price

    # Without a baseline average there is no percentage to report
    if not prev_avg or abs(curr_avg - prev_avg) <= MARKET_TREND_THRESHOLD:
        return None

    change_pct = round_half_up((curr_avg - prev_avg) / prev_avg * 100)
    direction = "increased" if curr_avg > prev_avg else "decreased"
    return Alert(
        listing_id=listing_id,
        type=AlertType.market_trend,
        title="Market Price Trend",
        message=(
            f"Average market price {direction} by {abs(change_pct)}% "
            f"(from ${prev_avg:g} to ${curr_avg:g})"
        ),
        impact=market_trend_impact(change_pct),
        data=AlertData(old_value=prev_avg, new_value=curr_avg, change_percentage=change_pct),
    )


def diff_snapshots(previous: ListingAnalysis | None, current: ListingAnalysis) -> list[Alert]:
    """Return the alerts describing changes from ``previous`` to ``current``."""
    if previous is None:
        return []

    listing_id = current.listing_id
    old_by_id = {c.id: c for c in previous.competitors}
    alerts: list[Alert] = []

    for comp in current.competitors:
        old = old_by_id.get(comp.id)
        if old is not None:
            alerts.extend(_compare_competitor(listing_id, old, comp))

    for comp in current.competitors:
        if comp.id not in old_by_id:
            alerts.append(Alert(
                listing_id=listing_id,
                type=AlertType.new_competitor,
                title="New Competitor Detected",
                message=f'New listing "{comp.name}" appeared in your market at ${comp.price:g}',
                impact=AlertImpact.medium,
                data=AlertData(competitor_id=comp.id, competitor_name=comp.name, new_value=comp.price),
            ))

    trend = _market_trend(listing_id, previous, current)
    if trend is not None:
        alerts.append(trend)

    return alerts
