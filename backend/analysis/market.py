from __future__ import annotations

import math
from collections import Counter

import pandas as pd

from .models import (
    AmenityShare,
    Competitor,
    CompetitorAmenity,
    FeatureAnalysis,
    MarketAnalysis,
    MissingAmenity,
    PriceRange,
    UserListing,
)

PREMIUM_PRICE = 150
HIGH_QUALITY_RATING = 4.5
ESSENTIAL_AMENITY_PCT = 80
TOP_AMENITIES = 10


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (8.5 -> 9, -8.5 -> -8)."""
    return math.floor(value + 0.5)


def _amenity_counts(competitors: list[Competitor]) -> Counter[str]:
    """Number of competitors offering each amenity, in first-seen order."""
    counter: Counter[str] = Counter()
    for c in competitors:
        counter.update(list(dict.fromkeys(c.amenities)))
    return counter


def _percentage(count: int, total: int) -> int:
    return round_half_up(count / total * 100) if total else 0


def competitor_frame(competitors: list[Competitor]) -> pd.DataFrame:
    return pd.DataFrame(
        [{"id": c.id, "price": c.price, "rating": c.rating, "reviews": c.reviews} for c in competitors],
        columns=["id", "price", "rating", "reviews"],
    )


def average_price(competitors: list[Competitor]) -> float:
    """Mean of positive competitor prices (unrounded), 0.0 when none."""
    df = competitor_frame(competitors)
    prices = df.loc[df["price"] > 0, "price"]
    return float(prices.mean()) if not prices.empty else 0.0


def calculate_market_metrics(competitors: list[Competitor]) -> MarketAnalysis:
    if not competitors:
        return MarketAnalysis(market_trends=["Insufficient data for market analysis"])

    df = competitor_frame(competitors)
    prices = df.loc[df["price"] > 0, "price"]
    ratings = df.loc[df["rating"] > 0, "rating"]

    total = len(competitors)
    counts = _amenity_counts(competitors)
    most_common = [
        AmenityShare(amenity=name, percentage=_percentage(count, total))
        for name, count in counts.most_common(TOP_AMENITIES)
    ]

    avg_price = float(prices.mean()) if not prices.empty else 0.0
    avg_rating = float(ratings.mean()) if not ratings.empty else 0.0

    trends: list[str] = []
    if avg_price > PREMIUM_PRICE:
        trends.append("Premium pricing segment detected")
    if avg_rating > HIGH_QUALITY_RATING:
        trends.append("High-quality listings dominate the area")
    if most_common and most_common[0].percentage > ESSENTIAL_AMENITY_PCT:
        trends.append(f"{most_common[0].amenity} is essential in this market")

    return MarketAnalysis(
        total_competitors_analyzed=total,
        average_price=round_half_up(avg_price),
        price_range=PriceRange(
            min=float(prices.min()) if not prices.empty else 0.0,
            max=float(prices.max()) if not prices.empty else 0.0,
        ),
        average_rating=round(avg_rating, 1),
        most_common_amenities=most_common,
        market_trends=trends,
    )


def analyze_features(user_listing: UserListing, competitors: list[Competitor]) -> FeatureAnalysis:
    """Compare the listing's amenities against what competitors offer."""
    user_amenities = list(user_listing.amenities)
    total = len(competitors)
    counts = _amenity_counts(competitors)

    competitor_amenities = [
        CompetitorAmenity(
            amenity=name,
            competitor_count=count,
            competitor_percentage=_percentage(count, total),
            competitor_names=[c.name for c in competitors if name in c.amenities][:3],
        )
        for name, count in counts.most_common()
    ]

    missing = [
        MissingAmenity(
            amenity=name,
            prevalence=_percentage(count, total),
            description=f"{count} out of {total} competitors offer this amenity",
        )
        for name, count in counts.most_common()
        if name not in user_amenities
    ][:TOP_AMENITIES]

    unique = [a for a in user_amenities if a not in counts]

    return FeatureAnalysis(
        user_amenities=user_amenities,
        competitor_amenities=competitor_amenities,
        missing_amenities=missing,
        unique_amenities=unique,
    )
