from __future__ import annotations

from backend.analysis.keywords import extract_competitor_keywords, extract_keywords
from backend.analysis.market import analyze_features, average_price, calculate_market_metrics, round_half_up
from backend.analysis.models import Competitor, UserListing

COMPETITORS = [
    Competitor(id="a", name="Alpha", price=100, rating=4.0, amenities=["Wifi", "Kitchen"]),
    Competitor(id="b", name="Bravo", price=200, rating=5.0, amenities=["Wifi", "Pool"]),
    Competitor(id="c", name="Charlie", price=150, rating=0, amenities=["Wifi", "Kitchen", "Wifi"]),
    Competitor(id="d", name="Delta", price=0, rating=4.6, amenities=["Parking"]),
]


# ── Market metrics ───────────────────────────────────────────────────────


def test_market_metrics_match_hand_computed_values():
    market = calculate_market_metrics(COMPETITORS)

    assert market.total_competitors_analyzed == 4
    # Zero prices and ratings are excluded from the averages
    assert market.average_price == 150
    assert market.price_range.min == 100
    assert market.price_range.max == 200
    assert market.average_rating == 4.5
    assert [(s.amenity, s.percentage) for s in market.most_common_amenities] == [
        ("Wifi", 75),
        ("Kitchen", 50),
        ("Pool", 25),
        ("Parking", 25),
    ]


def test_market_metrics_are_reproducible():
    assert calculate_market_metrics(COMPETITORS) == calculate_market_metrics(list(COMPETITORS))


def test_market_trends_for_premium_market():
    comps = [
        Competitor(id="a", name="A", price=200, rating=4.0, amenities=["Wifi"]),
        Competitor(id="b", name="B", price=180, rating=4.0, amenities=["Wifi", "Sauna"]),
    ]
    market = calculate_market_metrics(comps)
    assert market.average_price == 190
    assert "Premium pricing segment detected" in market.market_trends
    assert "Wifi is essential in this market" in market.market_trends
    assert "High-quality listings dominate the area" not in market.market_trends


def test_high_rating_trend():
    market = calculate_market_metrics(COMPETITORS)
    # 4.533 average rating
    assert market.market_trends == ["High-quality listings dominate the area"]


def test_market_metrics_empty():
    market = calculate_market_metrics([])
    assert market.total_competitors_analyzed == 0
    assert market.average_price == 0
    assert market.market_trends == ["Insufficient data for market analysis"]


def test_average_price_is_unrounded():
    comps = [Competitor(id="a", name="A", price=100), Competitor(id="b", name="B", price=101)]
    assert average_price(comps) == 100.5
    assert average_price([]) == 0.0


def test_round_half_up():
    assert round_half_up(8.5) == 9
    assert round_half_up(12.5) == 13
    assert round_half_up(100.5) == 101
    assert round_half_up(-8.5) == -8
    assert round_half_up(8.49) == 8


def test_half_values_round_up_in_market_metrics():
    comps = [Competitor(id="a", name="A", price=100, amenities=["Wifi"])]
    comps += [Competitor(id=f"n{i}", name=f"N{i}", price=101) for i in range(7)]
    # 1 of 8 competitors is 12.5%
    assert calculate_market_metrics(comps).most_common_amenities[0].percentage == 13

    pair = [Competitor(id="a", name="A", price=100), Competitor(id="b", name="B", price=101)]
    assert calculate_market_metrics(pair).average_price == 101


# ── Feature analysis ─────────────────────────────────────────────────────


def test_feature_analysis():
    user = UserListing(id="me", name="Mine", amenities=["Wifi", "Hot tub"])
    features = analyze_features(user, COMPETITORS)

    assert features.user_amenities == ["Wifi", "Hot tub"]
    assert features.unique_amenities == ["Hot tub"]
    assert [(m.amenity, m.prevalence) for m in features.missing_amenities] == [
        ("Kitchen", 50),
        ("Pool", 25),
        ("Parking", 25),
    ]
    assert features.missing_amenities[0].description == "2 out of 4 competitors offer this amenity"

    wifi = features.competitor_amenities[0]
    assert wifi.amenity == "Wifi"
    assert wifi.competitor_count == 3
    assert wifi.competitor_percentage == 75
    assert wifi.competitor_names == ["Alpha", "Bravo", "Charlie"]


def test_feature_analysis_without_competitors():
    user = UserListing(id="me", name="Mine", amenities=["Wifi"])
    features = analyze_features(user, [])
    assert features.competitor_amenities == []
    assert features.missing_amenities == []
    assert features.unique_amenities == ["Wifi"]


# ── Keywords ─────────────────────────────────────────────────────────────


def test_extract_keywords_skips_stop_words_and_duplicates():
    text = "Cozy loft with fast wifi, cozy kitchen and a view. This loft is near downtown!"
    assert extract_keywords(text) == ["cozy", "loft", "fast", "wifi", "kitchen", "view", "near", "downtown"]


def test_extract_keywords_limit_and_empty():
    assert extract_keywords("") == []
    many = " ".join(f"word{i:02d}" for i in range(20))
    assert len(extract_keywords(many)) == 10


def test_extract_competitor_keywords_by_frequency():
    descriptions = ["Beach house, beach view", "beach condo with view"]
    assert extract_competitor_keywords(descriptions) == ["beach", "view", "house", "condo", "with"]
