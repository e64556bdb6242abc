from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from ..analysis.keywords import extract_competitor_keywords, extract_keywords
from ..analysis.market import average_price, round_half_up
from ..analysis.models import (
    Competitor,
    DescriptionAnalysis,
    KeywordAnalysis,
    PricingRecommendations,
    StructureAnalysis,
    SuggestedPriceRange,
    UserListing,
)
from .config import DEFAULT_LLM_CONFIG, LLMConfig
from .groq_client import LLMUnavailableError, complete_json

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_LENGTH = 50
MARKET_POSITIONS = ("below_market", "at_market", "above_market")

PRICING_RESPONSE_FORMAT = """\
Provide detailed recommendations in this JSON format:
{
  "current_market_position": "below_market|at_market|above_market",
  "suggested_price_range": {"min": 120, "max": 160, "optimal": 140},
  "reasoning": "Detailed explanation of pricing strategy based on the competitor data",
  "competitor_comparison": "Specific comparison with similar listings",
  "demand_indicators": ["indicator1", "indicator2"],
  "seasonal_insights": "Pricing insights based on market patterns"
}"""

DESCRIPTION_RESPONSE_FORMAT = """\
Provide detailed analysis in this JSON format:
{
  "current_description": "the user description",
  "word_count": 120,
  "readability_score": 8.5,
  "keyword_analysis": {
    "present_keywords": ["keyword1", "keyword2"],
    "missing_keywords": ["keyword3", "keyword4"],
    "competitor_keywords": ["popular", "keywords", "from", "competitors"]
  },
  "structure_analysis": {
    "has_intro": true,
    "has_location_info": false,
    "has_amenity_list": true,
    "has_booking_info": false,
    "has_cta": false
  },
  "suggestions": ["specific suggestion 1", "specific suggestion 2"],
  "optimized_description": "Improved description based on competitor analysis"
}
readability_score is between 0 and 10."""


def _word_count(text: str) -> int:
    return len(text.split())


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------


def _market_position(current: float, avg: float) -> str:
    if current < avg * 0.9:
        return "below_market"
    if current > avg * 1.1:
        return "above_market"
    return "at_market"


def build_pricing_prompt(user_listing: UserListing, competitors: list[Competitor], avg: float) -> str:
    prices = [c.price for c in competitors if c.price > 0]
    current = user_listing.current_price
    if current > 0:
        relation = "Below" if current < avg else "Above" if current > avg else "At"
        vs_market = f"{relation} market average"
    else:
        vs_market = "No current price data"

    lines = [
        "As an expert short-term rental pricing analyst, analyze this competitive data "
        "and provide strategic pricing recommendations.",
        "",
        "## User Listing",
        f"- Name: {user_listing.name}",
        f"- Current Price: ${current:g}",
        f"- Rating: {user_listing.rating}/5 ({user_listing.reviews} reviews)",
        f"- Property Type: {user_listing.property_type}",
        f"- Location: {user_listing.location.city}, {user_listing.location.neighborhood}",
        "",
        f"## Competitors ({len(competitors)} listings analyzed)",
    ]
    for c in competitors:
        lines.append(f"- {c.name}: ${c.price:g} ({c.rating}★, {c.reviews} reviews, {c.property_type})")
    lines += [
        "",
        "## Market Data",
        f"- Average competitor price: ${round_half_up(avg)}",
        f"- Price range: ${min(prices):g} - ${max(prices):g}" if prices else "- Price range: unknown",
        f"- Your price vs market: {vs_market}",
        "",
        PRICING_RESPONSE_FORMAT,
    ]
    return "\n".join(lines)


def fallback_pricing(user_listing: UserListing, competitors: list[Competitor], avg: float) -> PricingRecommendations:
    """Rule-based estimate used when the LLM is unavailable."""
    return PricingRecommendations(
        current_market_position="below_market" if user_listing.current_price < avg else "above_market",
        suggested_price_range=SuggestedPriceRange(
            min=round_half_up(avg * 0.9),
            max=round_half_up(avg * 1.1),
            optimal=round_half_up(avg),
        ),
        reasoning=f"Based on analysis of {len(competitors)} competitor listings",
        competitor_comparison=f"Market average is ${round_half_up(avg)}",
        demand_indicators=["Market data analysis"],
        seasonal_insights="Continue monitoring competitor pricing",
    )


def _merge_pricing(
    raw: dict[str, Any],
    user_listing: UserListing,
    competitors: list[Competitor],
    avg: float,
) -> PricingRecommendations:
    """Take each field from the completion when valid, otherwise a default."""
    position = raw.get("current_market_position")
    if position not in MARKET_POSITIONS:
        position = _market_position(user_listing.current_price, avg)

    try:
        price_range = SuggestedPriceRange.model_validate(raw.get("suggested_price_range"))
    except ValidationError:
        price_range = SuggestedPriceRange(
            min=round_half_up(avg * 0.85),
            max=round_half_up(avg * 1.15),
            optimal=round_half_up(avg),
        )

    indicators = raw.get("demand_indicators")
    if not isinstance(indicators, list) or not all(isinstance(i, str) for i in indicators):
        indicators = ["Market analysis based on competitor data"]

    def _text(key: str, default: str) -> str:
        value = raw.get(key)
        return value if isinstance(value, str) and value else default

    return PricingRecommendations(
        current_market_position=position,
        suggested_price_range=price_range,
        reasoning=_text("reasoning", f"Based on analysis of {len(competitors)} similar listings in your area"),
        competitor_comparison=_text(
            "competitor_comparison", f"Your listing compares to {len(competitors)} nearby properties"
        ),
        demand_indicators=indicators,
        seasonal_insights=_text("seasonal_insights", "Monitor competitor pricing trends for seasonal adjustments"),
    )


def generate_pricing_recommendations(
    user_listing: UserListing,
    competitors: list[Competitor],
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> PricingRecommendations:
    if not competitors:
        raise ValueError("No competitors available for pricing analysis")

    avg = average_price(competitors)
    prompt = build_pricing_prompt(user_listing, competitors, avg)

    try:
        raw = complete_json(prompt, model=config.pricing_model, temperature=0.3, config=config)
    except LLMUnavailableError:
        logger.warning("AI pricing analysis failed, using rule-based estimate", exc_info=True)
        return fallback_pricing(user_listing, competitors, avg)

    return _merge_pricing(raw, user_listing, competitors, avg)


# ---------------------------------------------------------------------------
# Description
# ---------------------------------------------------------------------------


def _competitor_descriptions(competitors: list[Competitor]) -> list[str]:
    return [c.description for c in competitors if c.description and len(c.description) > MIN_DESCRIPTION_LENGTH]


def build_description_prompt(description: str, competitor_descriptions: list[str]) -> str:
    lines = [
        "Analyze this short-term rental listing description against competitor descriptions.",
        "",
        "## User Description",
        f'"{description}"',
        "",
        f"## Competitor Descriptions ({len(competitor_descriptions)} listings)",
    ]
    for i, desc in enumerate(competitor_descriptions, start=1):
        lines.append(f'{i}. "{desc[:200]}..."')
    lines += ["", DESCRIPTION_RESPONSE_FORMAT]
    return "\n".join(lines)


def fallback_description(description: str, competitor_descriptions: list[str]) -> DescriptionAnalysis:
    """Keyword and structure heuristics used when the LLM is unavailable."""
    lower = description.lower()
    return DescriptionAnalysis(
        current_description=description,
        word_count=_word_count(description),
        readability_score=7,
        keyword_analysis=KeywordAnalysis(
            present_keywords=extract_keywords(description),
            missing_keywords=["modern", "downtown", "walking distance"],
            competitor_keywords=extract_competitor_keywords(competitor_descriptions),
        ),
        structure_analysis=StructureAnalysis(
            has_intro=bool(description),
            has_location_info="location" in lower or "downtown" in lower,
            has_amenity_list="wifi" in lower or "kitchen" in lower,
            has_booking_info="book" in lower or "stay" in lower,
            has_cta="contact" in lower or "message" in lower,
        ),
        suggestions=[
            "Add more location-specific details based on competitor analysis",
            "Include unique selling points that competitors mention",
            "Improve description structure and readability",
        ],
        optimized_description=description or "Enhanced description needed",
    )


def generate_description_analysis(
    user_listing: UserListing,
    competitors: list[Competitor],
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> DescriptionAnalysis:
    description = user_listing.description or ""
    competitor_descriptions = _competitor_descriptions(competitors)

    if not competitor_descriptions:
        return DescriptionAnalysis(
            current_description=description,
            word_count=_word_count(description),
            readability_score=7,
            suggestions=["No competitor descriptions available for analysis"],
            optimized_description=description,
        )

    prompt = build_description_prompt(description, competitor_descriptions)
    try:
        raw = complete_json(prompt, model=config.description_model, temperature=0.4, config=config)
        raw.setdefault("current_description", description)
        raw.setdefault("word_count", _word_count(description))
        return DescriptionAnalysis.model_validate(raw)
    except (LLMUnavailableError, ValidationError):
        logger.warning("Description analysis failed, using keyword heuristics", exc_info=True)
        return fallback_description(description, competitor_descriptions)
