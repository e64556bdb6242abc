from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Listings ─────────────────────────────────────────────────────────────


class Coordinates(BaseModel):
    lat: float | None = None
    lng: float | None = None


class ListingLocation(BaseModel):
    city: str = ""
    neighborhood: str = ""
    coordinates: Coordinates = Field(default_factory=Coordinates)


class HostInfo(BaseModel):
    name: str = ""
    is_superhost: bool = False
    response_rate: str = ""


class UserListing(BaseModel):
    id: str
    name: str
    current_price: float = 0.0
    rating: float = 0.0
    reviews: int = 0
    amenities: list[str] = Field(default_factory=list)
    description: str = ""
    location: ListingLocation = Field(default_factory=ListingLocation)
    property_type: str = "Unknown"
    host_info: HostInfo = Field(default_factory=HostInfo)


class CompetitorLocation(BaseModel):
    city: str = ""
    neighborhood: str = ""
    distance: float | None = Field(default=None, description="Kilometres from the user listing")
    coordinates: Coordinates = Field(default_factory=Coordinates)


class Competitor(BaseModel):
    id: str
    name: str
    price: float
    rating: float = 0.0
    reviews: int = 0
    amenities: list[str] = Field(default_factory=list)
    description: str = ""
    location: CompetitorLocation = Field(default_factory=CompetitorLocation)
    property_type: str = "Unknown"
    availability: bool = True
    last_updated: datetime = Field(default_factory=utcnow)


# ── Recommendations ──────────────────────────────────────────────────────


class SuggestedPriceRange(BaseModel):
    min: float
    max: float
    optimal: float


class PricingRecommendations(BaseModel):
    current_market_position: str
    suggested_price_range: SuggestedPriceRange
    reasoning: str
    competitor_comparison: str
    demand_indicators: list[str] = Field(default_factory=list)
    seasonal_insights: str = ""


class CompetitorAmenity(BaseModel):
    amenity: str
    competitor_count: int
    competitor_percentage: int
    competitor_names: list[str] = Field(default_factory=list)


class MissingAmenity(BaseModel):
    amenity: str
    prevalence: int
    description: str


class FeatureAnalysis(BaseModel):
    user_amenities: list[str] = Field(default_factory=list)
    competitor_amenities: list[CompetitorAmenity] = Field(default_factory=list)
    missing_amenities: list[MissingAmenity] = Field(default_factory=list)
    unique_amenities: list[str] = Field(default_factory=list)


class KeywordAnalysis(BaseModel):
    present_keywords: list[str] = Field(default_factory=list)
    missing_keywords: list[str] = Field(default_factory=list)
    competitor_keywords: list[str] = Field(default_factory=list)


class StructureAnalysis(BaseModel):
    has_intro: bool = False
    has_location_info: bool = False
    has_amenity_list: bool = False
    has_booking_info: bool = False
    has_cta: bool = False


class DescriptionAnalysis(BaseModel):
    current_description: str = ""
    word_count: int = 0
    readability_score: float = Field(default=7.0, ge=0.0, le=10.0)
    keyword_analysis: KeywordAnalysis = Field(default_factory=KeywordAnalysis)
    structure_analysis: StructureAnalysis = Field(default_factory=StructureAnalysis)
    suggestions: list[str] = Field(default_factory=list)
    optimized_description: str = ""


# ── Market statistics ────────────────────────────────────────────────────


class AmenityShare(BaseModel):
    amenity: str
    percentage: int


class PriceRange(BaseModel):
    min: float = 0.0
    max: float = 0.0


class MarketAnalysis(BaseModel):
    total_competitors_analyzed: int = 0
    average_price: float = 0.0
    price_range: PriceRange = Field(default_factory=PriceRange)
    average_rating: float = 0.0
    most_common_amenities: list[AmenityShare] = Field(default_factory=list)
    market_trends: list[str] = Field(default_factory=list)


# ── Snapshot ─────────────────────────────────────────────────────────────


class ListingAnalysis(BaseModel):
    """One listing's analysis at a point in time."""

    listing_id: str
    user_listing: UserListing
    competitors: list[Competitor] = Field(default_factory=list)
    pricing_recommendations: PricingRecommendations
    feature_analysis: FeatureAnalysis
    description_analysis: DescriptionAnalysis
    market_analysis: MarketAnalysis
    analyzed_at: datetime = Field(default_factory=utcnow)
    next_update_due: datetime | None = None
    analysis_version: str = "2.0"


# ── API payloads ─────────────────────────────────────────────────────────


class AnalyzeRequest(BaseModel):
    listing_id: str = Field(..., min_length=1, max_length=64, description="Provider listing id")
