from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from ..analysis.models import CompetitorLocation, utcnow


class AlertType(str, Enum):
    price_change = "price_change"
    new_competitor = "new_competitor"
    amenity_update = "amenity_update"
    rating_change = "rating_change"
    market_trend = "market_trend"
    availability_change = "availability_change"


class AlertImpact(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    opportunity = "opportunity"


class AlertData(BaseModel):
    competitor_id: str | None = None
    competitor_name: str | None = None
    old_value: Any = None
    new_value: Any = None
    change_percentage: float | None = None


class Alert(BaseModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    listing_id: str
    type: AlertType
    title: str
    message: str
    impact: AlertImpact
    data: AlertData = Field(default_factory=AlertData)
    created_at: datetime = Field(default_factory=utcnow)
    is_read: bool = False


# ── Competitor history ───────────────────────────────────────────────────


class PriceHistoryEntry(BaseModel):
    price: float
    date: datetime = Field(default_factory=utcnow)
    checkin: str
    checkout: str
    guests: int


class AmenityHistoryEntry(BaseModel):
    amenities: list[str]
    date: datetime = Field(default_factory=utcnow)
    changes: list[str] = Field(default_factory=list)


class RatingHistoryEntry(BaseModel):
    rating: float
    review_count: int
    date: datetime = Field(default_factory=utcnow)


class AvailabilityHistoryEntry(BaseModel):
    is_available: bool
    checked_dates: list[str] = Field(default_factory=list)
    date: datetime = Field(default_factory=utcnow)


class CompetitorTracking(BaseModel):
    user_listing_id: str
    competitor_id: str
    competitor_name: str = ""
    location: CompetitorLocation = Field(default_factory=CompetitorLocation)
    price_history: list[PriceHistoryEntry] = Field(default_factory=list)
    amenity_history: list[AmenityHistoryEntry] = Field(default_factory=list)
    rating_history: list[RatingHistoryEntry] = Field(default_factory=list)
    availability_history: list[AvailabilityHistoryEntry] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utcnow)
    is_active: bool = True


# ── API payloads ─────────────────────────────────────────────────────────


class MarkReadRequest(BaseModel):
    alert_ids: list[str] = Field(default_factory=list)


class MarkReadResponse(BaseModel):
    success: bool = True
    modified_count: int


class AlertsResponse(BaseModel):
    success: bool = True
    alerts: list[Alert]
    unread_count: int
    total_count: int
