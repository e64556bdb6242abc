"""
Normalization of provider payloads into flat listing records.

Provider responses vary in shape between detail and search endpoints and
between listings; every extractor here accepts whatever it is given and
falls back to an empty value instead of raising.
"""
from __future__ import annotations

import re
from typing import Any

import numpy as np

from ..analysis.models import (
    Competitor,
    CompetitorLocation,
    Coordinates,
    HostInfo,
    ListingLocation,
    UserListing,
)

EARTH_RADIUS_KM = 6371.0

_PRICE_RE = re.compile(r"\$?\s*(\d+(?:,\d{3})*(?:\.\d+)?)")
_NUMBER_RE = re.compile(r"(\d+(?:\.\d+)?)")
_TAG_RE = re.compile(r"<[^>]+>")


def extract_price(pricing: Any) -> float:
    if not pricing:
        return 0.0
    if isinstance(pricing, bool):
        return 0.0
    if isinstance(pricing, (int, float)):
        return float(pricing)
    if isinstance(pricing, str):
        match = _PRICE_RE.search(pricing)
        return float(match.group(1).replace(",", "")) if match else 0.0
    if isinstance(pricing, dict):
        for key in ("total", "base", "night", "amount"):
            if pricing.get(key):
                return extract_price(pricing[key])
    return 0.0


def extract_rating(rating: Any) -> float:
    if not rating or isinstance(rating, bool):
        return 0.0
    if isinstance(rating, (int, float)):
        return min(5.0, max(0.0, float(rating)))
    if isinstance(rating, str):
        match = _NUMBER_RE.search(rating)
        return min(5.0, max(0.0, float(match.group(1)))) if match else 0.0
    if isinstance(rating, dict):
        for key in ("overall", "average", "score"):
            if rating.get(key):
                return extract_rating(rating[key])
    return 0.0


def extract_review_count(data: dict[str, Any]) -> int:
    for key in ("reviewCount", "reviews", "reviewsCount", "numberOfReviews"):
        value = data.get(key)
        if isinstance(value, bool) or not value:
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            continue
    return 0


def extract_amenities(amenities: Any) -> list[str]:
    """Return a de-duplicated amenity list, preserving provider order."""
    if not amenities:
        return []

    if isinstance(amenities, str):
        raw = [a.strip() for a in amenities.split(",")]
    elif isinstance(amenities, list):
        raw = []
        for item in amenities:
            if isinstance(item, str):
                raw.append(item.strip())
            elif isinstance(item, dict):
                # Grouped amenity sections: {"title": "Kitchen", "values": [...]}
                if isinstance(item.get("values"), list):
                    raw.extend(extract_amenities(item["values"]))
                else:
                    raw.append(str(item.get("title") or item.get("name") or "").strip())
    else:
        return []

    seen: set[str] = set()
    result: list[str] = []
    for amenity in raw:
        if amenity and amenity not in seen:
            seen.add(amenity)
            result.append(amenity)
    return result


def calculate_distance(a: Coordinates | None, b: Coordinates | None) -> float | None:
    """Haversine distance in km rounded to 0.1, or None when coordinates are missing."""
    if a is None or b is None or None in (a.lat, a.lng, b.lat, b.lng):
        return None

    lat1, lng1, lat2, lng2 = np.radians([a.lat, a.lng, b.lat, b.lng])
    h = np.sin((lat2 - lat1) / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin((lng2 - lng1) / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))
    return round(float(EARTH_RADIUS_KM * c), 1)


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _detail_sections(data: dict[str, Any]) -> list[Any]:
    details = data.get("details")
    return details if isinstance(details, list) else []


def _section(details: list[Any], section_id: str) -> dict[str, Any]:
    for d in details:
        if isinstance(d, dict) and d.get("id") == section_id:
            return d
    return {}


def _to_float(value: Any) -> float | None:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def extract_coordinates(data: dict[str, Any]) -> Coordinates:
    location = _section(_detail_sections(data), "LOCATION_DEFAULT") or data.get("location") or {}
    if not isinstance(location, dict):
        return Coordinates()
    lat = location.get("lat", location.get("latitude"))
    lng = location.get("lng", location.get("longitude", location.get("lon")))
    return Coordinates(lat=_to_float(lat), lng=_to_float(lng))


def _parse_place(location_detail: dict[str, Any]) -> tuple[str, str]:
    """Return ``(city, neighborhood)`` from a location section."""
    if location_detail.get("subtitle"):
        # "Chicago, Illinois, United States"
        parts = [p.strip() for p in str(location_detail["subtitle"]).split(",")]
        return parts[0], ""
    if location_detail.get("locationDescription"):
        # "Wicker Park, Chicago"
        parts = [p.strip() for p in str(location_detail["locationDescription"]).split(",")]
        if len(parts) >= 2:
            return parts[1], parts[0]
        return parts[0], ""
    return "", ""


def _description(data: dict[str, Any]) -> str:
    if isinstance(data.get("description"), str) and data["description"]:
        return data["description"]
    desc = _section(_detail_sections(data), "DESCRIPTION_DEFAULT")
    html = desc.get("htmlDescription")
    if isinstance(html, dict):
        html = html.get("htmlText")
    if isinstance(html, str) and html:
        return " ".join(_TAG_RE.sub(" ", html).split())
    summary = data.get("summary")
    return summary if isinstance(summary, str) else ""


def normalize_user_listing(listing_id: str, data: dict[str, Any]) -> UserListing:
    details = _detail_sections(data)
    location_detail = _section(details, "LOCATION_DEFAULT")
    host_detail = _section(details, "HOST_DEFAULT")
    amenities_detail = _section(details, "AMENITIES_DEFAULT")
    host = _as_dict(data.get("host"))

    first_title = details[0].get("title") if details and isinstance(details[0], dict) else None
    title = (
        data.get("title")
        or data.get("name")
        or host_detail.get("title")
        or location_detail.get("title")
        or first_title
        or f"Listing {listing_id}"
    )

    city, neighborhood = _parse_place(location_detail)
    location = _as_dict(data.get("location"))
    if not city and location:
        city = str(location.get("city") or "")
        neighborhood = neighborhood or str(location.get("neighborhood") or "")

    return UserListing(
        id=listing_id,
        name=title,
        current_price=extract_price(data.get("pricing") or data.get("price")),
        rating=extract_rating(data.get("rating") or data.get("review_rating")),
        reviews=extract_review_count(data),
        amenities=extract_amenities(amenities_detail.get("amenities") or data.get("amenities")),
        description=_description(data),
        location=ListingLocation(
            city=city,
            neighborhood=neighborhood,
            coordinates=extract_coordinates(data),
        ),
        property_type=data.get("propertyType") or data.get("roomType") or data.get("listing_type") or "Unknown",
        host_info=HostInfo(
            name=host_detail.get("hostName") or host.get("name") or "",
            is_superhost=bool(host_detail.get("isSuperhost") or host.get("isSuperhost")),
            response_rate=str(host_detail.get("responseRate") or host.get("responseRate") or ""),
        ),
    )


def normalize_competitor(
    search_hit: dict[str, Any],
    details: dict[str, Any],
    user_listing: UserListing,
) -> Competitor:
    """Merge a search hit with its detail payload into a competitor record."""
    listing_id = str(search_hit["id"])
    detail_location = _as_dict(details.get("location"))
    sections = _detail_sections(details)
    city, neighborhood = _parse_place(_section(sections, "LOCATION_DEFAULT"))
    coordinates = extract_coordinates(details)
    if coordinates.lat is None:
        coordinates = extract_coordinates(search_hit)

    amenities_detail = _section(sections, "AMENITIES_DEFAULT")

    return Competitor(
        id=listing_id,
        name=details.get("title") or search_hit.get("name") or "Competitor Listing",
        price=extract_price(details.get("pricing") or search_hit.get("pricing") or search_hit.get("price")),
        rating=extract_rating(details.get("rating") or search_hit.get("rating")),
        reviews=extract_review_count(details) or extract_review_count(search_hit),
        amenities=extract_amenities(amenities_detail.get("amenities") or details.get("amenities")),
        description=_description(details),
        location=CompetitorLocation(
            city=detail_location.get("city") or city or user_listing.location.city,
            neighborhood=detail_location.get("neighborhood") or neighborhood,
            distance=calculate_distance(user_listing.location.coordinates, coordinates),
            coordinates=coordinates,
        ),
        property_type=details.get("propertyType") or details.get("roomType") or "Unknown",
        # It appeared in search results for the requested dates
        availability=True,
    )
