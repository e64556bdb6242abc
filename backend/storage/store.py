"""
In-process document store.

Three collections of JSON-compatible documents: ``analyses`` (append-only
snapshots), ``alerts`` and ``competitor_tracking``. When a store path is
configured the collections are loaded from that file on first access and
written back after every mutation.
"""
from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Any

from ..analysis.models import ListingAnalysis
from ..tracking.models import Alert, CompetitorTracking
from .config import DEFAULT_STORE_CONFIG, StoreConfig

logger = logging.getLogger(__name__)

_COLLECTIONS = ("analyses", "alerts", "competitor_tracking")

_config: StoreConfig = DEFAULT_STORE_CONFIG
_db: dict[str, list[dict[str, Any]]] | None = None
_flush_lock = threading.Lock()


def _empty() -> dict[str, list[dict[str, Any]]]:
    return {name: [] for name in _COLLECTIONS}


def _collections() -> dict[str, list[dict[str, Any]]]:
    """Return the collections, loading them from disk on first call."""
    global _db
    if _db is None:
        _db = _empty()
        path = _config.path
        if path is not None and path.exists():
            with path.open(encoding="utf-8") as fh:
                loaded = json.load(fh)
            for name in _COLLECTIONS:
                _db[name] = list(loaded.get(name, []))
            logger.info("Loaded store from %s", path)
    return _db


def _flush() -> None:
    path = _config.path
    if path is None:
        return
    with _flush_lock:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as fh:
            json.dump(_collections(), fh)
        tmp.replace(path)


def configure_store(config: StoreConfig) -> None:
    """Point the store at a different backing file and drop cached state."""
    global _config, _db
    _config = config
    _db = None


def clear_store() -> None:
    global _db
    _db = _empty()
    _flush()


def is_persistent() -> bool:
    return _config.path is not None


def _parse_time(value: str | datetime) -> datetime:
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    # Naive timestamps are taken as UTC
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


# ── Snapshots ────────────────────────────────────────────────────────────


def save_analysis(analysis: ListingAnalysis) -> ListingAnalysis:
    _collections()["analyses"].append(analysis.model_dump(mode="json"))
    _flush()
    return analysis


def _analyses_for(listing_id: str) -> list[dict[str, Any]]:
    docs = [d for d in _collections()["analyses"] if d["listing_id"] == listing_id]
    return sorted(docs, key=lambda d: _parse_time(d["analyzed_at"]), reverse=True)


def get_latest_analysis(listing_id: str, before: datetime | None = None) -> ListingAnalysis | None:
    """Newest snapshot for a listing, optionally strictly older than ``before``."""
    for doc in _analyses_for(listing_id):
        if before is None or _parse_time(doc["analyzed_at"]) < _parse_time(before):
            return ListingAnalysis.model_validate(doc)
    return None


def find_recent_analysis(listing_id: str, max_age: timedelta) -> ListingAnalysis | None:
    latest = get_latest_analysis(listing_id)
    if latest and _parse_time(latest.analyzed_at) >= datetime.now(timezone.utc) - max_age:
        return latest
    return None


def get_analysis_history(listing_id: str, limit: int = 30) -> list[ListingAnalysis]:
    return [ListingAnalysis.model_validate(d) for d in _analyses_for(listing_id)[:limit]]


def get_listings_due(now: datetime | None = None) -> list[str]:
    """Listing ids whose current snapshot has passed its ``next_update_due``."""
    now = _parse_time(now or datetime.now(timezone.utc))
    latest: dict[str, dict[str, Any]] = {}
    for doc in _collections()["analyses"]:
        current = latest.get(doc["listing_id"])
        if current is None or _parse_time(doc["analyzed_at"]) > _parse_time(current["analyzed_at"]):
            latest[doc["listing_id"]] = doc
    return [
        listing_id
        for listing_id, doc in latest.items()
        if doc.get("next_update_due") and _parse_time(doc["next_update_due"]) <= now
    ]


# ── Alerts ───────────────────────────────────────────────────────────────


def insert_alerts(alerts: list[Alert]) -> None:
    if not alerts:
        return
    _collections()["alerts"].extend(a.model_dump(mode="json") for a in alerts)
    _flush()


def get_alerts(listing_id: str, limit: int = 20, unread_only: bool = False) -> list[Alert]:
    docs = [
        d for d in _collections()["alerts"]
        if d["listing_id"] == listing_id and not (unread_only and d["is_read"])
    ]
    docs.sort(key=lambda d: _parse_time(d["created_at"]), reverse=True)
    return [Alert.model_validate(d) for d in docs[:limit]]


def count_unread_alerts(listing_id: str) -> int:
    return sum(1 for d in _collections()["alerts"] if d["listing_id"] == listing_id and not d["is_read"])


def mark_alerts_read(listing_id: str, alert_ids: list[str]) -> int:
    wanted = set(alert_ids)
    modified = 0
    for doc in _collections()["alerts"]:
        if doc["listing_id"] == listing_id and doc["id"] in wanted and not doc["is_read"]:
            doc["is_read"] = True
            modified += 1
    if modified:
        _flush()
    return modified


def mark_stale_alerts_read(older_than: datetime) -> int:
    modified = 0
    for doc in _collections()["alerts"]:
        if not doc["is_read"] and _parse_time(doc["created_at"]) < _parse_time(older_than):
            doc["is_read"] = True
            modified += 1
    if modified:
        _flush()
    return modified


# ── Competitor tracking ──────────────────────────────────────────────────


def get_tracking(listing_id: str, competitor_id: str) -> CompetitorTracking | None:
    for doc in _collections()["competitor_tracking"]:
        if doc["user_listing_id"] == listing_id and doc["competitor_id"] == competitor_id:
            return CompetitorTracking.model_validate(doc)
    return None


def upsert_tracking(tracking: CompetitorTracking) -> None:
    docs = _collections()["competitor_tracking"]
    new_doc = tracking.model_dump(mode="json")
    for i, doc in enumerate(docs):
        if doc["user_listing_id"] == tracking.user_listing_id and doc["competitor_id"] == tracking.competitor_id:
            docs[i] = new_doc
            break
    else:
        docs.append(new_doc)
    _flush()


def list_tracking(listing_id: str | None = None, active_only: bool = False) -> list[CompetitorTracking]:
    return [
        CompetitorTracking.model_validate(d)
        for d in _collections()["competitor_tracking"]
        if (listing_id is None or d["user_listing_id"] == listing_id)
        and (not active_only or d["is_active"])
    ]


def trim_price_history(max_entries: int) -> int:
    """Keep only the newest ``max_entries`` price points per competitor."""
    trimmed = 0
    for doc in _collections()["competitor_tracking"]:
        history = doc.get("price_history", [])
        if len(history) > max_entries:
            history.sort(key=lambda e: _parse_time(e["date"]), reverse=True)
            doc["price_history"] = history[:max_entries]
            trimmed += 1
    if trimmed:
        _flush()
    return trimmed
