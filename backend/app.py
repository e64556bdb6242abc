from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from .analysis.market import round_half_up
from .analysis.models import AnalyzeRequest, ListingAnalysis
from .analysis.pipeline import UPDATE_INTERVAL, run_analysis
from .listings.client import get_listing_client
from .llm.groq_client import is_enabled as llm_enabled
from .logging_config import setup_logging
from .scheduler.config import DEFAULT_SCHEDULER_CONFIG
from .scheduler.jobs import build_scheduler
from .storage import store
from .tracking.models import AlertsResponse, MarkReadRequest, MarkReadResponse

logger = logging.getLogger(__name__)

CACHE_MAX_AGE = UPDATE_INTERVAL
ANALYZE_ALERT_LIMIT = 10


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    scheduler = None
    if DEFAULT_SCHEDULER_CONFIG.enabled:
        scheduler = build_scheduler()
        scheduler.start()
        logger.info("Scheduler started")
    app.state.scheduler = scheduler
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)


app = FastAPI(title="Listing Competitor Intelligence API", version="2.0.0", lifespan=lifespan)

# The dashboard is served from a different origin
_origins = [o.strip() for o in os.environ.get("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info("%s %s", request.method, request.url.path)
    return await call_next(request)


def _analysis_failed(error: str, exc: Exception, listing_id: str) -> HTTPException:
    logger.exception("%s for %s: %s", error, listing_id, exc)
    return HTTPException(
        status_code=500,
        detail={"error": error, "details": str(exc), "listing_id": listing_id},
    )


def _dump(analysis: ListingAnalysis) -> dict:
    return analysis.model_dump(mode="json")


# ── Health ───────────────────────────────────────────────────────────────


@app.get("/api/health")
def health(request: Request) -> dict:
    scheduler = getattr(request.app.state, "scheduler", None)
    return {
        "status": "healthy",
        "provider": "configured" if get_listing_client().is_configured else "unconfigured",
        "llm": "enabled" if llm_enabled() else "disabled",
        "database": "persistent" if store.is_persistent() else "in-memory",
        "scheduler": "running" if scheduler is not None and scheduler.running else "stopped",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ── Analysis ─────────────────────────────────────────────────────────────


@app.post("/api/analyze")
async def analyze(body: AnalyzeRequest) -> dict:
    listing_id = body.listing_id.strip()

    recent = store.find_recent_analysis(listing_id, CACHE_MAX_AGE)
    if recent is not None:
        logger.info("Using cached analysis for %s", listing_id)
        age = datetime.now(timezone.utc) - recent.analyzed_at
        return {
            "success": True,
            "data": _dump(recent),
            "alerts": [a.model_dump(mode="json") for a in store.get_alerts(listing_id, ANALYZE_ALERT_LIMIT, unread_only=True)],
            "from_cache": True,
            "cache_age": round_half_up(age / timedelta(minutes=1)),
        }

    try:
        analysis = await run_analysis(listing_id)
    except Exception as exc:
        raise _analysis_failed("Analysis failed", exc, listing_id) from exc

    return {
        "success": True,
        "data": _dump(analysis),
        "alerts": [a.model_dump(mode="json") for a in store.get_alerts(listing_id, ANALYZE_ALERT_LIMIT, unread_only=True)],
        "from_cache": False,
    }


@app.post("/api/refresh/{listing_id}")
async def refresh(listing_id: str) -> dict:
    logger.info("Force refreshing analysis for %s", listing_id)
    try:
        analysis = await run_analysis(listing_id)
    except Exception as exc:
        raise _analysis_failed("Refresh failed", exc, listing_id) from exc

    return {"success": True, "data": _dump(analysis), "refreshed": True}


@app.get("/api/history/{listing_id}")
def history(listing_id: str, limit: int = Query(default=30, ge=1, le=500)) -> dict:
    analyses = store.get_analysis_history(listing_id, limit=limit)
    competitors = store.list_tracking(listing_id, active_only=True)
    return {
        "success": True,
        "analysis_history": [_dump(a) for a in analyses],
        "competitor_history": [t.model_dump(mode="json") for t in competitors],
        "total_analyses": len(analyses),
    }


# ── Alerts ───────────────────────────────────────────────────────────────


@app.get("/api/alerts/{listing_id}", response_model=AlertsResponse)
def alerts(
    listing_id: str,
    limit: int = Query(default=20, ge=1, le=500),
    unread_only: bool = False,
) -> AlertsResponse:
    found = store.get_alerts(listing_id, limit=limit, unread_only=unread_only)
    return AlertsResponse(
        alerts=found,
        unread_count=store.count_unread_alerts(listing_id),
        total_count=len(found),
    )


@app.post("/api/alerts/{listing_id}/mark-read", response_model=MarkReadResponse)
def mark_read(listing_id: str, body: MarkReadRequest) -> MarkReadResponse:
    try:
        modified = store.mark_alerts_read(listing_id, body.alert_ids)
    except OSError as exc:
        raise HTTPException(status_code=500, detail="Failed to mark alerts as read") from exc
    return MarkReadResponse(modified_count=modified)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "backend.app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
