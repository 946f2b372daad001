"""FastAPI app: trend listing, on-demand collection, scheduler control and health probes."""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional
import logging

from fastapi import FastAPI, Query, Request

from .aggregator import fetch_all_sources
from .collector import backfill_countries, clamp_days, collect_countries
from .config import parse_countries, settings
from .database import Database
from .deduplicator import store_trends
from .fetcher import build_http_client
from .models import SchedulerState, TrendFilter
from .scheduler import TrendScheduler
from .sources import build_adapters

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = Database(settings.database_path)
    await db.connect()
    http_client = build_http_client()
    adapters = build_adapters(http_client)
    scheduler = TrendScheduler(db, adapters)

    app.state.db = db
    app.state.adapters = adapters
    app.state.scheduler = scheduler
    app.state.start_time = datetime.now()

    if settings.scheduler_enabled:
        await scheduler.start(
            settings.scheduler_interval_minutes, settings.scheduler_country_list
        )

    try:
        yield
    finally:
        await scheduler.stop()
        await http_client.aclose()
        await db.close()


app = FastAPI(title="Trend Aggregator", version="1.0.0", lifespan=lifespan)


def _split_sources(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _scheduler_payload(state: SchedulerState) -> dict:
    return {
        "started": state.started,
        "intervalMinutes": state.interval_minutes,
        "countries": state.countries,
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Trend Aggregator",
        "version": "1.0.0",
        "status": "running",
    }


@app.get("/healthz")
async def healthcheck(request: Request):
    """Health check endpoint for container orchestration."""
    uptime_seconds = (datetime.now() - request.app.state.start_time).total_seconds()

    # Check database connectivity
    db_healthy = True
    try:
        await request.app.state.db.count_trends()
    except Exception as e:
        db_healthy = False
        logger.error(f"Database health check failed: {e}")

    return {
        "status": "healthy" if db_healthy else "unhealthy",
        "uptime_seconds": int(uptime_seconds),
        "database": "connected" if db_healthy else "disconnected",
        "scheduler": _scheduler_payload(request.app.state.scheduler.get_state()),
    }


@app.get("/stats")
async def stats(request: Request):
    """Get storage statistics."""
    try:
        db_stats = await request.app.state.db.get_stats()
    except Exception as e:
        db_stats = {"error": str(e)}

    return {
        "uptime_seconds": int((datetime.now() - request.app.state.start_time).total_seconds()),
        "sources": [adapter.label for adapter in request.app.state.adapters],
        "database": db_stats,
    }


@app.get("/ready")
async def readiness(request: Request):
    """Readiness probe for Kubernetes."""
    try:
        await request.app.state.db.count_trends()
        return {"ready": True}
    except Exception:
        return {"ready": False}


@app.get("/api/trends")
async def list_trends(
    request: Request,
    country_code: str = Query("GLOBAL", alias="countryCode"),
    date: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    source: Optional[str] = Query(None),
    refresh: Optional[str] = Query(None),
):
    """
    Windowed listing for one country.

    Keeps the scheduler polling the requested country, and with refresh=1
    collects all sources before reading.
    """
    state = request.app.state
    country_code = country_code.strip().upper() or "GLOBAL"

    if settings.scheduler_enabled:
        countries = settings.scheduler_country_list
        if country_code not in countries:
            countries.append(country_code)
        if not state.scheduler.is_configured(settings.scheduler_interval_minutes, countries):
            await state.scheduler.start(settings.scheduler_interval_minutes, countries)

    failed_sources: List[str] = []
    if refresh == "1":
        result = await fetch_all_sources(country_code, state.adapters)
        failed_sources = result.failed_sources
        await store_trends(state.db, result.trends)

    trends = await state.db.list_trends(
        TrendFilter(
            country_code=country_code,
            date=date,
            sources=_split_sources(source),
            recency_minutes=settings.realtime_window_minutes,
            limit=settings.query_limit,
        )
    )

    return {
        "trends": [trend.model_dump(mode="json") for trend in trends],
        "failedSources": failed_sources,
    }


@app.post("/api/trends/fetch")
async def fetch_trends(request: Request, countries: Optional[str] = Query(None)):
    """Collect the given countries now."""
    report = await collect_countries(
        request.app.state.db, request.app.state.adapters, parse_countries(countries)
    )
    return {"ok": True, **report.model_dump()}


@app.post("/api/trends/backfill")
async def backfill_trends(
    request: Request,
    countries: Optional[str] = Query(None),
    days: Optional[str] = Query(None),
):
    """Replay current trends over the previous days."""
    report = await backfill_countries(
        request.app.state.db,
        request.app.state.adapters,
        parse_countries(countries),
        days,
    )
    return {"ok": True, **report.model_dump(), "days": clamp_days(days)}


@app.get("/api/trends/scheduler")
async def scheduler_state(request: Request):
    return _scheduler_payload(request.app.state.scheduler.get_state())


@app.post("/api/trends/scheduler")
async def configure_scheduler(
    request: Request,
    enabled: Optional[str] = Query(None),
    interval_minutes: float = Query(30, alias="intervalMinutes", gt=0),
    countries: Optional[str] = Query(None),
):
    """Start or reconfigure the scheduler."""
    if enabled == "false":
        return {"ok": False, "message": "Scheduler disabled"}

    state = await request.app.state.scheduler.start(interval_minutes, parse_countries(countries))
    return {"ok": True, **_scheduler_payload(state)}
