from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

from .adapters.weather import VisualCrossingWeatherAdapter
from .connectivity import ConnectivityMonitor
from .domain.dates import today_string
from .resolver import Resolution, ResolutionStatus, WeatherResolver
from .scheduler import build_scheduler
from .settings import AppSettings, load_settings
from .storage import SqliteTemperatureStore, StoreError, initialize_database

LOGGER = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = BASE_DIR / "web" / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

INVALID_DATE_MESSAGE = "Invalid date format. Please enter date in YYYY-MM-DD format."
FETCH_ERROR_MESSAGE = "Error fetching data."

RESOLUTION_HTTP_STATUS = {
    ResolutionStatus.OK: 200,
    ResolutionStatus.INVALID: 422,
    ResolutionStatus.REMOTE_UNAVAILABLE: 404,
    ResolutionStatus.NOT_FOUND: 404,
    ResolutionStatus.INCOMPLETE_HISTORY: 404,
}


def build_weather_adapter(settings: AppSettings) -> VisualCrossingWeatherAdapter:
    provider = settings.yaml.weather.provider
    if provider != "visual_crossing":
        raise ValueError(f"Unsupported weather provider: {provider}")
    api_key = settings.env.visual_crossing_api_key.strip()
    if not api_key:
        raise ValueError("VISUAL_CROSSING_API_KEY is not set")
    return VisualCrossingWeatherAdapter(
        api_key=api_key,
        base_url=settings.yaml.weather.base_url,
        units=settings.yaml.weather.units,
        timeout_seconds=settings.yaml.weather.timeout_seconds,
    )


def build_connectivity_monitor(settings: AppSettings) -> ConnectivityMonitor:
    connectivity = settings.yaml.connectivity
    return ConnectivityMonitor(
        mode=connectivity.mode,
        host=connectivity.probe_host,
        port=connectivity.probe_port,
        timeout_seconds=connectivity.timeout_seconds,
    )


def build_resolver(settings: AppSettings, store: SqliteTemperatureStore) -> WeatherResolver:
    adapter: VisualCrossingWeatherAdapter | None = None
    if settings.env.visual_crossing_api_key.strip() or settings.yaml.connectivity.mode != "offline":
        adapter = build_weather_adapter(settings)
    else:
        LOGGER.info("No weather API key configured, serving stored records only")
    return WeatherResolver(
        store,
        adapter,
        history_years=settings.yaml.weather.history_years,
        today=partial(today_string, settings.timezone),
    )


def _get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def _resolve(request: Request, city: str, date: str) -> Resolution:
    resolver: WeatherResolver = request.app.state.resolver
    monitor: ConnectivityMonitor = request.app.state.connectivity
    return resolver.resolve_detailed(city, date, monitor.is_available())


def _estimate_payload(resolution: Resolution) -> dict[str, Any] | None:
    if resolution.estimate is None:
        return None
    return resolution.estimate.model_dump(mode="json")


@asynccontextmanager
async def lifespan(application: FastAPI):
    settings = load_settings()
    initialize_database(settings.db_path)
    store = SqliteTemperatureStore(settings.db_path, history_years=settings.yaml.weather.history_years)
    if settings.yaml.storage.clear_on_startup:
        store.clear_all()
        LOGGER.info("Cleared temperature records in %s", settings.db_path)

    resolver = build_resolver(settings, store)
    monitor = build_connectivity_monitor(settings)
    monitor.refresh()
    scheduler = build_scheduler(settings, monitor)
    scheduler.start()

    application.state.settings = settings
    application.state.store = store
    application.state.resolver = resolver
    application.state.connectivity = monitor
    application.state.scheduler = scheduler
    application.state.started_at_utc = datetime.now(timezone.utc)

    try:
        yield
    finally:
        if scheduler.running:
            scheduler.shutdown(wait=False)


app = FastAPI(title="Tempcast", version="0.1.0", lifespan=lifespan)


@app.get("/", response_class=HTMLResponse)
async def index_page(request: Request) -> HTMLResponse:
    settings = _get_settings(request)
    return templates.TemplateResponse(
        "index.html",
        {
            "request": request,
            "title": settings.yaml.ui.title,
            "city": settings.yaml.ui.default_city,
            "date": "",
            "estimate": None,
            "error_message": None,
            "online": request.app.state.connectivity.is_available(),
        },
    )


@app.get("/weather", response_class=HTMLResponse)
async def weather_page(
    request: Request,
    date: str = Query(default=""),
    city: str | None = Query(default=None),
) -> HTMLResponse:
    settings = _get_settings(request)
    city_name = (city or "").strip() or settings.yaml.ui.default_city
    resolution = await run_in_threadpool(_resolve, request, city_name, date)

    error_message = None
    if resolution.status is ResolutionStatus.INVALID:
        error_message = INVALID_DATE_MESSAGE
    elif not resolution.ok:
        error_message = FETCH_ERROR_MESSAGE

    return templates.TemplateResponse(
        "index.html",
        {
            "request": request,
            "title": settings.yaml.ui.title,
            "city": city_name,
            "date": date,
            "estimate": resolution.estimate,
            "error_message": error_message,
            "online": request.app.state.connectivity.is_available(),
        },
    )


@app.get("/api/temperatures", response_class=JSONResponse)
async def temperatures(
    request: Request,
    city: str = Query(...),
    date: str = Query(...),
) -> JSONResponse:
    resolution = await run_in_threadpool(_resolve, request, city, date)
    if resolution.status is ResolutionStatus.INVALID:
        raise HTTPException(status_code=422, detail=resolution.detail or INVALID_DATE_MESSAGE)

    return JSONResponse(
        {
            "city": city.strip(),
            "date": date.strip(),
            "status": resolution.status.value,
            "detail": resolution.detail,
            "estimate": _estimate_payload(resolution),
        },
        status_code=RESOLUTION_HTTP_STATUS[resolution.status],
    )


@app.get("/health", response_class=JSONResponse)
async def health(request: Request) -> JSONResponse:
    settings = _get_settings(request)
    monitor: ConnectivityMonitor = request.app.state.connectivity
    checked_at = monitor.checked_at
    try:
        record_count: int | None = request.app.state.store.count()
    except StoreError:
        LOGGER.warning("Health check could not count stored records")
        record_count = None

    return JSONResponse(
        {
            "status": "ok",
            "service": "tempcast",
            "environment": settings.env.tempcast_env,
            "timezone": settings.env.tempcast_timezone,
            "connectivity_mode": monitor.mode,
            "online": monitor.is_available(),
            "connectivity_checked_at_utc": checked_at.isoformat() if checked_at else None,
            "scheduler_running": request.app.state.scheduler.running,
            "record_count": record_count,
            "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        }
    )
