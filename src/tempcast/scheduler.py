from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from .connectivity import ConnectivityMonitor
from .settings import AppSettings

LOGGER = logging.getLogger(__name__)

CONNECTIVITY_JOB_ID = "connectivity_refresh_job"


def run_connectivity_refresh_job(monitor: ConnectivityMonitor) -> None:
    try:
        available = monitor.refresh()
    except Exception:  # pragma: no cover - defensive fallback
        LOGGER.exception("Connectivity refresh job failed")
        return
    LOGGER.debug("Connectivity refresh job: %s", "online" if available else "offline")


def build_scheduler(settings: AppSettings, monitor: ConnectivityMonitor) -> BackgroundScheduler:
    scheduler = BackgroundScheduler(timezone=settings.timezone)
    scheduler.add_job(
        run_connectivity_refresh_job,
        "interval",
        kwargs={"monitor": monitor},
        seconds=settings.yaml.connectivity.interval_seconds,
        id=CONNECTIVITY_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=30,
    )
    return scheduler
