"""
HTTP read surface for Weather Blend (FastAPI).

Endpoints:
    GET /                     - liveness text
    GET /api/forecast         - latest fused forecast, breakdown, weights,
                                daily overview and weekly forecast
    GET /api/accuracy         - accuracy (agreement) history
    GET /api/weights-history  - weight snapshots from the trailing window

When a ledger is still empty, the history endpoints return three synthetic
entries so dashboards have something to draw. This is presentation only;
the engine never sees these values.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from weather_blend import __version__
from weather_blend.config import Settings
from weather_blend.models import ProviderId
from weather_blend.scheduler import ForecastScheduler

logger = logging.getLogger(__name__)

PLACEHOLDER_ENTRIES = 3


def placeholder_accuracy(now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Synthetic accuracy entries at now-3h, now-2h, now-1h."""
    now = now or datetime.now(timezone.utc)
    entries = []
    for i in range(PLACEHOLDER_ENTRIES, 0, -1):
        entries.append({
            "time": (now - timedelta(hours=i)).isoformat(),
            ProviderId.NWS.value: {"tempAcc": "80.0", "rainAcc": "90.0", "snowAcc": "70.0"},
            ProviderId.OWM.value: {"tempAcc": "60.0", "rainAcc": "50.0", "snowAcc": "40.0"},
            ProviderId.WB.value: {"tempAcc": "75.0", "rainAcc": "85.0", "snowAcc": "65.0"},
        })
    return entries


def placeholder_weight_history(now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Synthetic weight snapshots at now-3h, now-2h, now-1h."""
    now = now or datetime.now(timezone.utc)
    entries = []
    for i in range(PLACEHOLDER_ENTRIES, 0, -1):
        entries.append({
            "time": (now - timedelta(hours=i)).isoformat(),
            ProviderId.NWS.value: {"temp": 0.33 - 0.01 * i, "rain": 0.33, "snow": 0.33 + 0.01 * i},
            ProviderId.OWM.value: {"temp": 0.33 + 0.01 * i, "rain": 0.33, "snow": 0.33},
            ProviderId.WB.value: {"temp": 0.34, "rain": 0.34 - 0.01 * i, "snow": 0.34 + 0.01 * i},
        })
    return entries


def create_app(scheduler: ForecastScheduler, settings: Settings) -> FastAPI:
    """
    Build the FastAPI application around one scheduler.

    The scheduler loops are started on startup and stopped on shutdown when
    settings.run_scheduler is set.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        logger.info("Starting Weather Blend API")
        if settings.run_scheduler:
            scheduler.start()
        yield
        if settings.run_scheduler:
            await scheduler.stop()
        logger.info("Shutting down Weather Blend API")

    app = FastAPI(
        title="Weather Blend API",
        version=__version__,
        description="Adaptive weighted-ensemble weather forecast",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception: {request.method} {request.url.path} - {str(exc)}",
            exc_info=True
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error", "path": str(request.url.path)}
        )

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        return "Weather backend is running."

    @app.get("/api/forecast")
    async def forecast() -> Dict[str, Any]:
        return scheduler.snapshot()

    @app.get("/api/accuracy")
    async def accuracy() -> List[Dict[str, Any]]:
        history = scheduler.ledger.read_accuracy_history()
        if not history:
            return placeholder_accuracy()
        return [entry.to_dict() for entry in history]

    @app.get("/api/weights-history")
    async def weights_history() -> List[Dict[str, Any]]:
        if not scheduler.ledger.read_weight_history():
            return placeholder_weight_history()
        recent = scheduler.ledger.read_weight_history(window=settings.weight_history_window)
        return [snapshot.to_dict() for snapshot in recent]

    return app
