from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api import router
from app.web import router as web_router
from datastore.haiku_store import build_default_store
from logging_config import configure_logging
from services.pipeline import build_default_pipeline
from services.scheduler import HaikuScheduler
from services.sensors import validate_sensor_mode
from settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    sensor_mode = app.state.sensor_mode
    validate_sensor_mode(sensor_mode or settings.sensor_mode)
    # Open the store up front so a corrupt history fails start-up, not the first request.
    build_default_store()

    scheduler: HaikuScheduler | None = None
    if not settings.scheduler_enabled:
        logger.info("Scheduled haiku generation disabled by configuration")
    elif not settings.llm_configured:
        logger.warning(
            "LLM_API_URL, LLM_MODEL and LLM_API_KEY must all be set; "
            "scheduled haiku generation is disabled"
        )
    else:
        pipeline = build_default_pipeline(sensor_mode)
        scheduler = HaikuScheduler(pipeline, interval_seconds=settings.interval_seconds)
        scheduler.start()
    app.state.scheduler = scheduler

    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.shutdown()
            scheduler.pipeline.close()
        build_default_pipeline.cache_clear()
        build_default_store.cache_clear()


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        problems.append(f"{location}: {message}" if location else message)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "; ".join(problems) or "Malformed request body."},
    )


def create_app(sensor_mode: Optional[str] = None) -> FastAPI:
    """Build the application. ``sensor_mode`` overrides ``SENSOR_MODE`` for this app only."""
    configure_logging()
    app = FastAPI(
        title="Garden Haikus",
        description="Hourly haikus generated from garden sensor readings.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.sensor_mode = sensor_mode
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.include_router(router)
    app.include_router(web_router)
    return app

app = create_app()
