"""
Oura Trends Application
=======================
FastAPI application serving reconciled Oura sleep data and its trend lines.

Features:
- One record per night joined across sleep, activity, SpO2, stress, VO2 max,
  workouts, all-day heart rate and body composition
- Rolling-window reducers, percentiles and LOESS smoothing per metric
- Interval grouping for bar charts
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from oura_trends import __version__
from oura_trends.clients.oura_client import OuraAPIError
from oura_trends.config import get_settings
from oura_trends.routes import series
from oura_trends.utils.logging_config import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    logger.info("Oura Trends starting up...")
    logger.info(f"Oura API base: {settings.OURA_API_BASE}, day cutoff: {settings.DAY_CUTOFF_HOUR}:00")
    yield
    logger.info("Oura Trends shutting down...")


app = FastAPI(
    title="Oura Trends",
    description="Reconciled Oura sleep, activity and body data with smoothing",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    """Root endpoint - service information."""
    return {
        "service": "oura-trends",
        "version": __version__,
        "status": "operational",
        "endpoints": {
            "health": "/health",
            "status": "/status",
            "metrics": "/metrics",
            "series": "/series",
            "metric_trend": "/series/{metric}",
            "metric_grouped": "/series/{metric}/grouped",
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "oura-trends"}


app.include_router(series.router)


@app.exception_handler(OuraAPIError)
async def oura_error_handler(request: Request, exc: OuraAPIError):
    """Upstream failures keep their HTTP status so clients can react to 401."""
    logger.error(f"Oura API error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=exc.status_code or 502,
        content={"error": str(exc), "upstream_status": exc.status_code},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"}
    )


def run() -> None:
    import uvicorn

    uvicorn.run("oura_trends.main:app", host="0.0.0.0", port=8000)
