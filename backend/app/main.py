"""
Charter Quote API v1.0
FastAPI service exposing the aircraft effective-spec resolver, the quote
pricing engine and quote lifecycle rules to the back-office UI and the
invoice / contract generators.
"""
import os
import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from app.services.logging_config import setup_logging
from app.services.middleware import RequestTimingMiddleware, SecurityHeadersMiddleware
from app.services.perf_monitor import tracker as perf_tracker

# Load .env file automatically in dev (no-op when the file is missing)
load_dotenv()

_log_level = os.getenv("LOG_LEVEL", "INFO")
_json_logs = os.getenv("LOG_FORMAT", "json").lower() != "text"
setup_logging(level=_log_level, json_output=_json_logs)
logger = logging.getLogger("charter-api")

# Record process start time for uptime calculation
_PROCESS_START = time.monotonic()

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    from app import config
    logger.info(
        "pricing engine ready (FET %.3f, service tax %.3f, currency %s)",
        config.FEDERAL_EXCISE_TAX_RATE,
        config.SERVICE_TAX_RATE,
        config.CURRENCY,
    )
    yield


app = FastAPI(
    title="Charter Quote API",
    version=APP_VERSION,
    description="Quote pricing and aircraft effective-specification engine for charter operations",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# CORS: restricted to allowed origins from env
# ---------------------------------------------------------------------------
_cors_default = "http://localhost:3000,http://localhost:8000"
cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", _cors_default).split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Requested-With", "X-Request-ID"],
)
app.add_middleware(SecurityHeadersMiddleware)
# Request timing + X-Request-ID must be outermost so it wraps all other middleware
app.add_middleware(RequestTimingMiddleware)

# Routers
from app.api.aircraft_routes import router as aircraft_router
from app.api.pricing_routes import router as pricing_router
from app.api.quote_routes import router as quote_router

app.include_router(aircraft_router)
app.include_router(pricing_router)
app.include_router(quote_router)


@app.get("/health")
async def health_check():
    return {
        "status": "active",
        "version": APP_VERSION,
    }


@app.get("/metrics")
async def metrics():
    """
    Engine metrics: call counts, average and slowest durations, error
    counts. Sourced from the in-process PerformanceTracker singleton.
    """
    snapshot = perf_tracker.get_metrics()
    return {
        "uptime_seconds": round(time.monotonic() - _PROCESS_START, 1),
        **snapshot,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
