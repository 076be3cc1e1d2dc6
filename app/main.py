"""FastAPI application entrypoint — lifespan, routers, middleware."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy import text

from app.config import get_settings
from app.database import async_session_factory, engine
from app.middleware.logging import RequestLoggingMiddleware, configure_structured_logging
from app.routes import monitoring, notifications, schedules, ws
from app.services.alert_engine import build_alert_engine
from app.services.notification_service import NotificationPublisher
from app.services.system_notifier import build_system_notifier

logger = structlog.get_logger("farmops")

SERVICE_VERSION = "0.1.0"


async def _connect_redis(url: str) -> Redis | None:
    redis = Redis.from_url(url, decode_responses=True)
    try:
        await redis.ping()
    except Exception as exc:
        logger.warning("redis_unavailable", error=str(exc))
        await redis.aclose()
        return None
    return redis


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application startup / shutdown lifecycle.

    Startup:
      1. Initialize structured logging
      2. Verify the database connection
      3. Connect to Redis (optional: live feed and push changes need it)
      4. Build the alert engine and start it when monitoring is enabled

    Shutdown:
      1. Stop the alert engine (clears session dedup state)
      2. Close Redis connection pool
      3. Dispose SQLAlchemy engine
    """
    settings = get_settings()
    configure_structured_logging(settings)
    logger.info(
        "farmops_starting",
        log_level=settings.log_level,
        monitoring_enabled=settings.monitoring_enabled,
        dedup_backend=settings.dedup_backend.value,
        change_feed=settings.change_feed.value,
    )

    try:
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))
    except Exception as exc:
        logger.exception("startup_failure", error=str(exc))
        raise

    redis = await _connect_redis(settings.redis_url)
    app.state.redis = redis
    publisher = NotificationPublisher(
        redis,
        settings.notifications_channel,
        build_system_notifier(settings),
    )
    app.state.notification_publisher = publisher

    alert_engine = build_alert_engine(settings, redis, async_session_factory, publisher)
    app.state.alert_engine = alert_engine
    if settings.monitoring_enabled:
        await alert_engine.start()

    yield

    logger.info("farmops_shutting_down")
    await alert_engine.stop()
    await publisher.drain()
    if redis is not None:
        await redis.aclose()
    await engine.dispose()


app = FastAPI(
    title="FarmOps API",
    description=(
        "Farm operations scheduling and alerting engine: maintenance calendars "
        "from crop growth profiles, automatic crop lifecycle tracking, and "
        "deduplicated alerts for inventory, tasks, soil health and cash flow."
    ),
    version=SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── Middleware ──────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


# ── Health checks ───────────────────────────────────────────────────────────
async def _run_readiness_checks(app: FastAPI) -> dict[str, dict[str, Any]]:
    checks: dict[str, dict[str, Any]] = {}
    try:
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))
        checks["database"] = {"ok": True, "message": "ok"}
    except Exception as exc:
        checks["database"] = {"ok": False, "message": str(exc)}

    redis = getattr(app.state, "redis", None)
    if redis is None:
        checks["redis"] = {"ok": False, "message": "not connected"}
    else:
        try:
            await redis.ping()
            checks["redis"] = {"ok": True, "message": "ok"}
        except Exception as exc:
            checks["redis"] = {"ok": False, "message": str(exc)}
    return checks


@app.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    """Liveness: verifies the API process is alive."""
    return {
        "status": "ok",
        "service": "farmops",
        "version": SERVICE_VERSION,
    }


@app.get("/health/ready", tags=["system"])
async def readiness_check() -> JSONResponse:
    """Readiness: database and Redis reachable; 503 when degraded."""
    checks = await _run_readiness_checks(app)
    ready = all(check["ok"] for check in checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ok" if ready else "degraded", "checks": checks},
    )


# ── Router registration ────────────────────────────────────────────────────
app.include_router(notifications.router, prefix="/api/v1")
app.include_router(schedules.router, prefix="/api/v1")
app.include_router(monitoring.router, prefix="/api/v1")
app.include_router(ws.router)
