"""NoiseSentinel Chain API - Main FastAPI application."""

import logging
import os
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from sentinel_api import __version__
from sentinel_api.errors import setup_error_handlers
from sentinel_api.middleware.correlation import CorrelationIDMiddleware
from sentinel_api.middleware.rate_limit import RateLimitMiddleware
from sentinel_api.routes import cases, challans, firs, public, readings
from sentinel_api.settings import get_settings

# Configure logging
logging.basicConfig(
    level=get_settings().log_level,
    format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s", "module": "%(name)s"}',
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting NoiseSentinel Chain API...")
    try:
        settings.validate_production_settings()

        # Fail fast on a misconfigured signing provider
        from sentinel_api.integrity.engine import get_signature_engine

        engine = get_signature_engine()
        logger.info(f"Signature engine initialized: {engine.algorithm} ({engine.key_id})")
    except Exception as e:
        logger.error(f"Configuration validation failed: {e}")
        raise ValueError(f"Invalid configuration: {e}") from e

    yield
    logger.info("Shutting down NoiseSentinel Chain API...")


app = FastAPI(
    title="NoiseSentinel Chain API",
    description="Evidentiary chain integrity and identifier issuance",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Custom middleware (order matters - last added is first executed)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(CorrelationIDMiddleware)

setup_error_handlers(app)

# Prometheus metrics
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

app.include_router(readings.router)
app.include_router(challans.router)
app.include_router(firs.router)
app.include_router(cases.router)
app.include_router(public.router)


@app.get("/health")
async def health_check():
    """Health check endpoint (basic liveness)."""
    return {
        "status": "healthy",
        "service": "sentinel-api",
        "version": __version__,
    }


@app.get("/ready")
def readiness_check():
    """Readiness check endpoint (verifies dependencies)."""
    import redis
    from alembic.config import Config
    from alembic.runtime.migration import MigrationContext
    from alembic.script import ScriptDirectory
    from sqlalchemy import text

    from sentinel_api.db.session import SessionLocal

    checks = {
        "database": False,
        "migrations": False,
        "redis": False,
    }

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = True

        context = MigrationContext.configure(db.connection())
        current_rev = context.get_current_revision()
        alembic_ini_path = os.path.join(os.path.dirname(__file__), "..", "alembic.ini")
        script = ScriptDirectory.from_config(Config(alembic_ini_path))
        head_rev = script.get_current_head()
        if current_rev == head_rev:
            checks["migrations"] = True
        else:
            logger.warning(f"Migrations not at head: current={current_rev}, head={head_rev}")
    except Exception as e:
        logger.error(f"Database check failed: {e}")
    finally:
        db.close()

    try:
        redis.from_url(settings.redis_url).ping()
        checks["redis"] = True
    except redis.RedisError as e:
        logger.error(f"Redis check failed: {e}")

    all_ready = all(checks.values())
    return JSONResponse(
        content={
            "status": "ready" if all_ready else "not_ready",
            "checks": checks,
        },
        status_code=200 if all_ready else 503,
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "NoiseSentinel Chain API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }
