"""
Health check endpoints.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import redis.asyncio as redis
from sqlalchemy import text

from config import settings
from database import engine

router = APIRouter()
logger = logging.getLogger(__name__)


async def _database_status() -> str:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return "up"
    except Exception as exc:
        logger.warning("Database health check failed: %s", exc)
        return f"down: {exc}"


async def _redis_status() -> str:
    try:
        client = redis.from_url(settings.REDIS_URL)
        try:
            await client.ping()
        finally:
            await client.aclose()
        return "up"
    except Exception as exc:
        return f"down: {exc}"


@router.get("/health")
async def health_check():
    """
    Health check endpoint.
    Redis only backs rate limiting, so its outage does not degrade status.
    """
    database = await _database_status()
    return {
        "status": "healthy" if database == "up" else "degraded",
        "api": "up",
        "database": database,
        "redis": await _redis_status(),
        "billing_webhook_secret": "configured" if settings.BILLING_WEBHOOK_SECRET else "missing",
    }


@router.get("/health/ready")
async def readiness_check():
    """Kubernetes-style readiness probe."""
    database = await _database_status()
    if database != "up":
        return JSONResponse(status_code=503, content={"ready": False, "database": database})
    return {"ready": True}


@router.get("/health/live")
async def liveness_check():
    """Kubernetes-style liveness probe."""
    return {"alive": True}
