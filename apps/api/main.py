"""
Worksheet Credits - FastAPI Backend
Main application entry point with health check and API routing.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings, validate_security_settings
from database import engine, Base
import models  # noqa: F401
from routers import (
    health,
    billing,
    worksheets,
    webhooks,
    email,
)

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    print("🚀 Starting Worksheet Credits API...")
    validate_security_settings()
    if settings.AUTO_CREATE_DB_SCHEMA:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            print("🗄️ Database schema verified.")
        except Exception as e:
            logger.warning("Database bootstrap skipped: %s", e)
    if not settings.BILLING_WEBHOOK_SECRET:
        logger.warning("BILLING_WEBHOOK_SECRET is not set; billing webhooks will be rejected.")
    if not settings.RESEND_API_KEY:
        logger.warning("RESEND_API_KEY is not set; welcome emails are disabled.")
    yield
    # Shutdown
    await engine.dispose()
    print("👋 Shutting down API...")


app = FastAPI(
    title="Worksheet Credits API",
    description="Credit balances, worksheet pricing and billing webhooks for AI worksheet generation",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(billing.router, prefix="/billing", tags=["Billing"])
app.include_router(worksheets.router, prefix="/worksheets", tags=["Worksheets"])
app.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])
app.include_router(email.router, prefix="/email", tags=["Email"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Worksheet Credits API",
        "version": "0.1.0",
        "status": "running"
    }
