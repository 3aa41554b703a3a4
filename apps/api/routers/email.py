"""Outbound transactional email."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from routers.rate_limit import rate_limit
from services.email import EmailDeliveryError, ResendClient, get_email_client

router = APIRouter()
logger = logging.getLogger(__name__)


class WelcomeEmailRequest(BaseModel):
    email: str = Field(default="", max_length=320)
    name: Optional[str] = Field(default=None, max_length=120)


@router.post("/welcome")
async def send_welcome_email(
    request: WelcomeEmailRequest,
    _rate_limit: None = Depends(rate_limit("email_welcome", limit=10, window_seconds=3600)),
    client: Optional[ResendClient] = Depends(get_email_client),
):
    email = request.email.strip()
    if not email:
        raise HTTPException(status_code=400, detail="Email is required")
    if "@" not in email:
        raise HTTPException(status_code=400, detail="Email address is invalid")
    if client is None:
        raise HTTPException(status_code=503, detail="Email delivery is not configured.")

    try:
        await client.send_welcome_email(email, request.name)
    except EmailDeliveryError as exc:
        logger.error("Welcome email to %s failed: %s", email, exc)
        raise HTTPException(status_code=502, detail=f"Failed to send welcome email: {exc}") from exc

    return {"success": True, "message": "Welcome email sent successfully"}
