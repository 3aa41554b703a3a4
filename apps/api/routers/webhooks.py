"""Inbound webhooks from the email and billing providers."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from config import settings
from services.credits import CreditLedger, get_ledger
from services.webhooks import handle_billing_event, handle_email_event, verify_signature

router = APIRouter()
logger = logging.getLogger(__name__)

RESEND_SIGNATURE_HEADER = "resend-signature"
BILLING_SIGNATURE_HEADER = "webhook-signature"


def _parse_event(payload: bytes) -> dict:
    try:
        event = json.loads(payload)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from exc
    if not isinstance(event, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    return event


@router.get("/resend")
async def resend_webhook_status():
    return {"status": "Resend webhook endpoint active"}


@router.post("/resend")
async def resend_webhook(request: Request):
    payload = await request.body()
    secret = settings.RESEND_WEBHOOK_SECRET
    if secret and not verify_signature(payload, request.headers.get(RESEND_SIGNATURE_HEADER), secret):
        logger.error("Invalid Resend webhook signature")
        raise HTTPException(status_code=401, detail="Invalid signature")

    event = _parse_event(payload)
    logger.info("Resend webhook received: %s", event.get("type"))
    handled = handle_email_event(event)
    return {"received": True, "handled": handled}


@router.post("/billing")
async def billing_webhook(request: Request, ledger: CreditLedger = Depends(get_ledger)):
    secret = settings.BILLING_WEBHOOK_SECRET
    if not secret:
        raise HTTPException(status_code=503, detail="Billing webhook secret is not configured.")

    payload = await request.body()
    if not verify_signature(payload, request.headers.get(BILLING_SIGNATURE_HEADER), secret):
        logger.error("Invalid billing webhook signature")
        raise HTTPException(status_code=401, detail="Invalid signature")

    event = _parse_event(payload)
    try:
        outcome = await handle_billing_event(event, ledger)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    if outcome["status"] == "failed":
        # The provider redelivers on 5xx.
        status_code = 503 if outcome.get("reason") == "storage_unavailable" else 422
        raise HTTPException(status_code=status_code, detail=outcome)
    return {"received": True, **outcome}
