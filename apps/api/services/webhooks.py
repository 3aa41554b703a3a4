"""Webhook signature checks and event handlers for email and billing providers."""

from __future__ import annotations

import base64
from datetime import datetime
import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

from services.credits import CreditLedger, LedgerResult
from services.plans import get_credit_pack

logger = logging.getLogger(__name__)


EMAIL_EVENT_MESSAGES = {
    "email.sent": "Email sent",
    "email.delivered": "Email delivered",
    "email.opened": "Email opened",
    "email.clicked": "Email link clicked",
    "email.bounced": "Email bounced",
    "email.complained": "Email marked as spam",
    "contact.created": "Contact created",
    "contact.deleted": "Contact deleted",
}
EMAIL_PROBLEM_EVENTS = {"email.bounced", "email.complained"}

PURCHASE_EVENTS = {"order.paid"}
SUBSCRIPTION_EVENTS = {"subscription.active", "subscription.renewed"}


def sign_payload(payload: bytes, secret: str) -> str:
    """Base64-encoded HMAC-SHA256 of the raw request body."""
    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(payload: bytes, signature: Optional[str], secret: str) -> bool:
    if not signature:
        return False
    expected = sign_payload(payload, secret)
    return hmac.compare_digest(signature.strip().encode("utf-8"), expected.encode("utf-8"))


def handle_email_event(event: Dict[str, Any]) -> str:
    """Log a delivery/engagement event; returns the event type that was handled."""
    event_type = str(event.get("type") or "")
    data = event.get("data")
    if not isinstance(data, dict):
        data = {}
    message = EMAIL_EVENT_MESSAGES.get(event_type)

    if message is None:
        logger.info("Unhandled email event: %s", event_type or "<missing type>")
        return "unhandled"

    if event_type.startswith("contact."):
        logger.info("%s: %s", message, data.get("email"))
    elif event_type == "email.bounced":
        bounce = data.get("bounce")
        reason = bounce.get("message") if isinstance(bounce, dict) else None
        logger.warning("%s: %s reason: %s", message, data.get("id"), reason)
    elif event_type in EMAIL_PROBLEM_EVENTS:
        logger.warning("%s: %s", message, data.get("id"))
    elif event_type == "email.sent":
        logger.info("%s: %s to: %s", message, data.get("id"), data.get("to"))
    else:
        logger.info("%s: %s", message, data.get("id"))
    return event_type


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Ignoring unparseable billing timestamp: %s", value)
        return None


async def handle_billing_event(event: Dict[str, Any], ledger: CreditLedger) -> Dict[str, Any]:
    """Apply a billing event to the ledger, keyed on the event id for idempotency."""
    event_id = str(event.get("id") or "").strip()
    event_type = str(event.get("type") or "").strip()
    data = event.get("data") or {}

    if event_type not in PURCHASE_EVENTS and event_type not in SUBSCRIPTION_EVENTS:
        logger.info("Ignoring billing event %s (%s)", event_id, event_type)
        return {"status": "ignored", "event_type": event_type}

    if not isinstance(data, dict):
        raise ValueError("Billing event data must be an object")
    user_id = str(data.get("user_id") or "").strip()
    if not event_id or not user_id:
        raise ValueError("Billing event requires id and data.user_id")

    result: LedgerResult
    if event_type in PURCHASE_EVENTS:
        pack = get_credit_pack(data.get("price_id"))
        if pack is None:
            raise ValueError(f"Unknown credit pack: {data.get('price_id')}")
        result = await ledger.credit(
            user_id,
            pack.credits,
            "purchase",
            f"Purchased {pack.credits} credits",
            external_reference=event_id,
        )
    else:
        result = await ledger.activate_plan(
            user_id,
            str(data.get("plan") or ""),
            external_subscription_id=str(data["subscription_id"]) if data.get("subscription_id") else None,
            expires_at=_parse_timestamp(data.get("current_period_end")),
            external_reference=event_id,
        )

    if not result:
        logger.error("Billing event %s for user %s failed: %s", event_id, user_id, result.failure)
        return {"status": "failed", "event_type": event_type, "reason": result.failure.value}

    return {
        "status": "duplicate" if result.duplicate else "applied",
        "event_type": event_type,
        "balance": result.balance,
    }
