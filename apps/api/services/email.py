"""Transactional email through the Resend HTTP API."""

from __future__ import annotations

import html
import logging
from typing import Any, Dict, Optional

import httpx

from config import settings
from services.credits import compute_worksheet_cost

logger = logging.getLogger(__name__)

WELCOME_SUBJECT = "Welcome to Worksheets! 🎉"


class EmailDeliveryError(RuntimeError):
    """Raised when the provider cannot be reached or refuses the message."""


def render_welcome_email(user_name: Optional[str], bonus_credits: int) -> str:
    name = html.escape((user_name or "").strip() or "there")
    worksheet_cost = compute_worksheet_cost()
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Welcome to Worksheets</title>
</head>
<body style="margin: 0; padding: 0; font-family: Arial, sans-serif; background-color: #f3f4f6;">
    <table role="presentation" style="width: 100%; max-width: 600px; margin: 0 auto; border-collapse: collapse;">
        <tr>
            <td style="background-color: #ffffff; padding: 40px; border-radius: 16px;">
                <p style="font-size: 18px; color: #374151;">Hey {name}! 👋</p>
                <p style="font-size: 16px; color: #6b7280;">
                    Thanks for joining. You can now create worksheets in seconds with AI.
                </p>
                <p style="font-size: 16px; color: #92400e;">
                    🎁 You've got <strong>{bonus_credits} free credits</strong> to get started.
                    A standard worksheet costs {worksheet_cost} credit{"" if worksheet_cost == 1 else "s"}.
                </p>
                <p style="font-size: 14px; color: #9ca3af; text-align: center;">
                    Need help? Just reply to this email.
                </p>
            </td>
        </tr>
    </table>
</body>
</html>
"""


class ResendClient:
    """Minimal async client for the Resend send-email endpoint."""

    def __init__(
        self,
        api_key: str,
        from_email: str,
        *,
        api_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self.api_url = api_url or settings.RESEND_API_URL
        self._transport = transport
        self._timeout = timeout

    async def send_email(self, to: str, subject: str, html_body: str) -> Dict[str, Any]:
        payload = {"from": self.from_email, "to": [to], "subject": subject, "html": html_body}
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise EmailDeliveryError(f"failed to send email: {exc}") from exc

        if response.status_code not in (200, 201):
            raise EmailDeliveryError(f"resend API returned status: {response.status_code}")
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    async def send_welcome_email(self, to: str, user_name: Optional[str] = None) -> Dict[str, Any]:
        body = render_welcome_email(user_name, settings.WELCOME_BONUS_CREDITS)
        result = await self.send_email(to, WELCOME_SUBJECT, body)
        logger.info("Welcome email sent to %s (id=%s)", to, result.get("id"))
        return result


def get_email_client() -> Optional[ResendClient]:
    """FastAPI dependency; ``None`` when no API key is configured."""
    if not settings.RESEND_API_KEY:
        return None
    return ResendClient(settings.RESEND_API_KEY, settings.RESEND_FROM_EMAIL)
