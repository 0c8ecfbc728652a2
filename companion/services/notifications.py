# companion/services/notifications.py
"""
Outbound patient messages: email through SendGrid's v3 REST API and WhatsApp
through Twilio. Both return a DeliveryResult and never raise, so a batch job
can keep going after a failed send.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import httpx
from twilio.base.exceptions import TwilioException
from twilio.http.async_http_client import AsyncTwilioHttpClient
from twilio.rest import Client as TwilioClient

from companion.core.config import settings
from companion.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    ok: bool
    detail: Optional[str] = None


# ---------- Email (SendGrid) ----------

def _sendgrid_payload(to: str, sender: str, subject: str, text: str, html: Optional[str]) -> dict[str, Any]:
    content = [{"type": "text/plain", "value": text}]
    if html:
        content.append({"type": "text/html", "value": html})
    return {
        "personalizations": [{"to": [{"email": to}]}],
        "from": {"email": sender},
        "subject": subject,
        "content": content,
    }


async def send_email(
    to: str,
    subject: str,
    text: str,
    html: Optional[str] = None,
    *,
    http: Optional[httpx.AsyncClient] = None,
) -> DeliveryResult:
    if not to:
        return DeliveryResult(False, "No recipient address")
    if not (settings.SENDGRID_API_KEY and settings.EMAIL_FROM):
        logger.warning("email_not_configured")
        return DeliveryResult(False, "Email delivery is not configured")

    headers = {
        "Authorization": f"Bearer {settings.SENDGRID_API_KEY}",
        "Content-Type": "application/json",
    }
    payload = _sendgrid_payload(to, settings.EMAIL_FROM, subject, text, html)
    url = f"{settings.SENDGRID_BASE_URL.rstrip('/')}/v3/mail/send"

    client = http or httpx.AsyncClient(timeout=30.0)
    try:
        resp = await client.post(url, headers=headers, json=payload)
    except httpx.HTTPError as e:
        logger.error("email_send_failed", to=to, error=str(e))
        return DeliveryResult(False, str(e))
    finally:
        if http is None:
            await client.aclose()

    # SendGrid answers 202 Accepted on success
    if resp.status_code >= 400:
        logger.error("email_send_failed", to=to, status_code=resp.status_code, detail=resp.text)
        return DeliveryResult(False, f"SendGrid returned {resp.status_code}")

    logger.info("email_sent", to=to)
    return DeliveryResult(True, resp.headers.get("X-Message-Id"))


# ---------- WhatsApp (Twilio) ----------

def build_twilio_client() -> Optional[TwilioClient]:
    if not (settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN):
        return None
    return TwilioClient(
        settings.TWILIO_ACCOUNT_SID,
        settings.TWILIO_AUTH_TOKEN,
        http_client=AsyncTwilioHttpClient(),
    )


async def send_whatsapp(to: str, body: str, *, client: Optional[TwilioClient] = None) -> DeliveryResult:
    """`to` is a whatsapp:+<digits> address (see reminders.format_whatsapp_address)."""
    if not to:
        return DeliveryResult(False, "No recipient number")
    if not settings.TWILIO_WHATSAPP_FROM:
        logger.warning("whatsapp_not_configured")
        return DeliveryResult(False, "WhatsApp delivery is not configured")

    owns_client = client is None
    client = client or build_twilio_client()
    if client is None:
        logger.warning("whatsapp_not_configured")
        return DeliveryResult(False, "WhatsApp delivery is not configured")

    try:
        message = await client.messages.create_async(
            from_=settings.TWILIO_WHATSAPP_FROM,
            to=to,
            body=body,
        )
    except TwilioException as e:
        logger.error("whatsapp_send_failed", to=to, error=str(e))
        return DeliveryResult(False, str(e))
    finally:
        if owns_client:
            await client.http_client.close()

    logger.info("whatsapp_sent", to=to, status=message.status, sid=message.sid)
    return DeliveryResult(True, message.status)
