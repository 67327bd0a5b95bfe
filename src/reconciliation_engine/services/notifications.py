"""Best-effort outbound notifications.

Senders never raise to the caller: every failure comes back as a
``NotificationResult`` with ``success=False`` and is logged.
"""

from __future__ import annotations

import html
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from reconciliation_engine.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationResult:
    """Outcome of one send attempt."""

    success: bool
    error: str | None = None


class Notifier(Protocol):
    """Protocol for notification senders."""

    async def send(self, recipient: str, template_data: dict[str, Any]) -> NotificationResult:
        """Send a notification rendered from ``template_data``."""
        ...


def render_invoice_email(template_data: dict[str, Any]) -> tuple[str, str]:
    """Render subject and HTML body for an invoice-created notification."""
    number = html.escape(str(template_data.get("invoice_number", "")))
    name = html.escape(str(template_data.get("employee_name", "")))
    amount = html.escape(str(template_data.get("total_amount", "")))
    currency = html.escape(str(template_data.get("currency", "")))
    due_date = html.escape(str(template_data.get("due_date", "")))

    subject = f"Invoice {template_data.get('invoice_number', '')} created"
    body = (
        f"<p>Hello {name},</p>"
        f"<p>Invoice <strong>{number}</strong> for {amount} {currency} "
        f"has been generated from your timesheet.</p>"
        f"<p>Payment is due on {due_date}.</p>"
    )
    return subject, body


class LoggingNotifier:
    """Notifier that only logs. Used when no email API is configured.

    The most recent ``history_size`` sends are kept on ``sent``.
    """

    def __init__(self, history_size: int = 100) -> None:
        self.sent: deque[tuple[str, dict[str, Any]]] = deque(maxlen=history_size)

    async def send(self, recipient: str, template_data: dict[str, Any]) -> NotificationResult:
        subject, _ = render_invoice_email(template_data)
        logger.info("Notification to %s: %s", recipient, subject)
        self.sent.append((recipient, template_data))
        return NotificationResult(success=True)


class HttpEmailNotifier:
    """Sends email through an HTTP email API (Resend-compatible payload)."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        from_address: str,
        from_name: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.from_address = from_address
        self.from_name = from_name
        self.timeout = timeout
        self._client = client

    async def send(self, recipient: str, template_data: dict[str, Any]) -> NotificationResult:
        if not self.api_key:
            logger.warning("Email API key not configured. Email to %s not sent.", recipient)
            return NotificationResult(success=False, error="Email API key not configured")

        subject, body = render_invoice_email(template_data)
        payload = {
            "from": f"{self.from_name} <{self.from_address}>",
            "to": [recipient],
            "subject": subject,
            "html": body,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            if self._client is not None:
                response = await self._client.post(self.api_url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.api_url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Failed to send email to %s: %s", recipient, e)
            return NotificationResult(success=False, error=str(e) or type(e).__name__)

        return NotificationResult(success=True)


def notifier_from_settings(settings: Settings) -> Notifier:
    """Pick the notifier implied by configuration."""
    if settings.notifications_enabled:
        return HttpEmailNotifier(
            api_url=settings.email_api_url,
            api_key=settings.email_api_key,
            from_address=settings.email_from,
            from_name=settings.email_from_name,
        )
    return LoggingNotifier()
