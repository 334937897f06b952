"""
Delivery channels. A channel sends one rendered email and raises
TransientDeliveryFailure when it cannot.
"""

from __future__ import annotations

from typing import Optional, Protocol

import httpx

from pacer.config import Settings
from pacer.errors import TransientDeliveryFailure
from pacer.utils.logger import get_logger

logger = get_logger("delivery")


class DeliveryChannel(Protocol):
    def send(self, to: str, subject: str, html: str) -> None:
        ...


class MailgunChannel:
    """Mailgun messages API over httpx. Every request carries a bounded timeout."""

    def __init__(
        self,
        *,
        api_key: str,
        domain: str,
        sender: str,
        base_url: str = "https://api.mailgun.net",
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        self.domain = domain
        self.sender = sender
        self._client = client or httpx.Client(
            base_url=base_url,
            auth=("api", api_key),
            timeout=httpx.Timeout(timeout),
        )

    def send(self, to: str, subject: str, html: str) -> None:
        try:
            response = self._client.post(
                f"/v3/{self.domain}/messages",
                data={"from": self.sender, "to": [to], "subject": subject, "html": html},
            )
        except httpx.TimeoutException as e:
            raise TransientDeliveryFailure(f"Mailgun request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransientDeliveryFailure(f"Mailgun request failed: {e}") from e
        if response.status_code >= 400:
            raise TransientDeliveryFailure(f"Mailgun returned {response.status_code}: {response.text[:200]}")

    def close(self) -> None:
        self._client.close()


class LoggingChannel:
    """Development channel: writes the message to the log instead of sending it."""

    def send(self, to: str, subject: str, html: str) -> None:
        logger.info("email (not sent) to=%s subject=%s bytes=%s", to, subject, len(html))


def build_channel(settings: Settings) -> DeliveryChannel:
    if settings.mailgun_api_key and settings.mailgun_domain:
        return MailgunChannel(
            api_key=settings.mailgun_api_key,
            domain=settings.mailgun_domain,
            sender=settings.mail_from,
            base_url=settings.mailgun_base_url,
            timeout=settings.delivery_timeout_seconds,
        )
    logger.warning("mailgun not configured; notifications will be logged, not sent")
    return LoggingChannel()
