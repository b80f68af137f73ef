from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from hcc_portal.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    pass


@dataclass
class EmailMessage:
    to: List[str]
    subject: str
    text: str
    html: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)


class EmailService:
    """Sends transactional email through the Resend HTTP API."""

    BASE_URL = "https://api.resend.com"

    def __init__(self, settings: Settings | None = None, client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings or get_settings()
        self._client = client or httpx.AsyncClient(timeout=10.0)

    def is_configured(self) -> bool:
        return bool(self.settings.resend_api_key)

    def _payload(self, message: EmailMessage) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "from": self.settings.resend_from_email,
            "to": message.to,
            "subject": message.subject,
            "text": message.text,
        }
        if message.html:
            payload["html"] = message.html
        if message.tags:
            payload["tags"] = [{"name": name, "value": value} for name, value in message.tags.items()]
        return payload

    async def send(self, message: EmailMessage) -> Optional[str]:
        if not self.is_configured():
            logger.warning("Resend is not configured; skipping email", extra={"subject": message.subject})
            return None
        try:
            response = await self._client.post(
                f"{self.BASE_URL}/emails",
                headers={
                    "Authorization": f"Bearer {self.settings.resend_api_key}",
                    "Content-Type": "application/json",
                },
                json=self._payload(message),
            )
            response.raise_for_status()
        except httpx.HTTPError as error:
            raise EmailDeliveryError(str(error)) from error

        email_id = response.json().get("id")
        logger.info("email_sent", extra={"email_id": email_id, "subject": message.subject, "to": message.to})
        return email_id

    async def send_safely(self, message: EmailMessage) -> bool:
        """Deliver ``message`` without letting a delivery failure reach the caller."""

        try:
            await self.send(message)
        except EmailDeliveryError as error:
            logger.exception(
                "Failed to send email",
                extra={"subject": message.subject, "to": message.to, "error": str(error)},
            )
            return False
        return True


_email_service: EmailService | None = None


def get_email_service() -> EmailService:
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
