"""WhatsApp delivery through the Twilio Messages REST API."""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Tuple

import httpx

from core.errors import TransportError
from core.settings import TWILIO, TwilioSettings

logger = logging.getLogger("planner.whatsapp")

WHATSAPP_PREFIX = "whatsapp:"


class ChatTransport(Protocol):
    def send(self, address: str, text: str) -> str:
        ...


def to_whatsapp_address(number: str) -> str:
    number = (number or "").strip()
    if number.startswith(WHATSAPP_PREFIX):
        return number
    return f"{WHATSAPP_PREFIX}{number}"


def strip_whatsapp_prefix(address: str) -> str:
    return (address or "").replace(WHATSAPP_PREFIX, "").strip()


class WhatsAppTransport:
    """Send WhatsApp messages and return the Twilio message SID."""

    def __init__(
        self,
        settings: Optional[TwilioSettings] = None,
        *,
        client: Optional[httpx.Client] = None,
    ):
        self.settings = settings or TWILIO
        self._client = client

    def _messages_url(self) -> str:
        base = self.settings.api_base_url.rstrip("/")
        return f"{base}/Accounts/{self.settings.account_sid}/Messages.json"

    def send(self, address: str, text: str) -> str:
        if not self.settings.configured:
            raise TransportError(
                "Twilio credentials not configured. Set TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN."
            )
        payload = {
            "From": to_whatsapp_address(self.settings.whatsapp_number),
            "To": to_whatsapp_address(address),
            "Body": text,
        }
        auth = (self.settings.account_sid, self.settings.auth_token)
        try:
            if self._client is not None:
                response = self._client.post(self._messages_url(), data=payload, auth=auth)
            else:
                with httpx.Client(timeout=self.settings.timeout_sec) as client:
                    response = client.post(self._messages_url(), data=payload, auth=auth)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Twilio API error for %s: %s", payload["To"], e)
            raise TransportError(f"Twilio API error: {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error("Twilio connection error: %s", e)
            raise TransportError(f"Twilio connection error: {e}") from e

        sid = response.json().get("sid")
        if not sid:
            raise TransportError("Twilio response did not include a message sid")
        logger.info("WhatsApp message %s queued for %s", sid, payload["To"])
        return sid


class RecordingTransport:
    """In-process transport that keeps sent messages; handy for dry runs and tests."""

    def __init__(self, fail_for: Tuple[str, ...] = ()):
        self.sent: List[Tuple[str, str]] = []
        self.fail_for = set(fail_for)

    def send(self, address: str, text: str) -> str:
        if address in self.fail_for:
            raise TransportError(f"Delivery to {address} failed")
        self.sent.append((address, text))
        return f"SM{len(self.sent):032d}"


__all__ = [
    "ChatTransport",
    "RecordingTransport",
    "WhatsAppTransport",
    "strip_whatsapp_prefix",
    "to_whatsapp_address",
]
