import logging
from dataclasses import dataclass
from typing import List, Optional, Union

import httpx

from ..core.config import Settings

RESEND_ENDPOINT = "https://api.resend.com/emails"

log = logging.getLogger(__name__)


@dataclass
class SendResult:
    id: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.id is not None and self.error is None


class ResendMailer:
    """Transactional email through the Resend REST API.

    send() reports delivery problems through SendResult.error rather than raising.
    """

    def __init__(self, api_key: Optional[str], default_from: str = 'onboarding@resend.dev',
                 reply_to: Optional[str] = None, timeout_s: float = 10.0,
                 client: Optional[httpx.Client] = None, endpoint: str = RESEND_ENDPOINT):
        self.api_key = api_key
        self.default_from = default_from
        self.reply_to = reply_to
        self.endpoint = endpoint
        self._client = client or httpx.Client(timeout=timeout_s)

    @classmethod
    def from_settings(cls, settings: Settings) -> 'ResendMailer':
        if not settings.resend_api_key:
            log.warning("resend_api_key_missing; email sending disabled")
        return cls(settings.resend_api_key, settings.email_from, settings.email_reply_to)

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def send(self, to: Union[str, List[str]], subject: str, html: str,
             from_: Optional[str] = None, reply_to: Optional[str] = None) -> SendResult:
        if not self.enabled:
            return SendResult(error="email sending disabled: RESEND_API_KEY not set")
        payload = {
            "from": from_ or self.default_from,
            "to": to if isinstance(to, list) else [to],
            "subject": subject,
            "html": html,
        }
        if reply_to or self.reply_to:
            payload["reply_to"] = reply_to or self.reply_to
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        try:
            resp = self._client.post(self.endpoint, headers=headers, json=payload)
        except httpx.HTTPError as e:
            log.error("resend_request_failed", extra={"recipient": payload["to"], "reason": type(e).__name__})
            return SendResult(error=f"request failed: {type(e).__name__}")
        try:
            data = resp.json()
        except ValueError:
            data = {}
        if resp.status_code >= 400:
            reason = data.get("message") or data.get("name") or resp.text[:160]
            log.warning("resend_rejected", extra={"recipient": payload["to"], "status": resp.status_code, "reason": reason})
            return SendResult(error=str(reason) or f"http {resp.status_code}")
        message_id = data.get("id")
        if not message_id:
            return SendResult(error="provider response missing id")
        log.info("resend_accepted", extra={"recipient": payload["to"], "message_id": message_id})
        return SendResult(id=message_id)

    def close(self):
        self._client.close()


def get_mailer(settings: Settings) -> ResendMailer:
    return ResendMailer.from_settings(settings)
