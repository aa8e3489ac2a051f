"""
Azure Logic Apps workflow client.

Email delivery happens in an HTTP-triggered Logic App workflow. This
client only posts JSON payloads to it; an unconfigured URL is not an
error, the call is skipped and reported as unsuccessful.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


class LogicAppsClient:
    """Posts to the email workflow endpoint."""

    def __init__(
        self,
        email_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.email_url = email_url if email_url is not None else settings.LOGIC_APP_EMAIL_URL
        self.timeout = timeout if timeout is not None else settings.LOGIC_APP_TIMEOUT_SECONDS
        self.transport = transport

    def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        email_type: str = "notification",
        metadata: Optional[dict] = None,
    ) -> dict:
        """Trigger the email workflow. Returns {"success": bool, ...}."""
        if not self.email_url:
            logger.warning("Email workflow URL not configured, skipping email")
            return {"success": False, "message": "Email service not configured"}

        payload = {
            "to": to,
            "subject": subject,
            "body": body,
            "type": email_type,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "metadata": metadata or {},
        }
        return self._post(self.email_url, payload, "email")

    def health_check(self) -> dict:
        return {"email_workflow": bool(self.email_url)}

    def _post(self, url: str, payload: dict, what: str) -> dict:
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(url, json=payload)
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Failed to send %s via Logic App: %s", what, exc)
            return {"success": False, "error": str(exc)}

        logger.info("Sent %s via Logic App (status %s)", what, resp.status_code)
        return {"success": True, "data": _json_or_none(resp)}


def _json_or_none(resp: httpx.Response) -> Optional[Any]:
    try:
        return resp.json()
    except ValueError:
        return None
