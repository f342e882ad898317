"""
Notification Dispatchers

HttpMailNotificationDispatcher posts rendered emails to an HTTP mail API
(SendGrid-style payload). LoggingNotificationDispatcher only logs them and is
used when no mail API is configured.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from src.adapter.services.notification_templates import render
from src.app.services.notification_dispatcher import INotificationDispatcher
from src.domain.entities import Invitation, NotificationKind

logger = logging.getLogger(__name__)


class HttpMailNotificationDispatcher(INotificationDispatcher):
    """Send invitation emails through an HTTP mail API"""

    def __init__(
        self,
        base_url: str,
        api_url: str,
        api_key: Optional[str],
        from_email: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url
        self.api_url = api_url
        self.api_key = api_key
        self.from_email = from_email
        self.timeout = timeout
        self._client = client

    def build_payload(
        self, template: str, invitation: Invitation, recipient: str
    ) -> Dict[str, Any]:
        email = render(template, invitation, self.base_url)
        return {
            "personalizations": [{"to": [{"email": recipient}]}],
            "from": {"email": self.from_email},
            "subject": email.subject,
            "content": [
                {"type": "text/plain", "value": email.text},
                {"type": "text/html", "value": email.html},
            ],
        }

    async def dispatch(
        self,
        kind: NotificationKind,
        template: str,
        invitation: Invitation,
        recipient: str,
    ) -> None:
        payload = self.build_payload(template, invitation, recipient)
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        if self._client is not None:
            response = await self._client.post(self.api_url, headers=headers, json=payload)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.api_url, headers=headers, json=payload)

        # Non-2xx is a delivery failure; the caller decides whether it matters
        response.raise_for_status()

        logger.info(
            f"Sent {kind.value} email to {recipient}",
            extra={"invitation_id": invitation.id, "template": template},
        )


class LoggingNotificationDispatcher(INotificationDispatcher):
    """Render invitation emails and log them instead of sending"""

    def __init__(self, base_url: str):
        self.base_url = base_url

    async def dispatch(
        self,
        kind: NotificationKind,
        template: str,
        invitation: Invitation,
        recipient: str,
    ) -> None:
        email = render(template, invitation, self.base_url)
        logger.warning(
            "No mail API configured. Email would have been sent:\n"
            f"  To: {recipient}\n"
            f"  Subject: {email.subject}\n"
            f"  Preview: {email.text[:200]}...",
            extra={"invitation_id": invitation.id, "template": template},
        )
