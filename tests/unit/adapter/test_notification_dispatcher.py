import json
import logging
from datetime import datetime

import httpx
import pytest

from src.adapter.services.notification_dispatcher import (
    HttpMailNotificationDispatcher,
    LoggingNotificationDispatcher,
)
from src.adapter.services.notification_templates import TemplateNotFoundError, render
from src.domain.entities import Invitation, NotificationKind

BASE_URL = "https://app.acme.com"


def make_invitation(**overrides) -> Invitation:
    values = dict(id=3, email="invitee@acme.com", token="tok123")
    values.update(overrides)
    return Invitation(**values)


def test_invitation_sent_template_links_to_accept_url():
    email = render("invitation_sent", make_invitation(), BASE_URL)

    assert email.subject == "You've Been Invited!"
    assert "You have been invited to join us." in email.text
    assert "https://app.acme.com/invitations/tok123/accept" in email.text
    assert 'href="https://app.acme.com/invitations/tok123/accept"' in email.html


def test_templates_use_invitable_name_from_metadata():
    invitation = make_invitation(
        invitable_type="team",
        invitable_id=1,
        invitation_metadata={"invitable_name": "Platform <Team>"},
    )

    email = render("invitation_sent", invitation, BASE_URL)

    assert "You have been invited to join Platform <Team>." in email.text
    assert "Platform &lt;Team&gt;" in email.html


def test_reminder_template_mentions_expiry_date():
    invitation = make_invitation(expires_at=datetime(2026, 3, 9, 12, 0))

    email = render("invitation_reminder", invitation, BASE_URL)

    assert email.subject == "Reminder: Your Invitation is Waiting"
    assert "This invitation will expire on March 09, 2026." in email.text


def test_accepted_template_names_the_invitee():
    email = render("invitation_accepted", make_invitation(), BASE_URL)

    assert email.subject == "Invitation Accepted!"
    assert "invitee@acme.com has accepted your invitation." in email.text


def test_unknown_template():
    with pytest.raises(TemplateNotFoundError):
        render("invitation_party", make_invitation(), BASE_URL)


@pytest.mark.asyncio
async def test_http_dispatcher_posts_mail_payload():
    # Arrange
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(202)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        dispatcher = HttpMailNotificationDispatcher(
            base_url=BASE_URL,
            api_url="https://mail.acme.com/v3/mail/send",
            api_key="secret",
            from_email="no-reply@acme.com",
            client=client,
        )

        # Act
        await dispatcher.dispatch(
            NotificationKind.invitation, "invitation_sent", make_invitation(), "invitee@acme.com"
        )

    # Assert
    assert len(requests) == 1
    request = requests[0]
    assert str(request.url) == "https://mail.acme.com/v3/mail/send"
    assert request.headers["Authorization"] == "Bearer secret"
    payload = json.loads(request.content)
    assert payload["personalizations"] == [{"to": [{"email": "invitee@acme.com"}]}]
    assert payload["from"] == {"email": "no-reply@acme.com"}
    assert payload["subject"] == "You've Been Invited!"
    assert [part["type"] for part in payload["content"]] == ["text/plain", "text/html"]


@pytest.mark.asyncio
async def test_http_dispatcher_raises_on_error_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "boom"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        dispatcher = HttpMailNotificationDispatcher(
            base_url=BASE_URL,
            api_url="https://mail.acme.com/v3/mail/send",
            api_key=None,
            from_email="no-reply@acme.com",
            client=client,
        )

        with pytest.raises(httpx.HTTPStatusError):
            await dispatcher.dispatch(
                NotificationKind.reminder,
                "invitation_reminder",
                make_invitation(),
                "invitee@acme.com",
            )


@pytest.mark.asyncio
async def test_logging_dispatcher_logs_rendered_email(caplog):
    dispatcher = LoggingNotificationDispatcher(base_url=BASE_URL)

    with caplog.at_level(logging.WARNING):
        await dispatcher.dispatch(
            NotificationKind.cancelled,
            "invitation_cancelled",
            make_invitation(),
            "invitee@acme.com",
        )

    assert "To: invitee@acme.com" in caplog.text
    assert "Subject: Invitation Cancelled" in caplog.text
