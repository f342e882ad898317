"""
Invitation Email Templates

Each template renders a subject plus text and HTML bodies for one invitation.
Templates are looked up by the names configured in INVITATION_NOTIFICATIONS.
"""

from html import escape
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel

from src.domain.entities import Invitation


class RenderedEmail(BaseModel):
    subject: str
    text: str
    html: str


class TemplateNotFoundError(LookupError):
    def __init__(self, template: str):
        self.template = template
        super().__init__(f"Unknown notification template: {template!r}")


def invitable_name(invitation: Invitation) -> Optional[str]:
    """Display name of the invited-to resource, taken from invitation metadata."""
    metadata = invitation.invitation_metadata or {}
    name = metadata.get("invitable_name")
    return str(name) if name else None


def _build(
    subject: str,
    greeting: str,
    lines: List[str],
    action: Optional[tuple] = None,
    footer: Optional[str] = None,
) -> RenderedEmail:
    text_parts = [greeting, "", *lines]
    html_parts = [f"<p>{escape(greeting)}</p>"]
    html_parts.extend(f"<p>{escape(line)}</p>" for line in lines)

    if action is not None:
        label, url = action
        text_parts.extend(["", f"{label}: {url}"])
        html_parts.append(f'<p><a href="{escape(url)}">{escape(label)}</a></p>')

    if footer:
        text_parts.extend(["", footer])
        html_parts.append(f"<p>{escape(footer)}</p>")

    return RenderedEmail(
        subject=subject,
        text="\n".join(text_parts),
        html="\n".join(html_parts),
    )


def render_invitation_sent(invitation: Invitation, base_url: str) -> RenderedEmail:
    name = invitable_name(invitation)
    intro = (
        f"You have been invited to join {name}."
        if name
        else "You have been invited to join us."
    )
    return _build(
        "You've Been Invited!",
        "Hello!",
        [intro, "Click the link below to accept your invitation."],
        action=("Accept Invitation", invitation.accept_url(base_url)),
        footer="If you did not expect this invitation, you can ignore this email.",
    )


def render_invitation_reminder(invitation: Invitation, base_url: str) -> RenderedEmail:
    name = invitable_name(invitation)
    lines = [
        f"Just a friendly reminder that you have a pending invitation to join {name}."
        if name
        else "Just a friendly reminder that you have a pending invitation waiting for you."
    ]
    if invitation.expires_at is not None:
        lines.append(
            f"This invitation will expire on {invitation.expires_at.strftime('%B %d, %Y')}."
        )
    return _build(
        "Reminder: Your Invitation is Waiting",
        "Hello!",
        lines,
        action=("Accept Invitation", invitation.accept_url(base_url)),
        footer="If you are not interested, you can safely ignore this email.",
    )


def render_invitation_cancelled(invitation: Invitation, base_url: str) -> RenderedEmail:
    name = invitable_name(invitation)
    return _build(
        "Invitation Cancelled",
        "Hello!",
        [
            f"Your invitation to join {name} has been cancelled."
            if name
            else "Your invitation has been cancelled."
        ],
        footer=(
            "If you believe this was a mistake, please contact the person "
            "who sent you the invitation."
        ),
    )


def render_invitation_accepted(invitation: Invitation, base_url: str) -> RenderedEmail:
    name = invitable_name(invitation)
    line = (
        f"{invitation.email} has accepted your invitation to join {name}."
        if name
        else f"{invitation.email} has accepted your invitation."
    )
    return _build(
        "Invitation Accepted!",
        "Good news!",
        [line, "They are now part of your team."],
        action=("View Dashboard", base_url.rstrip("/") + "/"),
    )


TEMPLATES: Dict[str, Callable[[Invitation, str], RenderedEmail]] = {
    "invitation_sent": render_invitation_sent,
    "invitation_reminder": render_invitation_reminder,
    "invitation_cancelled": render_invitation_cancelled,
    "invitation_accepted": render_invitation_accepted,
}


def render(template: str, invitation: Invitation, base_url: str) -> RenderedEmail:
    try:
        renderer = TEMPLATES[template]
    except KeyError:
        raise TemplateNotFoundError(template) from None
    return renderer(invitation, base_url)
