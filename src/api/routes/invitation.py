"""
Invitation Link Routes

Browser-facing endpoints behind the links in invitation emails. Every outcome
is a redirect carrying invitation_status and invitation_message query
parameters for the target page to display.
"""

from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse

from config import ApplicationConfig
from src.app.services.invitation_service import InvitationService
from src.depends import get_invitation_service, get_optional_user_id
from src.domain.exceptions import (
    InvalidInvitationStateError,
    InvitationAlreadyAcceptedError,
    InvitationExpiredError,
    InvitationTokenNotFoundError,
)

router = APIRouter(prefix="/invitations", tags=["Invitations"])

INVALID_LINK_MESSAGE = "Invalid invitation link."
EXPIRED_MESSAGE = "This invitation has expired."
ALREADY_ACCEPTED_MESSAGE = "This invitation has already been accepted."


def redirect_to(target: str, invitation_status: str, message: str) -> RedirectResponse:
    """Redirect to a configured target ("accepted", "expired", ...) with the outcome"""
    url = ApplicationConfig.INVITATION_REDIRECTS.get(target) or "/"
    query = urlencode({"invitation_status": invitation_status, "invitation_message": message})
    separator = "&" if "?" in url else "?"
    return RedirectResponse(f"{url}{separator}{query}", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/{token}")
async def show_invitation(
    token: str,
    service: InvitationService = Depends(get_invitation_service),
):
    """
    Show Invitation

    Sends a valid invitation on to its accept link. Any other state redirects
    to the matching target with a message.
    """
    invitation = await service.find(token)

    if invitation is None:
        return redirect_to("error", "error", INVALID_LINK_MESSAGE)
    if invitation.is_expired():
        return redirect_to("expired", "expired", EXPIRED_MESSAGE)
    if invitation.is_accepted():
        return redirect_to("success", "success", ALREADY_ACCEPTED_MESSAGE)
    if invitation.is_cancelled():
        return redirect_to("error", "error", "This invitation has been cancelled.")
    if invitation.is_declined():
        return redirect_to("error", "error", "This invitation has been declined.")

    return RedirectResponse(
        invitation.accept_url(ApplicationConfig.APP_BASE_URL),
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.api_route("/{token}/accept", methods=["GET", "POST"])
async def accept_invitation(
    token: str,
    user_id: Optional[int] = Depends(get_optional_user_id),
    service: InvitationService = Depends(get_invitation_service),
):
    """
    Accept Invitation

    An optional Bearer token identifies the accepting user. Accepting twice
    is reported to the user as success.
    """
    try:
        await service.accept(token, user_id)
    except InvitationTokenNotFoundError:
        return redirect_to("error", "error", INVALID_LINK_MESSAGE)
    except InvitationAlreadyAcceptedError:
        return redirect_to("success", "success", ALREADY_ACCEPTED_MESSAGE)
    except InvitationExpiredError:
        return redirect_to("expired", "expired", EXPIRED_MESSAGE)
    except InvalidInvitationStateError as e:
        return redirect_to("error", "error", e.message)

    return redirect_to(
        "accepted", "accepted", "You have successfully accepted the invitation."
    )


@router.api_route("/{token}/decline", methods=["GET", "POST"])
async def decline_invitation(
    token: str,
    service: InvitationService = Depends(get_invitation_service),
):
    """Decline Invitation"""
    try:
        await service.decline(token)
    except InvitationTokenNotFoundError:
        return redirect_to("error", "error", INVALID_LINK_MESSAGE)
    except InvalidInvitationStateError as e:
        return redirect_to("error", "error", e.message)

    return redirect_to("declined", "declined", "You have declined the invitation.")
