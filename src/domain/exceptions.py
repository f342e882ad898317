"""
Invitation Domain Errors

Every rule violation raised by the invitation service has its own type so
callers can catch each one separately. Each error carries a machine readable
code, a human readable message and a hint on how to resolve it.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from src.domain.entities import InvitableRef, Invitation


class InvitationError(Exception):
    """Base class for all invitation rule violations."""

    code = "INVITATION_ERROR"

    def __init__(
        self,
        message: str,
        resolution: str = "",
        invitation: Optional[Invitation] = None,
    ):
        self.message = message
        self.resolution = resolution
        self.invitation = invitation
        # Copied now; the entity is expired if the transaction rolls back
        self.invitation_id = invitation.id if invitation is not None else None
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "resolution": self.resolution,
            "invitation_id": self.invitation_id,
        }


class InvalidEmailError(InvitationError, ValueError):
    code = "INVALID_EMAIL"

    def __init__(self, email: str):
        self.email = email
        super().__init__(
            f"Invalid email address: {email!r}",
            resolution="Provide a well-formed address such as name@example.com.",
        )


class InvitationTokenNotFoundError(InvitationError):
    code = "INVITATION_TOKEN_NOT_FOUND"

    def __init__(self):
        super().__init__(
            "Invalid invitation token.",
            resolution="Verify the token is correct and the invitation has not been deleted.",
        )


class InvitationNotFoundError(InvitationError):
    code = "INVITATION_NOT_FOUND"

    def __init__(self, invitation_id: Optional[int] = None):
        super().__init__(
            "Invitation not found.",
            resolution="Verify the invitation ID exists.",
        )
        self.invitation_id = invitation_id


class InvitationAlreadyAcceptedError(InvitationError):
    code = "INVITATION_ALREADY_ACCEPTED"

    def __init__(self, invitation: Invitation):
        self.accepted_at: Optional[datetime] = invitation.accepted_at
        self.accepted_by: Optional[int] = invitation.accepted_by
        super().__init__(
            "This invitation has already been accepted.",
            resolution="No action needed; the invitation was accepted earlier.",
            invitation=invitation,
        )


class InvitationExpiredError(InvitationError):
    code = "INVITATION_EXPIRED"

    def __init__(self, invitation: Invitation):
        self.expires_at: Optional[datetime] = invitation.expires_at
        super().__init__(
            "This invitation has expired.",
            resolution="Ask the sender for a new invitation.",
            invitation=invitation,
        )


class InvalidInvitationStateError(InvitationError):
    """Any other illegal transition, parameterized by reason."""

    code = "INVITATION_INVALID_STATE"

    def __init__(
        self,
        reason: str,
        message: str,
        resolution: str = "",
        invitation: Optional[Invitation] = None,
    ):
        self.reason = reason
        super().__init__(message, resolution=resolution, invitation=invitation)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason
        return data

    @classmethod
    def cancelled(cls, invitation: Invitation) -> "InvalidInvitationStateError":
        return cls(
            "cancelled",
            "This invitation has been cancelled.",
            resolution="Cancelled invitations cannot be accepted. Create a new invitation instead.",
            invitation=invitation,
        )

    @classmethod
    def declined(cls, invitation: Invitation) -> "InvalidInvitationStateError":
        return cls(
            "declined",
            "This invitation has been declined.",
            resolution="Declined invitations cannot be accepted.",
            invitation=invitation,
        )

    @classmethod
    def cannot_decline(cls, invitation: Invitation) -> "InvalidInvitationStateError":
        return cls(
            "not_pending",
            "This invitation cannot be declined.",
            resolution="Only pending invitations can be declined.",
            invitation=invitation,
        )

    @classmethod
    def cannot_cancel(cls, invitation: Invitation) -> "InvalidInvitationStateError":
        return cls(
            "not_pending",
            "Only pending invitations can be cancelled.",
            resolution="Check invitation.is_pending() before cancelling.",
            invitation=invitation,
        )

    @classmethod
    def cannot_resend(cls, invitation: Invitation) -> "InvalidInvitationStateError":
        return cls(
            "not_resendable",
            "This invitation cannot be resent.",
            resolution="Only pending, unexpired invitations can be resent.",
            invitation=invitation,
        )

    @classmethod
    def concurrent_update(cls, invitation: Invitation) -> "InvalidInvitationStateError":
        return cls(
            "concurrent_update",
            "This invitation was changed by another request.",
            resolution="Reload the invitation and retry.",
            invitation=invitation,
        )


class DuplicateInvitationError(InvalidInvitationStateError):
    code = "INVITATION_DUPLICATE"

    def __init__(self, email: str, invitable: Optional[InvitableRef] = None):
        self.email = email
        self.invitable = invitable
        super().__init__(
            "duplicate",
            "An invitation for this email already exists in this scope.",
            resolution="Resend or cancel the existing invitation instead.",
        )


class UnknownInvitableTypeError(InvitationError, ValueError):
    code = "INVITABLE_TYPE_UNKNOWN"

    def __init__(self, invitable_type: str):
        self.invitable_type = invitable_type
        super().__init__(
            f"Unknown invitable type: {invitable_type!r}",
            resolution="Add the type to INVITABLE_TYPES or use a configured one.",
        )
