"""
Invitation Domain Events

Fired after each lifecycle change has been committed.
"""

from typing import Any, ClassVar, Dict, Optional

from pydantic import BaseModel, ConfigDict

from src.domain.entities import Invitation, User


class InvitationEvent(BaseModel):
    """Base event - carries the affected invitation."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    action: ClassVar[str] = "invitation_event"

    invitation: Invitation

    @property
    def actor_id(self) -> Optional[int]:
        return None

    def audit_metadata(self) -> Dict[str, Any]:
        return {
            "email": self.invitation.email,
            "status": self.invitation.status.value,
            "invitable_type": self.invitation.invitable_type,
            "invitable_id": self.invitation.invitable_id,
        }


class InvitationCreated(InvitationEvent):
    action: ClassVar[str] = "invitation_created"

    @property
    def actor_id(self) -> Optional[int]:
        return self.invitation.invited_by

    def audit_metadata(self) -> Dict[str, Any]:
        data = super().audit_metadata()
        data["role"] = self.invitation.role
        data["expires_at"] = (
            self.invitation.expires_at.isoformat() if self.invitation.expires_at else None
        )
        return data


class InvitationAccepted(InvitationEvent):
    action: ClassVar[str] = "invitation_accepted"

    actor: Optional[User] = None

    @property
    def actor_id(self) -> Optional[int]:
        return self.invitation.accepted_by


class InvitationDeclined(InvitationEvent):
    action: ClassVar[str] = "invitation_declined"


class InvitationCancelled(InvitationEvent):
    action: ClassVar[str] = "invitation_cancelled"


class InvitationExpired(InvitationEvent):
    action: ClassVar[str] = "invitation_expired"
