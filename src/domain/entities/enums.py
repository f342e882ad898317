"""
Invite-Only Domain Enums

All enumeration types used across domain entities.
"""

from enum import Enum


class UserStatus(str, Enum):
    """User account status"""

    active = "active"
    disabled = "disabled"


class InvitationStatus(str, Enum):
    """
    Invitation status

    pending is the only non-terminal status. The other four are absorbing.
    """

    pending = "pending"
    accepted = "accepted"
    declined = "declined"
    expired = "expired"
    cancelled = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not InvitationStatus.pending

    @property
    def label(self) -> str:
        return self.value.capitalize()


class NotificationKind(str, Enum):
    """Notification kinds the service can dispatch"""

    invitation = "invitation"
    reminder = "reminder"
    cancelled = "cancelled"
    accepted = "accepted"
