"""
Invite-Only Domain Entities

All domain entities organized by model.
Each entity in its own file for better maintainability.
"""

# Export all enums
from .enums import (
    InvitationStatus,
    NotificationKind,
    UserStatus,
)

# Export all entities
from .user import User
from .invitation import InvitableRef, Invitation
from .audit_event import AuditEvent

__all__ = [
    # Enums
    "InvitationStatus",
    "NotificationKind",
    "UserStatus",
    # Entities
    "User",
    "Invitation",
    "InvitableRef",
    "AuditEvent",
]
