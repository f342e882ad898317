"""
Invitation Settings

Explicit configuration consumed by InvitationService.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from src.domain.entities import NotificationKind

DEFAULT_NOTIFICATIONS: Dict[NotificationKind, Optional[str]] = {
    NotificationKind.invitation: "invitation_sent",
    NotificationKind.reminder: "invitation_reminder",
    NotificationKind.cancelled: "invitation_cancelled",
    NotificationKind.accepted: "invitation_accepted",
}


class InvitationSettings(BaseModel):
    """
    Invitation lifecycle configuration.

    notifications maps each kind to a template name; None disables that kind.
    An empty invitable_types list means no scoped invitations are allowed.
    """

    expiration_enabled: bool = True
    expiration_days: int = Field(default=7, gt=0)

    reminders_enabled: bool = True
    reminder_thresholds: List[int] = Field(default_factory=lambda: [3, 5])
    max_reminders: int = Field(default=2, ge=0)

    notifications: Dict[NotificationKind, Optional[str]] = Field(
        default_factory=lambda: dict(DEFAULT_NOTIFICATIONS)
    )
    invitable_types: List[str] = Field(
        default_factory=lambda: ["team", "organization", "project"]
    )

    @field_validator("reminder_thresholds")
    @classmethod
    def sort_thresholds(cls, value: List[int]) -> List[int]:
        if any(days <= 0 for days in value):
            raise ValueError("Reminder thresholds must be positive day counts")
        return sorted(value)

    @model_validator(mode="after")
    def fill_notification_kinds(self) -> "InvitationSettings":
        # Kinds missing from the mapping fall back to their default template
        for kind, template in DEFAULT_NOTIFICATIONS.items():
            self.notifications.setdefault(kind, template)
        return self

    def notification_template(self, kind: NotificationKind) -> Optional[str]:
        return self.notifications.get(kind)

    @classmethod
    def from_config(cls, config) -> "InvitationSettings":
        return cls(
            expiration_enabled=config.INVITATION_EXPIRATION_ENABLED,
            expiration_days=config.INVITATION_EXPIRATION_DAYS,
            reminders_enabled=config.INVITATION_REMINDERS_ENABLED,
            reminder_thresholds=config.INVITATION_REMINDER_AFTER_DAYS,
            max_reminders=config.INVITATION_MAX_REMINDERS,
            notifications=config.INVITATION_NOTIFICATIONS,
            invitable_types=config.INVITABLE_TYPES,
        )
