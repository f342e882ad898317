"""
Invitation Entity

Invitation to join the application, optionally scoped to a parent resource.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import ForeignKey, Integer, UniqueConstraint, text
from sqlmodel import JSON, Column, DateTime, Field, Index, SQLModel

from src.domain.base import INVITATION_TOKEN_LENGTH, generate_token, utc_now

from .enums import InvitationStatus


class InvitableRef(BaseModel):
    """Tagged reference to the resource an invitation is scoped to (e.g. a team)."""

    model_config = ConfigDict(frozen=True)

    type: str
    id: int


class Invitation(SQLModel, table=True):
    """
    Invitation entity - a single invite sent to one email address.

    Business Rules:
    - (invitable_type, invitable_id, email) is unique, the global scope included
    - Token is a 64 char hex secret and never reused
    - pending is the only status that can change; every other status is final
    - Exactly one of accepted_at / declined_at / cancelled_at is set once the
      matching status is reached
    - reminder_count only ever goes up, and only while pending
    - expires_at of None means the invitation never expires
    """

    __tablename__ = "invitations"

    id: Optional[int] = Field(default=None, primary_key=True)

    invitable_type: Optional[str] = Field(default=None, max_length=100)
    invitable_id: Optional[int] = Field(default=None)

    email: str = Field(max_length=255, nullable=False, index=True)
    token: str = Field(
        default_factory=generate_token,
        unique=True,
        index=True,
        max_length=INVITATION_TOKEN_LENGTH,
    )

    status: InvitationStatus = Field(default=InvitationStatus.pending)
    role: Optional[str] = Field(default=None, max_length=100)
    invitation_metadata: Optional[dict] = Field(
        default=None, sa_column=Column("metadata", JSON)
    )

    # Weak references to users, nulled when the user is deleted
    invited_by: Optional[int] = Field(
        default=None,
        sa_column=Column(
            Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
        ),
    )
    accepted_by: Optional[int] = Field(
        default=None,
        sa_column=Column(
            Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
        ),
    )

    reminder_count: int = Field(default=0, nullable=False)

    # Timestamps
    expires_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    accepted_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    declined_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    cancelled_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    last_sent_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime))
    updated_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime))

    __table_args__ = (
        UniqueConstraint(
            "invitable_type",
            "invitable_id",
            "email",
            name="uq_invitation_invitable_email",
        ),
        # NULLs never collide in a unique constraint, so the global scope
        # needs its own partial index
        Index(
            "uq_invitation_global_email",
            "email",
            unique=True,
            sqlite_where=text("invitable_type IS NULL"),
            postgresql_where=text("invitable_type IS NULL"),
        ),
        Index("idx_invitation_status", "status"),
        Index("idx_invitation_expires_at", "expires_at"),
        Index("idx_invitation_created_at", "created_at"),
    )

    @property
    def invitable(self) -> Optional[InvitableRef]:
        if self.invitable_type is None or self.invitable_id is None:
            return None
        return InvitableRef(type=self.invitable_type, id=self.invitable_id)

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def is_pending(self) -> bool:
        return self.status == InvitationStatus.pending

    def is_accepted(self) -> bool:
        return self.status == InvitationStatus.accepted

    def is_declined(self) -> bool:
        return self.status == InvitationStatus.declined

    def is_cancelled(self) -> bool:
        return self.status == InvitationStatus.cancelled

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """
        True when the persisted status is expired, or when expires_at has
        already passed even though the expiry sweep has not run yet.
        """
        if self.status == InvitationStatus.expired:
            return True
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or utc_now())

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """Pending and not expired - gates both accept and resend."""
        return self.is_pending() and not self.is_expired(now)

    # ------------------------------------------------------------------
    # Transitions. Callers check the source state first.
    # ------------------------------------------------------------------

    def mark_as_accepted(self, actor_id: Optional[int] = None) -> "Invitation":
        now = utc_now()
        self.status = InvitationStatus.accepted
        self.accepted_at = now
        if actor_id is not None:
            self.accepted_by = actor_id
        self.updated_at = now
        return self

    def mark_as_declined(self) -> "Invitation":
        now = utc_now()
        self.status = InvitationStatus.declined
        self.declined_at = now
        self.updated_at = now
        return self

    def mark_as_cancelled(self) -> "Invitation":
        now = utc_now()
        self.status = InvitationStatus.cancelled
        self.cancelled_at = now
        self.updated_at = now
        return self

    def mark_as_expired(self) -> "Invitation":
        self.status = InvitationStatus.expired
        self.updated_at = utc_now()
        return self

    def mark_as_sent(self) -> "Invitation":
        now = utc_now()
        self.last_sent_at = now
        self.updated_at = now
        return self

    def increment_reminder_count(self) -> "Invitation":
        now = utc_now()
        self.reminder_count += 1
        self.last_sent_at = now
        self.updated_at = now
        return self

    def transition_values(self) -> Dict[str, Any]:
        """Columns written by a status transition."""
        return {
            "status": self.status,
            "accepted_at": self.accepted_at,
            "accepted_by": self.accepted_by,
            "declined_at": self.declined_at,
            "cancelled_at": self.cancelled_at,
            "updated_at": self.updated_at,
        }

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def accept_url(self, base_url: str) -> str:
        return f"{base_url.rstrip('/')}/invitations/{self.token}/accept"

    def decline_url(self, base_url: str) -> str:
        return f"{base_url.rstrip('/')}/invitations/{self.token}/decline"

    def view_url(self, base_url: str) -> str:
        return f"{base_url.rstrip('/')}/invitations/{self.token}"
