"""
AuditEvent Entity

Immutable log of invitation lifecycle events.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import JSON, Column, DateTime, Field, Index, SQLModel

from src.domain.base import utc_now


class AuditEvent(SQLModel, table=True):
    """
    AuditEvent entity - immutable log of invitation lifecycle events.

    Business Rules:
    - Immutable (never updated or deleted)
    - Written in the same transaction as the state change it describes
    - user_id is the acting user when known (inviter, acceptor)
    - Metadata stores additional context (email, invitable, status)
    """

    __tablename__ = "audit_events"

    id: Optional[int] = Field(default=None, primary_key=True)

    invitation_id: Optional[int] = Field(default=None, index=True)
    user_id: Optional[int] = Field(default=None)

    action: str = Field(max_length=100)  # e.g., "invitation_created"
    event_metadata: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_audit_created_at", "created_at"),
        Index("idx_audit_action", "action"),
    )
