"""
User Entity

Minimal user record that invitations point at for inviter / acceptor lookups.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Column, DateTime, Field, SQLModel

from src.domain.base import utc_now

from .enums import UserStatus


class User(SQLModel, table=True):
    """
    User entity - the person who sends or accepts invitations.

    Business Rules:
    - Email must be unique across all users
    - Invitations hold weak references to users; deleting a user nulls
      invited_by / accepted_by instead of deleting the invitation
    - Only active users with an email receive "invitation accepted" notices
    """

    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True, max_length=255)
    display_name: Optional[str] = Field(default=None, max_length=100)

    status: UserStatus = Field(default=UserStatus.active)

    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime))

    def can_be_notified(self) -> bool:
        return self.status == UserStatus.active and bool(self.email)
