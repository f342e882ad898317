from abc import ABC, abstractmethod
from datetime import datetime
from typing import Collection, Dict, List, Optional, Set

from src.domain.entities import InvitableRef, Invitation, InvitationStatus


class IInvitationRepository(ABC):
    """Invitation repository interface - application layer"""

    @abstractmethod
    async def get_by_id(self, invitation_id: int) -> Optional[Invitation]:
        """Get invitation by ID"""
        pass

    @abstractmethod
    async def get_by_token(self, token: str) -> Optional[Invitation]:
        """Get invitation by token"""
        pass

    @abstractmethod
    async def get_by_ids(self, invitation_ids: Collection[int]) -> List[Invitation]:
        """Get invitations by ID, re-read from storage"""
        pass

    @abstractmethod
    async def get_latest_by_email(
        self, email: str, invitable: Optional[InvitableRef] = None
    ) -> Optional[Invitation]:
        """
        Get the most recently created invitation for an email.

        invitable=None scopes the lookup to invitations with no invitable.
        """
        pass

    @abstractmethod
    async def get_pending_emails(
        self, emails: Collection[str], invitable: Optional[InvitableRef] = None
    ) -> Set[str]:
        """Get the subset of emails that already have a pending invitation in scope"""
        pass

    @abstractmethod
    async def has_pending(
        self, email: str, invitable: Optional[InvitableRef] = None
    ) -> bool:
        """Check whether an email has a pending invitation in scope"""
        pass

    @abstractmethod
    async def list_by_status(
        self, status: InvitationStatus, invitable: Optional[InvitableRef] = None
    ) -> List[Invitation]:
        """
        Get invitations with a status, newest first.

        invitable=None returns matches across every scope.
        """
        pass

    @abstractmethod
    async def list_valid(
        self, now: datetime, invitable: Optional[InvitableRef] = None
    ) -> List[Invitation]:
        """
        Get pending invitations not yet past expires_at, newest first.

        invitable=None returns matches across every scope.
        """
        pass

    @abstractmethod
    async def list_pending_for_email(self, email: str) -> List[Invitation]:
        """Get pending invitations addressed to an email in any scope, newest first"""
        pass

    @abstractmethod
    async def list_sent_by(self, user_id: int) -> List[Invitation]:
        """Get invitations created by a user, newest first"""
        pass

    @abstractmethod
    async def list_accepted_by(self, user_id: int) -> List[Invitation]:
        """Get invitations accepted by a user, newest first"""
        pass

    @abstractmethod
    async def count_by_status(
        self, invitable: Optional[InvitableRef] = None
    ) -> Dict[InvitationStatus, int]:
        """Count invitations per status"""
        pass

    @abstractmethod
    async def get_past_expiration_ids(self, now: datetime) -> List[int]:
        """Get IDs of pending invitations whose expires_at is at or before now"""
        pass

    @abstractmethod
    async def mark_expired(self, invitation_ids: Collection[int], now: datetime) -> int:
        """Move the given pending invitations to expired in one statement"""
        pass

    @abstractmethod
    async def get_needing_reminder(
        self,
        created_before: datetime,
        max_reminder_count: int,
        max_reminders: int,
        now: datetime,
        exclude_ids: Collection[int] = (),
    ) -> List[Invitation]:
        """
        Get pending, unexpired invitations created at or before created_before
        with reminder_count <= max_reminder_count and < max_reminders.
        """
        pass

    @abstractmethod
    async def create(self, invitation: Invitation) -> Invitation:
        """Create a new invitation"""
        pass

    @abstractmethod
    async def update(self, invitation: Invitation) -> Invitation:
        """Update existing invitation"""
        pass

    @abstractmethod
    async def compare_and_set(
        self, invitation: Invitation, expected_status: InvitationStatus
    ) -> bool:
        """
        Write the invitation's transition columns only if its stored status
        still equals expected_status. The entity is reloaded either way.

        Returns:
            True if the row was updated
        """
        pass
