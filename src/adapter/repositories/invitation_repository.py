from datetime import datetime
from typing import Collection, Dict, List, Optional, Set

from sqlalchemy import func, or_, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.invitation_repository import IInvitationRepository
from src.domain.entities import InvitableRef, Invitation, InvitationStatus


def _in_scope(stmt, invitable: Optional[InvitableRef]):
    """Restrict to one invitable, or to the global scope when invitable is None"""
    if invitable is None:
        return stmt.where(Invitation.invitable_type.is_(None))
    return stmt.where(
        Invitation.invitable_type == invitable.type,
        Invitation.invitable_id == invitable.id,
    )


def _newest_first(stmt):
    return stmt.order_by(Invitation.created_at.desc(), Invitation.id.desc())


class InvitationRepository(IInvitationRepository):
    """Invitation repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, invitation_id: int) -> Optional[Invitation]:
        """Get invitation by ID"""
        stmt = select(Invitation).where(Invitation.id == invitation_id)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_by_token(self, token: str) -> Optional[Invitation]:
        """Get invitation by token"""
        stmt = select(Invitation).where(Invitation.token == token)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_by_ids(self, invitation_ids: Collection[int]) -> List[Invitation]:
        """Get invitations by ID, re-read from storage"""
        if not invitation_ids:
            return []
        stmt = (
            select(Invitation)
            .where(Invitation.id.in_(list(invitation_ids)))
            .order_by(Invitation.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def get_latest_by_email(
        self, email: str, invitable: Optional[InvitableRef] = None
    ) -> Optional[Invitation]:
        """Get the most recently created invitation for an email in scope"""
        stmt = _in_scope(select(Invitation).where(Invitation.email == email), invitable)
        result = await self.session.exec(_newest_first(stmt).limit(1))
        return result.one_or_none()

    async def get_pending_emails(
        self, emails: Collection[str], invitable: Optional[InvitableRef] = None
    ) -> Set[str]:
        """Get the subset of emails that already have a pending invitation in scope"""
        if not emails:
            return set()
        stmt = _in_scope(
            select(Invitation.email).where(
                Invitation.email.in_(list(emails)),
                Invitation.status == InvitationStatus.pending,
            ),
            invitable,
        )
        result = await self.session.exec(stmt)
        return set(result.all())

    async def has_pending(
        self, email: str, invitable: Optional[InvitableRef] = None
    ) -> bool:
        """Check whether an email has a pending invitation in scope"""
        return bool(await self.get_pending_emails([email], invitable))

    async def list_by_status(
        self, status: InvitationStatus, invitable: Optional[InvitableRef] = None
    ) -> List[Invitation]:
        """Get invitations with a status, newest first"""
        stmt = select(Invitation).where(Invitation.status == status)
        if invitable is not None:
            stmt = _in_scope(stmt, invitable)
        result = await self.session.exec(_newest_first(stmt))
        return list(result.all())

    async def list_valid(
        self, now: datetime, invitable: Optional[InvitableRef] = None
    ) -> List[Invitation]:
        """Get pending invitations not yet past expires_at, newest first"""
        stmt = select(Invitation).where(
            Invitation.status == InvitationStatus.pending,
            or_(Invitation.expires_at.is_(None), Invitation.expires_at > now),
        )
        if invitable is not None:
            stmt = _in_scope(stmt, invitable)
        result = await self.session.exec(_newest_first(stmt))
        return list(result.all())

    async def list_pending_for_email(self, email: str) -> List[Invitation]:
        """Get pending invitations addressed to an email in any scope, newest first"""
        stmt = select(Invitation).where(
            Invitation.email == email,
            Invitation.status == InvitationStatus.pending,
        )
        result = await self.session.exec(_newest_first(stmt))
        return list(result.all())

    async def list_sent_by(self, user_id: int) -> List[Invitation]:
        """Get invitations created by a user, newest first"""
        stmt = select(Invitation).where(Invitation.invited_by == user_id)
        result = await self.session.exec(_newest_first(stmt))
        return list(result.all())

    async def list_accepted_by(self, user_id: int) -> List[Invitation]:
        """Get invitations accepted by a user, newest first"""
        stmt = select(Invitation).where(Invitation.accepted_by == user_id)
        result = await self.session.exec(_newest_first(stmt))
        return list(result.all())

    async def count_by_status(
        self, invitable: Optional[InvitableRef] = None
    ) -> Dict[InvitationStatus, int]:
        """Count invitations per status"""
        stmt = select(Invitation.status, func.count(Invitation.id)).group_by(
            Invitation.status
        )
        if invitable is not None:
            stmt = _in_scope(stmt, invitable)
        result = await self.session.exec(stmt)
        return {InvitationStatus(status): count for status, count in result.all()}

    async def get_past_expiration_ids(self, now: datetime) -> List[int]:
        """Get IDs of pending invitations whose expires_at is at or before now"""
        stmt = (
            select(Invitation.id)
            .where(
                Invitation.status == InvitationStatus.pending,
                Invitation.expires_at.is_not(None),
                Invitation.expires_at <= now,
            )
            .order_by(Invitation.id)
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def mark_expired(self, invitation_ids: Collection[int], now: datetime) -> int:
        """Move the given pending invitations to expired in one statement"""
        if not invitation_ids:
            return 0
        stmt = (
            update(Invitation)
            .where(
                Invitation.id.in_(list(invitation_ids)),
                Invitation.status == InvitationStatus.pending,
            )
            .values(status=InvitationStatus.expired, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def get_needing_reminder(
        self,
        created_before: datetime,
        max_reminder_count: int,
        max_reminders: int,
        now: datetime,
        exclude_ids: Collection[int] = (),
    ) -> List[Invitation]:
        """Get pending, unexpired invitations due for a reminder"""
        stmt = select(Invitation).where(
            Invitation.status == InvitationStatus.pending,
            Invitation.reminder_count <= max_reminder_count,
            Invitation.reminder_count < max_reminders,
            Invitation.created_at <= created_before,
            or_(Invitation.expires_at.is_(None), Invitation.expires_at > now),
        )
        if exclude_ids:
            stmt = stmt.where(Invitation.id.not_in(list(exclude_ids)))
        stmt = stmt.order_by(Invitation.id).execution_options(populate_existing=True)
        result = await self.session.exec(stmt)
        return list(result.all())

    async def create(self, invitation: Invitation) -> Invitation:
        """Create a new invitation"""
        self.session.add(invitation)
        await self.session.flush()
        await self.session.refresh(invitation)
        return invitation

    async def update(self, invitation: Invitation) -> Invitation:
        """Update existing invitation"""
        self.session.add(invitation)
        await self.session.flush()
        await self.session.refresh(invitation)
        return invitation

    async def compare_and_set(
        self, invitation: Invitation, expected_status: InvitationStatus
    ) -> bool:
        """Conditional status write; reloads the entity either way"""
        stmt = (
            update(Invitation)
            .where(
                Invitation.id == invitation.id,
                Invitation.status == expected_status,
            )
            .values(**invitation.transition_values())
            .execution_options(synchronize_session=False)
        )
        # Unflushed changes must not reach the database through autoflush;
        # only the conditional statement below may write them
        self.session.expire(invitation)
        result = await self.session.execute(stmt)
        await self.session.refresh(invitation)
        return result.rowcount == 1
