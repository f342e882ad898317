import base64
from datetime import datetime
from typing import List, Optional, Tuple

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.audit_event_repository import IAuditEventRepository
from src.domain.entities import AuditEvent


class AuditEventRepository(IAuditEventRepository):
    """AuditEvent repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        """Create a new audit event (immutable)"""
        self.session.add(audit_event)
        await self.session.flush()
        await self.session.refresh(audit_event)
        return audit_event

    async def get_paginated(
        self,
        invitation_id: Optional[int] = None,
        limit: int = 50,
        cursor: Optional[str] = None,
    ) -> Tuple[List[AuditEvent], Optional[str]]:
        """
        Get audit events with cursor-based pagination.

        Cursor format: base64-encoded "<ISO created_at>|<id>" of the last event
        """
        stmt = select(AuditEvent)
        if invitation_id is not None:
            stmt = stmt.where(AuditEvent.invitation_id == invitation_id)

        # Apply cursor if provided
        if cursor:
            try:
                created_at_str, last_id = (
                    base64.b64decode(cursor).decode("utf-8").rsplit("|", 1)
                )
                cursor_timestamp = datetime.fromisoformat(created_at_str)
                stmt = stmt.where(
                    (AuditEvent.created_at < cursor_timestamp)
                    | (
                        (AuditEvent.created_at == cursor_timestamp)
                        & (AuditEvent.id < int(last_id))
                    )
                )
            except (ValueError, TypeError):
                # Invalid cursor, ignore and return from beginning
                pass

        # Newest first; id breaks ties between events written in the same instant
        stmt = stmt.order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc()).limit(
            limit + 1
        )

        result = await self.session.exec(stmt)
        events = list(result.all())

        has_more = len(events) > limit
        if has_more:
            events = events[:limit]

        next_cursor = None
        if has_more and events:
            last_event = events[-1]
            raw = f"{last_event.created_at.isoformat()}|{last_event.id}"
            next_cursor = base64.b64encode(raw.encode("utf-8")).decode("utf-8")

        return events, next_cursor
