"""
Audit API Routes

Handles invitation audit event retrieval endpoints.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from src.api.utils.admin_auth import verify_admin_api_key
from src.app.services.unit_of_work import UnitOfWork
from src.depends import get_unit_of_work

router = APIRouter(prefix="/audit", tags=["Audit"])


class AuditEventResponse(BaseModel):
    """Single audit event in response"""

    invitation_id: Optional[int]
    user_id: Optional[int]
    action: str
    timestamp: datetime
    metadata: Dict[str, Any]


class AuditEventsResponse(BaseModel):
    """GET /audit/invitation-events response payload"""

    events: List[AuditEventResponse]
    next_cursor: Optional[str]


@router.get(
    "/invitation-events",
    status_code=status.HTTP_200_OK,
    response_model=AuditEventsResponse,
    dependencies=[Depends(verify_admin_api_key)],
)
async def get_invitation_events(
    uow: UnitOfWork = Depends(get_unit_of_work),
    invitation_id: Optional[int] = Query(None, description="Only events for this invitation"),
    limit: int = Query(50, ge=1, le=100, description="Maximum number of events to return"),
    cursor: Optional[str] = Query(None, description="Pagination cursor"),
):
    """
    Get Invitation Audit Events

    Query Parameters:
        - invitation_id: Restrict to one invitation
        - limit: Maximum number of events to return (1-100, default 50)
        - cursor: Pagination cursor for fetching next page

    Returns:
        - events: List of audit events ordered by newest first
        - next_cursor: Cursor for next page (null if no more events)

    Raises:
        - 401 Unauthorized: Missing or invalid admin API key
    """
    async with uow:
        events, next_cursor = await uow.audit_events.get_paginated(
            invitation_id=invitation_id, limit=limit, cursor=cursor
        )

    return AuditEventsResponse(
        events=[
            AuditEventResponse(
                invitation_id=event.invitation_id,
                user_id=event.user_id,
                action=event.action,
                timestamp=event.created_at,
                metadata=event.event_metadata or {},
            )
            for event in events
        ],
        next_cursor=next_cursor,
    )
