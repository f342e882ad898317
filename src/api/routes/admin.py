"""
Admin API Routes - Invitation Management Endpoints

These endpoints are for back-office tools and internal services.
Authentication is via Admin API Key, not user JWTs.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from src.api.error import ApiError, ClientError
from src.api.utils.admin_auth import verify_admin_api_key
from src.app.services.dtos import BulkInvitationResult, FailedInvitation, InvitationStats
from src.app.services.invitation_service import InvitationService
from src.depends import get_invitation_service
from src.domain.entities import InvitableRef, Invitation, InvitationStatus

router = APIRouter(
    prefix="/admin/invitations",
    tags=["Admin"],
    dependencies=[Depends(verify_admin_api_key)],
)


class InvitationResponse(BaseModel):
    """Invitation as returned by the admin API. The token is never exposed."""

    id: int
    email: str
    status: InvitationStatus
    invitable_type: Optional[str]
    invitable_id: Optional[int]
    role: Optional[str]
    metadata: Optional[Dict[str, Any]]
    invited_by: Optional[int]
    accepted_by: Optional[int]
    reminder_count: int
    expires_at: Optional[datetime]
    accepted_at: Optional[datetime]
    declined_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    last_sent_at: Optional[datetime]
    created_at: datetime

    @classmethod
    def from_entity(cls, invitation: Invitation) -> "InvitationResponse":
        return cls(
            id=invitation.id,
            email=invitation.email,
            status=invitation.status,
            invitable_type=invitation.invitable_type,
            invitable_id=invitation.invitable_id,
            role=invitation.role,
            metadata=invitation.invitation_metadata,
            invited_by=invitation.invited_by,
            accepted_by=invitation.accepted_by,
            reminder_count=invitation.reminder_count,
            expires_at=invitation.expires_at,
            accepted_at=invitation.accepted_at,
            declined_at=invitation.declined_at,
            cancelled_at=invitation.cancelled_at,
            last_sent_at=invitation.last_sent_at,
            created_at=invitation.created_at,
        )


class CreateInvitationRequest(BaseModel):
    """POST /admin/invitations request payload"""

    email: str = Field(..., max_length=255)
    invitable_type: Optional[str] = Field(None, max_length=100)
    invitable_id: Optional[int] = None
    role: Optional[str] = Field(None, max_length=100)
    metadata: Optional[Dict[str, Any]] = None
    expires_at: Optional[datetime] = None
    invited_by: Optional[int] = None


class BulkCreateInvitationRequest(BaseModel):
    """POST /admin/invitations/bulk request payload"""

    emails: List[str] = Field(..., min_length=1)
    invitable_type: Optional[str] = Field(None, max_length=100)
    invitable_id: Optional[int] = None
    role: Optional[str] = Field(None, max_length=100)
    metadata: Optional[Dict[str, Any]] = None
    expires_at: Optional[datetime] = None
    invited_by: Optional[int] = None
    skip_duplicates: bool = True


class BulkInvitationResponse(BaseModel):
    successful: List[InvitationResponse]
    failed: List[FailedInvitation]
    total: int

    @classmethod
    def from_result(cls, result: BulkInvitationResult) -> "BulkInvitationResponse":
        return cls(
            successful=[InvitationResponse.from_entity(i) for i in result.successful],
            failed=result.failed,
            total=result.total,
        )


class SweepResponse(BaseModel):
    count: int


def to_invitable(
    invitable_type: Optional[str], invitable_id: Optional[int]
) -> Optional[InvitableRef]:
    """Both parts or neither; neither means the global scope"""
    if invitable_type is None and invitable_id is None:
        return None
    if invitable_type is None or invitable_id is None:
        raise ClientError(
            ApiError(
                code="INVALID_INVITABLE",
                message="invitable_type and invitable_id must be given together",
            ),
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    return InvitableRef(type=invitable_type, id=invitable_id)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=InvitationResponse,
)
async def create_invitation(
    request: CreateInvitationRequest,
    service: InvitationService = Depends(get_invitation_service),
):
    """
    Create Invitation

    Requires: X-Admin-API-Key header

    Raises:
        - 400 Bad Request: INVALID_EMAIL, INVITABLE_TYPE_UNKNOWN, INVALID_INVITABLE
        - 401 Unauthorized: Missing or invalid admin API key
        - 409 Conflict: INVITATION_DUPLICATE
    """
    invitation = await service.invite(
        request.email,
        to_invitable(request.invitable_type, request.invitable_id),
        role=request.role,
        metadata=request.metadata,
        expires_at=request.expires_at,
        invited_by=request.invited_by,
    )
    return InvitationResponse.from_entity(invitation)


@router.post(
    "/bulk",
    status_code=status.HTTP_200_OK,
    response_model=BulkInvitationResponse,
)
async def create_invitations(
    request: BulkCreateInvitationRequest,
    service: InvitationService = Depends(get_invitation_service),
):
    """
    Bulk Create Invitations

    Partial success: malformed and duplicate emails are listed under failed.
    """
    result = await service.invite_many(
        request.emails,
        to_invitable(request.invitable_type, request.invitable_id),
        skip_duplicates=request.skip_duplicates,
        role=request.role,
        metadata=request.metadata,
        expires_at=request.expires_at,
        invited_by=request.invited_by,
    )
    return BulkInvitationResponse.from_result(result)


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=List[InvitationResponse],
)
async def list_invitations(
    invitation_status: InvitationStatus = Query(InvitationStatus.pending, alias="status"),
    invitable_type: Optional[str] = Query(None),
    invitable_id: Optional[int] = Query(None),
    service: InvitationService = Depends(get_invitation_service),
):
    """List invitations with a status, newest first"""
    invitations = await service.list_by_status(
        invitation_status, to_invitable(invitable_type, invitable_id)
    )
    return [InvitationResponse.from_entity(i) for i in invitations]


@router.get(
    "/stats",
    status_code=status.HTTP_200_OK,
    response_model=InvitationStats,
)
async def invitation_stats(
    invitable_type: Optional[str] = Query(None),
    invitable_id: Optional[int] = Query(None),
    service: InvitationService = Depends(get_invitation_service),
):
    """Invitation counts per status"""
    return await service.stats(to_invitable(invitable_type, invitable_id))


@router.get(
    "/by-email",
    status_code=status.HTTP_200_OK,
    response_model=InvitationResponse,
)
async def find_invitation_by_email(
    email: str = Query(...),
    invitable_type: Optional[str] = Query(None),
    invitable_id: Optional[int] = Query(None),
    service: InvitationService = Depends(get_invitation_service),
):
    """
    Latest invitation for an email.

    Without invitable_type/invitable_id only global invitations are searched.

    Raises:
        - 404 Not Found: INVITATION_NOT_FOUND
    """
    invitation = await service.find_by_email(email, to_invitable(invitable_type, invitable_id))
    if invitation is None:
        raise ClientError(
            ApiError(code="INVITATION_NOT_FOUND", message="Invitation not found."),
            status_code=status.HTTP_404_NOT_FOUND,
        )
    return InvitationResponse.from_entity(invitation)


@router.get(
    "/valid",
    status_code=status.HTTP_200_OK,
    response_model=List[InvitationResponse],
)
async def list_valid_invitations(
    invitable_type: Optional[str] = Query(None),
    invitable_id: Optional[int] = Query(None),
    service: InvitationService = Depends(get_invitation_service),
):
    """Pending invitations that have not passed their expiry"""
    invitations = await service.list_valid(to_invitable(invitable_type, invitable_id))
    return [InvitationResponse.from_entity(i) for i in invitations]


@router.get(
    "/received",
    status_code=status.HTTP_200_OK,
    response_model=List[InvitationResponse],
)
async def list_received_invitations(
    email: str = Query(...),
    service: InvitationService = Depends(get_invitation_service),
):
    """Pending invitations addressed to an email, across every invitable"""
    invitations = await service.pending_for_email(email)
    return [InvitationResponse.from_entity(i) for i in invitations]


@router.get(
    "/sent-by/{user_id}",
    status_code=status.HTTP_200_OK,
    response_model=List[InvitationResponse],
)
async def list_invitations_sent_by(
    user_id: int,
    service: InvitationService = Depends(get_invitation_service),
):
    """Invitations created by a user, newest first"""
    invitations = await service.list_sent_by(user_id)
    return [InvitationResponse.from_entity(i) for i in invitations]


@router.post(
    "/{invitation_id}/cancel",
    status_code=status.HTTP_200_OK,
    response_model=InvitationResponse,
)
async def cancel_invitation(
    invitation_id: int,
    notify: bool = Query(False),
    service: InvitationService = Depends(get_invitation_service),
):
    """
    Cancel Invitation

    Raises:
        - 404 Not Found: INVITATION_NOT_FOUND
        - 409 Conflict: INVITATION_INVALID_STATE (not pending)
    """
    invitation = await service.cancel(invitation_id, notify=notify)
    return InvitationResponse.from_entity(invitation)


@router.post(
    "/{invitation_id}/resend",
    status_code=status.HTTP_200_OK,
    response_model=InvitationResponse,
)
async def resend_invitation(
    invitation_id: int,
    service: InvitationService = Depends(get_invitation_service),
):
    """
    Resend Invitation

    Token and expiry stay the same.

    Raises:
        - 404 Not Found: INVITATION_NOT_FOUND
        - 409 Conflict: INVITATION_INVALID_STATE (not pending or expired)
    """
    invitation = await service.resend(invitation_id)
    return InvitationResponse.from_entity(invitation)


@router.post(
    "/sweeps/expire",
    status_code=status.HTTP_200_OK,
    response_model=SweepResponse,
)
async def expire_invitations(
    service: InvitationService = Depends(get_invitation_service),
):
    """Mark every pending invitation past its expiry as expired"""
    return SweepResponse(count=await service.mark_expired_invitations())


@router.post(
    "/sweeps/reminders",
    status_code=status.HTTP_200_OK,
    response_model=SweepResponse,
)
async def send_invitation_reminders(
    service: InvitationService = Depends(get_invitation_service),
):
    """Send due reminders; at most one per invitation per run"""
    return SweepResponse(count=await service.send_reminders())
