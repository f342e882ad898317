"""
Invitation Service DTOs (Data Transfer Objects)

Result objects returned by the invitation service.
"""

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

from src.domain.entities import Invitation, InvitationStatus


class FailedInvitation(BaseModel):
    """One email that could not be invited in a bulk run"""

    email: str
    reason: str
    code: str


class BulkInvitationResult(BaseModel):
    """
    Outcome of invite_many.

    Both lists keep the order of the input emails. len() is the number of
    invitations that were created.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    successful: List[Invitation] = Field(default_factory=list)
    failed: List[FailedInvitation] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.successful)

    @property
    def total(self) -> int:
        return len(self.successful) + len(self.failed)

    def all_successful(self) -> bool:
        return not self.failed

    def has_failures(self) -> bool:
        return bool(self.failed)

    def has_successes(self) -> bool:
        return bool(self.successful)

    def successful_emails(self) -> List[str]:
        return [invitation.email for invitation in self.successful]

    def failed_emails(self) -> List[str]:
        return [failure.email for failure in self.failed]


class InvitationStats(BaseModel):
    """Invitation counts per status"""

    total: int = 0
    pending: int = 0
    accepted: int = 0
    declined: int = 0
    expired: int = 0
    cancelled: int = 0

    @classmethod
    def from_counts(cls, counts: Dict[InvitationStatus, int]) -> "InvitationStats":
        per_status = {status.value: counts.get(status, 0) for status in InvitationStatus}
        return cls(total=sum(per_status.values()), **per_status)
