"""
Invitation Service

Orchestrates the invitation lifecycle: create, accept, decline, cancel,
resend, the expiry sweep and the reminder sweep.
"""

import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Set, Union

from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy.exc import IntegrityError

from src.app.services.dtos import BulkInvitationResult, FailedInvitation, InvitationStats
from src.app.services.event_publisher import IEventPublisher
from src.app.services.invitation_settings import InvitationSettings
from src.app.services.notification_dispatcher import INotificationDispatcher
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utc_now
from src.domain.entities import (
    AuditEvent,
    InvitableRef,
    Invitation,
    InvitationStatus,
    NotificationKind,
    User,
)
from src.domain.events import (
    InvitationAccepted,
    InvitationCancelled,
    InvitationCreated,
    InvitationDeclined,
    InvitationEvent,
    InvitationExpired,
)
from src.domain.exceptions import (
    DuplicateInvitationError,
    InvalidEmailError,
    InvalidInvitationStateError,
    InvitationAlreadyAcceptedError,
    InvitationError,
    InvitationExpiredError,
    InvitationNotFoundError,
    InvitationTokenNotFoundError,
    UnknownInvitableTypeError,
)

logger = logging.getLogger(__name__)

_email_adapter = TypeAdapter(EmailStr)

Actor = Union[User, int, None]


def resolve_actor_id(actor: Actor) -> Optional[int]:
    if actor is None:
        return None
    if isinstance(actor, User):
        return actor.id
    return int(actor)


def is_valid_email(email: str) -> bool:
    try:
        _email_adapter.validate_python(email)
    except ValidationError:
        return False
    return True


class InvitationService:
    """
    Invitation lifecycle orchestrator.

    Business Rules:
    - pending is the only status that can change; accepted, declined,
      cancelled and expired are final
    - An invitation whose expires_at has passed counts as expired for accept
      and resend even before the expiry sweep marks it
    - Status changes are written as compare-and-set on status=pending, so two
      concurrent accepts cannot both succeed
    - Each change is recorded as an AuditEvent in the same transaction and
      published after commit
    - Notification failures are logged and never undo a committed change
    """

    def __init__(
        self,
        uow: UnitOfWork,
        settings: InvitationSettings,
        dispatcher: INotificationDispatcher,
        events: IEventPublisher,
    ):
        self.uow = uow
        self.settings = settings
        self.dispatcher = dispatcher
        self.events = events

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def invite(
        self,
        email: str,
        invitable: Optional[InvitableRef] = None,
        *,
        role: Optional[str] = None,
        metadata: Optional[dict] = None,
        expires_at: Optional[datetime] = None,
        invited_by: Actor = None,
    ) -> Invitation:
        """
        Create a pending invitation and send it.

        Args:
            email: Address to invite
            invitable: Resource the invitation is scoped to, None for global
            role: Role to hand out on acceptance
            metadata: Free-form data stored with the invitation
            expires_at: Explicit expiry, overrides the configured default
            invited_by: Inviting user or user ID

        Returns:
            The persisted invitation

        Raises:
            InvalidEmailError: email is malformed
            UnknownInvitableTypeError: invitable type is not configured
            DuplicateInvitationError: an invitation already exists for this
                email in this scope
        """
        if not is_valid_email(email):
            raise InvalidEmailError(email)
        self._check_invitable(invitable)

        invitation = Invitation(
            email=email,
            invitable_type=invitable.type if invitable else None,
            invitable_id=invitable.id if invitable else None,
            role=role,
            invitation_metadata=metadata,
            invited_by=resolve_actor_id(invited_by),
            expires_at=expires_at if expires_at is not None else self._default_expiration(),
            status=InvitationStatus.pending,
        )
        # Creation counts as the first send
        invitation.mark_as_sent()

        async with self.uow:
            existing = await self.uow.invitations.get_latest_by_email(email, invitable)
            if existing is not None:
                raise DuplicateInvitationError(email, invitable)

            try:
                async with self.uow.savepoint():
                    invitation = await self.uow.invitations.create(invitation)
            except IntegrityError as exc:
                # Another request inserted the same email first; only this
                # insert was undone
                existing = await self.uow.invitations.get_latest_by_email(email, invitable)
                if existing is None:
                    raise
                raise DuplicateInvitationError(email, invitable) from exc

            event = InvitationCreated(invitation=invitation)
            await self._record(event)
            await self.uow.commit()

        logger.info(
            f"Invitation {invitation.id} created for {email}",
            extra={
                "invitation_id": invitation.id,
                "email": email,
                "invitable_type": invitation.invitable_type,
                "invitable_id": invitation.invitable_id,
            },
        )

        await self.events.publish(event)
        await self._notify(NotificationKind.invitation, invitation, invitation.email)

        return invitation

    async def invite_many(
        self,
        emails: Iterable[str],
        invitable: Optional[InvitableRef] = None,
        *,
        skip_duplicates: bool = True,
        role: Optional[str] = None,
        metadata: Optional[dict] = None,
        expires_at: Optional[datetime] = None,
        invited_by: Actor = None,
    ) -> BulkInvitationResult:
        """
        Invite several emails at once, allowing partial success.

        Malformed emails and duplicates end up in result.failed instead of
        raising. Both result lists keep input order and together account for
        every input email. Only storage failures propagate.
        """
        emails = list(emails)
        self._check_invitable(invitable)

        result = BulkInvitationResult()

        existing_emails: Set[str] = set()
        if skip_duplicates and emails:
            async with self.uow:
                existing_emails = await self.uow.invitations.get_pending_emails(
                    emails, invitable
                )

        for email in emails:
            if not is_valid_email(email):
                result.failed.append(
                    FailedInvitation(
                        email=email, reason="Invalid email format", code="invalid_format"
                    )
                )
                continue

            if email in existing_emails:
                result.failed.append(
                    FailedInvitation(
                        email=email,
                        reason="Pending invitation already exists",
                        code="duplicate",
                    )
                )
                continue

            try:
                invitation = await self.invite(
                    email,
                    invitable,
                    role=role,
                    metadata=metadata,
                    expires_at=expires_at,
                    invited_by=invited_by,
                )
            except InvitationError as exc:
                code = "duplicate" if isinstance(exc, DuplicateInvitationError) else exc.code.lower()
                result.failed.append(FailedInvitation(email=email, reason=exc.message, code=code))
                continue

            result.successful.append(invitation)

        logger.info(
            f"Bulk invite finished: {len(result.successful)} created, {len(result.failed)} failed",
            extra={"email_count": len(emails)},
        )
        return result

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def accept(self, token: str, actor: Actor = None) -> Invitation:
        """
        Accept an invitation by token.

        Raises:
            InvitationTokenNotFoundError: no invitation has this token
            InvitationAlreadyAcceptedError: accepted earlier
            InvitationExpiredError: expired, by status or by date
            InvalidInvitationStateError: cancelled or declined
        """
        actor_id = resolve_actor_id(actor)

        async with self.uow:
            invitation = await self.uow.invitations.get_by_token(token)
            if invitation is None:
                raise InvitationTokenNotFoundError()

            self._ensure_acceptable(invitation)

            invitation.mark_as_accepted(actor_id)
            if not await self.uow.invitations.compare_and_set(
                invitation, InvitationStatus.pending
            ):
                # Lost a race; report whatever state won
                self._ensure_acceptable(invitation)
                raise InvalidInvitationStateError.concurrent_update(invitation)

            event = InvitationAccepted(
                invitation=invitation,
                actor=actor if isinstance(actor, User) else None,
            )
            inviter = None
            if invitation.invited_by is not None:
                inviter = await self.uow.users.get_by_id(invitation.invited_by)

            await self._record(event)
            await self.uow.commit()

        logger.info(
            f"Invitation {invitation.id} accepted",
            extra={"invitation_id": invitation.id, "accepted_by": actor_id},
        )

        await self.events.publish(event)

        if inviter is not None and inviter.can_be_notified():
            await self._notify(NotificationKind.accepted, invitation, inviter.email)

        return invitation

    async def decline(self, token: str) -> Invitation:
        """
        Decline an invitation by token.

        Only the status is checked: a pending invitation past its expires_at
        can still be declined.

        Raises:
            InvitationTokenNotFoundError: no invitation has this token
            InvalidInvitationStateError: invitation is not pending
        """
        async with self.uow:
            invitation = await self.uow.invitations.get_by_token(token)
            if invitation is None:
                raise InvitationTokenNotFoundError()

            if not invitation.is_pending():
                raise InvalidInvitationStateError.cannot_decline(invitation)

            invitation.mark_as_declined()
            if not await self.uow.invitations.compare_and_set(
                invitation, InvitationStatus.pending
            ):
                raise InvalidInvitationStateError.cannot_decline(invitation)

            event = InvitationDeclined(invitation=invitation)
            await self._record(event)
            await self.uow.commit()

        logger.info(f"Invitation {invitation.id} declined", extra={"invitation_id": invitation.id})

        await self.events.publish(event)
        return invitation

    async def cancel(
        self, invitation: Union[Invitation, int], notify: bool = False
    ) -> Invitation:
        """
        Cancel a pending invitation, optionally telling the invitee.

        Raises:
            InvitationNotFoundError: no invitation has this ID
            InvalidInvitationStateError: invitation is not pending
        """
        async with self.uow:
            invitation = await self._resolve(invitation)

            if not invitation.is_pending():
                raise InvalidInvitationStateError.cannot_cancel(invitation)

            invitation.mark_as_cancelled()
            if not await self.uow.invitations.compare_and_set(
                invitation, InvitationStatus.pending
            ):
                raise InvalidInvitationStateError.cannot_cancel(invitation)

            event = InvitationCancelled(invitation=invitation)
            await self._record(event)
            await self.uow.commit()

        logger.info(f"Invitation {invitation.id} cancelled", extra={"invitation_id": invitation.id})

        await self.events.publish(event)

        if notify:
            await self._notify(NotificationKind.cancelled, invitation, invitation.email)

        return invitation

    async def resend(self, invitation: Union[Invitation, int]) -> Invitation:
        """
        Send the invitation again. Status, token and expiry stay the same.

        Raises:
            InvitationNotFoundError: no invitation has this ID
            InvalidInvitationStateError: invitation is not pending or has expired
        """
        async with self.uow:
            invitation = await self._resolve(invitation)

            if not invitation.is_valid():
                raise InvalidInvitationStateError.cannot_resend(invitation)

            invitation.mark_as_sent()
            invitation = await self.uow.invitations.update(invitation)
            await self.uow.commit()

        logger.info(f"Invitation {invitation.id} resent", extra={"invitation_id": invitation.id})

        await self._notify(NotificationKind.invitation, invitation, invitation.email)
        return invitation

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def find(self, token: str) -> Optional[Invitation]:
        async with self.uow:
            return await self.uow.invitations.get_by_token(token)

    async def find_by_email(
        self, email: str, invitable: Optional[InvitableRef] = None
    ) -> Optional[Invitation]:
        """Most recent invitation for email; invitable=None means the global scope."""
        async with self.uow:
            return await self.uow.invitations.get_latest_by_email(email, invitable)

    async def list_by_status(
        self, status: InvitationStatus, invitable: Optional[InvitableRef] = None
    ) -> List[Invitation]:
        async with self.uow:
            return await self.uow.invitations.list_by_status(status, invitable)

    async def has_pending_invitation(
        self, email: str, invitable: Optional[InvitableRef] = None
    ) -> bool:
        async with self.uow:
            return await self.uow.invitations.has_pending(email, invitable)

    async def stats(self, invitable: Optional[InvitableRef] = None) -> InvitationStats:
        async with self.uow:
            counts = await self.uow.invitations.count_by_status(invitable)
        return InvitationStats.from_counts(counts)

    async def list_valid(self, invitable: Optional[InvitableRef] = None) -> List[Invitation]:
        """Pending invitations that can still be accepted; invitable=None means every scope."""
        async with self.uow:
            return await self.uow.invitations.list_valid(utc_now(), invitable)

    async def pending_for_email(self, email: str) -> List[Invitation]:
        """Pending invitations an address has received, across every scope."""
        async with self.uow:
            return await self.uow.invitations.list_pending_for_email(email)

    async def get_invitation_for(
        self, email: str, invitable: Optional[InvitableRef]
    ) -> Optional[Invitation]:
        """The pending invitation for email in one scope, if any."""
        async with self.uow:
            invitation = await self.uow.invitations.get_latest_by_email(email, invitable)
        if invitation is None or not invitation.is_pending():
            return None
        return invitation

    async def list_sent_by(self, user: Actor) -> List[Invitation]:
        user_id = resolve_actor_id(user)
        if user_id is None:
            return []
        async with self.uow:
            return await self.uow.invitations.list_sent_by(user_id)

    async def list_accepted_by(self, user: Actor) -> List[Invitation]:
        user_id = resolve_actor_id(user)
        if user_id is None:
            return []
        async with self.uow:
            return await self.uow.invitations.list_accepted_by(user_id)

    # ------------------------------------------------------------------
    # By-email shortcuts
    # ------------------------------------------------------------------

    async def cancel_by_email(
        self, email: str, invitable: Optional[InvitableRef] = None, notify: bool = False
    ) -> bool:
        """
        Cancel the invitation for email in a scope.

        Returns:
            False when there is no invitation or it is no longer pending
        """
        invitation = await self.find_by_email(email, invitable)
        if invitation is None or not invitation.is_pending():
            return False

        try:
            await self.cancel(invitation, notify=notify)
        except InvalidInvitationStateError:
            # Changed state after the lookup
            return False
        return True

    async def resend_by_email(
        self, email: str, invitable: Optional[InvitableRef] = None
    ) -> bool:
        """
        Resend the invitation for email in a scope.

        Returns:
            False when there is no invitation or it is expired or no longer pending
        """
        invitation = await self.find_by_email(email, invitable)
        if invitation is None or not invitation.is_valid():
            return False

        try:
            await self.resend(invitation)
        except InvalidInvitationStateError:
            return False
        return True

    # ------------------------------------------------------------------
    # Sweeps
    # ------------------------------------------------------------------

    async def mark_expired_invitations(self) -> int:
        """
        Move every pending invitation past its expires_at to expired.

        One bulk update, then one InvitationExpired event per row.

        Returns:
            Number of invitations marked expired
        """
        now = utc_now()

        async with self.uow:
            invitation_ids = await self.uow.invitations.get_past_expiration_ids(now)
            if not invitation_ids:
                return 0

            count = await self.uow.invitations.mark_expired(invitation_ids, now)

            expired = await self.uow.invitations.get_by_ids(invitation_ids)
            events = [
                InvitationExpired(invitation=invitation)
                for invitation in expired
                if invitation.status == InvitationStatus.expired
            ]
            for event in events:
                await self._record(event)
            await self.uow.commit()

        logger.info(f"Marked {count} invitation(s) as expired")

        for event in events:
            await self.events.publish(event)

        return count

    async def send_reminders(self) -> int:
        """
        Send reminders for pending invitations per the configured day thresholds.

        Thresholds are walked in ascending order. The i-th threshold picks up
        pending, unexpired invitations old enough for it with
        reminder_count <= i (and below max_reminders). An invitation matching
        several thresholds in one run gets a single reminder; one that missed a
        run catches up next time, still one reminder per run.

        Returns:
            Number of reminders sent in this run
        """
        if not self.settings.reminders_enabled:
            return 0

        now = utc_now()
        processed_ids: Set[int] = set()
        sent = 0

        async with self.uow:
            for index, days in enumerate(self.settings.reminder_thresholds):
                invitations = await self.uow.invitations.get_needing_reminder(
                    created_before=now - timedelta(days=days),
                    max_reminder_count=index,
                    max_reminders=self.settings.max_reminders,
                    now=now,
                    exclude_ids=processed_ids,
                )

                for invitation in invitations:
                    await self._notify(NotificationKind.reminder, invitation, invitation.email)

                    invitation.increment_reminder_count()
                    await self.uow.invitations.update(invitation)
                    await self.uow.commit()

                    processed_ids.add(invitation.id)
                    sent += 1

        logger.info(f"Sent {sent} invitation reminder(s)")
        return sent

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _default_expiration(self) -> Optional[datetime]:
        if not self.settings.expiration_enabled:
            return None
        return utc_now() + timedelta(days=self.settings.expiration_days)

    def _check_invitable(self, invitable: Optional[InvitableRef]) -> None:
        if invitable is not None and invitable.type not in self.settings.invitable_types:
            raise UnknownInvitableTypeError(invitable.type)

    @staticmethod
    def _ensure_acceptable(invitation: Invitation) -> None:
        # First match wins
        if invitation.is_accepted():
            raise InvitationAlreadyAcceptedError(invitation)
        if invitation.is_expired():
            raise InvitationExpiredError(invitation)
        if invitation.is_cancelled():
            raise InvalidInvitationStateError.cancelled(invitation)
        if invitation.is_declined():
            raise InvalidInvitationStateError.declined(invitation)

    async def _resolve(self, invitation: Union[Invitation, int]) -> Invitation:
        # Always reload so the transition runs against this unit of work
        invitation_id = invitation.id if isinstance(invitation, Invitation) else invitation
        resolved = await self.uow.invitations.get_by_id(invitation_id)
        if resolved is None:
            raise InvitationNotFoundError(invitation_id)
        return resolved

    async def _record(self, event: InvitationEvent) -> None:
        await self.uow.audit_events.create(
            AuditEvent(
                invitation_id=event.invitation.id,
                user_id=event.actor_id,
                action=event.action,
                event_metadata=event.audit_metadata(),
            )
        )

    async def _notify(
        self, kind: NotificationKind, invitation: Invitation, recipient: str
    ) -> None:
        template = self.settings.notification_template(kind)
        if template is None:
            logger.debug(f"Notification kind {kind.value} is disabled")
            return

        try:
            await self.dispatcher.dispatch(kind, template, invitation, recipient)
        except Exception as e:
            # Delivery is best-effort; the invitation change is already committed
            logger.warning(
                f"Failed to send {kind.value} notification: {e}",
                extra={
                    "invitation_id": invitation.id,
                    "recipient": recipient,
                    "error": str(e),
                },
            )
