import pytest
from sqlmodel import select

from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.invitation_service import InvitationService
from src.app.services.invitation_settings import InvitationSettings
from src.domain.entities import AuditEvent, InvitationStatus, NotificationKind
from src.domain.events import InvitationExpired


@pytest.mark.asyncio
async def test_expiry_sweep_only_touches_due_pending_invitations(
    db_session, service, make_invitation, event_bus
):
    # Arrange - 3 pending past expiry, others must be left alone
    due = [
        await make_invitation(f"due{i}@acme.com", expires_in_days=-1) for i in range(3)
    ]
    fresh = await make_invitation("fresh@acme.com", expires_in_days=2)
    forever = await make_invitation("forever@acme.com", expires_in_days=None)
    accepted = await make_invitation(
        "done@acme.com", expires_in_days=-1, status=InvitationStatus.accepted
    )
    expired_events = []
    event_bus.subscribe(InvitationExpired, expired_events.append)

    # Act
    count = await service.mark_expired_invitations()

    # Assert
    assert count == 3
    assert sorted(e.invitation.id for e in expired_events) == sorted(i.id for i in due)
    for invitation in due:
        assert (await service.find(invitation.token)).status == InvitationStatus.expired
    assert (await service.find(fresh.token)).status == InvitationStatus.pending
    assert (await service.find(forever.token)).status == InvitationStatus.pending
    assert (await service.find(accepted.token)).status == InvitationStatus.accepted

    result = await db_session.exec(
        select(AuditEvent).where(AuditEvent.action == "invitation_expired")
    )
    assert len(result.all()) == 3


@pytest.mark.asyncio
async def test_expiry_sweep_is_idempotent(db_session, service, make_invitation):
    await make_invitation("due@acme.com", expires_in_days=-1)

    assert await service.mark_expired_invitations() == 1
    assert await service.mark_expired_invitations() == 0


@pytest.mark.asyncio
async def test_reminder_after_first_threshold(db_session, service, make_invitation, dispatcher):
    # Arrange - thresholds [3, 5], max 2
    invitation = await make_invitation("slow@acme.com", created_days_ago=4)
    await make_invitation("new@acme.com", created_days_ago=1)

    # Act
    sent = await service.send_reminders()

    # Assert
    assert sent == 1
    assert (await service.find(invitation.token)).reminder_count == 1
    assert [entry[3] for entry in dispatcher.of_kind(NotificationKind.reminder)] == [
        "slow@acme.com"
    ]


@pytest.mark.asyncio
async def test_one_reminder_per_run_even_when_past_every_threshold(
    db_session, service, make_invitation, dispatcher
):
    # Arrange - old enough for both thresholds, never reminded
    invitation = await make_invitation("stale@acme.com", created_days_ago=6, expires_in_days=1)

    # Act
    first_run = await service.send_reminders()
    second_run = await service.send_reminders()
    third_run = await service.send_reminders()

    # Assert - catches up one per run, then stops at max_reminders
    assert (first_run, second_run, third_run) == (1, 1, 0)
    assert (await service.find(invitation.token)).reminder_count == 2
    assert len(dispatcher.of_kind(NotificationKind.reminder)) == 2


@pytest.mark.asyncio
async def test_second_reminder_waits_for_second_threshold(
    db_session, service, make_invitation
):
    invitation = await make_invitation("between@acme.com", created_days_ago=4, reminder_count=1)

    assert await service.send_reminders() == 0
    assert (await service.find(invitation.token)).reminder_count == 1


@pytest.mark.asyncio
async def test_reminders_skip_expired_and_non_pending(db_session, service, make_invitation):
    await make_invitation("lapsed@acme.com", created_days_ago=6, expires_in_days=-1)
    await make_invitation(
        "declined@acme.com", created_days_ago=6, status=InvitationStatus.declined
    )
    await make_invitation("nolimit@acme.com", created_days_ago=6, expires_in_days=None)

    assert await service.send_reminders() == 1


@pytest.mark.asyncio
async def test_reminder_cadence_with_three_thresholds(
    db_session, make_invitation, dispatcher, event_bus
):
    # Arrange - thresholds [2, 4, 6], max 3
    service = InvitationService(
        SqlAlchemyUnitOfWork(db_session),
        settings=InvitationSettings(reminder_thresholds=[6, 2, 4], max_reminders=3),
        dispatcher=dispatcher,
        events=event_bus,
    )
    week_old = await make_invitation("week@acme.com", created_days_ago=7, expires_in_days=7)
    five_days_old = await make_invitation("five@acme.com", created_days_ago=5, expires_in_days=7)

    # Act
    week_old_runs = []
    for _ in range(4):
        await service.send_reminders()
        week_old_runs.append((await service.find(week_old.token)).reminder_count)

    # Assert - one step per run, capped at max_reminders
    assert week_old_runs == [1, 2, 3, 3]
    # Third reminder waits for day 6
    assert (await service.find(five_days_old.token)).reminder_count == 2
    assert len(dispatcher.of_kind(NotificationKind.reminder)) == 5


@pytest.mark.asyncio
async def test_reminder_runs_with_three_thresholds_send_one_each(
    db_session, make_invitation, dispatcher, event_bus
):
    service = InvitationService(
        SqlAlchemyUnitOfWork(db_session),
        settings=InvitationSettings(reminder_thresholds=[2, 4, 6], max_reminders=3),
        dispatcher=dispatcher,
        events=event_bus,
    )
    await make_invitation("week@acme.com", created_days_ago=7, expires_in_days=7)

    runs = [await service.send_reminders() for _ in range(4)]

    assert runs == [1, 1, 1, 0]
