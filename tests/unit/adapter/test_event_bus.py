import logging

import pytest

from src.adapter.services.event_bus import EventBus
from src.domain.entities import Invitation
from src.domain.events import (
    InvitationAccepted,
    InvitationCreated,
    InvitationEvent,
)


def make_invitation() -> Invitation:
    return Invitation(id=1, email="invitee@acme.com")


@pytest.mark.asyncio
async def test_publish_dispatches_by_event_type():
    # Arrange
    bus = EventBus()
    created, accepted = [], []
    bus.subscribe(InvitationCreated, created.append)
    bus.subscribe(InvitationAccepted, accepted.append)
    event = InvitationCreated(invitation=make_invitation())

    # Act
    await bus.publish(event)

    # Assert
    assert created == [event]
    assert accepted == []


@pytest.mark.asyncio
async def test_base_class_subscription_sees_every_event():
    bus = EventBus()
    seen = []
    bus.subscribe(InvitationEvent, seen.append)

    await bus.publish(InvitationCreated(invitation=make_invitation()))
    await bus.publish(InvitationAccepted(invitation=make_invitation()))

    assert [event.action for event in seen] == ["invitation_created", "invitation_accepted"]


@pytest.mark.asyncio
async def test_async_handlers_are_awaited():
    bus = EventBus()
    seen = []

    async def handler(event):
        seen.append(event.action)

    bus.subscribe(InvitationCreated, handler)

    await bus.publish(InvitationCreated(invitation=make_invitation()))

    assert seen == ["invitation_created"]


@pytest.mark.asyncio
async def test_failing_handler_is_logged_and_does_not_stop_others(caplog):
    # Arrange
    bus = EventBus()
    seen = []

    def broken(event):
        raise RuntimeError("observer bug")

    bus.subscribe(InvitationCreated, broken)
    bus.subscribe(InvitationCreated, seen.append)

    # Act
    with caplog.at_level(logging.ERROR):
        await bus.publish(InvitationCreated(invitation=make_invitation()))

    # Assert
    assert len(seen) == 1
    assert "Event handler failed for invitation_created" in caplog.text


@pytest.mark.asyncio
async def test_unsubscribe_removes_handler():
    bus = EventBus()
    seen = []
    bus.subscribe(InvitationCreated, seen.append)
    bus.unsubscribe(InvitationCreated, seen.append)

    await bus.publish(InvitationCreated(invitation=make_invitation()))

    assert seen == []
