import pytest
from unittest.mock import AsyncMock, MagicMock

from src.app.services.invitation_settings import InvitationSettings


@pytest.fixture
def mock_uow():
    """Mock UnitOfWork with all repositories"""
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)  # Must return False to not suppress exceptions
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()

    savepoint = MagicMock()
    savepoint.__aenter__ = AsyncMock(return_value=None)
    savepoint.__aexit__ = AsyncMock(return_value=False)
    uow.savepoint = MagicMock(return_value=savepoint)

    uow.invitations = MagicMock()
    uow.invitations.get_by_id = AsyncMock(return_value=None)
    uow.invitations.get_by_token = AsyncMock(return_value=None)
    uow.invitations.get_by_ids = AsyncMock(return_value=[])
    uow.invitations.get_latest_by_email = AsyncMock(return_value=None)
    uow.invitations.get_pending_emails = AsyncMock(return_value=set())
    uow.invitations.has_pending = AsyncMock(return_value=False)
    uow.invitations.list_by_status = AsyncMock(return_value=[])
    uow.invitations.list_valid = AsyncMock(return_value=[])
    uow.invitations.list_pending_for_email = AsyncMock(return_value=[])
    uow.invitations.list_sent_by = AsyncMock(return_value=[])
    uow.invitations.list_accepted_by = AsyncMock(return_value=[])
    uow.invitations.count_by_status = AsyncMock(return_value={})
    uow.invitations.get_past_expiration_ids = AsyncMock(return_value=[])
    uow.invitations.mark_expired = AsyncMock(return_value=0)
    uow.invitations.get_needing_reminder = AsyncMock(return_value=[])
    uow.invitations.create = AsyncMock(side_effect=lambda invitation: invitation)
    uow.invitations.update = AsyncMock(side_effect=lambda invitation: invitation)
    uow.invitations.compare_and_set = AsyncMock(return_value=True)

    uow.users = MagicMock()
    uow.users.get_by_id = AsyncMock(return_value=None)

    uow.audit_events = MagicMock()
    uow.audit_events.create = AsyncMock()

    return uow


@pytest.fixture
def mock_dispatcher():
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock()
    return dispatcher


@pytest.fixture
def mock_events():
    events = MagicMock()
    events.publish = AsyncMock()
    return events


@pytest.fixture
def settings():
    return InvitationSettings()
