from datetime import timedelta
from typing import List, Optional, Tuple

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import src.domain.entities  # noqa: F401
from src.adapter.services.event_bus import EventBus
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.invitation_service import InvitationService
from src.app.services.invitation_settings import InvitationSettings
from src.app.services.notification_dispatcher import INotificationDispatcher
from src.depends import configure_sqlite, get_invitation_service, get_unit_of_work
from src.domain.base import utc_now
from src.domain.entities import Invitation, InvitationStatus, NotificationKind


class RecordingDispatcher(INotificationDispatcher):
    """Keeps every dispatched notification instead of sending it"""

    def __init__(self):
        self.sent: List[Tuple[NotificationKind, str, int, str]] = []

    async def dispatch(self, kind, template, invitation, recipient):
        self.sent.append((kind, template, invitation.id, recipient))

    def of_kind(self, kind: NotificationKind) -> List[Tuple[NotificationKind, str, int, str]]:
        return [entry for entry in self.sent if entry[0] == kind]


@pytest_asyncio.fixture
async def engine():
    engine = configure_sqlite(create_async_engine("sqlite+aiosqlite:///./test.db"))
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    Session = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with Session() as session:
        yield session


@pytest.fixture
def settings():
    return InvitationSettings()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def service(db_session, settings, dispatcher, event_bus):
    return InvitationService(
        SqlAlchemyUnitOfWork(db_session),
        settings=settings,
        dispatcher=dispatcher,
        events=event_bus,
    )


@pytest.fixture
def make_invitation(db_session):
    """Insert an invitation row directly, backdated as needed"""

    async def _make(
        email: str,
        *,
        created_days_ago: float = 0,
        expires_in_days: Optional[float] = 7,
        status: InvitationStatus = InvitationStatus.pending,
        reminder_count: int = 0,
        invitable_type: Optional[str] = None,
        invitable_id: Optional[int] = None,
    ) -> Invitation:
        now = utc_now()
        invitation = Invitation(
            email=email,
            status=status,
            reminder_count=reminder_count,
            invitable_type=invitable_type,
            invitable_id=invitable_id,
            created_at=now - timedelta(days=created_days_ago),
            updated_at=now - timedelta(days=created_days_ago),
            expires_at=(
                now + timedelta(days=expires_in_days) if expires_in_days is not None else None
            ),
        )
        db_session.add(invitation)
        await db_session.commit()
        await db_session.refresh(invitation)
        return invitation

    return _make


@pytest_asyncio.fixture
async def client(db_session, service):
    from httpx import ASGITransport
    from src.api.app import create_app
    from config import ApplicationConfig

    app = create_app(ApplicationConfig)

    async def override_get_unit_of_work():
        yield SqlAlchemyUnitOfWork(db_session)

    async def override_get_invitation_service():
        return service

    app.dependency_overrides[get_unit_of_work] = override_get_unit_of_work
    app.dependency_overrides[get_invitation_service] = override_get_invitation_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
