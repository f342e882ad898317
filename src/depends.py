from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.adapter.services.event_bus import EventBus
from src.adapter.services.notification_dispatcher import (
    HttpMailNotificationDispatcher,
    LoggingNotificationDispatcher,
)
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.api.utils.jwt import verify_jwt
from src.app.services.invitation_service import InvitationService
from src.app.services.invitation_settings import InvitationSettings
from src.app.services.notification_dispatcher import INotificationDispatcher
from src.app.services.unit_of_work import UnitOfWork


def configure_sqlite(async_engine: AsyncEngine) -> AsyncEngine:
    """
    Make SQLite behave like the other backends for this service.

    Foreign keys are off by default in SQLite, so ON DELETE SET NULL on
    invited_by/accepted_by would never fire. The driver also defers BEGIN
    until the first write, which leaves a SAVEPOINT outside any transaction;
    SQLAlchemy emits BEGIN itself instead.
    """
    if async_engine.dialect.name != "sqlite":
        return async_engine

    @event.listens_for(async_engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(async_engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return async_engine


engine = configure_sqlite(
    create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)
)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

optional_security = HTTPBearer(auto_error=False)

event_bus = EventBus()


async def create_db_and_tables():
    # Importing the entities registers their tables on SQLModel.metadata
    import src.domain.entities  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


def get_invitation_settings() -> InvitationSettings:
    return InvitationSettings.from_config(ApplicationConfig)


def get_notification_dispatcher() -> INotificationDispatcher:
    if ApplicationConfig.MAIL_API_URL:
        return HttpMailNotificationDispatcher(
            base_url=ApplicationConfig.APP_BASE_URL,
            api_url=ApplicationConfig.MAIL_API_URL,
            api_key=ApplicationConfig.MAIL_API_KEY,
            from_email=ApplicationConfig.MAIL_FROM,
        )
    return LoggingNotificationDispatcher(base_url=ApplicationConfig.APP_BASE_URL)


def build_invitation_service(uow: UnitOfWork) -> InvitationService:
    return InvitationService(
        uow,
        settings=get_invitation_settings(),
        dispatcher=get_notification_dispatcher(),
        events=event_bus,
    )


async def get_invitation_service(
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> InvitationService:
    return build_invitation_service(uow)


async def get_optional_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
) -> Optional[int]:
    """
    User ID from an optional Bearer token.

    Accepting an invitation does not require a login; when a valid token is
    present its user becomes the accepting actor.
    """
    if credentials is None:
        return None

    payload = verify_jwt(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    try:
        return int(payload["user_id"])
    except (KeyError, TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token does not identify a user",
        )
