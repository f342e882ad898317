from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.repositories.audit_event_repository import AuditEventRepository
from src.adapter.repositories.invitation_repository import InvitationRepository
from src.adapter.repositories.user_repository import UserRepository
from src.app.services.unit_of_work import UnitOfWork
from src.domain.exceptions import InvitationError


class SqlAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemy implementation of UnitOfWork pattern"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def __aenter__(self):
        # Initialize all repositories with the session
        self.invitations = InvitationRepository(self.session)
        self.users = UserRepository(self.session)
        self.audit_events = AuditEventRepository(self.session)
        return self

    async def __aexit__(self, exc_type, exc_value, traceback):
        # Rollback expires every entity in the session, including ones already
        # returned to the caller. Committed and read-only work needs none, and
        # invitation rule violations are raised before anything is written.
        if exc_type is not None and not issubclass(exc_type, InvitationError):
            await self.rollback()

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()

    def savepoint(self):
        # Rolling back a SAVEPOINT expires only objects touched inside it
        return self.session.begin_nested()
