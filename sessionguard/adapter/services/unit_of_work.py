from typing import Callable

from sqlmodel.ext.asyncio.session import AsyncSession

from sessionguard.adapter.repositories.audit_event_repository import AuditEventRepository
from sessionguard.adapter.repositories.membership_repository import MembershipRepository
from sessionguard.adapter.repositories.rate_limit_repository import RateLimitRepository
from sessionguard.adapter.repositories.session_repository import SessionRepository
from sessionguard.adapter.repositories.tenant_repository import TenantRepository
from sessionguard.adapter.repositories.user_repository import UserRepository
from sessionguard.app.services.unit_of_work import UnitOfWork, UnitOfWorkFactory


class SqlAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemy implementation of UnitOfWork pattern"""

    def __init__(self, session: AsyncSession, owns_session: bool = False):
        self.session = session
        self.owns_session = owns_session

    async def __aenter__(self):
        # Initialize all repositories with the session
        self.users = UserRepository(self.session)
        self.tenants = TenantRepository(self.session)
        self.memberships = MembershipRepository(self.session)
        self.sessions = SessionRepository(self.session)
        self.audit_events = AuditEventRepository(self.session)
        self.rate_limits = RateLimitRepository(self.session)
        return self

    async def __aexit__(self, *args):
        if self.owns_session:
            # close() discards uncommitted work and detaches loaded rows unexpired
            await self.session.close()
        else:
            await self.rollback()

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()


def unit_of_work_factory(session_factory: Callable[[], AsyncSession]) -> UnitOfWorkFactory:
    """Each unit of work opens (and later closes) its own AsyncSession"""

    def factory() -> UnitOfWork:
        return SqlAlchemyUnitOfWork(session_factory(), owns_session=True)

    return factory
