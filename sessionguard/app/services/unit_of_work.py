from abc import ABC, abstractmethod
from typing import Callable

from sessionguard.app.repositories.audit_event_repository import IAuditEventRepository
from sessionguard.app.repositories.membership_repository import IMembershipRepository
from sessionguard.app.repositories.rate_limit_repository import IRateLimitRepository
from sessionguard.app.repositories.session_repository import ISessionRepository
from sessionguard.app.repositories.tenant_repository import ITenantRepository
from sessionguard.app.repositories.user_repository import IUserRepository


class UnitOfWork(ABC):
    """Abstract UnitOfWork - defines repository access and transaction management"""

    # Repository properties (initialized in __aenter__)
    users: IUserRepository
    tenants: ITenantRepository
    memberships: IMembershipRepository
    sessions: ISessionRepository
    audit_events: IAuditEventRepository
    rate_limits: IRateLimitRepository

    @abstractmethod
    async def __aenter__(self):
        pass

    @abstractmethod
    async def __aexit__(self, *args):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass


# Each call yields a fresh unit of work bound to its own transaction
UnitOfWorkFactory = Callable[[], UnitOfWork]
