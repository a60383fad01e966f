from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from sessionguard.domain.entities import Membership


class IMembershipRepository(ABC):
    """
    Membership repository interface - application layer

    tenant_id is a required argument of every read: a lookup without the
    tenant predicate would leak memberships across tenants.
    """

    @abstractmethod
    async def get(
        self, tenant_id: UUID, user_id: UUID, organization_id: UUID
    ) -> Optional[Membership]:
        """Membership for (user, organization) inside a tenant, any status"""
        pass
