from typing import Optional
from uuid import UUID

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from sessionguard.app.repositories.membership_repository import IMembershipRepository
from sessionguard.domain.entities import Membership


class MembershipRepository(IMembershipRepository):
    """Membership repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(
        self, tenant_id: UUID, user_id: UUID, organization_id: UUID
    ) -> Optional[Membership]:
        """Get membership by tenant, user and organization"""
        stmt = (
            select(Membership)
            .where(
                Membership.tenant_id == tenant_id,
                Membership.user_id == user_id,
                Membership.organization_id == organization_id,
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
