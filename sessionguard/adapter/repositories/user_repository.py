from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlmodel import select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from sessionguard.app.repositories.user_repository import IUserRepository
from sessionguard.domain.entities import User


class UserRepository(IUserRepository):
    """User repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email address"""
        stmt = select(User).where(User.email == email)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get user by ID"""
        stmt = select(User).where(User.id == user_id).execution_options(populate_existing=True)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def increment_login_attempts(self, user_id: UUID) -> int:
        """
        Add one failed attempt with `failed_login_attempts + 1` in SQL.

        The read that follows runs inside the same transaction, after the
        write lock is taken, so it sees this call's own increment.
        """
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(failed_login_attempts=User.failed_login_attempts + 1)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

        count_stmt = select(User.failed_login_attempts).where(User.id == user_id)
        result = await self.session.exec(count_stmt)
        return result.one_or_none() or 0

    async def reset_login_attempts(self, user_id: UUID, login_at: datetime) -> None:
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(failed_login_attempts=0, locked_until=None, last_login_at=login_at)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def lock_until(self, user_id: UUID, until: datetime) -> None:
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(locked_until=until)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def update_password_hash(self, user_id: UUID, password_hash: str) -> bool:
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(password_hash=password_hash, failed_login_attempts=0, locked_until=None)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def release_expired_lock(self, user_id: UUID, now: datetime) -> bool:
        stmt = (
            update(User)
            .where(User.id == user_id)
            .where(User.locked_until.is_not(None))
            .where(User.locked_until <= now)
            .values(failed_login_attempts=0, locked_until=None)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0
