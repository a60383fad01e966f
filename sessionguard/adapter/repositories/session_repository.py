from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlmodel import select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from sessionguard.app.repositories.session_repository import ISessionRepository
from sessionguard.domain.entities import Session, SessionPurpose


class SessionRepository(ISessionRepository):
    """Session repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, session_obj: Session) -> Session:
        """Create a new session"""
        self.session.add(session_obj)
        await self.session.flush()
        await self.session.refresh(session_obj)
        return session_obj

    async def get_by_token_hash(self, token_hash: str) -> Optional[Session]:
        """
        Get session by token digest.

        populate_existing makes sure a revoke committed by another unit of
        work is visible even if this session already loaded the row.
        """
        stmt = (
            select(Session)
            .where(Session.token_hash == token_hash)
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def list_live_by_user(
        self, user_id: UUID, now: datetime, purpose: SessionPurpose = SessionPurpose.login
    ) -> List[Session]:
        stmt = (
            select(Session)
            .where(
                Session.user_id == user_id,
                Session.purpose == purpose,
                Session.revoked == False,  # noqa: E712
                Session.expires_at > now,
            )
            .order_by(Session.last_accessed_at.desc())
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def count_live_by_user(self, user_id: UUID, now: datetime) -> int:
        stmt = select(func.count(Session.id)).where(
            Session.user_id == user_id,
            Session.purpose == SessionPurpose.login,
            Session.revoked == False,  # noqa: E712
            Session.expires_at > now,
        )
        result = await self.session.exec(stmt)
        return result.one()

    async def has_fingerprint(self, user_id: UUID, fingerprint: str) -> bool:
        stmt = (
            select(Session.id)
            .where(Session.user_id == user_id, Session.device_fingerprint == fingerprint)
            .limit(1)
        )
        result = await self.session.exec(stmt)
        return result.first() is not None

    async def known_countries(self, user_id: UUID) -> List[str]:
        stmt = (
            select(Session.country)
            .where(Session.user_id == user_id, Session.country.is_not(None))
            .distinct()
        )
        result = await self.session.exec(stmt)
        return [country for country in result.all() if country]

    async def count_issued_since(
        self, user_id: UUID, purpose: SessionPurpose, since: datetime
    ) -> int:
        stmt = select(func.count(Session.id)).where(
            Session.user_id == user_id,
            Session.purpose == purpose,
            Session.issued_at >= since,
        )
        result = await self.session.exec(stmt)
        return result.one()

    async def touch(self, token_hash: str, now: datetime) -> bool:
        stmt = (
            update(Session)
            .where(Session.token_hash == token_hash, Session.revoked == False)  # noqa: E712
            .values(last_accessed_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def revoke_by_token_hash(
        self, token_hash: str, now: datetime, revoked_by: str, reason: str
    ) -> bool:
        """Revoke a specific session; the revoked = false predicate is the CAS"""
        stmt = (
            update(Session)
            .where(Session.token_hash == token_hash, Session.revoked == False)  # noqa: E712
            .values(
                revoked=True,
                revoked_at=now,
                revoked_by=revoked_by,
                revoked_reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def revoke_live_by_user(
        self,
        user_id: UUID,
        now: datetime,
        revoked_by: str,
        reason: str,
        except_token_hash: Optional[str] = None,
        purpose: Optional[SessionPurpose] = None,
    ) -> int:
        """Revoke all live sessions for a user, optionally sparing one"""
        conditions = [
            Session.user_id == user_id,
            Session.revoked == False,  # noqa: E712
            Session.expires_at > now,
        ]
        if except_token_hash is not None:
            conditions.append(Session.token_hash != except_token_hash)
        if purpose is not None:
            conditions.append(Session.purpose == purpose)

        stmt = (
            update(Session)
            .where(*conditions)
            .values(
                revoked=True,
                revoked_at=now,
                revoked_by=revoked_by,
                revoked_reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def revoke_live_by_device(
        self, user_id: UUID, fingerprint: str, now: datetime, revoked_by: str, reason: str
    ) -> int:
        stmt = (
            update(Session)
            .where(
                Session.user_id == user_id,
                Session.device_fingerprint == fingerprint,
                Session.revoked == False,  # noqa: E712
                Session.expires_at > now,
            )
            .values(
                revoked=True,
                revoked_at=now,
                revoked_by=revoked_by,
                revoked_reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def flag_expired(self, now: datetime) -> int:
        """
        Flag sessions past their expiry.

        Touch never moves expires_at, so a concurrent touch cannot be undone
        by this sweep; revoked rows are left untouched.
        """
        stmt = (
            update(Session)
            .where(
                Session.expires_at <= now,
                Session.revoked == False,  # noqa: E712
                Session.expired_at.is_(None),
            )
            .values(expired_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount
