from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sessionguard.domain.entities import Session, SessionPurpose


class ISessionRepository(ABC):
    """
    Session repository interface - application layer

    Every state transition is a single conditional UPDATE so that concurrent
    workers (and server instances) serialize on the data store, not in process.
    """

    @abstractmethod
    async def create(self, session: Session) -> Session:
        """Insert a new session (token_hash is unique)"""
        pass

    @abstractmethod
    async def get_by_token_hash(self, token_hash: str) -> Optional[Session]:
        """Get session by token digest, bypassing any cached identity"""
        pass

    @abstractmethod
    async def list_live_by_user(
        self, user_id: UUID, now: datetime, purpose: SessionPurpose = SessionPurpose.login
    ) -> List[Session]:
        """Live sessions for a user, most recently used first"""
        pass

    @abstractmethod
    async def count_live_by_user(self, user_id: UUID, now: datetime) -> int:
        """Number of live login sessions for a user"""
        pass

    @abstractmethod
    async def has_fingerprint(self, user_id: UUID, fingerprint: str) -> bool:
        """Whether any earlier session of the user carried this fingerprint"""
        pass

    @abstractmethod
    async def known_countries(self, user_id: UUID) -> List[str]:
        """Distinct countries seen on earlier sessions of the user"""
        pass

    @abstractmethod
    async def count_issued_since(
        self, user_id: UUID, purpose: SessionPurpose, since: datetime
    ) -> int:
        """Sessions of a purpose issued to the user at or after `since`"""
        pass

    @abstractmethod
    async def touch(self, token_hash: str, now: datetime) -> bool:
        """Set last_accessed_at on a non-revoked session. True if a row changed."""
        pass

    @abstractmethod
    async def revoke_by_token_hash(
        self, token_hash: str, now: datetime, revoked_by: str, reason: str
    ) -> bool:
        """Compare-and-set revoke. True only for the call that flipped the flag."""
        pass

    @abstractmethod
    async def revoke_live_by_user(
        self,
        user_id: UUID,
        now: datetime,
        revoked_by: str,
        reason: str,
        except_token_hash: Optional[str] = None,
        purpose: Optional[SessionPurpose] = None,
    ) -> int:
        """Revoke every live session of a user. Returns rows moved live -> revoked."""
        pass

    @abstractmethod
    async def revoke_live_by_device(
        self, user_id: UUID, fingerprint: str, now: datetime, revoked_by: str, reason: str
    ) -> int:
        """Revoke live sessions of a user bound to one device fingerprint"""
        pass

    @abstractmethod
    async def flag_expired(self, now: datetime) -> int:
        """Set expired_at on unflagged, unrevoked rows past expires_at. Returns count."""
        pass
