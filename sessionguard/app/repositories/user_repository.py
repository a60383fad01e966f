from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from sessionguard.domain.entities import User


class IUserRepository(ABC):
    """User repository interface - application layer"""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email address"""
        pass

    @abstractmethod
    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get user by ID"""
        pass

    @abstractmethod
    async def increment_login_attempts(self, user_id: UUID) -> int:
        """Atomically add one failed attempt (SQL-side increment). Returns new value."""
        pass

    @abstractmethod
    async def reset_login_attempts(self, user_id: UUID, login_at: datetime) -> None:
        """Zero the failure counter, clear the lock and stamp last_login_at"""
        pass

    @abstractmethod
    async def lock_until(self, user_id: UUID, until: datetime) -> None:
        """Block sign-in until the given time"""
        pass

    @abstractmethod
    async def update_password_hash(self, user_id: UUID, password_hash: str) -> bool:
        """Replace the stored password hash. True if the user exists."""
        pass

    @abstractmethod
    async def release_expired_lock(self, user_id: UUID, now: datetime) -> bool:
        """Clear a lock that has run out and restart the failure count"""
        pass
