from abc import ABC, abstractmethod
from datetime import datetime

from sessionguard.domain.entities import User


class IResetTokenSink(ABC):
    """
    Receives freshly issued password reset tokens.

    Delivering them (email, queue) belongs to the caller's infrastructure;
    the session core only hands the raw token over once.
    """

    @abstractmethod
    async def deliver(self, user: User, token: str, expires_at: datetime) -> None:
        pass
