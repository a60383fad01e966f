from abc import ABC, abstractmethod
from datetime import datetime


class IRateLimitRepository(ABC):
    """RateLimitCounter repository interface - application layer"""

    @abstractmethod
    async def hit(self, key: str, now: datetime, window_seconds: int) -> int:
        """
        Atomically count one hit for `key` in the current fixed window.

        Starts a fresh window when the stored one is older than window_seconds.
        Returns the count including this hit.
        """
        pass
