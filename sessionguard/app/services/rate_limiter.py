import logging
from typing import Optional

from sessionguard.domain import errors
from sessionguard.libs.result import Result, Return

from .clock import Clock, SystemClock
from .unit_of_work import UnitOfWorkFactory

logger = logging.getLogger(__name__)


class RateLimiter:
    """Fixed-window limiter backed by RateLimitCounter rows"""

    def __init__(self, uow_factory: UnitOfWorkFactory, clock: Optional[Clock] = None):
        self.uow_factory = uow_factory
        self.clock = clock or SystemClock()

    async def hit(self, key: str, limit: int, window_seconds: int) -> Result[int]:
        """Count one request; RATE_LIMITED once the window holds more than `limit`."""
        try:
            async with self.uow_factory() as uow:
                count = await uow.rate_limits.hit(key, self.clock.now(), window_seconds)
                await uow.commit()
        except Exception:
            logger.exception("Rate limit counter failed for %s", key)
            return Return.err(errors.system_error("Rate limit check failed"))

        if count > limit:
            logger.warning("Rate limit exceeded for %s (%d > %d)", key, count, limit)
            return Return.err(errors.rate_limited(window_seconds))
        return Return.ok(count)
