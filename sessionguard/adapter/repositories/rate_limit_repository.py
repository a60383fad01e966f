from datetime import datetime, timedelta

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlmodel import select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from sessionguard.app.repositories.rate_limit_repository import IRateLimitRepository
from sessionguard.domain.entities import RateLimitCounter


class RateLimitRepository(IRateLimitRepository):
    """Fixed-window counters using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _increment(self, key: str, now: datetime, window_floor: datetime) -> int:
        # Every SET expression reads the pre-update row, so both CASEs agree
        stale = RateLimitCounter.window_start <= window_floor
        stmt = (
            update(RateLimitCounter)
            .where(RateLimitCounter.key == key)
            .values(
                count=case((stale, 1), else_=RateLimitCounter.count + 1),
                window_start=case((stale, now), else_=RateLimitCounter.window_start),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def hit(self, key: str, now: datetime, window_seconds: int) -> int:
        """
        Count one hit for `key`.

        Must run in a unit of work of its own: losing the race to insert the
        first row rolls the transaction back before retrying the increment.
        """
        window_floor = now - timedelta(seconds=window_seconds)

        if await self._increment(key, now, window_floor) == 0:
            try:
                self.session.add(RateLimitCounter(key=key, window_start=now, count=1))
                await self.session.flush()
            except IntegrityError:
                # Another worker created the row first
                await self.session.rollback()
                await self._increment(key, now, window_floor)

        stmt = select(RateLimitCounter.count).where(RateLimitCounter.key == key)
        result = await self.session.exec(stmt)
        return result.one()
