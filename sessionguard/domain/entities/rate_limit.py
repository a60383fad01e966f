"""
RateLimitCounter Entity

Fixed-window counters incremented atomically in the data store.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, SQLModel


class RateLimitCounter(SQLModel, table=True):
    """
    RateLimitCounter entity - one row per (key, window).

    Business Rules:
    - key is unique, e.g. "sign_in:ip:203.0.113.5"
    - count only changes through `count = count + 1` updates
    - a row whose window_start is older than the window is reset in place
    """

    __tablename__ = "rate_limit_counters"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    key: str = Field(max_length=255, unique=True, index=True)

    window_start: datetime = Field(sa_column=Column(DateTime, nullable=False))
    count: int = Field(default=0)
