from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from sessionguard.domain.entities import (
    AuditEvent,
    AuditEventCategory,
    AuditEventStatus,
    AuditEventType,
)


@dataclass
class AuditQueryFilters:
    user_id: Optional[UUID] = None
    organization_id: Optional[UUID] = None
    session_id: Optional[UUID] = None
    event_types: Optional[List[AuditEventType]] = None
    status: Optional[AuditEventStatus] = None
    category: Optional[AuditEventCategory] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    min_risk_score: Optional[int] = None
    processed: Optional[bool] = None
    limit: int = 50
    cursor: Optional[str] = None


@dataclass
class AuditPage:
    events: List[AuditEvent] = field(default_factory=list)
    total_count: int = 0
    has_more: bool = False
    next_cursor: Optional[str] = None


class IAuditEventRepository(ABC):
    """AuditEvent repository interface - application layer"""

    @abstractmethod
    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        """Create a new audit event (immutable)"""
        pass

    @abstractmethod
    async def create_many(self, audit_events: Sequence[AuditEvent]) -> int:
        """Insert a batch in the current transaction"""
        pass

    @abstractmethod
    async def query(self, filters: AuditQueryFilters) -> Tuple[List[AuditEvent], int, Optional[str]]:
        """
        Filtered audit events with cursor-based pagination.

        Returns:
            Tuple of (events, total_count, next_cursor)
            - events: ordered by created_at DESC, id DESC
            - next_cursor: Cursor for next page, None if no more events
        """
        pass

    @abstractmethod
    async def mark_processed(self, event_ids: Sequence[UUID]) -> int:
        """Set processed=True. The only mutation allowed on audit rows."""
        pass
