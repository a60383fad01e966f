import base64
from datetime import datetime
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import and_, func, or_
from sqlmodel import select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from sessionguard.app.repositories.audit_event_repository import (
    AuditQueryFilters,
    IAuditEventRepository,
)
from sessionguard.domain.entities import AuditEvent


def encode_cursor(event: AuditEvent) -> str:
    raw = f"{event.created_at.isoformat()}|{event.id}"
    return base64.b64encode(raw.encode("utf-8")).decode("utf-8")


def decode_cursor(cursor: str) -> Optional[Tuple[datetime, UUID]]:
    try:
        raw = base64.b64decode(cursor).decode("utf-8")
        timestamp, event_id = raw.split("|", 1)
        return datetime.fromisoformat(timestamp), UUID(event_id)
    except (ValueError, TypeError):
        return None


class AuditEventRepository(IAuditEventRepository):
    """AuditEvent repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        """Create a new audit event (immutable)"""
        self.session.add(audit_event)
        await self.session.flush()
        await self.session.refresh(audit_event)
        return audit_event

    async def create_many(self, audit_events: Sequence[AuditEvent]) -> int:
        self.session.add_all(list(audit_events))
        await self.session.flush()
        return len(audit_events)

    def _conditions(self, filters: AuditQueryFilters) -> list:
        conditions = []
        if filters.user_id is not None:
            conditions.append(AuditEvent.user_id == filters.user_id)
        if filters.organization_id is not None:
            conditions.append(AuditEvent.organization_id == filters.organization_id)
        if filters.session_id is not None:
            conditions.append(AuditEvent.session_id == filters.session_id)
        if filters.event_types:
            conditions.append(AuditEvent.event_type.in_(filters.event_types))
        if filters.status is not None:
            conditions.append(AuditEvent.status == filters.status)
        if filters.category is not None:
            conditions.append(AuditEvent.category == filters.category)
        if filters.start_date is not None:
            conditions.append(AuditEvent.created_at >= filters.start_date)
        if filters.end_date is not None:
            conditions.append(AuditEvent.created_at <= filters.end_date)
        if filters.min_risk_score is not None:
            conditions.append(AuditEvent.risk_score >= filters.min_risk_score)
        if filters.processed is not None:
            conditions.append(AuditEvent.processed == filters.processed)
        return conditions

    async def query(
        self, filters: AuditQueryFilters
    ) -> Tuple[List[AuditEvent], int, Optional[str]]:
        """
        Filtered audit events with cursor-based pagination.

        Cursor format: base64-encoded "<created_at iso>|<id>" of the last
        event on the previous page. An unreadable cursor starts from the top.
        """
        conditions = self._conditions(filters)

        count_stmt = select(func.count(AuditEvent.id)).where(*conditions)
        total_count = (await self.session.exec(count_stmt)).one()

        stmt = select(AuditEvent).where(*conditions)

        position = decode_cursor(filters.cursor) if filters.cursor else None
        if position is not None:
            cursor_timestamp, cursor_id = position
            stmt = stmt.where(
                or_(
                    AuditEvent.created_at < cursor_timestamp,
                    and_(
                        AuditEvent.created_at == cursor_timestamp,
                        AuditEvent.id < cursor_id,
                    ),
                )
            )

        # Order by created_at DESC (newest first), id breaks ties
        stmt = stmt.order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc()).limit(
            filters.limit + 1
        )

        result = await self.session.exec(stmt)
        events = list(result.all())

        has_more = len(events) > filters.limit
        if has_more:
            events = events[: filters.limit]

        next_cursor = encode_cursor(events[-1]) if has_more and events else None
        return events, total_count, next_cursor

    async def mark_processed(self, event_ids: Sequence[UUID]) -> int:
        if not event_ids:
            return 0
        stmt = (
            update(AuditEvent)
            .where(AuditEvent.id.in_(list(event_ids)), AuditEvent.processed == False)  # noqa: E712
            .values(processed=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount
