"""
Audit Trail Service

Append-only log of security-relevant events. Writes are best-effort: a
broken audit pipe is logged and never fails the operation being audited.
"""

import asyncio
import logging
from typing import List, Optional, Sequence, Set
from uuid import UUID

from pydantic import BaseModel

from sessionguard.app.repositories.audit_event_repository import AuditPage, AuditQueryFilters
from sessionguard.domain import errors
from sessionguard.domain.audit_payloads import dump_event_data
from sessionguard.domain.context import RequestContext, RiskAssessment
from sessionguard.domain.entities import (
    AuditEvent,
    AuditEventCategory,
    AuditEventStatus,
    AuditEventType,
)
from sessionguard.libs.result import Error, Result, Return

from .clock import Clock, SystemClock
from .unit_of_work import UnitOfWorkFactory

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class AuditTrailService:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        clock: Optional[Clock] = None,
        write_timeout: float = 5.0,
    ):
        self.uow_factory = uow_factory
        self.clock = clock or SystemClock()
        self.write_timeout = write_timeout
        self._pending: Set[asyncio.Task] = set()

    def build_event(
        self,
        event_type: AuditEventType,
        action: str,
        *,
        status: AuditEventStatus = AuditEventStatus.success,
        category: AuditEventCategory = AuditEventCategory.auth,
        user_id: Optional[UUID] = None,
        session_id: Optional[UUID] = None,
        organization_id: Optional[UUID] = None,
        context: Optional[RequestContext] = None,
        risk: Optional[RiskAssessment] = None,
        data: Optional[BaseModel] = None,
        error: Optional[Error] = None,
    ) -> AuditEvent:
        """Assemble an AuditEvent stamped with the service clock"""
        event = AuditEvent(
            event_type=event_type,
            action=action,
            status=status,
            category=category,
            user_id=user_id,
            session_id=session_id,
            organization_id=organization_id,
            event_data=dump_event_data(data),
            created_at=self.clock.now(),
        )
        if context is not None:
            event.ip_address = context.ip_address
            event.user_agent = context.user_agent[:512] if context.user_agent else None
            event.device_info = context.device.model_dump(mode="json", exclude_none=True)
            if context.geolocation is not None:
                event.geolocation = context.geolocation.model_dump(mode="json", exclude_none=True)
            event.source = context.source
        if risk is not None:
            event.risk_score = risk.score
            event.risk_factors = list(risk.factors)
        if error is not None:
            event.error_code = error.code
            event.error_message = error.message[:500]
        return event

    async def _write(self, event: AuditEvent) -> None:
        async with self.uow_factory() as uow:
            await uow.audit_events.create(event)
            await uow.commit()

    async def log(self, event: AuditEvent) -> bool:
        """Persist one event. Failures are logged and reported as False, never raised."""
        try:
            await asyncio.wait_for(self._write(event), timeout=self.write_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(
                "Audit write timed out after %.1fs (%s/%s)",
                self.write_timeout,
                event.event_type.value,
                event.action,
            )
        except Exception:
            logger.warning(
                "Failed to write audit event %s/%s",
                event.event_type.value,
                event.action,
                exc_info=True,
            )
        return False

    def emit(self, event: AuditEvent) -> None:
        """Schedule `log` in the background; the caller does not wait."""
        task = asyncio.create_task(self.log(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every emitted event still in flight"""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def log_batch(self, events: Sequence[AuditEvent]) -> Result[int]:
        """
        Insert a batch in a single transaction: all rows or none.

        Earlier batches are committed independently and are never touched by
        a failure here.
        """
        if not events:
            return Return.ok(0)
        try:
            async with self.uow_factory() as uow:
                count = await uow.audit_events.create_many(events)
                await uow.commit()
            return Return.ok(count)
        except Exception:
            logger.error("Failed to write audit batch of %d events", len(events), exc_info=True)
            return Return.err(errors.system_error("Failed to write audit batch"))

    async def query(self, filters: AuditQueryFilters) -> Result[AuditPage]:
        filters.limit = max(1, min(filters.limit, MAX_PAGE_SIZE))
        try:
            async with self.uow_factory() as uow:
                events, total_count, next_cursor = await uow.audit_events.query(filters)
        except Exception:
            logger.exception("Audit query failed")
            return Return.err(errors.system_error("Failed to query audit events"))

        return Return.ok(
            AuditPage(
                events=events,
                total_count=total_count,
                has_more=next_cursor is not None,
                next_cursor=next_cursor,
            )
        )

    async def get_user_trail(
        self,
        user_id: UUID,
        limit: int = 50,
        event_types: Optional[List[AuditEventType]] = None,
    ) -> Result[List[AuditEvent]]:
        page = await self.query(
            AuditQueryFilters(user_id=user_id, event_types=event_types, limit=limit)
        )
        if page.is_err():
            return page
        return Return.ok(page.value.events)

    async def get_org_trail(self, organization_id: UUID, limit: int = 50) -> Result[List[AuditEvent]]:
        page = await self.query(AuditQueryFilters(organization_id=organization_id, limit=limit))
        if page.is_err():
            return page
        return Return.ok(page.value.events)

    async def get_security_events(
        self, min_risk_score: int = 60, limit: int = 50, unprocessed_only: bool = False
    ) -> Result[List[AuditEvent]]:
        """High-risk events for alerting pipelines, newest first"""
        page = await self.query(
            AuditQueryFilters(
                min_risk_score=min_risk_score,
                processed=False if unprocessed_only else None,
                limit=limit,
            )
        )
        if page.is_err():
            return page
        return Return.ok(page.value.events)

    async def mark_processed(self, event_ids: Sequence[UUID]) -> Result[int]:
        try:
            async with self.uow_factory() as uow:
                count = await uow.audit_events.mark_processed(event_ids)
                await uow.commit()
            return Return.ok(count)
        except Exception:
            logger.exception("Failed to mark audit events processed")
            return Return.err(errors.system_error("Failed to update audit events"))
