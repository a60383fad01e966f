"""
Get Audit Events Use Case

Retrieves audit events of an organization with pagination.
"""

from typing import Any, Dict
from uuid import UUID

from sessionguard.app.repositories.audit_event_repository import AuditQueryFilters
from sessionguard.app.services.audit_trail import AuditTrailService
from sessionguard.app.services.authorization_guard import AuthorizationGuard
from sessionguard.domain.audit_payloads import load_event_data
from sessionguard.domain.entities import AuditEvent, MembershipRole
from sessionguard.libs.result import Result, Return


def serialize_event(event: AuditEvent) -> Dict[str, Any]:
    payload = load_event_data(event.event_data)
    return {
        "id": str(event.id),
        "event_type": event.event_type.value,
        "action": event.action,
        "status": event.status.value,
        "category": event.category.value,
        "user_id": str(event.user_id) if event.user_id else None,
        "session_id": str(event.session_id) if event.session_id else None,
        "organization_id": str(event.organization_id) if event.organization_id else None,
        "ip_address": event.ip_address,
        "user_agent": event.user_agent,
        "device_info": event.device_info,
        "geolocation": event.geolocation,
        "risk_score": event.risk_score,
        "risk_factors": event.risk_factors,
        "event_data": payload.model_dump(mode="json", exclude_none=True) if payload else None,
        "error_code": event.error_code,
        "error_message": event.error_message,
        "source": event.source,
        "processed": event.processed,
        "timestamp": event.created_at.isoformat() + "Z",
    }


class GetAuditEventsUseCase:
    """
    Use case for retrieving audit events for an organization.

    Business Rules:
    - Caller must have role admin or higher in the organization
    - Membership is re-read on every call
    - Results are organization-scoped
    - Results ordered by newest first
    - Supports cursor-based pagination
    """

    def __init__(self, guard: AuthorizationGuard, audit: AuditTrailService):
        self.guard = guard
        self.audit = audit

    async def execute(
        self, user_id: UUID, organization_id: UUID, filters: AuditQueryFilters
    ) -> Result[Dict[str, Any]]:
        """
        Execute get audit events use case.

        Args:
            user_id: Caller's user id (from the validated session)
            organization_id: Organization whose trail is read
            filters: Optional filters; organization_id is always overridden

        Returns:
            Result with events list and pagination info, or Error
        """
        allowed = await self.guard.require_minimum_role(
            user_id, organization_id, MembershipRole.admin
        )
        if allowed.is_err():
            return allowed

        filters.organization_id = organization_id
        page = await self.audit.query(filters)
        if page.is_err():
            return page

        return Return.ok(
            {
                "events": [serialize_event(event) for event in page.value.events],
                "total_count": page.value.total_count,
                "has_more": page.value.has_more,
                "next_cursor": page.value.next_cursor,
            }
        )
