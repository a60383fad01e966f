"""
Audit API Routes

Handles audit event retrieval endpoints.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from sessionguard.api.error import raise_for_error
from sessionguard.api.utils.envelope import Envelope, ok
from sessionguard.app.repositories.audit_event_repository import AuditQueryFilters
from sessionguard.app.services.audit_trail import AuditTrailService
from sessionguard.app.services.authorization_guard import AuthorizationGuard
from sessionguard.app.use_cases.audit import GetAuditEventsUseCase
from sessionguard.depends import get_audit_trail, get_authorization_guard, get_current_session
from sessionguard.domain.entities import (
    AuditEventCategory,
    AuditEventStatus,
    AuditEventType,
    Session,
)

router = APIRouter(prefix="/audit", tags=["Audit"])


class AuditEventsResponse(BaseModel):
    """GET /audit/events response payload"""

    events: List[Dict[str, Any]]
    total_count: int
    has_more: bool
    next_cursor: Optional[str]


@router.get(
    "/events",
    status_code=status.HTTP_200_OK,
    response_model=Envelope[AuditEventsResponse],
)
async def get_audit_events(
    organization_id: UUID = Query(..., description="Organization whose trail is read"),
    limit: int = Query(50, ge=1, le=100, description="Maximum number of events to return"),
    cursor: Optional[str] = Query(None, description="Pagination cursor"),
    event_type: Optional[List[AuditEventType]] = Query(None, description="Filter by event type"),
    user_id: Optional[UUID] = Query(None),
    event_status: Optional[AuditEventStatus] = Query(None, alias="status"),
    category: Optional[AuditEventCategory] = Query(None),
    min_risk_score: Optional[int] = Query(None, ge=0, le=100),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    current_session: Session = Depends(get_current_session),
    guard: AuthorizationGuard = Depends(get_authorization_guard),
    audit: AuditTrailService = Depends(get_audit_trail),
):
    """
    Get Audit Events

    Returns audit events of an organization, newest first.
    Only accessible by admin and owner roles.

    Raises:
        - 401 Unauthorized: INVALID_OR_EXPIRED_TOKEN
        - 403 Forbidden: caller is not admin or owner of the organization
        - 500 Internal Server Error: Server error
    """
    filters = AuditQueryFilters(
        user_id=user_id,
        event_types=event_type,
        status=event_status,
        category=category,
        start_date=start_date,
        end_date=end_date,
        min_risk_score=min_risk_score,
        limit=limit,
        cursor=cursor,
    )

    use_case = GetAuditEventsUseCase(guard, audit)
    result = await use_case.execute(current_session.user_id, organization_id, filters)

    if result.is_err():
        raise_for_error(result.error)

    return ok(result.value)
