"""
Admin API Routes - Maintenance Endpoints

These endpoints are for internal callers (schedulers, alerting pipelines).
Authentication is via Admin API Key, not user session tokens.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from sessionguard.api.error import raise_for_error
from sessionguard.api.utils.admin_auth import verify_admin_api_key
from sessionguard.api.utils.envelope import Envelope, ok
from sessionguard.app.services.audit_trail import AuditTrailService
from sessionguard.app.services.session_manager import SessionManager
from sessionguard.app.use_cases.audit import serialize_event
from sessionguard.depends import get_audit_trail, get_session_manager

router = APIRouter(prefix="/admin", tags=["Admin"])


class CleanupResponse(BaseModel):
    expired_count: int


class SecurityEventsResponse(BaseModel):
    events: List[dict]


class MarkProcessedRequest(BaseModel):
    event_ids: List[UUID] = Field(..., min_length=1, max_length=500)


class MarkProcessedResponse(BaseModel):
    processed_count: int


@router.post(
    "/sessions/cleanup",
    status_code=status.HTTP_200_OK,
    response_model=Envelope[CleanupResponse],
    dependencies=[Depends(verify_admin_api_key)],
)
async def cleanup_expired_sessions(
    session_manager: SessionManager = Depends(get_session_manager),
):
    """
    Cleanup Expired Sessions

    Flags sessions past their expiry. Safe to run repeatedly and
    concurrently with normal traffic.

    Requires: X-Admin-API-Key header
    """
    result = await session_manager.cleanup_expired()
    if result.is_err():
        raise_for_error(result.error)
    return ok(CleanupResponse(expired_count=result.value))


@router.get(
    "/audit/security-events",
    status_code=status.HTTP_200_OK,
    response_model=Envelope[SecurityEventsResponse],
    dependencies=[Depends(verify_admin_api_key)],
)
async def get_security_events(
    min_risk_score: int = Query(60, ge=0, le=100),
    limit: int = Query(50, ge=1, le=100),
    unprocessed_only: bool = Query(True),
    audit: AuditTrailService = Depends(get_audit_trail),
):
    """High-risk audit events for alerting pipelines"""
    result = await audit.get_security_events(
        min_risk_score=min_risk_score, limit=limit, unprocessed_only=unprocessed_only
    )
    if result.is_err():
        raise_for_error(result.error)
    return ok(SecurityEventsResponse(events=[serialize_event(event) for event in result.value]))


@router.post(
    "/audit/processed",
    status_code=status.HTTP_200_OK,
    response_model=Envelope[MarkProcessedResponse],
    dependencies=[Depends(verify_admin_api_key)],
)
async def mark_events_processed(
    request: MarkProcessedRequest,
    audit: AuditTrailService = Depends(get_audit_trail),
):
    """Mark audit events as handled by the alerting pipeline"""
    result = await audit.mark_processed(request.event_ids)
    if result.is_err():
        raise_for_error(result.error)
    return ok(MarkProcessedResponse(processed_count=result.value))
