from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel, Field

from sessionguard.api.error import raise_for_error
from sessionguard.api.utils.admin_auth import verify_admin_api_key
from sessionguard.api.utils.envelope import Envelope, ok
from sessionguard.app.services.session_manager import SessionManager, session_view
from sessionguard.app.use_cases.sessions import RevokeSessionsUseCase
from sessionguard.depends import get_current_session, get_request_context, get_session_manager
from sessionguard.domain.context import RequestContext, RiskAssessment, SessionView
from sessionguard.domain.entities import Session, SessionPurpose

router = APIRouter(prefix="/sessions", tags=["Sessions"])


class CreateSessionRequest(BaseModel):
    """Issued by a trusted caller after its own credential check succeeded"""

    user_id: UUID = Field(..., description="Authenticated user")
    organization_id: Optional[UUID] = Field(None, description="Selected organization, if any")
    purpose: SessionPurpose = Field(SessionPurpose.login, description="login or password_reset")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Free-form session metadata")


class CreateSessionResponse(BaseModel):
    token: str
    session: SessionView
    risk: RiskAssessment


class RevokeSessionRequest(BaseModel):
    reason: str = Field("user_logout", max_length=255)
    revoked_by: str = Field("user", max_length=100)


class RevokeSessionResponse(BaseModel):
    """Response for session revocation operations"""

    message: str
    revoked: bool


class RevokeDeviceResponse(BaseModel):
    message: str
    revoked_count: int


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=Envelope[CreateSessionResponse],
    dependencies=[Depends(verify_admin_api_key)],
)
async def create_session(
    request: CreateSessionRequest,
    context: RequestContext = Depends(get_request_context),
    session_manager: SessionManager = Depends(get_session_manager),
):
    """
    Create Session

    Internal endpoint for services that verified credentials themselves.
    The token is returned once and never stored in clear.

    Requires: X-Admin-API-Key header
    """
    result = await session_manager.create(
        request.user_id,
        context,
        organization_id=request.organization_id,
        purpose=request.purpose,
        metadata=request.metadata,
    )
    if result.is_err():
        raise_for_error(result.error)

    issued = result.value
    return ok(
        CreateSessionResponse(
            token=issued.token,
            session=session_view(issued.session),
            risk=issued.assessment,
        )
    )


@router.get(
    "/validate",
    status_code=status.HTTP_200_OK,
    response_model=Envelope[SessionView],
)
async def validate_session(current_session: Session = Depends(get_current_session)):
    """
    Validate Session

    Resolves the bearer token to its live session.

    Raises:
        - 401 Unauthorized: INVALID_OR_EXPIRED_TOKEN
        - 500 Internal Server Error: store failure or timeout
    """
    return ok(session_view(current_session))


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=Envelope[List[SessionView]],
)
async def list_sessions(
    current_session: Session = Depends(get_current_session),
    session_manager: SessionManager = Depends(get_session_manager),
):
    """List the caller's live login sessions, most recently used first"""
    result = await session_manager.list_active(current_session.user_id)
    if result.is_err():
        raise_for_error(result.error)
    return ok([session_view(session) for session in result.value])


@router.post(
    "/{token}/revoke",
    status_code=status.HTTP_200_OK,
    response_model=Envelope[RevokeSessionResponse],
)
async def revoke_session(
    token: str,
    request: Optional[RevokeSessionRequest] = Body(None),
    context: RequestContext = Depends(get_request_context),
    session_manager: SessionManager = Depends(get_session_manager),
):
    """
    Revoke Session

    Idempotent: revoking an unknown or already revoked token succeeds with
    revoked=false.
    """
    request = request or RevokeSessionRequest()
    result = await session_manager.revoke(
        token, revoked_by=request.revoked_by, reason=request.reason, context=context
    )
    if result.is_err():
        raise_for_error(result.error)

    return ok(
        RevokeSessionResponse(
            message="Session revoked" if result.value else "Session already inactive",
            revoked=result.value,
        )
    )


@router.post(
    "/devices/{fingerprint}/revoke",
    status_code=status.HTTP_200_OK,
    response_model=Envelope[RevokeDeviceResponse],
)
async def revoke_device_sessions(
    fingerprint: str,
    current_session: Session = Depends(get_current_session),
    context: RequestContext = Depends(get_request_context),
    session_manager: SessionManager = Depends(get_session_manager),
):
    """Sign the caller out of every session bound to one device"""
    use_case = RevokeSessionsUseCase(session_manager)
    result = await use_case.revoke_device(fingerprint, current_session, context=context)
    if result.is_err():
        raise_for_error(result.error)

    data = result.value
    return ok(
        RevokeDeviceResponse(
            message=f"Successfully revoked {data['revoked_count']} session(s)",
            revoked_count=data["revoked_count"],
        )
    )
