from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel, Field

from sessionguard.api.error import raise_for_error
from sessionguard.api.utils.envelope import Envelope, ok
from sessionguard.app.services.authorization_guard import AuthorizationGuard
from sessionguard.app.services.session_manager import SessionManager
from sessionguard.app.use_cases.sessions import RevokeSessionsUseCase
from sessionguard.depends import (
    get_bearer_token,
    get_current_session,
    get_optional_authorization_guard,
    get_request_context,
    get_session_manager,
)
from sessionguard.domain.context import RequestContext
from sessionguard.domain.entities import Session

router = APIRouter(prefix="/users", tags=["Users"])


class RevokeAllSessionsRequest(BaseModel):
    """Request to revoke all sessions for a user"""

    keep_current: bool = Field(False, description="Keep the caller's own session alive")
    organization_id: Optional[UUID] = Field(
        None, description="Organization in which an admin acts for another user"
    )


class RevokeAllSessionsResponse(BaseModel):
    message: str
    revoked_count: int
    target_user_id: str
    kept_session_id: Optional[str] = None


@router.post(
    "/{user_id}/sessions/revoke-all",
    status_code=status.HTTP_200_OK,
    response_model=Envelope[RevokeAllSessionsResponse],
)
async def revoke_all_sessions(
    user_id: UUID,
    request: Optional[RevokeAllSessionsRequest] = Body(None),
    token: str = Depends(get_bearer_token),
    current_session: Session = Depends(get_current_session),
    context: RequestContext = Depends(get_request_context),
    session_manager: SessionManager = Depends(get_session_manager),
    guard: Optional[AuthorizationGuard] = Depends(get_optional_authorization_guard),
):
    """
    Revoke All Sessions

    Revokes every live session of a user. Useful for:
    - Security incidents (account compromise)
    - Signing out of all other devices (keep_current=true)
    - Admin-initiated logout

    Authorization:
    - Users can revoke their own sessions
    - admin or owner of `organization_id` (in the X-Tenant-ID tenant) can
      revoke sessions of that organization's members

    Raises:
        - 401 Unauthorized: INVALID_OR_EXPIRED_TOKEN
        - 403 Forbidden: FORBIDDEN
        - 500 Internal Server Error: Server error
    """
    request = request or RevokeAllSessionsRequest()

    use_case = RevokeSessionsUseCase(session_manager, guard)
    result = await use_case.revoke_all_sessions(
        user_id,
        current_session,
        token,
        organization_id=request.organization_id,
        keep_current=request.keep_current,
        context=context,
    )
    if result.is_err():
        raise_for_error(result.error)

    data = result.value
    return ok(
        RevokeAllSessionsResponse(
            message=f"Successfully revoked {data['revoked_count']} session(s)",
            revoked_count=data["revoked_count"],
            target_user_id=data["target_user_id"],
            kept_session_id=data["kept_session_id"],
        )
    )
