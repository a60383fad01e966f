from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from sessionguard.api.error import raise_for_error
from sessionguard.api.utils.envelope import Envelope, ok
from sessionguard.app.services.authorization_guard import AuthorizationGuard, to_permission
from sessionguard.depends import get_authorization_guard, get_current_session
from sessionguard.domain.entities import MembershipRole, Session

router = APIRouter(prefix="/organizations", tags=["Authorization"])


class PermissionCheckResponse(BaseModel):
    organization_id: str
    permission: str
    allowed: bool


class RoleCheckResponse(BaseModel):
    organization_id: str
    role: str
    allowed: bool


@router.get(
    "/{organization_id}/permissions/{permission}",
    status_code=status.HTTP_200_OK,
    response_model=Envelope[PermissionCheckResponse],
)
async def check_permission(
    organization_id: UUID,
    permission: str,
    user_id: Optional[UUID] = Query(None, description="Defaults to the caller"),
    current_session: Session = Depends(get_current_session),
    guard: AuthorizationGuard = Depends(get_authorization_guard),
):
    """
    Check Permission

    Evaluates a capability (e.g. `can_invite` or `manage_projects`) for a
    user in an organization of the caller's tenant. Checking someone else
    requires the caller to be an active member of the same organization.
    """
    subject = user_id or current_session.user_id
    if subject != current_session.user_id:
        member = await guard.require_active_member(current_session.user_id, organization_id)
        if member.is_err():
            raise_for_error(member.error)

    result = await guard.has_permission(subject, organization_id, permission)
    if result.is_err():
        raise_for_error(result.error)

    resolved = to_permission(permission)
    return ok(
        PermissionCheckResponse(
            organization_id=str(organization_id),
            permission=resolved.value if resolved else permission,
            allowed=result.value,
        )
    )


@router.get(
    "/{organization_id}/roles/{role}",
    status_code=status.HTTP_200_OK,
    response_model=Envelope[RoleCheckResponse],
)
async def check_minimum_role(
    organization_id: UUID,
    role: MembershipRole,
    current_session: Session = Depends(get_current_session),
    guard: AuthorizationGuard = Depends(get_authorization_guard),
):
    """Whether the caller holds `role` or a higher one in the organization"""
    result = await guard.has_minimum_role(current_session.user_id, organization_id, role)
    if result.is_err():
        raise_for_error(result.error)

    return ok(
        RoleCheckResponse(organization_id=str(organization_id), role=role.value, allowed=result.value)
    )
