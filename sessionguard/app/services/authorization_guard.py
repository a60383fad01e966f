"""
Authorization Guard

Role hierarchy and capability checks for a (user, organization) pair inside
one tenant. Every check re-reads the membership; nothing is cached between
calls.
"""

import asyncio
import logging
from typing import Optional, Union
from uuid import UUID

from sessionguard.domain import errors
from sessionguard.domain.audit_payloads import AuthorizationEventData
from sessionguard.domain.entities import (
    ROLE_RANK,
    AuditEventCategory,
    AuditEventStatus,
    AuditEventType,
    Membership,
    MembershipRole,
    MembershipStatus,
    Permission,
    TenantStatus,
)
from sessionguard.libs.result import Error, Result, Return

from .audit_trail import AuditTrailService
from .unit_of_work import UnitOfWorkFactory

logger = logging.getLogger(__name__)

RESOURCE_PERMISSIONS = {
    "projects": Permission.manage_projects,
    "members": Permission.manage_members,
    "billing": Permission.manage_billing,
    "settings": Permission.manage_settings,
}

RESOURCE_OPERATIONS = ("create", "read", "update", "delete")

_UNCONDITIONAL_ROLES = (MembershipRole.owner, MembershipRole.admin)


def to_permission(permission: Union[Permission, str]) -> Optional[Permission]:
    """Accepts the enum, its value ("can_invite") or its name ("invite")"""
    if isinstance(permission, Permission):
        return permission
    try:
        return Permission(permission)
    except ValueError:
        return Permission.__members__.get(permission)


def membership_grants(membership: Membership, permission: Permission) -> bool:
    if membership.role in _UNCONDITIONAL_ROLES:
        return True
    return bool(getattr(membership, permission.value, False))


class AuthorizationGuard:
    """
    Per-request guard bound to the caller's tenant.

    Business Rules:
    - Only status=active memberships in an active tenant grant anything
    - owner and admin pass every permission check regardless of flags
    - Other roles are decided by the explicit can_* flag
    - Minimum-role checks use owner=5 > admin=4 > manager=3 > member=2 > viewer=1
    - Denials from require_* are written to the audit trail
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        tenant_id: UUID,
        audit: Optional[AuditTrailService] = None,
        timeout: float = 0.5,
    ):
        self.uow_factory = uow_factory
        self.tenant_id = tenant_id
        self.audit = audit
        self.timeout = timeout

    async def _load_membership(self, user_id: UUID, organization_id: UUID) -> Optional[Membership]:
        async with self.uow_factory() as uow:
            tenant = await uow.tenants.get_by_id(self.tenant_id)
            if tenant is None or tenant.status != TenantStatus.active:
                return None
            return await uow.memberships.get(self.tenant_id, user_id, organization_id)

    async def get_membership(
        self, user_id: UUID, organization_id: UUID, timeout: Optional[float] = None
    ) -> Result[Optional[Membership]]:
        """Active membership for the pair, None when there is none"""
        timeout = self.timeout if timeout is None else timeout
        try:
            membership = await asyncio.wait_for(
                self._load_membership(user_id, organization_id), timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Membership lookup timed out for user %s in organization %s",
                user_id,
                organization_id,
            )
            return Return.err(errors.system_error("Authorization check timed out"))
        except Exception:
            logger.exception("Membership lookup failed for user %s", user_id)
            return Return.err(errors.system_error("Authorization check failed"))

        if membership is None or membership.status != MembershipStatus.active:
            return Return.ok(None)
        return Return.ok(membership)

    async def has_permission(
        self,
        user_id: UUID,
        organization_id: UUID,
        permission: Union[Permission, str],
        timeout: Optional[float] = None,
    ) -> Result[bool]:
        resolved = to_permission(permission)
        if resolved is None:
            return Return.ok(False)

        membership = await self.get_membership(user_id, organization_id, timeout)
        if membership.is_err():
            return membership
        if membership.value is None:
            return Return.ok(False)
        return Return.ok(membership_grants(membership.value, resolved))

    async def require_permission(
        self,
        user_id: UUID,
        organization_id: UUID,
        permission: Union[Permission, str],
        timeout: Optional[float] = None,
    ) -> Result[None]:
        allowed = await self.has_permission(user_id, organization_id, permission, timeout)
        if allowed.is_err():
            return allowed
        if allowed.value:
            return Return.ok()

        name = permission.value if isinstance(permission, Permission) else str(permission)
        return self._deny(
            errors.forbidden(
                f"Missing permission: {name}",
                user_id=user_id,
                organization_id=organization_id,
                permission=name,
            ),
            AuthorizationEventData(permission=name),
        )

    async def has_minimum_role(
        self,
        user_id: UUID,
        organization_id: UUID,
        required_role: MembershipRole,
        timeout: Optional[float] = None,
    ) -> Result[bool]:
        membership = await self.get_membership(user_id, organization_id, timeout)
        if membership.is_err():
            return membership
        if membership.value is None:
            return Return.ok(False)
        return Return.ok(ROLE_RANK[membership.value.role] >= ROLE_RANK[required_role])

    async def require_minimum_role(
        self,
        user_id: UUID,
        organization_id: UUID,
        required_role: MembershipRole,
        timeout: Optional[float] = None,
    ) -> Result[None]:
        allowed = await self.has_minimum_role(user_id, organization_id, required_role, timeout)
        if allowed.is_err():
            return allowed
        if allowed.value:
            return Return.ok()
        return self._deny(
            errors.forbidden(
                f"Requires role {required_role.value} or higher",
                user_id=user_id,
                organization_id=organization_id,
            ),
            AuthorizationEventData(required_role=required_role.value),
        )

    async def is_owner(
        self, user_id: UUID, organization_id: UUID, timeout: Optional[float] = None
    ) -> Result[bool]:
        membership = await self.get_membership(user_id, organization_id, timeout)
        if membership.is_err():
            return membership
        return Return.ok(
            membership.value is not None and membership.value.role == MembershipRole.owner
        )

    async def require_owner(
        self, user_id: UUID, organization_id: UUID, timeout: Optional[float] = None
    ) -> Result[None]:
        allowed = await self.is_owner(user_id, organization_id, timeout)
        if allowed.is_err():
            return allowed
        if allowed.value:
            return Return.ok()
        return self._deny(
            errors.forbidden(
                "Only the organization owner can perform this action",
                user_id=user_id,
                organization_id=organization_id,
            ),
            AuthorizationEventData(required_role=MembershipRole.owner.value),
        )

    async def is_active_member(
        self, user_id: UUID, organization_id: UUID, timeout: Optional[float] = None
    ) -> Result[bool]:
        membership = await self.get_membership(user_id, organization_id, timeout)
        if membership.is_err():
            return membership
        return Return.ok(membership.value is not None)

    async def require_active_member(
        self, user_id: UUID, organization_id: UUID, timeout: Optional[float] = None
    ) -> Result[None]:
        allowed = await self.is_active_member(user_id, organization_id, timeout)
        if allowed.is_err():
            return allowed
        if allowed.value:
            return Return.ok()
        return self._deny(
            errors.forbidden(
                "Not an active member of this organization",
                user_id=user_id,
                organization_id=organization_id,
            ),
            AuthorizationEventData(),
        )

    async def can_manage_resource(
        self,
        user_id: UUID,
        organization_id: UUID,
        resource: str,
        timeout: Optional[float] = None,
    ) -> Result[bool]:
        permission = RESOURCE_PERMISSIONS.get(resource)
        if permission is None:
            return Return.ok(False)
        return await self.has_permission(user_id, organization_id, permission, timeout)

    async def require_manage_resource(
        self,
        user_id: UUID,
        organization_id: UUID,
        resource: str,
        timeout: Optional[float] = None,
    ) -> Result[None]:
        allowed = await self.can_manage_resource(user_id, organization_id, resource, timeout)
        if allowed.is_err():
            return allowed
        if allowed.value:
            return Return.ok()
        return self._deny(
            errors.forbidden(
                f"User cannot manage {resource}",
                user_id=user_id,
                organization_id=organization_id,
                permission=f"can_manage_{resource}",
            ),
            AuthorizationEventData(permission=f"can_manage_{resource}"),
        )

    async def validate_resource_operation(
        self,
        user_id: UUID,
        organization_id: UUID,
        operation: str,
        resource: str,
        timeout: Optional[float] = None,
    ) -> Result[None]:
        """read needs an active membership; create/update/delete need the manage flag"""
        if operation not in RESOURCE_OPERATIONS:
            return self._deny(
                errors.forbidden(
                    f"Unsupported operation: {operation}",
                    user_id=user_id,
                    organization_id=organization_id,
                ),
                AuthorizationEventData(),
            )
        if operation == "read":
            return await self.require_active_member(user_id, organization_id, timeout)
        return await self.require_manage_resource(user_id, organization_id, resource, timeout)

    def _deny(self, error: Error, data: AuthorizationEventData) -> Result[None]:
        logger.warning(
            "Authorization denied for user %s in organization %s: %s",
            error.details.get("user_id"),
            error.details.get("organization_id"),
            error.message,
        )
        if self.audit is not None:
            organization_id = error.details.get("organization_id")
            user_id = error.details.get("user_id")
            self.audit.emit(
                self.audit.build_event(
                    AuditEventType.authorization,
                    "permission_denied",
                    status=AuditEventStatus.failure,
                    category=AuditEventCategory.security,
                    user_id=UUID(user_id) if user_id else None,
                    organization_id=UUID(organization_id) if organization_id else None,
                    data=data,
                    error=error,
                )
            )
        return Return.err(error)
