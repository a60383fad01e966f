"""
Revoke Sessions Use Case

Handles session revocation for security and session management.
"""

from typing import Optional
from uuid import UUID

from sessionguard.app.services.authorization_guard import AuthorizationGuard
from sessionguard.app.services.session_manager import SessionManager
from sessionguard.domain import errors
from sessionguard.domain.context import RequestContext
from sessionguard.domain.entities import MembershipRole, Session
from sessionguard.libs.result import Result, Return


class RevokeSessionsUseCase:
    """
    Use case for revoking user sessions.

    Business Rules:
    - Users can revoke their own sessions
    - admin or owner of an organization can revoke sessions of its active members
    - Revocation is audit-logged by the session manager
    - Three revocation modes: all, all-except-current, one device
    """

    def __init__(
        self,
        session_manager: SessionManager,
        guard: Optional[AuthorizationGuard] = None,
    ):
        self.session_manager = session_manager
        self.guard = guard

    async def _authorize(
        self,
        target_user_id: UUID,
        requesting_user_id: UUID,
        organization_id: Optional[UUID],
    ) -> Result[None]:
        if target_user_id == requesting_user_id:
            return Return.ok()

        if self.guard is None or organization_id is None:
            return Return.err(
                errors.forbidden(
                    "Only admins can revoke other users' sessions",
                    user_id=requesting_user_id,
                    organization_id=organization_id,
                )
            )

        allowed = await self.guard.require_minimum_role(
            requesting_user_id, organization_id, MembershipRole.admin
        )
        if allowed.is_err():
            return allowed

        # The target must belong to the organization the admin manages
        return await self.guard.require_active_member(target_user_id, organization_id)

    async def revoke_all_sessions(
        self,
        target_user_id: UUID,
        current_session: Session,
        current_token: str,
        organization_id: Optional[UUID] = None,
        keep_current: bool = False,
        context: Optional[RequestContext] = None,
    ) -> Result[dict]:
        """
        Revoke all sessions for a user.

        Args:
            target_user_id: User whose sessions will be revoked
            current_session: Validated session of the caller
            current_token: Caller's token, spared when keep_current is set
            organization_id: Organization in which an admin acts for another user
            keep_current: Keep the caller's own session alive

        Returns:
            Result with count of revoked sessions, or Error
        """
        requesting_user_id = current_session.user_id
        allowed = await self._authorize(target_user_id, requesting_user_id, organization_id)
        if allowed.is_err():
            return allowed

        is_self = target_user_id == requesting_user_id
        count = await self.session_manager.revoke_all_for_user(
            target_user_id,
            except_token=current_token if is_self and keep_current else None,
            revoked_by="user" if is_self else f"admin:{requesting_user_id}",
            reason="user_requested" if is_self else "admin_revoked",
            context=context,
        )
        if count.is_err():
            return count

        return Return.ok(
            {
                "revoked_count": count.value,
                "target_user_id": str(target_user_id),
                "kept_session_id": str(current_session.id) if is_self and keep_current else None,
            }
        )

    async def revoke_device(
        self,
        fingerprint: str,
        current_session: Session,
        context: Optional[RequestContext] = None,
    ) -> Result[dict]:
        """Sign the caller out of one device (self-service)"""
        count = await self.session_manager.revoke_by_device(
            current_session.user_id,
            fingerprint,
            revoked_by="user",
            reason="device_revoked",
            context=context,
        )
        if count.is_err():
            return count
        return Return.ok({"revoked_count": count.value, "device_fingerprint": fingerprint})
