"""
Change Password Use Case

Password change for a signed-in user who still knows the current password.
"""

import logging

from sessionguard.app.services.audit_trail import AuditTrailService
from sessionguard.app.services.credentials import ICredentialVerifier, validate_new_password
from sessionguard.app.services.session_manager import SessionManager
from sessionguard.app.services.unit_of_work import UnitOfWorkFactory
from sessionguard.domain import errors
from sessionguard.domain.audit_payloads import PasswordResetEventData
from sessionguard.domain.context import RequestContext
from sessionguard.domain.entities import (
    AuditEventCategory,
    AuditEventStatus,
    AuditEventType,
    Session,
    SessionPurpose,
)
from sessionguard.libs.result import Result, Return

from .dtos import ChangePasswordCommand, ChangePasswordResponse

logger = logging.getLogger(__name__)


class ChangePasswordUseCase:
    """
    Use case for changing the password of the signed-in user.

    Business Rules:
    - New password must be 8 characters to 72 bytes long
    - Current password is checked through the credential collaborator
    - Every other login session of the user is revoked; the caller's stays live
    - Failed and successful changes are audited
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        credentials: ICredentialVerifier,
        session_manager: SessionManager,
        audit: AuditTrailService,
    ):
        self.uow_factory = uow_factory
        self.credentials = credentials
        self.session_manager = session_manager
        self.audit = audit

    async def execute(
        self,
        session: Session,
        token: str,
        command: ChangePasswordCommand,
        context: RequestContext,
    ) -> Result[ChangePasswordResponse]:
        """
        Errors:
            - INVALID_PASSWORD: New password does not meet requirements
            - INVALID_CREDENTIALS: Current password is wrong
            - INVALID_OR_EXPIRED_TOKEN: The session's user no longer exists
        """
        password_validation = validate_new_password(command.new_password)
        if password_validation.is_err():
            return password_validation

        async with self.uow_factory() as uow:
            user = await uow.users.get_by_id(session.user_id)
        if user is None:
            return Return.err(errors.invalid_or_expired_token())

        verified = await self.credentials.verify(user.email, command.current_password)
        if verified.is_err():
            error = errors.invalid_current_password()
            if verified.error.code != errors.INVALID_CREDENTIALS:
                error = verified.error
            logger.warning("Password change rejected for user %s: %s", user.id, verified.error.code)
            self.audit.emit(
                self.audit.build_event(
                    AuditEventType.password_reset,
                    "invalid_current_password",
                    status=AuditEventStatus.failure,
                    category=AuditEventCategory.security,
                    user_id=user.id,
                    session_id=session.id,
                    context=context,
                    error=error,
                )
            )
            return Return.err(error)

        updated = await self.credentials.update_password(user.id, command.new_password)
        if updated.is_err():
            return updated
        if not updated.value:
            return Return.err(errors.invalid_or_expired_token())

        revoked = await self.session_manager.revoke_all_for_user(
            user.id,
            except_token=token,
            revoked_by="user",
            reason="password_changed",
            purpose=SessionPurpose.login,
            context=context,
        )
        sessions_revoked = revoked.value if revoked.is_ok() else 0

        self.audit.emit(
            self.audit.build_event(
                AuditEventType.password_reset,
                "password_changed",
                category=AuditEventCategory.security,
                user_id=user.id,
                session_id=session.id,
                organization_id=session.organization_id,
                context=context,
                data=PasswordResetEventData(sessions_revoked=sessions_revoked),
            )
        )

        return Return.ok(
            ChangePasswordResponse(
                status="success",
                message="Password has been changed",
                sessions_revoked=sessions_revoked,
            )
        )
