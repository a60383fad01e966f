"""
Confirm Password Reset Use Case

Spends a reset token, replaces the password and signs the user out everywhere.
"""

from sessionguard.app.services.audit_trail import AuditTrailService
from sessionguard.app.services.credentials import ICredentialVerifier, validate_new_password
from sessionguard.app.services.session_manager import SessionManager
from sessionguard.domain import errors
from sessionguard.domain.audit_payloads import PasswordResetEventData
from sessionguard.domain.context import RequestContext
from sessionguard.domain.entities import (
    AuditEventCategory,
    AuditEventType,
    SessionPurpose,
)
from sessionguard.libs.result import Result, Return

from .dtos import ConfirmPasswordResetCommand, ConfirmPasswordResetResponse

class ConfirmPasswordResetUseCase:
    """
    Use case for confirming password reset.

    Business Rules:
    - New password must be 8 characters to 72 bytes long
    - Token must be a live password_reset session
    - Token is single use: the consume is a compare-and-set
    - Password is replaced through the credential collaborator
    - All login sessions and any other outstanding reset tokens of the
      user are revoked afterwards
    - Audit event created for security tracking
    """

    def __init__(
        self,
        session_manager: SessionManager,
        credentials: ICredentialVerifier,
        audit: AuditTrailService,
    ):
        self.session_manager = session_manager
        self.credentials = credentials
        self.audit = audit

    async def execute(
        self, command: ConfirmPasswordResetCommand, context: RequestContext
    ) -> Result[ConfirmPasswordResetResponse]:
        """
        Errors:
            - INVALID_PASSWORD: Password does not meet complexity requirements
            - INVALID_OR_EXPIRED_TOKEN: Token unknown, expired or not a reset token
            - TOKEN_ALREADY_USED: Token has already been used
        """
        password_validation = validate_new_password(command.new_password)
        if password_validation.is_err():
            return password_validation

        consumed = await self.session_manager.consume(command.token, SessionPurpose.password_reset)
        if consumed.is_err():
            return consumed
        reset_session = consumed.value

        updated = await self.credentials.update_password(reset_session.user_id, command.new_password)
        if updated.is_err():
            return updated
        if not updated.value:
            return Return.err(errors.invalid_or_expired_token())

        revoked = await self.session_manager.revoke_all_for_user(
            reset_session.user_id,
            revoked_by="system",
            reason="password_reset",
            purpose=SessionPurpose.login,
            context=context,
        )
        sessions_revoked = revoked.value if revoked.is_ok() else 0

        # Reset links issued earlier in the same hour die with this one
        await self.session_manager.revoke_all_for_user(
            reset_session.user_id,
            revoked_by="system",
            reason="password_reset",
            purpose=SessionPurpose.password_reset,
            context=context,
        )

        self.audit.emit(
            self.audit.build_event(
                AuditEventType.password_reset,
                "reset_confirmed",
                category=AuditEventCategory.security,
                user_id=reset_session.user_id,
                session_id=reset_session.id,
                context=context,
                data=PasswordResetEventData(sessions_revoked=sessions_revoked),
            )
        )

        return Return.ok(
            ConfirmPasswordResetResponse(
                status="success",
                message="Password has been reset successfully",
                sessions_revoked=sessions_revoked,
            )
        )
