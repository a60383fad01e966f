"""
Validate Reset Token Use Case

Read-only check of a reset link before the new-password form is shown.
"""

from sessionguard.app.services.audit_trail import AuditTrailService
from sessionguard.app.services.session_manager import SessionManager
from sessionguard.domain.context import RequestContext
from sessionguard.domain.entities import (
    AuditEventCategory,
    AuditEventStatus,
    AuditEventType,
    SessionPurpose,
)
from sessionguard.libs.result import Result, Return

from .dtos import ValidateResetTokenResponse


class ValidateResetTokenUseCase:
    """
    Use case for checking a password reset token without spending it.

    Business Rules:
    - Only live password_reset sessions are valid
    - The token is never consumed here
    - Every attempt is audited as validate_reset_token
    """

    def __init__(self, session_manager: SessionManager, audit: AuditTrailService):
        self.session_manager = session_manager
        self.audit = audit

    async def execute(self, token: str, context: RequestContext) -> Result[ValidateResetTokenResponse]:
        """
        Errors:
            - INVALID_OR_EXPIRED_TOKEN: Token unknown, used, expired or not a reset token
            - SYSTEM_ERROR: Store failure or timeout
        """
        validated = await self.session_manager.validate(token, purpose=SessionPurpose.password_reset)

        self.audit.emit(
            self.audit.build_event(
                AuditEventType.password_reset,
                "validate_reset_token",
                status=AuditEventStatus.success if validated.is_ok() else AuditEventStatus.failure,
                category=AuditEventCategory.security,
                user_id=validated.value.user_id if validated.is_ok() else None,
                session_id=validated.value.id if validated.is_ok() else None,
                context=context,
                error=None if validated.is_ok() else validated.error,
            )
        )

        if validated.is_err():
            return validated

        return Return.ok(
            ValidateResetTokenResponse(valid=True, expires_at=validated.value.expires_at)
        )
