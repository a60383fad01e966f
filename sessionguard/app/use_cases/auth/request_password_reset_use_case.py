"""
Request Password Reset Use Case

Issues a single-use password reset token and hands it to the token sink.
"""

import logging
from datetime import timedelta
from typing import Optional

from sessionguard.app.services.audit_trail import AuditTrailService
from sessionguard.app.services.clock import Clock, SystemClock
from sessionguard.app.services.reset_token_sink import IResetTokenSink
from sessionguard.app.services.session_manager import SessionManager
from sessionguard.app.services.settings import SecuritySettings
from sessionguard.app.services.unit_of_work import UnitOfWorkFactory
from sessionguard.domain import errors
from sessionguard.domain.audit_payloads import PasswordResetEventData
from sessionguard.domain.context import RequestContext
from sessionguard.domain.entities import (
    AuditEventCategory,
    AuditEventStatus,
    AuditEventType,
    SessionPurpose,
    UserStatus,
)
from sessionguard.libs.result import Result, Return

from .dtos import RequestPasswordResetCommand, RequestPasswordResetResponse

logger = logging.getLogger(__name__)


class RequestPasswordResetUseCase:
    """
    Use case for requesting password reset.

    Business Rules:
    - The reset token is a session with purpose=password_reset
    - Token expires after PASSWORD_RESET_TTL_SECONDS (1 hour by default)
    - At most PASSWORD_RESET_HOURLY_LIMIT tokens per user per hour
    - No email enumeration: the response never depends on the outcome
    - Audit event created for security tracking
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        session_manager: SessionManager,
        audit: AuditTrailService,
        token_sink: IResetTokenSink,
        settings: SecuritySettings,
        clock: Optional[Clock] = None,
    ):
        self.uow_factory = uow_factory
        self.session_manager = session_manager
        self.audit = audit
        self.token_sink = token_sink
        self.settings = settings
        self.clock = clock or SystemClock()

    def _response(self) -> Result[RequestPasswordResetResponse]:
        return Return.ok(
            RequestPasswordResetResponse(status="sent", message=errors.PASSWORD_RESET_MESSAGE)
        )

    async def execute(
        self, command: RequestPasswordResetCommand, context: RequestContext
    ) -> Result[RequestPasswordResetResponse]:
        email = command.email.strip().lower()
        now = self.clock.now()

        async with self.uow_factory() as uow:
            user = await uow.users.get_by_email(email)
            recent = 0
            if user is not None:
                recent = await uow.sessions.count_issued_since(
                    user.id, SessionPurpose.password_reset, now - timedelta(hours=1)
                )

        # Return success but don't issue a token
        if user is None or user.status != UserStatus.active:
            return self._response()

        if recent >= self.settings.password_reset_hourly_limit:
            logger.warning("Password reset limit reached for user %s", user.id)
            self.audit.emit(
                self.audit.build_event(
                    AuditEventType.password_reset,
                    "reset_requested",
                    status=AuditEventStatus.failure,
                    category=AuditEventCategory.security,
                    user_id=user.id,
                    context=context,
                    data=PasswordResetEventData(email=email, suppressed=True),
                    error=errors.rate_limited(3600),
                )
            )
            return self._response()

        issued = await self.session_manager.create(
            user.id, context, purpose=SessionPurpose.password_reset
        )
        if issued.is_err():
            # Same answer as success; the failure is already logged
            return self._response()

        try:
            await self.token_sink.deliver(user, issued.value.token, issued.value.session.expires_at)
        except Exception as e:
            logger.warning("Failed to deliver password reset token to user %s", user.id, exc_info=True)
            self.audit.emit(
                self.audit.build_event(
                    AuditEventType.password_reset,
                    "reset_requested",
                    status=AuditEventStatus.error,
                    category=AuditEventCategory.security,
                    user_id=user.id,
                    session_id=issued.value.session.id,
                    context=context,
                    data=PasswordResetEventData(email=email),
                    error=errors.system_error(f"Token delivery failed: {type(e).__name__}"),
                )
            )
            return self._response()

        self.audit.emit(
            self.audit.build_event(
                AuditEventType.password_reset,
                "reset_requested",
                user_id=user.id,
                session_id=issued.value.session.id,
                context=context,
                risk=issued.value.assessment,
                data=PasswordResetEventData(email=email),
            )
        )
        return self._response()
