"""
Sign-In Use Case

Verifies credentials through the credential collaborator and issues a
risk-scored session.
"""

from datetime import timedelta
from typing import Optional

from sessionguard.app.services.audit_trail import AuditTrailService
from sessionguard.app.services.clock import Clock, SystemClock
from sessionguard.app.services.credentials import ICredentialVerifier
from sessionguard.app.services.rate_limiter import RateLimiter
from sessionguard.app.services.session_manager import SessionManager, session_view
from sessionguard.app.services.settings import SecuritySettings
from sessionguard.app.services.unit_of_work import UnitOfWorkFactory
from sessionguard.domain import errors
from sessionguard.domain.audit_payloads import LoginEventData
from sessionguard.domain.context import RequestContext
from sessionguard.domain.entities import (
    AuditEventCategory,
    AuditEventStatus,
    AuditEventType,
    SecurityLevel,
)
from sessionguard.libs.result import Error, Result, Return

from .dtos import SignInCommand, SignInResponse

# Levels at which clients should ask for a second factor
_VERIFY_LEVELS = (SecurityLevel.high_risk, SecurityLevel.critical)


class SignInUseCase:
    """
    Use case for email/password sign-in.

    Business Rules:
    - Requests are rate limited per source IP
    - A locked account is rejected before the password is checked
    - Unknown email, wrong password and inactive account share one message
    - Failed attempts are counted with an atomic SQL increment
    - The account locks for LOCKOUT_SECONDS once MAX_LOGIN_ATTEMPTS is reached
    - The failure count seen before success feeds the risk score
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        credentials: ICredentialVerifier,
        session_manager: SessionManager,
        audit: AuditTrailService,
        rate_limiter: RateLimiter,
        settings: SecuritySettings,
        clock: Optional[Clock] = None,
    ):
        self.uow_factory = uow_factory
        self.credentials = credentials
        self.session_manager = session_manager
        self.audit = audit
        self.rate_limiter = rate_limiter
        self.settings = settings
        self.clock = clock or SystemClock()

    def _audit_failure(
        self,
        action: str,
        error: Error,
        context: RequestContext,
        email: str,
        user_id=None,
        failed_attempts: Optional[int] = None,
        locked: bool = False,
    ) -> None:
        self.audit.emit(
            self.audit.build_event(
                AuditEventType.login,
                action,
                status=AuditEventStatus.failure,
                category=AuditEventCategory.security if locked else AuditEventCategory.auth,
                user_id=user_id,
                context=context,
                data=LoginEventData(email=email, failed_attempts=failed_attempts, locked=locked),
                error=error,
            )
        )

    async def execute(self, command: SignInCommand, context: RequestContext) -> Result[SignInResponse]:
        """
        Execute sign-in use case.

        Args:
            command: Email and password
            context: Resolved request context (IP, device, location)

        Returns:
            Result with SignInResponse containing the session token, or Error

        Errors:
            - RATE_LIMITED: Too many attempts from this IP
            - ACCOUNT_LOCKED: Too many failed attempts for this account
            - INVALID_CREDENTIALS: Anything else that prevents sign-in
        """
        email = command.email.strip().lower()

        limit = await self.rate_limiter.hit(
            f"sign_in:ip:{context.ip_address or 'unknown'}",
            self.settings.sign_in_rate_limit,
            self.settings.sign_in_rate_window_seconds,
        )
        if limit.is_err():
            if limit.error.code == errors.RATE_LIMITED:
                self._audit_failure("rate_limited", limit.error, context, email)
            return limit

        now = self.clock.now()
        async with self.uow_factory() as uow:
            user = await uow.users.get_by_email(email)

        if user is not None and user.locked_until is not None and user.locked_until > now:
            error = errors.account_locked()
            self._audit_failure("account_locked", error, context, email, user_id=user.id, locked=True)
            return Return.err(error)

        if user is not None and user.locked_until is not None:
            async with self.uow_factory() as uow:
                await uow.users.release_expired_lock(user.id, now)
                await uow.commit()

        verified = await self.credentials.verify(email, command.password)
        if verified.is_err():
            error = verified.error
            if error.code == errors.SYSTEM_ERROR:
                return Return.err(error)

            failed_attempts = None
            locked = False
            if user is not None and error.code == errors.INVALID_CREDENTIALS:
                async with self.uow_factory() as uow:
                    failed_attempts = await uow.users.increment_login_attempts(user.id)
                    if failed_attempts >= self.settings.max_login_attempts:
                        await uow.users.lock_until(
                            user.id, now + timedelta(seconds=self.settings.lockout_seconds)
                        )
                        locked = True
                    await uow.commit()

            self._audit_failure(
                "credentials_failure",
                error,
                context,
                email,
                user_id=user.id if user else None,
                failed_attempts=failed_attempts,
                locked=locked,
            )
            return Return.err(errors.invalid_credentials())

        user = verified.value
        prior_failures = user.failed_login_attempts
        async with self.uow_factory() as uow:
            await uow.users.reset_login_attempts(user.id, now)
            await uow.commit()

        issued = await self.session_manager.create(
            user.id, context, consecutive_failures=prior_failures
        )
        if issued.is_err():
            return issued

        assessment = issued.value.assessment
        self.audit.emit(
            self.audit.build_event(
                AuditEventType.login,
                "credentials_success",
                user_id=user.id,
                session_id=issued.value.session.id,
                context=context,
                risk=assessment,
                data=LoginEventData(email=email, failed_attempts=prior_failures),
            )
        )

        return Return.ok(
            SignInResponse(
                token=issued.value.token,
                session=session_view(issued.value.session),
                security_level=assessment.level.value,
                risk_score=assessment.score,
                recommendations=assessment.recommendations,
                requires_additional_verification=assessment.level in _VERIFY_LEVELS,
            )
        )
