"""
Session Store & Lifecycle Manager

Owns the authoritative session records. Every state change is one atomic
statement in its own unit of work; audit events are emitted only after the
change is committed.
"""

import asyncio
import hashlib
import logging
import secrets
from dataclasses import dataclass
from typing import Dict, List, Optional
from uuid import UUID

from sessionguard.domain import errors
from sessionguard.domain.audit_payloads import MaintenanceEventData, SessionEventData
from sessionguard.domain.context import RequestContext, RiskAssessment, RiskContext, SessionView
from sessionguard.domain.entities import (
    AuditEventCategory,
    AuditEventStatus,
    AuditEventType,
    Session,
    SessionPurpose,
)
from sessionguard.libs.result import Result, Return

from .audit_trail import AuditTrailService
from .clock import Clock, SystemClock
from .risk_engine import RiskAssessmentEngine
from .settings import SecuritySettings
from .unit_of_work import UnitOfWorkFactory

logger = logging.getLogger(__name__)

CONSUMED_REASON = "consumed"


def generate_token() -> str:
    """256 bits from the OS CSPRNG, URL-safe"""
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def session_view(session: Session) -> SessionView:
    location = None
    if session.city and session.country:
        location = f"{session.city}, {session.country}"
    elif session.country or session.city:
        location = session.country or session.city
    return SessionView(
        id=str(session.id),
        user_id=str(session.user_id),
        organization_id=str(session.organization_id) if session.organization_id else None,
        purpose=session.purpose.value,
        issued_at=session.issued_at,
        expires_at=session.expires_at,
        last_accessed_at=session.last_accessed_at,
        device_type=session.device_type.value,
        device_name=session.device_name,
        ip_address=session.ip_address,
        location=location,
        risk_score=session.risk_score,
        security_level=session.security_level.value,
        risk_factors=list(session.risk_factors or []),
        metadata=dict(session.session_metadata or {}),
    )


@dataclass
class IssuedSession:
    """The only object that ever carries the raw token"""

    token: str
    session: Session
    assessment: RiskAssessment


class SessionManager:
    """
    Session lifecycle: create, validate, touch, revoke, expire.

    Business Rules:
    - Every create computes a fresh risk assessment
    - TTL shrinks as the security level rises
    - validate never raises on the normal path; touch failures are swallowed
    - revoke is idempotent and only the caller that flips the flag audits it
    - revoke_all counts live -> revoked transitions, not matched rows
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        risk_engine: RiskAssessmentEngine,
        audit: AuditTrailService,
        settings: Optional[SecuritySettings] = None,
        clock: Optional[Clock] = None,
    ):
        self.uow_factory = uow_factory
        self.risk_engine = risk_engine
        self.audit = audit
        self.settings = settings or risk_engine.settings
        self.clock = clock or SystemClock()

    async def create(
        self,
        user_id: UUID,
        context: RequestContext,
        organization_id: Optional[UUID] = None,
        purpose: SessionPurpose = SessionPurpose.login,
        consecutive_failures: int = 0,
        metadata: Optional[Dict[str, object]] = None,
    ) -> Result[IssuedSession]:
        now = self.clock.now()
        token = generate_token()
        fingerprint = context.device.fingerprint
        geolocation = context.geolocation
        country = geolocation.country.upper() if geolocation and geolocation.country else None

        try:
            async with self.uow_factory() as uow:
                is_new_device = fingerprint is None or not await uow.sessions.has_fingerprint(
                    user_id, fingerprint
                )
                known_countries = {c.upper() for c in await uow.sessions.known_countries(user_id)}
                is_new_location = bool(country and known_countries and country not in known_countries)
                active_sessions = await uow.sessions.count_live_by_user(user_id, now)

                assessment = self.risk_engine.score_or_default(
                    RiskContext(
                        user_id=user_id,
                        ip_address=context.ip_address,
                        device=context.device,
                        geolocation=geolocation,
                        is_new_device=is_new_device,
                        is_new_location=is_new_location,
                        occurred_at=now,
                        consecutive_failures=consecutive_failures,
                        active_session_count=active_sessions,
                    ),
                    now,
                )

                ttl = self.settings.ttl_for(assessment.level)
                if purpose == SessionPurpose.password_reset:
                    ttl = min(ttl, self.settings.password_reset_ttl)

                session = Session(
                    token_hash=hash_token(token),
                    user_id=user_id,
                    organization_id=organization_id,
                    purpose=purpose,
                    issued_at=now,
                    expires_at=now + ttl,
                    last_accessed_at=now,
                    device_fingerprint=fingerprint,
                    device_type=context.device.type,
                    device_name=context.device.name,
                    ip_address=context.ip_address,
                    country=country,
                    city=geolocation.city if geolocation else None,
                    timezone=geolocation.timezone if geolocation else None,
                    risk_score=assessment.score,
                    security_level=assessment.level,
                    risk_factors=list(assessment.factors),
                    session_metadata=metadata,
                )
                await uow.sessions.create(session)
                await uow.commit()
        except Exception:
            logger.exception("Failed to create session for user %s", user_id)
            return Return.err(errors.system_error("Failed to create session"))

        logger.info(
            "Session %s created for user %s (level=%s, score=%d)",
            session.id,
            user_id,
            assessment.level.value,
            assessment.score,
        )
        self.audit.emit(
            self.audit.build_event(
                AuditEventType.session,
                "create_session",
                category=(
                    AuditEventCategory.security
                    if assessment.score >= self.settings.risk_thresholds.high_risk
                    else AuditEventCategory.auth
                ),
                user_id=user_id,
                session_id=session.id,
                organization_id=organization_id,
                context=context,
                risk=assessment,
                data=SessionEventData(
                    purpose=purpose.value,
                    security_level=assessment.level.value,
                    expires_at=session.expires_at,
                    is_new_device=is_new_device,
                ),
            )
        )
        return Return.ok(IssuedSession(token=token, session=session, assessment=assessment))

    async def validate(
        self,
        token: Optional[str],
        purpose: SessionPurpose = SessionPurpose.login,
        timeout: Optional[float] = None,
        context: Optional[RequestContext] = None,
    ) -> Result[Session]:
        """
        Resolve a token to its live session.

        INVALID_OR_EXPIRED_TOKEN for unknown, revoked, expired or
        wrong-purpose tokens; SYSTEM_ERROR on store failure or timeout.
        """
        timeout = self.settings.validation_timeout_seconds if timeout is None else timeout
        try:
            return await asyncio.wait_for(self._validate(token, purpose, context), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Session validation timed out after %.3fs", timeout)
            return Return.err(errors.system_error("Session validation timed out"))
        except Exception:
            logger.exception("Session validation failed")
            return Return.err(errors.system_error("Session validation failed"))

    async def _validate(
        self, token: Optional[str], purpose: SessionPurpose, context: Optional[RequestContext]
    ) -> Result[Session]:
        if not token:
            return Return.err(errors.invalid_or_expired_token())

        now = self.clock.now()
        token_hash = hash_token(token)
        async with self.uow_factory() as uow:
            session = await uow.sessions.get_by_token_hash(token_hash)
            if session is None or session.purpose != purpose or not session.is_live(now):
                return Return.err(errors.invalid_or_expired_token())

            try:
                if await uow.sessions.touch(token_hash, now):
                    await uow.commit()
                    session.last_accessed_at = now
            except Exception:
                logger.warning("Failed to touch session %s", session.id, exc_info=True)

        if context is not None and context.ip_address and session.ip_address:
            if context.ip_address != session.ip_address:
                self.audit.emit(
                    self.audit.build_event(
                        AuditEventType.session,
                        "ip_address_changed",
                        category=AuditEventCategory.security,
                        user_id=session.user_id,
                        session_id=session.id,
                        organization_id=session.organization_id,
                        context=context,
                    )
                )
        return Return.ok(session)

    async def touch(self, token: str) -> Result[bool]:
        try:
            async with self.uow_factory() as uow:
                touched = await uow.sessions.touch(hash_token(token), self.clock.now())
                await uow.commit()
            return Return.ok(touched)
        except Exception:
            logger.warning("Failed to touch session", exc_info=True)
            return Return.err(errors.system_error("Failed to touch session"))

    async def revoke(
        self,
        token: str,
        revoked_by: str = "user",
        reason: str = "user_logout",
        context: Optional[RequestContext] = None,
    ) -> Result[bool]:
        """
        Revoke one session. Unknown or already revoked tokens succeed with
        False; only the call that performed the transition writes an audit event.
        """
        now = self.clock.now()
        token_hash = hash_token(token)
        try:
            async with self.uow_factory() as uow:
                session = await uow.sessions.get_by_token_hash(token_hash)
                if session is None:
                    return Return.ok(False)
                revoked = await uow.sessions.revoke_by_token_hash(token_hash, now, revoked_by, reason)
                await uow.commit()
        except Exception:
            logger.exception("Failed to revoke session")
            return Return.err(errors.system_error("Failed to revoke session"))

        if revoked:
            self.audit.emit(
                self.audit.build_event(
                    AuditEventType.session,
                    "revoke_session",
                    user_id=session.user_id,
                    session_id=session.id,
                    organization_id=session.organization_id,
                    context=context,
                    data=SessionEventData(revoked_by=revoked_by, reason=reason),
                )
            )
        return Return.ok(revoked)

    async def revoke_all_for_user(
        self,
        user_id: UUID,
        except_token: Optional[str] = None,
        revoked_by: str = "system",
        reason: str = "revoke_all",
        purpose: Optional[SessionPurpose] = None,
        context: Optional[RequestContext] = None,
    ) -> Result[int]:
        now = self.clock.now()
        except_hash = hash_token(except_token) if except_token else None
        try:
            async with self.uow_factory() as uow:
                count = await uow.sessions.revoke_live_by_user(
                    user_id,
                    now,
                    revoked_by,
                    reason,
                    except_token_hash=except_hash,
                    purpose=purpose,
                )
                await uow.commit()
        except Exception:
            logger.exception("Failed to revoke sessions for user %s", user_id)
            return Return.err(errors.system_error("Failed to revoke sessions"))

        logger.info("Revoked %d sessions for user %s (%s)", count, user_id, reason)
        self.audit.emit(
            self.audit.build_event(
                AuditEventType.session,
                "revoke_all_sessions",
                category=AuditEventCategory.security,
                user_id=user_id,
                context=context,
                data=SessionEventData(revoked_by=revoked_by, reason=reason, revoked_count=count),
            )
        )
        return Return.ok(count)

    async def revoke_by_device(
        self,
        user_id: UUID,
        fingerprint: str,
        revoked_by: str = "user",
        reason: str = "device_revoked",
        context: Optional[RequestContext] = None,
    ) -> Result[int]:
        now = self.clock.now()
        try:
            async with self.uow_factory() as uow:
                count = await uow.sessions.revoke_live_by_device(
                    user_id, fingerprint, now, revoked_by, reason
                )
                await uow.commit()
        except Exception:
            logger.exception("Failed to revoke device sessions for user %s", user_id)
            return Return.err(errors.system_error("Failed to revoke sessions"))

        if count:
            self.audit.emit(
                self.audit.build_event(
                    AuditEventType.session,
                    "revoke_device_sessions",
                    category=AuditEventCategory.security,
                    user_id=user_id,
                    context=context,
                    data=SessionEventData(revoked_by=revoked_by, reason=reason, revoked_count=count),
                )
            )
        return Return.ok(count)

    async def consume(
        self, token: str, purpose: SessionPurpose = SessionPurpose.password_reset
    ) -> Result[Session]:
        """
        Spend a single-use token.

        The revoke is the compare-and-set: of two concurrent consumers only
        one gets the session, the other sees TOKEN_ALREADY_USED.
        """
        now = self.clock.now()
        token_hash = hash_token(token)
        try:
            async with self.uow_factory() as uow:
                session = await uow.sessions.get_by_token_hash(token_hash)
                if session is None or session.purpose != purpose:
                    return Return.err(errors.invalid_or_expired_token())
                if session.revoked:
                    if session.revoked_reason == CONSUMED_REASON:
                        return Return.err(errors.token_already_used())
                    return Return.err(errors.invalid_or_expired_token())
                if now >= session.expires_at:
                    return Return.err(errors.invalid_or_expired_token())

                consumed = await uow.sessions.revoke_by_token_hash(
                    token_hash, now, "system", CONSUMED_REASON
                )
                await uow.commit()
        except Exception:
            logger.exception("Failed to consume token")
            return Return.err(errors.system_error("Failed to consume token"))

        if not consumed:
            return Return.err(errors.token_already_used())
        return Return.ok(session)

    async def list_active(self, user_id: UUID) -> Result[List[Session]]:
        try:
            async with self.uow_factory() as uow:
                sessions = await uow.sessions.list_live_by_user(user_id, self.clock.now())
        except Exception:
            logger.exception("Failed to list sessions for user %s", user_id)
            return Return.err(errors.system_error("Failed to list sessions"))
        return Return.ok(sessions)

    async def cleanup_expired(self) -> Result[int]:
        """Flag expired sessions. Running it again right away flags nothing."""
        now = self.clock.now()
        try:
            async with self.uow_factory() as uow:
                count = await uow.sessions.flag_expired(now)
                await uow.commit()
        except Exception:
            logger.exception("Expired session cleanup failed")
            return Return.err(errors.system_error("Failed to clean up sessions"))

        if count:
            logger.info("Flagged %d expired sessions", count)
            self.audit.emit(
                self.audit.build_event(
                    AuditEventType.session,
                    "cleanup_expired",
                    category=AuditEventCategory.admin,
                    status=AuditEventStatus.success,
                    data=MaintenanceEventData(expired_count=count),
                )
            )
        return Return.ok(count)
