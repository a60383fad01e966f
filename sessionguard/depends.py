from functools import lru_cache
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from sessionguard.adapter.services.bcrypt_credential_verifier import BcryptCredentialVerifier
from sessionguard.adapter.services.logging_token_sink import LoggingResetTokenSink
from sessionguard.adapter.services.unit_of_work import unit_of_work_factory
from sessionguard.api.error import ClientError, raise_for_error
from sessionguard.app.services.audit_trail import AuditTrailService
from sessionguard.app.services.authorization_guard import AuthorizationGuard
from sessionguard.app.services.clock import Clock, SystemClock
from sessionguard.app.services.credentials import ICredentialVerifier
from sessionguard.app.services.device_context import (
    DeviceContextResolver,
    StaticGeolocationLookup,
)
from sessionguard.app.services.rate_limiter import RateLimiter
from sessionguard.app.services.reset_token_sink import IResetTokenSink
from sessionguard.app.services.risk_engine import RiskAssessmentEngine
from sessionguard.app.services.session_manager import SessionManager
from sessionguard.app.services.settings import SecuritySettings
from sessionguard.app.services.unit_of_work import UnitOfWorkFactory
from sessionguard.domain import errors
from sessionguard.domain.context import RequestContext
from sessionguard.domain.entities import Session

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

security = HTTPBearer(auto_error=False)


@lru_cache(maxsize=1)
def _security_settings() -> SecuritySettings:
    return SecuritySettings.from_config(ApplicationConfig)


def get_settings() -> SecuritySettings:
    return _security_settings()


def get_clock() -> Clock:
    return SystemClock()


def get_uow_factory() -> UnitOfWorkFactory:
    return unit_of_work_factory(AsyncSessionLocal)


def get_audit_trail(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    clock: Clock = Depends(get_clock),
    settings: SecuritySettings = Depends(get_settings),
) -> AuditTrailService:
    return AuditTrailService(uow_factory, clock, write_timeout=settings.audit_write_timeout_seconds)


def get_risk_engine(settings: SecuritySettings = Depends(get_settings)) -> RiskAssessmentEngine:
    return RiskAssessmentEngine(settings)


def get_context_resolver(
    settings: SecuritySettings = Depends(get_settings),
) -> DeviceContextResolver:
    return DeviceContextResolver(
        StaticGeolocationLookup(settings.geoip_static_table),
        fingerprint_rotation=settings.fingerprint_rotation,
    )


def get_request_context(
    request: Request,
    resolver: DeviceContextResolver = Depends(get_context_resolver),
    clock: Clock = Depends(get_clock),
) -> RequestContext:
    peer_ip = request.client.host if request.client else None
    return resolver.resolve(request.headers, clock.now(), peer_ip=peer_ip)


def get_session_manager(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    risk_engine: RiskAssessmentEngine = Depends(get_risk_engine),
    audit: AuditTrailService = Depends(get_audit_trail),
    settings: SecuritySettings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> SessionManager:
    return SessionManager(uow_factory, risk_engine, audit, settings=settings, clock=clock)


def get_credential_verifier(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> ICredentialVerifier:
    return BcryptCredentialVerifier(uow_factory)


def get_token_sink() -> IResetTokenSink:
    return LoggingResetTokenSink()


def get_rate_limiter(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    clock: Clock = Depends(get_clock),
) -> RateLimiter:
    return RateLimiter(uow_factory, clock)


async def get_tenant_id(x_tenant_id: str = Header(None)) -> UUID:
    """Caller's tenant from the X-Tenant-ID header"""
    try:
        return UUID(x_tenant_id)
    except (TypeError, ValueError):
        raise ClientError(
            errors.forbidden("A valid X-Tenant-ID header is required"),
            status_code=status.HTTP_403_FORBIDDEN,
        )


def get_authorization_guard(
    tenant_id: UUID = Depends(get_tenant_id),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    audit: AuditTrailService = Depends(get_audit_trail),
    settings: SecuritySettings = Depends(get_settings),
) -> AuthorizationGuard:
    return AuthorizationGuard(
        uow_factory, tenant_id, audit=audit, timeout=settings.validation_timeout_seconds
    )


async def get_bearer_token(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> str:
    """Opaque session token from the Authorization header"""
    if credentials is None or not credentials.credentials:
        raise ClientError(
            errors.invalid_or_expired_token(),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )
    return credentials.credentials


async def get_current_session(
    token: str = Depends(get_bearer_token),
    session_manager: SessionManager = Depends(get_session_manager),
    context: RequestContext = Depends(get_request_context),
) -> Session:
    """
    Dependency to validate the bearer token and load its live session.

    Raises:
        ClientError: 401 if the token is invalid, revoked or expired
        ServerError: if validation failed or timed out
    """
    result = await session_manager.validate(token, context=context)
    if result.is_err():
        raise_for_error(result.error)
    return result.value


def get_optional_authorization_guard(
    x_tenant_id: str = Header(None),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    audit: AuditTrailService = Depends(get_audit_trail),
    settings: SecuritySettings = Depends(get_settings),
) -> Optional[AuthorizationGuard]:
    """Guard for routes where a tenant is only needed when acting for others"""
    try:
        tenant_id = UUID(x_tenant_id)
    except (TypeError, ValueError):
        return None
    return AuthorizationGuard(
        uow_factory, tenant_id, audit=audit, timeout=settings.validation_timeout_seconds
    )
