from datetime import datetime
from typing import List, Tuple

import bcrypt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from sessionguard.adapter.services.bcrypt_credential_verifier import BcryptCredentialVerifier
from sessionguard.adapter.services.unit_of_work import unit_of_work_factory
from sessionguard.app.services.audit_trail import AuditTrailService
from sessionguard.app.services.clock import FrozenClock
from sessionguard.app.services.reset_token_sink import IResetTokenSink
from sessionguard.app.services.risk_engine import RiskAssessmentEngine
from sessionguard.app.services.session_manager import SessionManager
from sessionguard.app.services.settings import SecuritySettings
from sessionguard.depends import (
    get_audit_trail,
    get_clock,
    get_credential_verifier,
    get_settings,
    get_token_sink,
    get_uow_factory,
)
from sessionguard.domain.entities import (
    Membership,
    MembershipRole,
    Organization,
    Tenant,
    User,
)

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
TEST_PASSWORD = "SecurePass123!"


class CapturingTokenSink(IResetTokenSink):
    """Keeps delivered reset tokens so tests can follow the reset link"""

    def __init__(self):
        self.delivered: List[Tuple[str, str, datetime]] = []

    async def deliver(self, user, token, expires_at):
        self.delivered.append((user.email, token, expires_at))


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def uow_factory(session_factory):
    return unit_of_work_factory(session_factory)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 6, 12, 14, 0, 0))


@pytest.fixture
def settings():
    return SecuritySettings(
        validation_timeout_seconds=5.0,
        geoip_static_table={
            "8.8.8.8": {"country": "US", "city": "Mountain View"},
            "77.88.8.8": {"country": "RU", "city": "Moscow"},
        },
    )


@pytest_asyncio.fixture
async def audit(uow_factory, clock):
    audit = AuditTrailService(uow_factory, clock)
    yield audit
    # Background writes must land before the database goes away
    await audit.drain()


@pytest.fixture
def session_manager(uow_factory, settings, audit, clock):
    return SessionManager(
        uow_factory, RiskAssessmentEngine(settings), audit, settings=settings, clock=clock
    )


@pytest.fixture
def credentials(uow_factory):
    return BcryptCredentialVerifier(uow_factory, rounds=4)


@pytest.fixture
def token_sink():
    return CapturingTokenSink()


@pytest.fixture
def make_user(db_session):
    async def _make_user(email="user@acme.com", password=TEST_PASSWORD, **fields) -> User:
        password_hash = bcrypt.hashpw(password.encode(), bcrypt.gensalt(4)).decode()
        user = User(email=email, password_hash=password_hash, **fields)
        db_session.add(user)
        await db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_membership(db_session):
    """Creates tenant and organization on first use, then memberships inside them"""
    created = {}

    async def _make_membership(user: User, role: MembershipRole, **fields) -> Membership:
        if not created:
            tenant = Tenant(name="Acme Corp")
            organization = Organization(tenant_id=tenant.id, name="Acme", slug="acme")
            db_session.add(tenant)
            db_session.add(organization)
            created.update(tenant=tenant, organization=organization)
        membership = Membership(
            tenant_id=created["tenant"].id,
            user_id=user.id,
            organization_id=created["organization"].id,
            role=role,
            **fields,
        )
        db_session.add(membership)
        await db_session.commit()
        return membership

    return _make_membership


@pytest_asyncio.fixture
async def client(uow_factory, clock, settings, audit, credentials, token_sink):
    from config import ApplicationConfig
    from sessionguard.api.app import create_app

    app = create_app(ApplicationConfig)

    app.dependency_overrides[get_uow_factory] = lambda: uow_factory
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_audit_trail] = lambda: audit
    app.dependency_overrides[get_credential_verifier] = lambda: credentials
    app.dependency_overrides[get_token_sink] = lambda: token_sink

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"User-Agent": CHROME_WINDOWS, "X-Forwarded-For": "8.8.8.8"},
    ) as ac:
        yield ac


@pytest.fixture
def admin_headers():
    from config import ApplicationConfig

    return {"X-Admin-API-Key": ApplicationConfig.ADMIN_API_KEY}
