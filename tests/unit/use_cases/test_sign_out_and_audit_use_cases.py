from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from sessionguard.app.repositories.audit_event_repository import AuditPage, AuditQueryFilters
from sessionguard.app.use_cases.audit import GetAuditEventsUseCase, serialize_event
from sessionguard.app.use_cases.auth import SignOutUseCase
from sessionguard.domain import errors
from sessionguard.domain.context import RequestContext
from sessionguard.domain.entities import AuditEvent, AuditEventType, MembershipRole, Session
from sessionguard.libs.result import Return


@pytest.fixture
def live_session(clock):
    now = clock.now()
    return Session(
        token_hash="b" * 64,
        user_id=uuid4(),
        issued_at=now,
        expires_at=now + timedelta(days=30),
        last_accessed_at=now,
    )


@pytest.mark.asyncio
async def test_sign_out_logs_once(live_session, mock_audit, emitted_actions):
    manager = MagicMock()
    manager.validate = AsyncMock(return_value=Return.ok(live_session))
    manager.revoke = AsyncMock(return_value=Return.ok(True))
    use_case = SignOutUseCase(manager, mock_audit)

    result = await use_case.execute("token", RequestContext())

    assert result.value.status == "signed_out"
    assert emitted_actions() == ["user_logout"]

    manager.validate.return_value = Return.err(errors.invalid_or_expired_token())
    manager.revoke.return_value = Return.ok(False)
    again = await use_case.execute("token", RequestContext())

    assert again.is_ok()
    assert emitted_actions() == ["user_logout"]


@pytest.mark.asyncio
async def test_sign_out_store_failure(mock_audit):
    manager = MagicMock()
    manager.validate = AsyncMock(return_value=Return.err(errors.system_error()))
    manager.revoke = AsyncMock(return_value=Return.err(errors.system_error("Failed to revoke session")))

    result = await SignOutUseCase(manager, mock_audit).execute("token", RequestContext())

    assert result.error.code == "SYSTEM_ERROR"


@pytest.fixture
def audit_service(clock):
    event = AuditEvent(
        event_type=AuditEventType.login,
        action="credentials_success",
        event_data={"kind": "login", "email": "user@acme.com"},
        created_at=clock.now(),
    )
    audit = MagicMock()
    audit.query = AsyncMock(return_value=Return.ok(AuditPage(events=[event], total_count=1)))
    return audit


@pytest.mark.asyncio
async def test_audit_events_scoped_to_organization(audit_service):
    guard = MagicMock()
    guard.require_minimum_role = AsyncMock(return_value=Return.ok())
    user_id, org_id = uuid4(), uuid4()
    filters = AuditQueryFilters(organization_id=uuid4(), limit=10)

    result = await GetAuditEventsUseCase(guard, audit_service).execute(user_id, org_id, filters)

    assert result.value["total_count"] == 1
    assert result.value["events"][0]["action"] == "credentials_success"
    guard.require_minimum_role.assert_awaited_once_with(user_id, org_id, MembershipRole.admin)
    assert audit_service.query.call_args.args[0].organization_id == org_id


@pytest.mark.asyncio
async def test_audit_events_denied_for_members(audit_service):
    guard = MagicMock()
    guard.require_minimum_role = AsyncMock(
        return_value=Return.err(errors.forbidden("Requires role admin or higher"))
    )

    result = await GetAuditEventsUseCase(guard, audit_service).execute(
        uuid4(), uuid4(), AuditQueryFilters()
    )

    assert result.error.code == "FORBIDDEN"
    audit_service.query.assert_not_called()


def test_serialize_event(clock):
    event = AuditEvent(
        event_type=AuditEventType.session,
        action="revoke_session",
        user_id=uuid4(),
        created_at=clock.now(),
    )

    data = serialize_event(event)

    assert data["timestamp"] == "2024-06-12T14:00:00Z"
    assert data["user_id"] == str(event.user_id)
    assert data["session_id"] is None
    assert data["event_data"] is None
