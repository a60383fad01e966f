import asyncio
from uuid import uuid4

import pytest

from sessionguard.app.repositories.audit_event_repository import AuditQueryFilters
from sessionguard.app.services.audit_trail import AuditTrailService
from sessionguard.domain.audit_payloads import (
    LoginEventData,
    OpaqueEventData,
    SessionEventData,
    load_event_data,
)
from sessionguard.domain.context import DeviceInfo, RequestContext, RiskAssessment
from sessionguard.domain.entities import (
    AuditEventStatus,
    AuditEventType,
    SecurityLevel,
)
from sessionguard.domain.errors import invalid_credentials


@pytest.fixture
def audit(uow_factory, clock):
    return AuditTrailService(uow_factory, clock, write_timeout=0.05)


def test_build_event_copies_context_and_risk(audit, clock):
    context = RequestContext(
        ip_address="8.8.8.8",
        user_agent="x" * 600,
        device=DeviceInfo(name="Chrome on Windows", fingerprint="abc"),
        source="api",
    )
    risk = RiskAssessment(
        score=40, level=SecurityLevel.elevated, factors=["high_risk_country"], computed_at=clock.now()
    )

    event = audit.build_event(
        AuditEventType.login,
        "credentials_failure",
        status=AuditEventStatus.failure,
        context=context,
        risk=risk,
        data=LoginEventData(email="user@acme.com", failed_attempts=2),
        error=invalid_credentials(),
    )

    assert event.created_at == clock.now()
    assert event.ip_address == "8.8.8.8"
    assert len(event.user_agent) == 512
    assert event.device_info["fingerprint"] == "abc"
    assert event.source == "api"
    assert event.risk_score == 40
    assert event.risk_factors == ["high_risk_country"]
    assert event.error_code == "INVALID_CREDENTIALS"
    assert event.event_data == {
        "kind": "login",
        "email": "user@acme.com",
        "failed_attempts": 2,
        "locked": False,
    }


def test_event_payloads_load_back_typed():
    payload = load_event_data({"kind": "session", "reason": "user_logout"})
    assert isinstance(payload, SessionEventData)
    assert payload.reason == "user_logout"

    opaque = load_event_data({"legacy": True})
    assert isinstance(opaque, OpaqueEventData)
    assert opaque.data == {"legacy": True}

    assert load_event_data(None) is None


@pytest.mark.asyncio
async def test_log_writes_and_commits(audit, mock_uow):
    event = audit.build_event(AuditEventType.logout, "user_logout")

    assert await audit.log(event) is True
    mock_uow.audit_events.create.assert_awaited_once_with(event)
    mock_uow.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_log_swallows_store_failures(audit, mock_uow):
    mock_uow.audit_events.create.side_effect = RuntimeError("audit table missing")

    assert await audit.log(audit.build_event(AuditEventType.logout, "user_logout")) is False


@pytest.mark.asyncio
async def test_log_gives_up_after_timeout(audit, mock_uow):
    async def hang(event):
        await asyncio.sleep(1)

    mock_uow.audit_events.create.side_effect = hang

    assert await audit.log(audit.build_event(AuditEventType.logout, "user_logout")) is False


@pytest.mark.asyncio
async def test_emit_runs_in_background_until_drained(audit, mock_uow):
    audit.emit(audit.build_event(AuditEventType.session, "create_session"))
    audit.emit(audit.build_event(AuditEventType.session, "revoke_session"))

    await audit.drain()

    assert mock_uow.audit_events.create.await_count == 2


@pytest.mark.asyncio
async def test_batch_is_all_or_nothing(audit, mock_uow):
    events = [audit.build_event(AuditEventType.session, "create_session") for _ in range(3)]
    mock_uow.audit_events.create_many.return_value = 3

    assert (await audit.log_batch(events)).value == 3

    mock_uow.audit_events.create_many.side_effect = RuntimeError("constraint")
    failed = await audit.log_batch(events)
    assert failed.is_err()
    assert failed.error.code == "SYSTEM_ERROR"

    assert (await audit.log_batch([])).value == 0


@pytest.mark.asyncio
async def test_query_clamps_page_size(audit, mock_uow):
    mock_uow.audit_events.query.return_value = ([], 0, None)

    filters = AuditQueryFilters(limit=1000)
    page = await audit.query(filters)

    assert filters.limit == 100
    assert page.value.has_more is False
    assert page.value.next_cursor is None


@pytest.mark.asyncio
async def test_security_events_filter(audit, mock_uow):
    mock_uow.audit_events.query.return_value = ([], 0, None)

    await audit.get_security_events(min_risk_score=70, unprocessed_only=True)

    filters = mock_uow.audit_events.query.call_args.args[0]
    assert filters.min_risk_score == 70
    assert filters.processed is False


@pytest.mark.asyncio
async def test_user_trail_scopes_by_user(audit, mock_uow):
    user_id = uuid4()
    mock_uow.audit_events.query.return_value = ([], 0, None)

    result = await audit.get_user_trail(user_id, event_types=[AuditEventType.login])

    assert result.value == []
    filters = mock_uow.audit_events.query.call_args.args[0]
    assert filters.user_id == user_id
    assert filters.category is None
    assert filters.event_types == [AuditEventType.login]
