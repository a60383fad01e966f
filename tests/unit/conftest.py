from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from sessionguard.app.services.clock import FrozenClock
from sessionguard.app.services.risk_engine import RiskAssessmentEngine
from sessionguard.app.services.settings import SecuritySettings

REPOSITORY_METHODS = {
    "users": (
        "get_by_email",
        "get_by_id",
        "increment_login_attempts",
        "reset_login_attempts",
        "lock_until",
        "release_expired_lock",
        "update_password_hash",
    ),
    "tenants": ("get_by_id",),
    "memberships": ("get",),
    "sessions": (
        "create",
        "get_by_token_hash",
        "list_live_by_user",
        "count_live_by_user",
        "has_fingerprint",
        "known_countries",
        "count_issued_since",
        "touch",
        "revoke_by_token_hash",
        "revoke_live_by_user",
        "revoke_live_by_device",
        "flag_expired",
    ),
    "audit_events": ("create", "create_many", "query", "mark_processed"),
    "rate_limits": ("hit",),
}


@pytest.fixture
def mock_uow():
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)  # Must return False to not suppress exceptions
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()

    for repository, methods in REPOSITORY_METHODS.items():
        repo = MagicMock()
        for method in methods:
            setattr(repo, method, AsyncMock())
        setattr(uow, repository, repo)

    # Neutral defaults for session creation
    uow.sessions.create.side_effect = lambda session: session
    uow.sessions.has_fingerprint.return_value = True
    uow.sessions.known_countries.return_value = []
    uow.sessions.count_live_by_user.return_value = 0
    return uow


@pytest.fixture
def uow_factory(mock_uow):
    return lambda: mock_uow


@pytest.fixture
def mock_audit():
    """Audit trail double: build_event echoes its arguments, emit records them"""
    audit = MagicMock()
    audit.build_event = MagicMock(side_effect=lambda event_type, action, **kwargs: (event_type, action, kwargs))
    audit.emit = MagicMock()
    return audit


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 6, 12, 14, 0, 0))


@pytest.fixture
def settings():
    return SecuritySettings()


@pytest.fixture
def risk_engine(settings):
    return RiskAssessmentEngine(settings)


@pytest.fixture
def emitted_actions(mock_audit):
    """Actions passed to audit.emit so far, in order"""

    def actions():
        return [call.args[0][1] for call in mock_audit.emit.call_args_list]

    return actions
