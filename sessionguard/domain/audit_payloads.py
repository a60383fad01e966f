"""
Audit Event Payloads

Typed event_data variants keyed by `kind`. Anything that does not fit a
known variant goes into OpaqueEventData.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


class SessionEventData(BaseModel):
    kind: Literal["session"] = "session"
    purpose: Optional[str] = None
    security_level: Optional[str] = None
    expires_at: Optional[datetime] = None
    is_new_device: Optional[bool] = None
    revoked_by: Optional[str] = None
    reason: Optional[str] = None
    revoked_count: Optional[int] = None
    except_session_id: Optional[str] = None


class LoginEventData(BaseModel):
    kind: Literal["login"] = "login"
    email: Optional[str] = None
    failed_attempts: Optional[int] = None
    locked: bool = False


class LogoutEventData(BaseModel):
    kind: Literal["logout"] = "logout"
    reason: Optional[str] = None


class PasswordResetEventData(BaseModel):
    kind: Literal["password_reset"] = "password_reset"
    email: Optional[str] = None
    sessions_revoked: Optional[int] = None
    suppressed: bool = False


class AuthorizationEventData(BaseModel):
    kind: Literal["authorization"] = "authorization"
    permission: Optional[str] = None
    required_role: Optional[str] = None
    actual_role: Optional[str] = None


class MaintenanceEventData(BaseModel):
    kind: Literal["maintenance"] = "maintenance"
    expired_count: int = 0


class OpaqueEventData(BaseModel):
    kind: Literal["opaque"] = "opaque"
    data: Dict[str, Any] = Field(default_factory=dict)


AuditEventData = Annotated[
    Union[
        SessionEventData,
        LoginEventData,
        LogoutEventData,
        PasswordResetEventData,
        AuthorizationEventData,
        MaintenanceEventData,
        OpaqueEventData,
    ],
    Field(discriminator="kind"),
]

_adapter = TypeAdapter(AuditEventData)


def dump_event_data(payload: Optional[BaseModel]) -> Optional[dict]:
    if payload is None:
        return None
    return payload.model_dump(mode="json", exclude_none=True)


def load_event_data(raw: Optional[dict]):
    """Rebuild a typed payload; unknown shapes come back as OpaqueEventData."""
    if not raw:
        return None
    if raw.get("kind") is None:
        return OpaqueEventData(data=raw)
    try:
        return _adapter.validate_python(raw)
    except ValueError:
        return OpaqueEventData(data=raw)
