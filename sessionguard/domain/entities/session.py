"""
Session Entity

One authenticated principal-device binding, identified by an opaque token.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlmodel import JSON, Column, DateTime, Field, Index, SQLModel

from .enums import DeviceType, SecurityLevel, SessionPurpose


class Session(SQLModel, table=True):
    """
    Session entity - stores session state keyed by the token digest.

    Business Rules:
    - Only the SHA-256 digest of the opaque token is persisted
    - expires_at > issued_at, TTL chosen from the security level
    - Live iff not revoked and now < expires_at
    - Revocation is one-way (conditional UPDATE ... WHERE revoked = false)
    - security_level is always derived from risk_score by the risk engine
    - Rows are never deleted by the core; expiry is flagged by the cleanup sweep
    """

    __tablename__ = "sessions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    token_hash: str = Field(max_length=64, unique=True, index=True)  # SHA-256 hex

    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    organization_id: Optional[UUID] = Field(default=None, index=True)

    purpose: SessionPurpose = Field(default=SessionPurpose.login)

    # Lifecycle
    issued_at: datetime = Field(sa_column=Column(DateTime, nullable=False))
    expires_at: datetime = Field(sa_column=Column(DateTime, nullable=False))
    last_accessed_at: datetime = Field(sa_column=Column(DateTime, nullable=False))
    expired_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    revoked: bool = Field(default=False)
    revoked_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    revoked_by: Optional[str] = Field(default=None, max_length=100)
    revoked_reason: Optional[str] = Field(default=None, max_length=255)

    # Request context
    device_fingerprint: Optional[str] = Field(default=None, max_length=64, index=True)
    device_type: DeviceType = Field(default=DeviceType.unknown)
    device_name: Optional[str] = Field(default=None, max_length=100)
    ip_address: Optional[str] = Field(default=None, max_length=45)
    country: Optional[str] = Field(default=None, max_length=2)
    city: Optional[str] = Field(default=None, max_length=100)
    timezone: Optional[str] = Field(default=None, max_length=64)

    # Risk
    risk_score: int = Field(default=0, ge=0, le=100)
    security_level: SecurityLevel = Field(default=SecurityLevel.normal)
    risk_factors: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    session_metadata: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    __table_args__ = (
        Index("idx_session_expires_at", "expires_at"),
        Index("idx_session_user_revoked", "user_id", "revoked"),
        Index("idx_session_expired_at", "expired_at"),
    )

    def is_live(self, now: datetime) -> bool:
        return not self.revoked and now < self.expires_at
