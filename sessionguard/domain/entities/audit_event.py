"""
AuditEvent Entity

Immutable log of security-relevant occurrences.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlmodel import JSON, Column, DateTime, Field, Index, SQLModel

from .enums import AuditEventCategory, AuditEventStatus, AuditEventType


class AuditEvent(SQLModel, table=True):
    """
    AuditEvent entity - append-only log of authentication/authorization events.

    Business Rules:
    - Immutable; only `processed` may change (downstream alerting pipelines)
    - Session tokens are never stored, only the session id
    - organization_id nullable for global events (sign-in, password reset)
    - event_data holds a serialized AuditEventData payload
    """

    __tablename__ = "audit_events"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    user_id: Optional[UUID] = Field(default=None, index=True)
    session_id: Optional[UUID] = Field(default=None, index=True)
    organization_id: Optional[UUID] = Field(default=None, index=True)

    event_type: AuditEventType = Field(nullable=False)
    action: str = Field(max_length=100)  # e.g., "credentials_success"
    status: AuditEventStatus = Field(default=AuditEventStatus.success)
    category: AuditEventCategory = Field(default=AuditEventCategory.auth)

    # Request context
    ip_address: Optional[str] = Field(default=None, max_length=45)
    user_agent: Optional[str] = Field(default=None, max_length=512)
    device_info: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    geolocation: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # Risk at time of event
    risk_score: Optional[int] = Field(default=None)
    risk_factors: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))

    event_data: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    error_code: Optional[str] = Field(default=None, max_length=50)
    error_message: Optional[str] = Field(default=None, max_length=500)

    source: str = Field(default="web", max_length=50)
    processed: bool = Field(default=False)

    # Timestamps
    created_at: datetime = Field(
        default_factory=lambda: datetime.utcnow(), sa_column=Column(DateTime)
    )

    __table_args__ = (
        Index("idx_audit_created_at", "created_at"),
        Index("idx_audit_org_created", "organization_id", "created_at"),
        Index("idx_audit_user_created", "user_id", "created_at"),
        Index("idx_audit_processed", "processed"),
    )
