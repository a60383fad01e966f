"""
Tenant Entity

Isolation boundary that owns organizations.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from .enums import TenantStatus


class Tenant(SQLModel, table=True):
    """
    Tenant entity - isolation boundary for organizations and memberships.

    Business Rules:
    - Every membership lookup carries the tenant predicate
    - Suspension blocks all organization access
    """

    __tablename__ = "tenants"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(max_length=255)

    status: TenantStatus = Field(default=TenantStatus.active)

    created_at: datetime = Field(
        default_factory=lambda: datetime.utcnow(), sa_column=Column(DateTime)
    )

    __table_args__ = (Index("idx_tenant_status", "status"),)
