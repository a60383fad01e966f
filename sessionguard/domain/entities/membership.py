"""
Membership Entity

Links User to Organization with a role and capability flags.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from .enums import MembershipRole, MembershipStatus


class Membership(SQLModel, table=True):
    """
    Membership entity - links User to Organization with a role.

    Business Rules:
    - (tenant_id, user_id, organization_id) must be unique
    - Only status=active memberships grant anything
    - owner and admin pass every capability check regardless of flags
    - For other roles the explicit can_* flags decide
    """

    __tablename__ = "memberships"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    tenant_id: UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    organization_id: UUID = Field(
        foreign_key="organizations.id", nullable=False, index=True
    )

    role: MembershipRole = Field(default=MembershipRole.member)
    status: MembershipStatus = Field(default=MembershipStatus.active)

    # Granular capabilities
    can_invite: bool = Field(default=False)
    can_manage_projects: bool = Field(default=False)
    can_manage_members: bool = Field(default=False)
    can_manage_billing: bool = Field(default=False)
    can_manage_settings: bool = Field(default=False)
    can_delete_organization: bool = Field(default=False)

    # Timestamps
    created_at: datetime = Field(
        default_factory=lambda: datetime.utcnow(), sa_column=Column(DateTime)
    )

    __table_args__ = (
        Index(
            "idx_membership_tenant_user_org",
            "tenant_id",
            "user_id",
            "organization_id",
            unique=True,
        ),
        Index("idx_membership_status", "status"),
    )
