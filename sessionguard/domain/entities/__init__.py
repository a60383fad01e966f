"""
SessionGuard Domain Entities

All domain entities organized by model.
Each entity in its own file for better maintainability.
"""

# Export all enums
from .enums import (
    ROLE_RANK,
    AuditEventCategory,
    AuditEventStatus,
    AuditEventType,
    DeviceType,
    MembershipRole,
    MembershipStatus,
    Permission,
    SecurityLevel,
    SessionPurpose,
    TenantStatus,
    UserStatus,
)

# Export all entities
from .user import User
from .tenant import Tenant
from .organization import Organization
from .membership import Membership
from .session import Session
from .audit_event import AuditEvent
from .rate_limit import RateLimitCounter

__all__ = [
    # Enums
    "ROLE_RANK",
    "AuditEventCategory",
    "AuditEventStatus",
    "AuditEventType",
    "DeviceType",
    "MembershipRole",
    "MembershipStatus",
    "Permission",
    "SecurityLevel",
    "SessionPurpose",
    "TenantStatus",
    "UserStatus",
    # Entities
    "User",
    "Tenant",
    "Organization",
    "Membership",
    "Session",
    "AuditEvent",
    "RateLimitCounter",
]
