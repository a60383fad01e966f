"""
SessionGuard Domain Enums

All enumeration types used across domain entities.
"""

from enum import Enum


class UserStatus(str, Enum):
    """User account status"""

    active = "active"
    inactive = "inactive"


class TenantStatus(str, Enum):
    """Tenant status"""

    active = "active"
    suspended = "suspended"


class MembershipRole(str, Enum):
    """User role within an organization"""

    owner = "owner"
    admin = "admin"
    manager = "manager"
    member = "member"
    viewer = "viewer"


# Total order used by minimum-role checks
ROLE_RANK = {
    MembershipRole.owner: 5,
    MembershipRole.admin: 4,
    MembershipRole.manager: 3,
    MembershipRole.member: 2,
    MembershipRole.viewer: 1,
}


class MembershipStatus(str, Enum):
    """Membership status"""

    active = "active"
    inactive = "inactive"
    suspended = "suspended"
    pending = "pending"


class Permission(str, Enum):
    """Capability flags carried by a membership"""

    invite = "can_invite"
    manage_projects = "can_manage_projects"
    manage_members = "can_manage_members"
    manage_billing = "can_manage_billing"
    manage_settings = "can_manage_settings"
    delete_organization = "can_delete_organization"


class DeviceType(str, Enum):
    mobile = "mobile"
    tablet = "tablet"
    desktop = "desktop"
    unknown = "unknown"


class SecurityLevel(str, Enum):
    """Discrete bucket derived from a risk score"""

    normal = "normal"
    elevated = "elevated"
    high_risk = "high_risk"
    critical = "critical"


class SessionPurpose(str, Enum):
    login = "login"
    password_reset = "password_reset"


class AuditEventType(str, Enum):
    login = "login"
    logout = "logout"
    session = "session"
    authorization = "authorization"
    password_reset = "password_reset"
    mfa = "mfa"
    oauth = "oauth"


class AuditEventStatus(str, Enum):
    success = "success"
    failure = "failure"
    error = "error"
    pending = "pending"


class AuditEventCategory(str, Enum):
    auth = "auth"
    security = "security"
    admin = "admin"
    compliance = "compliance"
