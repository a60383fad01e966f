"""
Use Cases

Organized into domain folders:
- auth/: Sign-in, sign-out and password reset flows
- sessions/: Session revocation
- audit/: Audit logs
"""

from .auth import (
    SignInUseCase,
    SignOutUseCase,
    RequestPasswordResetUseCase,
    ConfirmPasswordResetUseCase,
)
from .sessions import RevokeSessionsUseCase
from .audit import GetAuditEventsUseCase

__all__ = [
    # Auth
    "SignInUseCase",
    "SignOutUseCase",
    "RequestPasswordResetUseCase",
    "ConfirmPasswordResetUseCase",
    # Sessions
    "RevokeSessionsUseCase",
    # Audit
    "GetAuditEventsUseCase",
]
