"""
Security Error Taxonomy

Error codes returned (never raised) by the session, authentication and
authorization layers. Routes map each code to an HTTP status.
"""

from typing import Optional
from uuid import UUID

from sessionguard.libs.result import Error

INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
ACCOUNT_INACTIVE = "ACCOUNT_INACTIVE"
ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
INVALID_OR_EXPIRED_TOKEN = "INVALID_OR_EXPIRED_TOKEN"
TOKEN_ALREADY_USED = "TOKEN_ALREADY_USED"
RATE_LIMITED = "RATE_LIMITED"
FORBIDDEN = "FORBIDDEN"
SYSTEM_ERROR = "SYSTEM_ERROR"
INVALID_PASSWORD = "INVALID_PASSWORD"

# Shown for every sign-in failure that could reveal whether an account exists
GENERIC_CREDENTIALS_MESSAGE = "Invalid email or password"
PASSWORD_RESET_MESSAGE = "If the email exists, a password reset link has been sent"


def invalid_credentials() -> Error:
    return Error(INVALID_CREDENTIALS, GENERIC_CREDENTIALS_MESSAGE)


def account_inactive() -> Error:
    return Error(ACCOUNT_INACTIVE, GENERIC_CREDENTIALS_MESSAGE)


def account_locked() -> Error:
    return Error(ACCOUNT_LOCKED, "Account is temporarily locked")


def invalid_or_expired_token() -> Error:
    return Error(INVALID_OR_EXPIRED_TOKEN, "Invalid or expired token")


def token_already_used() -> Error:
    return Error(TOKEN_ALREADY_USED, "Token has already been used")


def rate_limited(retry_after_seconds: int) -> Error:
    return Error(
        RATE_LIMITED,
        "Too many requests, try again later",
        {"retry_after_seconds": retry_after_seconds},
    )


def forbidden(
    message: str,
    user_id: Optional[UUID] = None,
    organization_id: Optional[UUID] = None,
    permission: Optional[str] = None,
) -> Error:
    return Error(
        FORBIDDEN,
        message,
        {
            "user_id": str(user_id) if user_id else None,
            "organization_id": str(organization_id) if organization_id else None,
            "permission": permission,
        },
    )


def invalid_password(message: str = "Password must be at least 8 characters long") -> Error:
    return Error(INVALID_PASSWORD, message)


def system_error(message: str = "Unexpected system error") -> Error:
    return Error(SYSTEM_ERROR, message)


def invalid_current_password() -> Error:
    return Error(INVALID_CREDENTIALS, "Current password is incorrect")
