"""
Authentication Use Case DTOs (Data Transfer Objects)

All Command and Response classes for auth domain.
Provides type safety and clear contracts between layers.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from sessionguard.domain.context import SessionView


# ============================================================================
# Command DTOs
# ============================================================================


class SignInCommand(BaseModel):
    """Credentials submitted to the sign-in use case"""

    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=1024)


class RequestPasswordResetCommand(BaseModel):
    email: str = Field(min_length=3, max_length=255)


class ConfirmPasswordResetCommand(BaseModel):
    token: str = Field(min_length=1)
    new_password: str = Field(min_length=1, max_length=1024)


class ChangePasswordCommand(BaseModel):
    current_password: str = Field(min_length=1, max_length=1024)
    new_password: str = Field(min_length=1, max_length=1024)


# ============================================================================
# Response DTOs
# ============================================================================


class SignInResponse(BaseModel):
    """Response for sign-in use case; the only place the token is returned"""

    token: str
    session: SessionView
    security_level: str
    risk_score: int
    recommendations: List[str]
    requires_additional_verification: bool


class SignOutResponse(BaseModel):
    status: str
    message: str


class RequestPasswordResetResponse(BaseModel):
    """Response for request password reset use case"""

    status: str
    message: str


class ConfirmPasswordResetResponse(BaseModel):
    """Response for confirm password reset use case"""

    status: str
    message: str
    sessions_revoked: int


class ValidateResetTokenResponse(BaseModel):
    valid: bool
    expires_at: datetime


class ChangePasswordResponse(BaseModel):
    """Response for change password use case"""

    status: str
    message: str
    sessions_revoked: int
