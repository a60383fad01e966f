"""
Authentication Use Cases

All authentication-related business logic.
"""

from .sign_in_use_case import SignInUseCase
from .sign_out_use_case import SignOutUseCase
from .request_password_reset_use_case import RequestPasswordResetUseCase
from .validate_reset_token_use_case import ValidateResetTokenUseCase
from .confirm_password_reset_use_case import ConfirmPasswordResetUseCase
from .change_password_use_case import ChangePasswordUseCase
from .dtos import (
    SignInCommand,
    SignInResponse,
    SignOutResponse,
    RequestPasswordResetCommand,
    RequestPasswordResetResponse,
    ValidateResetTokenResponse,
    ConfirmPasswordResetCommand,
    ConfirmPasswordResetResponse,
    ChangePasswordCommand,
    ChangePasswordResponse,
)

__all__ = [
    # Use Cases
    "SignInUseCase",
    "SignOutUseCase",
    "RequestPasswordResetUseCase",
    "ValidateResetTokenUseCase",
    "ConfirmPasswordResetUseCase",
    "ChangePasswordUseCase",
    # DTOs - Commands
    "SignInCommand",
    "RequestPasswordResetCommand",
    "ConfirmPasswordResetCommand",
    "ChangePasswordCommand",
    # DTOs - Responses
    "SignInResponse",
    "SignOutResponse",
    "RequestPasswordResetResponse",
    "ValidateResetTokenResponse",
    "ConfirmPasswordResetResponse",
    "ChangePasswordResponse",
]
