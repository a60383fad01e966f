from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field

from sessionguard.api.error import raise_for_error
from sessionguard.api.utils.envelope import Envelope, ok
from sessionguard.app.services.audit_trail import AuditTrailService
from sessionguard.app.services.credentials import ICredentialVerifier
from sessionguard.app.services.rate_limiter import RateLimiter
from sessionguard.app.services.reset_token_sink import IResetTokenSink
from sessionguard.app.services.session_manager import SessionManager
from sessionguard.app.services.settings import SecuritySettings
from sessionguard.app.services.unit_of_work import UnitOfWorkFactory
from sessionguard.app.services.clock import Clock
from sessionguard.app.use_cases.auth import (
    ChangePasswordCommand,
    ChangePasswordResponse,
    ChangePasswordUseCase,
    ConfirmPasswordResetCommand,
    ConfirmPasswordResetResponse,
    ConfirmPasswordResetUseCase,
    RequestPasswordResetCommand,
    RequestPasswordResetResponse,
    RequestPasswordResetUseCase,
    SignInCommand,
    SignInResponse,
    SignInUseCase,
    SignOutResponse,
    SignOutUseCase,
    ValidateResetTokenResponse,
    ValidateResetTokenUseCase,
)
from sessionguard.depends import (
    get_audit_trail,
    get_bearer_token,
    get_clock,
    get_credential_verifier,
    get_current_session,
    get_rate_limiter,
    get_request_context,
    get_session_manager,
    get_settings,
    get_token_sink,
    get_uow_factory,
)
from sessionguard.domain.context import RequestContext
from sessionguard.domain.entities import Session

router = APIRouter(prefix="/auth", tags=["Authentication"])


class SignInRequest(BaseModel):
    """
    Sign-in HTTP request payload

    Validates incoming HTTP request before converting to SignInCommand.
    """

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=1, max_length=1024, description="User password")


class PasswordResetRequest(BaseModel):
    email: EmailStr = Field(..., description="Email of the account to reset")


class PasswordResetValidateRequest(BaseModel):
    token: str = Field(..., min_length=1, description="Reset token from the reset link")


class PasswordResetConfirmRequest(BaseModel):
    token: str = Field(..., min_length=1, description="Reset token from the reset link")
    new_password: str = Field(..., min_length=1, max_length=1024, description="New password")


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=1024, description="Current password")
    new_password: str = Field(..., min_length=1, max_length=1024, description="New password")


@router.post(
    "/sign-in",
    status_code=status.HTTP_200_OK,
    response_model=Envelope[SignInResponse],
)
async def sign_in(
    request: SignInRequest,
    context: RequestContext = Depends(get_request_context),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    credentials: ICredentialVerifier = Depends(get_credential_verifier),
    session_manager: SessionManager = Depends(get_session_manager),
    audit: AuditTrailService = Depends(get_audit_trail),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    settings: SecuritySettings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
):
    """
    Sign In

    Verifies credentials and returns an opaque session token together with
    the risk assessment of the new session.

    Raises:
        - 401 Unauthorized: INVALID_CREDENTIALS (unknown email, wrong password, inactive)
        - 423 Locked: ACCOUNT_LOCKED
        - 429 Too Many Requests: RATE_LIMITED
        - 500 Internal Server Error: Server error
    """
    use_case = SignInUseCase(
        uow_factory, credentials, session_manager, audit, rate_limiter, settings, clock
    )
    result = await use_case.execute(
        SignInCommand(email=request.email, password=request.password), context
    )

    if result.is_err():
        raise_for_error(result.error)

    return ok(result.value)


@router.post(
    "/sign-out",
    status_code=status.HTTP_200_OK,
    response_model=Envelope[SignOutResponse],
)
async def sign_out(
    token: str = Depends(get_bearer_token),
    context: RequestContext = Depends(get_request_context),
    session_manager: SessionManager = Depends(get_session_manager),
    audit: AuditTrailService = Depends(get_audit_trail),
):
    """
    Sign Out

    Revokes the caller's session. Signing out an already revoked or
    expired session succeeds.
    """
    use_case = SignOutUseCase(session_manager, audit)
    result = await use_case.execute(token, context)

    if result.is_err():
        raise_for_error(result.error)

    return ok(result.value)


@router.post(
    "/password-reset/request",
    status_code=status.HTTP_200_OK,
    response_model=Envelope[RequestPasswordResetResponse],
)
async def request_password_reset(
    request: PasswordResetRequest,
    context: RequestContext = Depends(get_request_context),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    session_manager: SessionManager = Depends(get_session_manager),
    audit: AuditTrailService = Depends(get_audit_trail),
    token_sink: IResetTokenSink = Depends(get_token_sink),
    settings: SecuritySettings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
):
    """
    Request Password Reset

    Always answers with the same message, whether or not the email exists.
    """
    use_case = RequestPasswordResetUseCase(
        uow_factory, session_manager, audit, token_sink, settings, clock
    )
    result = await use_case.execute(RequestPasswordResetCommand(email=request.email), context)

    if result.is_err():
        raise_for_error(result.error)

    return ok(result.value)


@router.post(
    "/password-reset/validate",
    status_code=status.HTTP_200_OK,
    response_model=Envelope[ValidateResetTokenResponse],
)
async def validate_reset_token(
    request: PasswordResetValidateRequest,
    context: RequestContext = Depends(get_request_context),
    session_manager: SessionManager = Depends(get_session_manager),
    audit: AuditTrailService = Depends(get_audit_trail),
):
    """
    Validate Password Reset Token

    Checks a reset link without spending it.

    Raises:
        - 401 Unauthorized: INVALID_OR_EXPIRED_TOKEN
        - 500 Internal Server Error: Server error
    """
    use_case = ValidateResetTokenUseCase(session_manager, audit)
    result = await use_case.execute(request.token, context)

    if result.is_err():
        raise_for_error(result.error)

    return ok(result.value)


@router.post(
    "/password-reset/confirm",
    status_code=status.HTTP_200_OK,
    response_model=Envelope[ConfirmPasswordResetResponse],
)
async def confirm_password_reset(
    request: PasswordResetConfirmRequest,
    context: RequestContext = Depends(get_request_context),
    session_manager: SessionManager = Depends(get_session_manager),
    credentials: ICredentialVerifier = Depends(get_credential_verifier),
    audit: AuditTrailService = Depends(get_audit_trail),
):
    """
    Confirm Password Reset

    Raises:
        - 400 Bad Request: INVALID_PASSWORD
        - 401 Unauthorized: INVALID_OR_EXPIRED_TOKEN
        - 409 Conflict: TOKEN_ALREADY_USED
        - 500 Internal Server Error: Server error
    """
    use_case = ConfirmPasswordResetUseCase(session_manager, credentials, audit)
    result = await use_case.execute(
        ConfirmPasswordResetCommand(token=request.token, new_password=request.new_password),
        context,
    )

    if result.is_err():
        raise_for_error(result.error)

    return ok(result.value)


@router.post(
    "/password/change",
    status_code=status.HTTP_200_OK,
    response_model=Envelope[ChangePasswordResponse],
)
async def change_password(
    request: ChangePasswordRequest,
    token: str = Depends(get_bearer_token),
    session: Session = Depends(get_current_session),
    context: RequestContext = Depends(get_request_context),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    credentials: ICredentialVerifier = Depends(get_credential_verifier),
    session_manager: SessionManager = Depends(get_session_manager),
    audit: AuditTrailService = Depends(get_audit_trail),
):
    """
    Change Password

    Replaces the caller's password and signs out every other session.

    Raises:
        - 400 Bad Request: INVALID_PASSWORD
        - 401 Unauthorized: INVALID_OR_EXPIRED_TOKEN, INVALID_CREDENTIALS (wrong current password)
        - 500 Internal Server Error: Server error
    """
    use_case = ChangePasswordUseCase(uow_factory, credentials, session_manager, audit)
    result = await use_case.execute(
        session,
        token,
        ChangePasswordCommand(
            current_password=request.current_password, new_password=request.new_password
        ),
        context,
    )

    if result.is_err():
        raise_for_error(result.error)

    return ok(result.value)
