from typing import Dict, NoReturn, Optional

from fastapi import status

from sessionguard.domain import errors
from sessionguard.libs.result import Error


class ClientError(Exception):
    def __init__(
        self,
        base_error: Error,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.base_error = base_error
        self.status_code = status_code
        self.headers = headers
        super().__init__(base_error.message)


class ServerError(Exception):
    def __init__(self, base_error: Error):
        self.base_error = base_error
        super().__init__(base_error.message)


ERROR_STATUS = {
    errors.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    errors.ACCOUNT_INACTIVE: status.HTTP_401_UNAUTHORIZED,
    errors.ACCOUNT_LOCKED: status.HTTP_423_LOCKED,
    errors.INVALID_OR_EXPIRED_TOKEN: status.HTTP_401_UNAUTHORIZED,
    errors.TOKEN_ALREADY_USED: status.HTTP_409_CONFLICT,
    errors.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    errors.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    errors.INVALID_PASSWORD: status.HTTP_400_BAD_REQUEST,
}


def raise_for_error(error: Error) -> NoReturn:
    """Translate a use case error into the exception the app handlers render"""
    if error.code == errors.ACCOUNT_INACTIVE:
        # Never reveal that the account exists but is inactive
        raise ClientError(errors.invalid_credentials(), status_code=status.HTTP_401_UNAUTHORIZED)

    status_code = ERROR_STATUS.get(error.code)
    if status_code is None:
        raise ServerError(error)

    headers = None
    if error.code == errors.RATE_LIMITED and "retry_after_seconds" in error.details:
        headers = {"Retry-After": str(error.details["retry_after_seconds"])}
    raise ClientError(error, status_code=status_code, headers=headers)
