import pytest

from sessionguard.api.error import ClientError, ServerError, raise_for_error
from sessionguard.domain import errors


@pytest.mark.parametrize(
    "error, status_code",
    [
        (errors.invalid_credentials(), 401),
        (errors.account_locked(), 423),
        (errors.invalid_or_expired_token(), 401),
        (errors.token_already_used(), 409),
        (errors.forbidden("nope"), 403),
        (errors.invalid_password(), 400),
    ],
)
def test_client_errors(error, status_code):
    with pytest.raises(ClientError) as exc_info:
        raise_for_error(error)

    assert exc_info.value.status_code == status_code
    assert exc_info.value.base_error.code == error.code


def test_inactive_account_is_reported_as_bad_credentials():
    with pytest.raises(ClientError) as exc_info:
        raise_for_error(errors.account_inactive())

    assert exc_info.value.status_code == 401
    assert exc_info.value.base_error.code == "INVALID_CREDENTIALS"


def test_rate_limit_carries_retry_after():
    with pytest.raises(ClientError) as exc_info:
        raise_for_error(errors.rate_limited(900))

    assert exc_info.value.status_code == 429
    assert exc_info.value.headers == {"Retry-After": "900"}


def test_unknown_codes_are_server_errors():
    with pytest.raises(ServerError):
        raise_for_error(errors.system_error("Session validation timed out"))
