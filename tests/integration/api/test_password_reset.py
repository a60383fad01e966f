import pytest
from httpx import AsyncClient

TEST_PASSWORD = "SecurePass123!"
NEW_PASSWORD = "NewSecurePass456!"
RESET_MESSAGE = "If the email exists, a password reset link has been sent"


async def sign_in(client: AsyncClient, password: str = TEST_PASSWORD):
    return await client.post("/auth/sign-in", json={"email": "user@acme.com", "password": password})


@pytest.mark.asyncio
async def test_request_reset_for_existing_and_unknown_email(client: AsyncClient, make_user, token_sink):
    """Password reset request does not reveal accounts

    Given one registered user
    When I request a reset for that email and for an unknown one
    Then both responses are identical
    And only the registered user receives a token
    """
    await make_user()

    known = await client.post("/auth/password-reset/request", json={"email": "user@acme.com"})
    unknown = await client.post("/auth/password-reset/request", json={"email": "ghost@acme.com"})

    assert known.status_code == 200
    assert known.json() == unknown.json()
    assert known.json()["data"]["message"] == RESET_MESSAGE
    assert [email for email, _, _ in token_sink.delivered] == ["user@acme.com"]


@pytest.mark.asyncio
async def test_reset_token_expires_within_an_hour(client: AsyncClient, make_user, token_sink, clock):
    await make_user()

    await client.post("/auth/password-reset/request", json={"email": "user@acme.com"})

    _, _, expires_at = token_sink.delivered[0]
    assert (expires_at - clock.now()).total_seconds() == 3600


@pytest.mark.asyncio
async def test_full_reset_flow(client: AsyncClient, make_user, token_sink):
    """Confirm password reset

    Given I am signed in
    When I request a reset and confirm it with a new password
    Then my old session stops working
    And the old password is rejected while the new one works
    And the reset token cannot be used a second time
    """
    await make_user()
    old_session = await sign_in(client)
    old_headers = {"Authorization": f"Bearer {old_session.json()['data']['token']}"}

    await client.post("/auth/password-reset/request", json={"email": "user@acme.com"})
    _, token, _ = token_sink.delivered[0]

    response = await client.post("/auth/password-reset/confirm", json={
        "token": token,
        "new_password": NEW_PASSWORD
    })

    assert response.status_code == 200
    assert response.json()["data"]["sessions_revoked"] == 1

    assert (await client.get("/sessions/validate", headers=old_headers)).status_code == 401
    assert (await sign_in(client)).status_code == 401
    assert (await sign_in(client, NEW_PASSWORD)).status_code == 200

    reused = await client.post("/auth/password-reset/confirm", json={
        "token": token,
        "new_password": "AnotherPass789!"
    })
    assert reused.status_code == 409
    assert reused.json()["error"]["code"] == "TOKEN_ALREADY_USED"


@pytest.mark.asyncio
async def test_confirm_with_expired_token(client: AsyncClient, make_user, token_sink, clock):
    await make_user()
    await client.post("/auth/password-reset/request", json={"email": "user@acme.com"})
    _, token, _ = token_sink.delivered[0]

    clock.advance(hours=1, seconds=1)
    response = await client.post("/auth/password-reset/confirm", json={
        "token": token,
        "new_password": NEW_PASSWORD
    })

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_OR_EXPIRED_TOKEN"


@pytest.mark.asyncio
async def test_confirm_rejects_short_password(client: AsyncClient, make_user, token_sink):
    await make_user()
    await client.post("/auth/password-reset/request", json={"email": "user@acme.com"})
    _, token, _ = token_sink.delivered[0]

    response = await client.post("/auth/password-reset/confirm", json={
        "token": token,
        "new_password": "short"
    })

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_PASSWORD"

    # The token was not spent by the rejected attempt
    retry = await client.post("/auth/password-reset/confirm", json={
        "token": token,
        "new_password": NEW_PASSWORD
    })
    assert retry.status_code == 200


@pytest.mark.asyncio
async def test_login_token_cannot_confirm_reset(client: AsyncClient, make_user):
    await make_user()
    login_token = (await sign_in(client)).json()["data"]["token"]

    response = await client.post("/auth/password-reset/confirm", json={
        "token": login_token,
        "new_password": NEW_PASSWORD
    })

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_reset_requests_are_capped_per_hour(client: AsyncClient, make_user, token_sink, settings):
    await make_user()

    for _ in range(settings.password_reset_hourly_limit + 2):
        response = await client.post("/auth/password-reset/request", json={"email": "user@acme.com"})
        assert response.status_code == 200

    assert len(token_sink.delivered) == settings.password_reset_hourly_limit


@pytest.mark.asyncio
async def test_overlong_new_password_keeps_the_token(client: AsyncClient, make_user, token_sink):
    await make_user()
    await client.post("/auth/password-reset/request", json={"email": "user@acme.com"})
    _, token, _ = token_sink.delivered[0]

    response = await client.post("/auth/password-reset/confirm", json={
        "token": token,
        "new_password": "x" * 100
    })

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_PASSWORD"

    retry = await client.post("/auth/password-reset/confirm", json={
        "token": token,
        "new_password": NEW_PASSWORD
    })
    assert retry.status_code == 200
    assert (await sign_in(client, NEW_PASSWORD)).status_code == 200


@pytest.mark.asyncio
async def test_confirm_invalidates_other_outstanding_reset_tokens(
    client: AsyncClient, make_user, token_sink
):
    """Earlier reset links die with a successful reset

    Given I requested two reset links
    When I confirm the second one
    Then the first link is rejected as invalid
    """
    await make_user()
    await client.post("/auth/password-reset/request", json={"email": "user@acme.com"})
    await client.post("/auth/password-reset/request", json={"email": "user@acme.com"})
    (_, first, _), (_, second, _) = token_sink.delivered

    confirmed = await client.post("/auth/password-reset/confirm", json={
        "token": second,
        "new_password": NEW_PASSWORD
    })
    assert confirmed.status_code == 200

    stale = await client.post("/auth/password-reset/confirm", json={
        "token": first,
        "new_password": "AnotherPass789!"
    })
    assert stale.status_code == 401
    assert stale.json()["error"]["code"] == "INVALID_OR_EXPIRED_TOKEN"
    assert (await sign_in(client, NEW_PASSWORD)).status_code == 200


@pytest.mark.asyncio
async def test_validate_reset_token_does_not_spend_it(
    client: AsyncClient, make_user, token_sink, audit
):
    user = await make_user()
    await client.post("/auth/password-reset/request", json={"email": "user@acme.com"})
    _, token, expires_at = token_sink.delivered[0]

    first = await client.post("/auth/password-reset/validate", json={"token": token})
    second = await client.post("/auth/password-reset/validate", json={"token": token})

    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["data"]["valid"] is True
    assert first.json()["data"]["expires_at"].startswith(expires_at.isoformat()[:19])

    confirmed = await client.post("/auth/password-reset/confirm", json={
        "token": token,
        "new_password": NEW_PASSWORD
    })
    assert confirmed.status_code == 200

    used = await client.post("/auth/password-reset/validate", json={"token": token})
    assert used.status_code == 401
    assert used.json()["error"]["code"] == "INVALID_OR_EXPIRED_TOKEN"

    await audit.drain()
    trail = await audit.get_user_trail(user.id)
    assert [event.action for event in trail.value].count("validate_reset_token") == 2


@pytest.mark.asyncio
async def test_login_token_is_not_a_valid_reset_token(client: AsyncClient, make_user):
    await make_user()
    login_token = (await sign_in(client)).json()["data"]["token"]

    response = await client.post("/auth/password-reset/validate", json={"token": login_token})

    assert response.status_code == 401
