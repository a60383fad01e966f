import pytest
from httpx import AsyncClient

TEST_PASSWORD = "SecurePass123!"


@pytest.mark.asyncio
async def test_successful_sign_in(client: AsyncClient, make_user, audit):
    """Successful sign-in

    Given an active user
    When I sign in with the right password from a trusted country
    Then I receive an opaque token and a normal-level session
    And a credentials_success audit event is recorded
    """
    user = await make_user()

    response = await client.post("/auth/sign-in", json={
        "email": "user@acme.com",
        "password": TEST_PASSWORD
    })

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert isinstance(data["token"], str)
    assert len(data["token"]) >= 43
    assert data["security_level"] == "normal"
    assert data["requires_additional_verification"] is False
    assert data["session"]["user_id"] == str(user.id)
    assert data["session"]["location"] == "Mountain View, US"
    assert data["session"]["device_type"] == "desktop"
    assert "new_device" in data["session"]["risk_factors"]
    assert "token_hash" not in data["session"]

    await audit.drain()
    trail = await audit.get_user_trail(user.id)
    actions = {event.action for event in trail.value}
    assert {"credentials_success", "create_session"} <= actions


@pytest.mark.asyncio
async def test_sign_in_email_is_case_insensitive(client: AsyncClient, make_user):
    await make_user()

    response = await client.post("/auth/sign-in", json={
        "email": "User@Acme.com",
        "password": TEST_PASSWORD
    })

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_unknown_email_and_wrong_password_look_the_same(client: AsyncClient, make_user):
    """Generic credential failure

    Given a user exists
    When I sign in with a wrong password, and separately with an unknown email
    Then both fail with 401 INVALID_CREDENTIALS and the same message
    """
    await make_user()

    wrong_password = await client.post("/auth/sign-in", json={
        "email": "user@acme.com",
        "password": "WrongPassword!"
    })
    unknown_email = await client.post("/auth/sign-in", json={
        "email": "ghost@acme.com",
        "password": TEST_PASSWORD
    })

    assert wrong_password.status_code == 401
    assert unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()
    assert wrong_password.json()["error"] == {
        "code": "INVALID_CREDENTIALS",
        "message": "Invalid email or password",
    }


@pytest.mark.asyncio
async def test_inactive_account_is_not_revealed(client: AsyncClient, make_user):
    from sessionguard.domain.entities import UserStatus

    await make_user(status=UserStatus.inactive)

    response = await client.post("/auth/sign-in", json={
        "email": "user@acme.com",
        "password": TEST_PASSWORD
    })

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_account_locks_after_repeated_failures(client: AsyncClient, make_user, clock):
    """Account lockout

    Given a user exists
    When I fail to sign in five times
    Then the sixth attempt is rejected with 423 even with the right password
    And once the lock runs out I can sign in again
    """
    await make_user()

    for _ in range(5):
        response = await client.post("/auth/sign-in", json={
            "email": "user@acme.com",
            "password": "WrongPassword!"
        })
        assert response.status_code == 401

    locked = await client.post("/auth/sign-in", json={
        "email": "user@acme.com",
        "password": TEST_PASSWORD
    })
    assert locked.status_code == 423
    assert locked.json()["error"]["code"] == "ACCOUNT_LOCKED"

    clock.advance(minutes=16)
    unlocked = await client.post("/auth/sign-in", json={
        "email": "user@acme.com",
        "password": TEST_PASSWORD
    })
    assert unlocked.status_code == 200


@pytest.mark.asyncio
async def test_expired_lock_gives_a_fresh_set_of_attempts(client: AsyncClient, make_user, clock):
    await make_user()
    for _ in range(5):
        await client.post("/auth/sign-in", json={"email": "user@acme.com", "password": "Wrong!"})

    clock.advance(minutes=16)
    response = await client.post("/auth/sign-in", json={
        "email": "user@acme.com",
        "password": "Wrong!"
    })

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_prior_failures_raise_session_risk(client: AsyncClient, make_user):
    await make_user()
    for _ in range(3):
        await client.post("/auth/sign-in", json={"email": "user@acme.com", "password": "Wrong!"})

    response = await client.post("/auth/sign-in", json={
        "email": "user@acme.com",
        "password": TEST_PASSWORD
    })

    data = response.json()["data"]
    assert "authentication_failures" in data["session"]["risk_factors"]
    assert data["risk_score"] >= 45


@pytest.mark.asyncio
async def test_sign_in_from_high_risk_country(client: AsyncClient, make_user):
    await make_user()

    response = await client.post(
        "/auth/sign-in",
        json={"email": "user@acme.com", "password": TEST_PASSWORD},
        headers={"X-Forwarded-For": "77.88.8.8"},
    )

    data = response.json()["data"]
    assert data["risk_score"] == 65
    assert data["security_level"] == "high_risk"
    assert data["requires_additional_verification"] is True


@pytest.mark.asyncio
async def test_sign_in_is_rate_limited_per_ip(client: AsyncClient, make_user, settings):
    settings.sign_in_rate_limit = 2
    await make_user()

    for _ in range(2):
        await client.post("/auth/sign-in", json={"email": "user@acme.com", "password": "Wrong!"})

    response = await client.post("/auth/sign-in", json={
        "email": "user@acme.com",
        "password": TEST_PASSWORD
    })

    assert response.status_code == 429
    assert response.json()["error"]["code"] == "RATE_LIMITED"
    assert response.headers["Retry-After"] == str(settings.sign_in_rate_window_seconds)

    other_ip = await client.post(
        "/auth/sign-in",
        json={"email": "user@acme.com", "password": TEST_PASSWORD},
        headers={"X-Forwarded-For": "1.1.1.1"},
    )
    assert other_ip.status_code == 200


@pytest.mark.asyncio
async def test_sign_in_validation_error(client: AsyncClient):
    response = await client.post("/auth/sign-in", json={"email": "not-an-email"})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_sign_out_is_idempotent(client: AsyncClient, make_user):
    await make_user()
    sign_in = await client.post("/auth/sign-in", json={
        "email": "user@acme.com",
        "password": TEST_PASSWORD
    })
    headers = {"Authorization": f"Bearer {sign_in.json()['data']['token']}"}

    first = await client.post("/auth/sign-out", headers=headers)
    second = await client.post("/auth/sign-out", headers=headers)
    validate = await client.get("/sessions/validate", headers=headers)

    assert first.status_code == 200
    assert second.status_code == 200
    assert validate.status_code == 401


@pytest.mark.asyncio
async def test_overlong_password_gets_the_generic_failure(client: AsyncClient, make_user):
    """Passwords beyond bcrypt's 72 bytes

    Given a user exists
    When I sign in with a 100 character password for that email and for an unknown one
    Then both fail with the same 401 INVALID_CREDENTIALS envelope
    """
    await make_user()

    known = await client.post("/auth/sign-in", json={
        "email": "user@acme.com",
        "password": "x" * 100
    })
    unknown = await client.post("/auth/sign-in", json={
        "email": "ghost@acme.com",
        "password": "x" * 100
    })

    assert known.status_code == 401
    assert unknown.status_code == 401
    assert known.json() == unknown.json()
    assert known.json()["error"]["code"] == "INVALID_CREDENTIALS"
