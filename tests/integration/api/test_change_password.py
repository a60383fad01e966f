import pytest
from httpx import AsyncClient

TEST_PASSWORD = "SecurePass123!"
NEW_PASSWORD = "NewSecurePass456!"


async def sign_in(client: AsyncClient, password: str = TEST_PASSWORD):
    return await client.post("/auth/sign-in", json={"email": "user@acme.com", "password": password})


def bearer(response) -> dict:
    return {"Authorization": f"Bearer {response.json()['data']['token']}"}


@pytest.mark.asyncio
async def test_change_password(client: AsyncClient, make_user, audit):
    """Change password while signed in

    Given I am signed in on two devices
    When I change my password from the first one
    Then the first session keeps working and the second is signed out
    And only the new password is accepted from now on
    """
    user = await make_user()
    current = bearer(await sign_in(client))
    other = bearer(await sign_in(client))

    response = await client.post(
        "/auth/password/change",
        json={"current_password": TEST_PASSWORD, "new_password": NEW_PASSWORD},
        headers=current,
    )

    assert response.status_code == 200
    assert response.json()["data"]["sessions_revoked"] == 1
    assert (await client.get("/sessions/validate", headers=current)).status_code == 200
    assert (await client.get("/sessions/validate", headers=other)).status_code == 401
    assert (await sign_in(client)).status_code == 401
    assert (await sign_in(client, NEW_PASSWORD)).status_code == 200

    await audit.drain()
    trail = await audit.get_user_trail(user.id)
    assert "password_changed" in {event.action for event in trail.value}


@pytest.mark.asyncio
async def test_change_password_with_wrong_current_password(client: AsyncClient, make_user):
    await make_user()
    current = bearer(await sign_in(client))

    response = await client.post(
        "/auth/password/change",
        json={"current_password": "WrongPassword!", "new_password": NEW_PASSWORD},
        headers=current,
    )

    assert response.status_code == 401
    assert response.json()["error"] == {
        "code": "INVALID_CREDENTIALS",
        "message": "Current password is incorrect",
    }
    assert (await sign_in(client)).status_code == 200


@pytest.mark.asyncio
async def test_change_password_rejects_unusable_new_password(client: AsyncClient, make_user):
    await make_user()
    current = bearer(await sign_in(client))

    for new_password in ("short", "x" * 100):
        response = await client.post(
            "/auth/password/change",
            json={"current_password": TEST_PASSWORD, "new_password": new_password},
            headers=current,
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PASSWORD"


@pytest.mark.asyncio
async def test_change_password_requires_a_session(client: AsyncClient, make_user):
    await make_user()

    response = await client.post(
        "/auth/password/change",
        json={"current_password": TEST_PASSWORD, "new_password": NEW_PASSWORD},
    )

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_OR_EXPIRED_TOKEN"
