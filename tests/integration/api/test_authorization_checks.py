from uuid import uuid4

import pytest
from httpx import AsyncClient

from sessionguard.domain.entities import MembershipRole

TEST_PASSWORD = "SecurePass123!"


async def sign_in(client: AsyncClient, email: str) -> str:
    response = await client.post("/auth/sign-in", json={"email": email, "password": TEST_PASSWORD})
    return response.json()["data"]["token"]


@pytest.fixture
def organization_members(make_user, make_membership):
    async def _setup():
        owner = await make_user(email="owner@acme.com")
        member = await make_user(email="member@acme.com")
        owner_membership = await make_membership(owner, MembershipRole.owner)
        await make_membership(member, MembershipRole.member, can_invite=True)
        return owner, member, owner_membership

    return _setup


def headers_for(token: str, membership) -> dict:
    return {"Authorization": f"Bearer {token}", "X-Tenant-ID": str(membership.tenant_id)}


@pytest.mark.asyncio
async def test_owner_has_every_permission(client: AsyncClient, organization_members):
    _, _, membership = await organization_members()
    token = await sign_in(client, "owner@acme.com")

    response = await client.get(
        f"/organizations/{membership.organization_id}/permissions/manage_billing",
        headers=headers_for(token, membership),
    )

    assert response.status_code == 200
    assert response.json()["data"] == {
        "organization_id": str(membership.organization_id),
        "permission": "can_manage_billing",
        "allowed": True,
    }


@pytest.mark.asyncio
async def test_member_permissions_follow_flags(client: AsyncClient, organization_members):
    _, _, membership = await organization_members()
    token = await sign_in(client, "member@acme.com")
    base = f"/organizations/{membership.organization_id}/permissions"

    invite = await client.get(f"{base}/can_invite", headers=headers_for(token, membership))
    billing = await client.get(f"{base}/can_manage_billing", headers=headers_for(token, membership))
    unknown = await client.get(f"{base}/can_fly", headers=headers_for(token, membership))

    assert invite.json()["data"]["allowed"] is True
    assert billing.json()["data"]["allowed"] is False
    assert unknown.json()["data"]["allowed"] is False


@pytest.mark.asyncio
async def test_member_checks_a_colleague(client: AsyncClient, organization_members):
    owner, _, membership = await organization_members()
    token = await sign_in(client, "member@acme.com")

    response = await client.get(
        f"/organizations/{membership.organization_id}/permissions/manage_settings",
        params={"user_id": str(owner.id)},
        headers=headers_for(token, membership),
    )

    assert response.json()["data"]["allowed"] is True


@pytest.mark.asyncio
async def test_outsider_cannot_check_members(client: AsyncClient, organization_members, make_user):
    owner, _, membership = await organization_members()
    await make_user(email="outsider@globex.com")
    token = await sign_in(client, "outsider@globex.com")

    response = await client.get(
        f"/organizations/{membership.organization_id}/permissions/can_invite",
        params={"user_id": str(owner.id)},
        headers=headers_for(token, membership),
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_minimum_role_checks(client: AsyncClient, organization_members):
    _, _, membership = await organization_members()
    token = await sign_in(client, "member@acme.com")
    base = f"/organizations/{membership.organization_id}/roles"

    viewer = await client.get(f"{base}/viewer", headers=headers_for(token, membership))
    member = await client.get(f"{base}/member", headers=headers_for(token, membership))
    admin = await client.get(f"{base}/admin", headers=headers_for(token, membership))

    assert viewer.json()["data"]["allowed"] is True
    assert member.json()["data"]["allowed"] is True
    assert admin.json()["data"]["allowed"] is False


@pytest.mark.asyncio
async def test_wrong_tenant_grants_nothing(client: AsyncClient, organization_members):
    _, _, membership = await organization_members()
    token = await sign_in(client, "owner@acme.com")

    response = await client.get(
        f"/organizations/{membership.organization_id}/roles/viewer",
        headers={"Authorization": f"Bearer {token}", "X-Tenant-ID": str(uuid4())},
    )

    assert response.status_code == 200
    assert response.json()["data"]["allowed"] is False


@pytest.mark.asyncio
async def test_missing_tenant_header(client: AsyncClient, organization_members):
    _, _, membership = await organization_members()
    token = await sign_in(client, "owner@acme.com")

    response = await client.get(
        f"/organizations/{membership.organization_id}/roles/viewer",
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 403
