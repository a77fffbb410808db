import uuid

import pytest
from fastapi import status
from httpx import AsyncClient

from tests.fixtures.helpers import make_user

BASE = "/admin/users"


@pytest.mark.asyncio
async def test_create_user_hides_password(client: AsyncClient, seeded):
    response = await client.post(
        BASE,
        json={
            "username": "bob",
            "email": "Bob@Example.com",
            "password": "hunter2hunter2",
            "roles": [str(seeded.editor.id)],
        },
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert "password" not in data
    assert data["email"] == "bob@example.com"
    assert data["emailVerified"] is False
    assert data["lastLogin"] is None
    assert [r["name"] for r in data["roles"]] == ["editor"]


@pytest.mark.asyncio
async def test_create_user_conflicts(client: AsyncClient, seeded):
    response = await client.post(
        BASE,
        json={"username": "alice", "email": "new@example.com", "password": "hunter2hunter2"},
    )
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["kind"] == "conflict"


@pytest.mark.asyncio
async def test_create_user_validation(client: AsyncClient):
    response = await client.post(
        BASE, json={"username": "x", "email": "not-an-email", "password": "short"}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_users_filters(client: AsyncClient, seeded, db_session):
    await make_user(db_session, "bob")

    by_role = (await client.get(BASE, params={"role": "editor"})).json()
    assert [u["username"] for u in by_role["items"]] == ["alice"]
    assert [p["action"] for p in by_role["items"][0]["roles"][0]["permissions"]] == [
        "read",
        "write",
    ]

    unknown = (await client.get(BASE, params={"role": "nobody"})).json()
    assert unknown["items"] == []
    assert unknown["total"] == 0
    assert unknown["totalPages"] == 0

    searched = (await client.get(BASE, params={"search": "BO"})).json()
    assert [u["username"] for u in searched["items"]] == ["bob"]

    unverified = (await client.get(BASE, params={"emailVerified": False})).json()
    assert unverified["total"] == 2


@pytest.mark.asyncio
async def test_lookups(client: AsyncClient, seeded):
    by_email = await client.get(f"{BASE}/email/ALICE@example.com")
    assert by_email.status_code == status.HTTP_200_OK
    assert by_email.json()["id"] == str(seeded.alice.id)

    by_username = await client.get(f"{BASE}/username/alice")
    assert by_username.json()["username"] == "alice"

    by_id = await client.get(f"{BASE}/{seeded.alice.id}")
    assert by_id.json()["email"] == "alice@example.com"

    assert (await client.get(f"{BASE}/email/ghost@example.com")).status_code == 404
    assert (await client.get(f"{BASE}/{uuid.uuid4()}")).status_code == 404


@pytest.mark.asyncio
async def test_update_user(client: AsyncClient, seeded, db_session):
    await make_user(db_session, "bob")

    conflict = await client.patch(f"{BASE}/{seeded.alice.id}", json={"username": "bob"})
    assert conflict.status_code == status.HTTP_409_CONFLICT

    updated = await client.patch(f"{BASE}/{seeded.alice.id}", json={"isActive": False})
    assert updated.status_code == status.HTTP_200_OK
    assert updated.json()["isActive"] is False


@pytest.mark.asyncio
async def test_verify_email_and_last_login(client: AsyncClient, seeded):
    verified = await client.post(f"{BASE}/{seeded.alice.id}/verify-email")
    assert verified.json()["emailVerified"] is True

    logged_in = await client.post(f"{BASE}/{seeded.alice.id}/last-login")
    assert logged_in.json()["lastLogin"] is not None

    stats = (await client.get(f"{BASE}/stats")).json()
    assert stats["verified"] == 1
    assert stats["verifiedPercentage"] == 100.0


@pytest.mark.asyncio
async def test_soft_delete_restore_and_permanent_delete(client: AsyncClient, seeded):
    url = f"{BASE}/{seeded.alice.id}"

    assert (await client.delete(url)).json()["isActive"] is False
    assert (await client.get(BASE, params={"isActive": True})).json()["total"] == 0
    assert (await client.post(f"{url}/restore")).json()["isActive"] is True

    deleted = await client.delete(f"{url}/permanent")
    assert deleted.status_code == status.HTTP_200_OK
    assert deleted.json()["username"] == "alice"
    assert (await client.get(url)).status_code == 404
    # The role is untouched
    assert (await client.get(f"/admin/roles/{seeded.editor.id}")).status_code == 200
