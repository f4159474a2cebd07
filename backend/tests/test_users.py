"""
Tests for user endpoints and version-checked profile edits.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_register_user(client: AsyncClient):
    response = await client.post(
        "/api/v1/users/",
        json={
            "email": "Carol@Example.com",
            "first_name": "Carol",
            "last_name": "Danvers",
            "phone_number": "+1 555 0100",
        },
    )
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "carol@example.com"
    assert data["is_admin"] is False
    assert len(data["version"]) == 32


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, alice):
    response = await client.post(
        "/api/v1/users/",
        json={"email": "alice@example.com", "first_name": "Alice", "last_name": "Again"},
    )
    assert response.status_code == 409
    body = response.json()
    assert set(body) == {"message", "latest_fields", "latest_version"}
    assert body["message"] == "Email already registered"
    assert body["latest_version"] is None


@pytest.mark.asyncio
async def test_register_admin_requires_admin(client: AsyncClient, alice_headers, admin_headers):
    payload = {"email": "root@example.com", "first_name": "Root", "last_name": "User", "is_admin": True}

    response = await client.post("/api/v1/users/", json=payload, headers=alice_headers)
    assert response.status_code == 403

    response = await client.post("/api/v1/users/", json=payload, headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["is_admin"] is True


@pytest.mark.asyncio
async def test_get_user_requires_token(client: AsyncClient, alice):
    response = await client.get(f"/api/v1/users/{alice.id}")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_invalid_token_is_rejected(client: AsyncClient, alice):
    response = await client.get(
        f"/api/v1/users/{alice.id}",
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_get_missing_user(client: AsyncClient, alice_headers):
    response = await client.get("/api/v1/users/999", headers=alice_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "The user was deleted by another user."


@pytest.mark.asyncio
async def test_two_admins_edit_same_user(client: AsyncClient, admin_user, admin_headers, alice):
    """Both admins load version v1; the second save is refused with the first one's values."""
    loaded = (await client.get(f"/api/v1/users/{alice.id}", headers=admin_headers)).json()

    first = await client.put(
        f"/api/v1/users/{alice.id}",
        json={"version": loaded["version"], "first_name": "Alicia"},
        headers=admin_headers,
    )
    assert first.status_code == 200
    new_version = first.json()["version"]
    assert new_version != loaded["version"]

    second = await client.put(
        f"/api/v1/users/{alice.id}",
        json={"version": loaded["version"], "last_name": "Smith"},
        headers=admin_headers,
    )
    assert second.status_code == 409
    body = second.json()
    assert body["message"].startswith("The user you are trying to edit has been modified by another user.")
    assert body["latest_version"] == new_version
    assert body["latest_fields"]["first_name"] == "Alicia"
    assert body["latest_fields"]["last_name"] == "Liddell"

    # Resubmitting with the new version is an explicit overwrite
    retry = await client.put(
        f"/api/v1/users/{alice.id}",
        json={"version": new_version, "last_name": "Smith"},
        headers=admin_headers,
    )
    assert retry.status_code == 200
    assert retry.json()["first_name"] == "Alicia"
    assert retry.json()["last_name"] == "Smith"


@pytest.mark.asyncio
async def test_edit_own_profile_and_clear_phone(client: AsyncClient, alice, alice_headers):
    loaded = (await client.get(f"/api/v1/users/{alice.id}", headers=alice_headers)).json()

    response = await client.put(
        f"/api/v1/users/{alice.id}",
        json={"version": loaded["version"], "phone_number": None, "date_of_birth": "1990-05-04"},
        headers=alice_headers,
    )
    assert response.status_code == 200
    assert response.json()["phone_number"] is None
    assert response.json()["date_of_birth"] == "1990-05-04"


@pytest.mark.asyncio
async def test_edit_other_profile_is_forbidden(client: AsyncClient, alice, bob_headers):
    response = await client.put(
        f"/api/v1/users/{alice.id}",
        json={"version": alice.version, "first_name": "Mallory"},
        headers=bob_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_edit_deleted_user(client: AsyncClient, admin_headers, alice):
    version = alice.version
    deleted = await client.delete(
        f"/api/v1/users/{alice.id}", params={"version": version}, headers=admin_headers,
    )
    assert deleted.status_code == 204

    response = await client.put(
        f"/api/v1/users/{alice.id}",
        json={"version": version, "first_name": "Ghost"},
        headers=admin_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_toggle_admin(client: AsyncClient, admin_headers, alice):
    response = await client.post(
        f"/api/v1/users/{alice.id}/toggle-admin",
        json={"version": alice.version},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["is_admin"] is True

    stale = await client.post(
        f"/api/v1/users/{alice.id}/toggle-admin",
        json={"version": alice.version},
        headers=admin_headers,
    )
    assert stale.status_code == 409
    assert stale.json()["latest_fields"]["is_admin"] is True


@pytest.mark.asyncio
async def test_toggle_admin_requires_admin(client: AsyncClient, alice, bob_headers):
    response = await client.post(
        f"/api/v1/users/{alice.id}/toggle-admin",
        json={"version": alice.version},
        headers=bob_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_delete_user_rules(client: AsyncClient, admin_user, admin_headers, alice, alice_headers, bob):
    # Not an admin
    response = await client.delete(
        f"/api/v1/users/{bob.id}", params={"version": bob.version}, headers=alice_headers,
    )
    assert response.status_code == 403

    # Own account
    response = await client.delete(
        f"/api/v1/users/{admin_user.id}", params={"version": admin_user.version}, headers=admin_headers,
    )
    assert response.status_code == 403

    # Stale version
    response = await client.delete(
        f"/api/v1/users/{bob.id}", params={"version": "0" * 32}, headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["latest_version"] == bob.version

    response = await client.delete(
        f"/api/v1/users/{bob.id}", params={"version": bob.version}, headers=admin_headers,
    )
    assert response.status_code == 204
