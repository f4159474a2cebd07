"""
Tests for reservation endpoints including concurrency scenarios.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from app.api.deps import reservation_service
from app.services.versioned_store import StorageUnavailableError


@pytest.mark.asyncio
async def test_reserve_seat(client: AsyncClient, screening, alice, alice_headers):
    response = await client.post(
        "/api/v1/reservations/",
        json={"screening_id": screening.id, "row": 2, "seat": 3},
        headers=alice_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["user_id"] == alice.id
    assert (data["row"], data["seat"]) == (2, 3)
    assert data["status"] == "confirmed"
    assert len(data["version"]) == 32


@pytest.mark.asyncio
async def test_reserve_unauthenticated(client: AsyncClient, screening):
    response = await client.post(
        "/api/v1/reservations/",
        json={"screening_id": screening.id, "row": 2, "seat": 3},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_reserve_taken_seat(client: AsyncClient, screening, alice, alice_headers, bob_headers):
    await client.post(
        "/api/v1/reservations/",
        json={"screening_id": screening.id, "row": 2, "seat": 3},
        headers=alice_headers,
    )

    response = await client.post(
        "/api/v1/reservations/",
        json={"screening_id": screening.id, "row": 2, "seat": 3},
        headers=bob_headers,
    )
    assert response.status_code == 409
    body = response.json()
    assert body["message"] == "This seat is already reserved. Please select another seat."
    assert body["latest_fields"]["holder_id"] == alice.id
    assert body["latest_fields"]["seats"] == [{"row": 2, "seat": 3}]
    assert body["latest_version"] is None


@pytest.mark.asyncio
async def test_concurrent_reservations_same_seat(client: AsyncClient, screening, alice_headers, bob_headers):
    """Two simultaneous requests for one seat: one 201, one 409."""
    payload = {"screening_id": screening.id, "row": 2, "seat": 3}

    responses = await asyncio.gather(
        client.post("/api/v1/reservations/", json=payload, headers=alice_headers),
        client.post("/api/v1/reservations/", json=payload, headers=bob_headers),
    )

    assert sorted(r.status_code for r in responses) == [201, 409]

    listed = await client.get(f"/api/v1/screenings/{screening.id}/reservations")
    assert len(listed.json()) == 1


@pytest.mark.asyncio
async def test_reserve_outside_grid(client: AsyncClient, screening, alice_headers):
    response = await client.post(
        "/api/v1/reservations/",
        json={"screening_id": screening.id, "row": 99, "seat": 3},
        headers=alice_headers,
    )
    assert response.status_code == 400

    response = await client.post(
        "/api/v1/reservations/",
        json={"screening_id": screening.id, "row": 0, "seat": 15},
        headers=alice_headers,
    )
    assert response.status_code == 400
    assert "10 rows of 15 seats" in response.json()["detail"]


@pytest.mark.asyncio
async def test_reserve_missing_screening(client: AsyncClient, alice_headers):
    response = await client.post(
        "/api/v1/reservations/",
        json={"screening_id": 999, "row": 0, "seat": 0},
        headers=alice_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_batch_reservation_is_all_or_nothing(client: AsyncClient, screening, alice_headers, bob_headers):
    await client.post(
        "/api/v1/reservations/",
        json={"screening_id": screening.id, "row": 1, "seat": 5},
        headers=alice_headers,
    )

    response = await client.post(
        "/api/v1/reservations/batch",
        json={"screening_id": screening.id, "seats": [{"row": 1, "seat": 4}, {"row": 1, "seat": 5}]},
        headers=bob_headers,
    )
    assert response.status_code == 409
    assert (await client.get("/api/v1/reservations/", headers=bob_headers)).json() == []

    response = await client.post(
        "/api/v1/reservations/batch",
        json={"screening_id": screening.id, "seats": [{"row": 1, "seat": 6}, {"row": 1, "seat": 7}]},
        headers=bob_headers,
    )
    assert response.status_code == 201
    assert len(response.json()) == 2


@pytest.mark.asyncio
async def test_cancel_reservation(client: AsyncClient, screening, alice_headers):
    reserved = (await client.post(
        "/api/v1/reservations/",
        json={"screening_id": screening.id, "row": 2, "seat": 3},
        headers=alice_headers,
    )).json()

    response = await client.delete(
        f"/api/v1/reservations/{reserved['id']}",
        params={"version": reserved["version"]},
        headers=alice_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    seats = (await client.get(f"/api/v1/screenings/{screening.id}/seats")).json()
    assert not any(s["is_reserved"] for s in seats)


@pytest.mark.asyncio
async def test_cancel_someone_elses_reservation(client: AsyncClient, screening, alice_headers, bob_headers):
    reserved = (await client.post(
        "/api/v1/reservations/",
        json={"screening_id": screening.id, "row": 2, "seat": 3},
        headers=alice_headers,
    )).json()

    response = await client.delete(
        f"/api/v1/reservations/{reserved['id']}",
        params={"version": reserved["version"]},
        headers=bob_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_cancel_missing_reservation(client: AsyncClient, alice_headers):
    response = await client.delete(
        "/api/v1/reservations/4242",
        params={"version": "0" * 32},
        headers=alice_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cancel_with_stale_version(client: AsyncClient, screening, alice_headers):
    reserved = (await client.post(
        "/api/v1/reservations/",
        json={"screening_id": screening.id, "row": 2, "seat": 3},
        headers=alice_headers,
    )).json()

    response = await client.delete(
        f"/api/v1/reservations/{reserved['id']}",
        params={"version": "0" * 32},
        headers=alice_headers,
    )
    assert response.status_code == 409
    assert response.json()["latest_version"] == reserved["version"]


@pytest.mark.asyncio
async def test_cancel_by_seat(client: AsyncClient, screening, alice_headers):
    await client.post(
        "/api/v1/reservations/",
        json={"screening_id": screening.id, "row": 4, "seat": 4},
        headers=alice_headers,
    )

    response = await client.delete(
        "/api/v1/reservations/seat",
        params={"screening_id": screening.id, "row": 4, "seat": 4},
        headers=alice_headers,
    )
    assert response.status_code == 200

    again = await client.delete(
        "/api/v1/reservations/seat",
        params={"screening_id": screening.id, "row": 4, "seat": 4},
        headers=alice_headers,
    )
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_list_my_reservations(client: AsyncClient, screening, alice_headers, bob_headers):
    for seat in (1, 2):
        await client.post(
            "/api/v1/reservations/",
            json={"screening_id": screening.id, "row": 0, "seat": seat},
            headers=alice_headers,
        )

    mine = (await client.get("/api/v1/reservations/", headers=alice_headers)).json()
    assert sorted(r["seat"] for r in mine) == [1, 2]
    assert (await client.get("/api/v1/reservations/", headers=bob_headers)).json() == []


@pytest.mark.asyncio
async def test_exhausted_storage_retries_are_not_a_conflict(
    client: AsyncClient, screening, alice_headers, monkeypatch,
):
    """Persistent lock timeouts surface as 503 with Retry-After, never as a 409 conflict view."""
    monkeypatch.setattr(
        reservation_service,
        "reserve",
        AsyncMock(side_effect=StorageUnavailableError("insert_reservation", 3)),
    )

    response = await client.post(
        "/api/v1/reservations/",
        json={"screening_id": screening.id, "row": 2, "seat": 3},
        headers=alice_headers,
    )

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"
    assert "latest_fields" not in response.json()
    assert "detail" in response.json()
