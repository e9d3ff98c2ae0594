"""Vehicle and driver endpoints."""

from datetime import timedelta
from uuid import uuid4

import pytest

VEHICLES = "/api/v1/vehicles"
DRIVERS = "/api/v1/drivers"


def vehicle_payload(now, **overrides) -> dict:
    payload = {
        "plate_number": "  api 1001 ",
        "vehicle_type": "VAN",
        "capacity": 8,
        "make": "Ford",
        "model": "Transit",
        "year": 2021,
        "last_maintenance": (now - timedelta(days=10)).isoformat(),
        "next_maintenance": (now + timedelta(days=120)).isoformat(),
    }
    payload.update(overrides)
    return payload


def driver_payload(today, **overrides) -> dict:
    payload = {
        "user_id": str(uuid4()),
        "license_type": "class_2",
        "license_number": "DL-API-1",
        "license_expiry_date": (today + timedelta(days=400)).isoformat(),
        "last_health_check": (today - timedelta(days=10)).isoformat(),
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_register_vehicle(client, now):
    response = await client.post(f"{VEHICLES}/", json=vehicle_payload(now))
    assert response.status_code == 201
    body = response.json()
    assert body["plate_number"] == "API 1001"
    assert body["vehicle_type"] == "van"
    assert body["status"] == "available"
    assert body["display_name"] == "2021 Ford Transit (API 1001)"

    listed = (await client.get(f"{VEHICLES}/", params={"available_only": True})).json()
    assert [v["id"] for v in listed] == [body["id"]]


@pytest.mark.asyncio
async def test_duplicate_plate(client, now):
    await client.post(f"{VEHICLES}/", json=vehicle_payload(now))
    response = await client.post(f"{VEHICLES}/", json=vehicle_payload(now))
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_invalid_vehicle_payloads(client, now):
    assert (
        await client.post(f"{VEHICLES}/", json=vehicle_payload(now, vehicle_type="spaceship"))
    ).status_code == 422
    assert (
        await client.post(f"{VEHICLES}/", json=vehicle_payload(now, capacity=0))
    ).status_code == 422
    assert (
        await client.post(f"{VEHICLES}/", json=vehicle_payload(now, plate_number="-"))
    ).status_code == 422


@pytest.mark.asyncio
async def test_vehicle_status_and_maintenance(client, vehicle):
    response = await client.post(
        f"{VEHICLES}/{vehicle.id}/status", json={"status": "maintenance"}
    )
    assert response.status_code == 200
    assert response.json()["available_for_booking"] is False

    response = await client.post(f"{VEHICLES}/{vehicle.id}/maintenance")
    assert response.status_code == 200
    assert response.json()["status"] == "available"


@pytest.mark.asyncio
async def test_maintenance_due_listing(client, now):
    await client.post(
        f"{VEHICLES}/",
        json=vehicle_payload(now, next_maintenance=(now + timedelta(days=2)).isoformat()),
    )
    due = (await client.get(f"{VEHICLES}/maintenance-due")).json()
    assert [v["plate_number"] for v in due] == ["API 1001"]


@pytest.mark.asyncio
async def test_vehicle_usage_period_must_be_ordered(client, vehicle, now):
    response = await client.get(
        f"{VEHICLES}/{vehicle.id}/usage",
        params={"start": now.isoformat(), "end": (now - timedelta(days=1)).isoformat()},
    )
    assert response.status_code == 422

    response = await client.get(
        f"{VEHICLES}/{vehicle.id}/usage",
        params={"start": (now - timedelta(days=30)).isoformat(), "end": now.isoformat()},
    )
    assert response.status_code == 200
    assert response.json()["completed_trips"] == 0


@pytest.mark.asyncio
async def test_retire_vehicle(client, vehicle):
    assert (await client.delete(f"{VEHICLES}/{vehicle.id}")).status_code == 204
    assert (await client.get(f"{VEHICLES}/{vehicle.id}")).status_code == 404


@pytest.mark.asyncio
async def test_unknown_vehicle(client):
    assert (await client.get(f"{VEHICLES}/{uuid4()}")).status_code == 404


@pytest.mark.asyncio
async def test_register_driver_and_change_status(client, now):
    response = await client.post(f"{DRIVERS}/", json=driver_payload(now.date()))
    assert response.status_code == 201
    driver = response.json()
    assert driver["license_type"] == "class_2"
    assert driver["status"] == "available"

    response = await client.post(f"{DRIVERS}/{driver['id']}/status", json={"status": "SICK"})
    assert response.status_code == 200
    assert response.json()["status"] == "sick"
    assert response.json()["available_for_booking"] is False


@pytest.mark.asyncio
async def test_license_renewal_listing(client, now):
    today = now.date()
    await client.post(
        f"{DRIVERS}/",
        json=driver_payload(today, license_expiry_date=(today + timedelta(days=5)).isoformat()),
    )
    await client.post(f"{DRIVERS}/", json=driver_payload(today, license_number="DL-API-2"))

    renewals = (await client.get(f"{DRIVERS}/license-renewals")).json()
    assert [d["license_number"] for d in renewals] == ["DL-API-1"]


@pytest.mark.asyncio
async def test_retire_driver(client, driver):
    assert (await client.delete(f"{DRIVERS}/{driver.id}")).status_code == 204
    assert (await client.get(f"{DRIVERS}/{driver.id}")).status_code == 404
