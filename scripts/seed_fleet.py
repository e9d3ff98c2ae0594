#!/usr/bin/env python3
"""Seed demo vehicles and drivers."""

import asyncio
from datetime import UTC, date, datetime, timedelta
from uuid import uuid4

from sqlalchemy import select

from fleetbook.database import AsyncSessionLocal
from fleetbook.domain.eligibility import MAINTENANCE_INTERVAL_MONTHS, add_months
from fleetbook.domain.entities import Driver, Vehicle
from fleetbook.domain.enums import LicenseType, VehicleType
from fleetbook.models import Driver as DriverRow
from fleetbook.models import Vehicle as VehicleRow
from fleetbook.repositories.fleet_repository import FleetRepository

DEMO_VEHICLES = [
    ("FLT 1001", VehicleType.SEDAN, 4, "Toyota", "Corolla"),
    ("FLT 1002", VehicleType.SUV, 6, "Honda", "CR-V"),
    ("FLT 2001", VehicleType.VAN, 12, "Ford", "Transit"),
    ("FLT 3001", VehicleType.TRUCK, 2, "Isuzu", "N-Series"),
    ("FLT 4001", VehicleType.MOTORCYCLE, 1, "Yamaha", "MT-07"),
]

DEMO_DRIVERS = [
    ("DL-100001", LicenseType.CLASS_1, "Operations"),
    ("DL-200001", LicenseType.CLASS_2, "Logistics"),
    ("DL-300001", LicenseType.COMMERCIAL, "Logistics"),
    ("DL-400001", LicenseType.MOTORCYCLE, "Courier"),
]


async def seed_fleet(count: int | None = None) -> None:
    """Insert demo vehicles and drivers that don't exist yet."""
    now = datetime.now(UTC)
    today = date.today()

    async with AsyncSessionLocal() as session:
        repository = FleetRepository(session)

        for plate, vehicle_type, capacity, make, model in DEMO_VEHICLES[:count]:
            result = await session.execute(
                select(VehicleRow).where(VehicleRow.plate_number == plate)
            )
            if result.scalar_one_or_none():
                print(f"Vehicle exists: {plate}")
                continue
            await repository.save_vehicle(
                Vehicle(
                    plate_number=plate,
                    vehicle_type=vehicle_type,
                    capacity=capacity,
                    make=make,
                    model=model,
                    year=now.year - 2,
                    location="Head Office",
                    last_maintenance=now - timedelta(days=30),
                    next_maintenance=add_months(now, MAINTENANCE_INTERVAL_MONTHS),
                )
            )
            print(f"Created vehicle: {plate} ({vehicle_type.value}, {capacity} seats)")

        for license_number, license_type, department in DEMO_DRIVERS[:count]:
            result = await session.execute(
                select(DriverRow).where(DriverRow.license_number == license_number)
            )
            if result.scalar_one_or_none():
                print(f"Driver exists: {license_number}")
                continue
            await repository.save_driver(
                Driver(
                    user_id=uuid4(),
                    license_type=license_type,
                    license_number=license_number,
                    license_expiry_date=today + timedelta(days=3 * 365),
                    last_health_check=today - timedelta(days=60),
                    department=department,
                    years_of_experience=5,
                )
            )
            print(f"Created driver: {license_number} ({license_type.value})")

        await session.commit()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Seed demo vehicles and drivers")
    parser.add_argument("--count", type=int, default=None, help="Limit of each kind to create")

    args = parser.parse_args()

    asyncio.run(seed_fleet(count=args.count))
