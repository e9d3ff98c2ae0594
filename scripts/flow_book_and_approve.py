#!/usr/bin/env python3
"""
Complete booking lifecycle flow script.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_book_and_approve.py --vehicle-id <UUID> --start 2026-11-02T09:00:00Z --end 2026-11-02T12:00:00Z
    python scripts/flow_book_and_approve.py --vehicle-id <UUID> --driver-id <UUID> --start ... --end ... --skip-trip

Flow:
    1. Check availability
    2. Create booking (as requester)
    3. Approve booking (as manager)
    4. Confirm booking
    5. Start trip
    6. Complete trip
"""

import argparse
import json
import sys
from uuid import uuid4

import httpx

BASE_URL = "http://localhost:8000"

# Caller identities sent as X-User-Id
REQUESTER_ID = str(uuid4())
MANAGER_ID = str(uuid4())


def api_request(user_id: str, method: str, endpoint: str, data: dict | None = None, params: dict | None = None) -> dict:
    """Make an API request on behalf of a user."""
    headers = {"X-User-Id": user_id}
    url = f"{BASE_URL}{endpoint}"

    if method == "GET":
        response = httpx.get(url, headers=headers, params=params, timeout=10.0, follow_redirects=True)
    elif method == "POST":
        response = httpx.post(url, headers=headers, json=data or {}, timeout=10.0, follow_redirects=True)
    else:
        raise ValueError(f"Unknown method: {method}")

    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_result(result: dict, fields: list[str] | None = None):
    """Print result, optionally filtering fields."""
    if result["status"] >= 400:
        print(f"ERROR ({result['status']}): {json.dumps(result['data'], indent=2)}")
        return False

    print(f"Status: {result['status']}")
    if fields:
        filtered = {k: result["data"].get(k) for k in fields if k in result["data"]}
        print(json.dumps(filtered, indent=2))
    else:
        print(json.dumps(result["data"], indent=2))
    return True


def main():
    parser = argparse.ArgumentParser(description="Complete booking lifecycle flow")
    parser.add_argument("--vehicle-id", required=True, help="Vehicle UUID")
    parser.add_argument("--driver-id", default=None, help="Driver UUID (omit for self-drive)")
    parser.add_argument("--start", required=True, help="Start time (ISO 8601)")
    parser.add_argument("--end", required=True, help="End time (ISO 8601)")
    parser.add_argument("--passengers", type=int, default=1, help="Estimated passengers")
    parser.add_argument("--mileage", type=float, default=42.0, help="Trip mileage reported on completion")
    parser.add_argument("--skip-trip", action="store_true", help="Stop after confirmation")
    args = parser.parse_args()

    booking_fields = ["id", "booking_reference", "status", "display_status", "approved_at", "actual_mileage"]

    # Step 1: Check availability
    print_step(1, "Check availability")
    params = {"vehicle_id": args.vehicle_id, "start_time": args.start, "end_time": args.end}
    if args.driver_id:
        params["driver_id"] = args.driver_id
    availability = api_request(REQUESTER_ID, "GET", "/api/v1/bookings/availability", params=params)
    if not print_result(availability):
        sys.exit(1)
    if not availability["data"].get("available"):
        print("ERROR: Vehicle or driver not available for the requested period")
        sys.exit(1)

    # Step 2: Create booking
    print_step(2, "Create booking (as requester)")
    booking_result = api_request(REQUESTER_ID, "POST", "/api/v1/bookings/", {
        "vehicle_id": args.vehicle_id,
        "driver_id": args.driver_id,
        "start_time": args.start,
        "end_time": args.end,
        "purpose": "Client visit",
        "pickup_location": "Head Office",
        "destination": "Client Site",
        "estimated_passengers": args.passengers,
        "manager_name": "fleet-manager",
    })
    if not print_result(booking_result, booking_fields):
        sys.exit(1)

    booking_id = booking_result["data"]["id"]
    print(f"\nBooking created: {booking_result['data']['booking_reference']}")

    # Step 3: Approve booking
    print_step(3, "Approve booking (as manager)")
    if booking_result["data"]["status"] == "pending":
        approve_result = api_request(MANAGER_ID, "POST", f"/api/v1/bookings/{booking_id}/approve", {
            "comment": "Approved via flow script",
        })
        if not print_result(approve_result, booking_fields):
            sys.exit(1)
    else:
        print("Booking already approved by policy")

    # Step 4: Confirm booking
    print_step(4, "Confirm booking")
    confirm_result = api_request(MANAGER_ID, "POST", f"/api/v1/bookings/{booking_id}/confirm")
    if not print_result(confirm_result, booking_fields):
        sys.exit(1)

    if args.skip_trip:
        print("\n" + "="*60)
        print("FLOW COMPLETE (skipped trip)")
        print("="*60)
        return

    # Step 5: Start trip
    print_step(5, "Start trip")
    activate_result = api_request(REQUESTER_ID, "POST", f"/api/v1/bookings/{booking_id}/activate")
    if not print_result(activate_result, booking_fields):
        sys.exit(1)

    # Step 6: Complete trip
    print_step(6, "Complete trip")
    complete_result = api_request(REQUESTER_ID, "POST", f"/api/v1/bookings/{booking_id}/complete", {
        "feedback": "Smooth trip",
        "actual_mileage": args.mileage,
    })
    if not print_result(complete_result, booking_fields):
        sys.exit(1)

    # Final summary
    print("\n" + "="*60)
    print("FULL FLOW COMPLETE")
    print("="*60)


if __name__ == "__main__":
    main()
