"""
End-to-end tests through the HTTP API.

Run with: pytest tests/test_api.py -v
"""
from datetime import datetime, time, timedelta
from decimal import Decimal

import pytest

HOURS = {
    day: {"start": "09:00", "end": "17:00"}
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
}
HOURS["saturday"] = {"start": "09:00", "end": "12:00"}


def register(client, email, role, password="secret-pass", business_name="Salon"):
    body = {"email": email, "password": password, "role": role}
    if role == "merchant":
        body["business_name"] = business_name
    r = client.post("/users", json=body)
    assert r.status_code == 201, r.text
    r = client.post("/auth/login", data={"username": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def shop(client):
    """A merchant with working hours and a one hour service, plus a client."""
    merchant = register(client, "owner@salon.test", "merchant")
    customer = register(client, "ana@client.test", "client")

    r = client.put("/businesses/me/hours", json={"name": "Salon", "work_days": HOURS}, headers=merchant)
    assert r.status_code == 200, r.text
    business_id = r.json()["id"]

    r = client.post("/businesses/me/services", json={"name": "Haircut", "duration_minutes": 60}, headers=merchant)
    assert r.status_code == 201, r.text

    return {
        "merchant": merchant,
        "client": customer,
        "business_id": business_id,
        "service_id": r.json()["id"],
    }


def iso(day, hour):
    return datetime.combine(day, time(hour)).isoformat()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_login_with_wrong_password(client):
    register(client, "x@client.test", "client")
    r = client.post("/auth/login", data={"username": "x@client.test", "password": "nope-nope"})
    assert r.status_code == 401
    assert r.json()["code"] == "invalid_credentials"


def test_me_requires_token(client):
    assert client.get("/me").status_code == 401


def test_duplicate_email(client):
    register(client, "x@client.test", "client")
    r = client.post("/users", json={"email": "x@client.test", "password": "whatever1", "role": "client"})
    assert r.status_code == 409
    assert r.json() == {"detail": "Email already registered", "code": "email_taken"}


def test_merchant_signs_up_with_business(client):
    headers = register(client, "owner@barber.test", "merchant", business_name="Barber Joe")

    r = client.get("/me", headers=headers)
    assert r.status_code == 200
    me = r.json()
    assert me["role"] == "merchant"
    assert me["business_id"] is not None

    # no working hours yet: closed every day
    r = client.get("/businesses/me/hours", headers=headers)
    assert r.status_code == 200
    assert r.json() == {"id": me["business_id"], "owner_id": me["id"], "name": "Barber Joe", "work_days": {}}


def test_merchant_sign_up_needs_business_name(client):
    r = client.post("/users", json={"email": "owner@x.test", "password": "secret-pass", "role": "merchant"})
    assert r.status_code == 422
    assert r.json()["code"] == "validation_error"

    # nothing was stored
    r = client.post("/auth/login", data={"username": "owner@x.test", "password": "secret-pass"})
    assert r.status_code == 401


def test_client_profile_has_no_business(client):
    headers = register(client, "ana@client.test", "client")
    r = client.get("/me", headers=headers)
    assert r.json()["email"] == "ana@client.test"
    assert r.json()["business_id"] is None


def test_service_price_round_trip(client, shop):
    r = client.post(
        "/businesses/me/services",
        json={"name": "Beard trim", "duration_minutes": 30, "price": "35.50"},
        headers=shop["merchant"],
    )
    assert r.status_code == 201, r.text
    assert Decimal(r.json()["price"]) == Decimal("35.50")

    r = client.get(f"/businesses/{shop['business_id']}/services")
    prices = {s["name"]: s["price"] for s in r.json()}
    assert prices["Haircut"] is None
    assert Decimal(prices["Beard trim"]) == Decimal("35.50")


def test_negative_price_is_rejected(client, shop):
    r = client.post(
        "/businesses/me/services",
        json={"name": "Refund", "price": "-1"},
        headers=shop["merchant"],
    )
    assert r.status_code == 422


def test_working_hours_round_trip(client, shop):
    r = client.get("/businesses/me/hours", headers=shop["merchant"])
    assert r.status_code == 200
    assert r.json()["work_days"]["monday"] == {"start": "09:00:00", "end": "17:00:00"}
    assert "sunday" not in r.json()["work_days"]


def test_bad_working_hours(client, shop):
    r = client.put(
        "/businesses/me/hours",
        json={"work_days": {"monday": {"start": "18:00", "end": "09:00"}}},
        headers=shop["merchant"],
    )
    assert r.status_code == 422
    assert r.json()["code"] == "validation_error"


def test_client_cannot_set_hours(client, shop):
    r = client.put("/businesses/me/hours", json={"work_days": HOURS}, headers=shop["client"])
    assert r.status_code == 403
    assert r.json()["code"] == "forbidden"


def test_availability_for_open_monday(client, shop, next_monday):
    r = client.get(
        f"/businesses/{shop['business_id']}/availability",
        params={"on_date": next_monday.isoformat(), "service_id": shop["service_id"]},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["duration_minutes"] == 60
    assert [s["time"] for s in body["slots"]] == [f"{h:02d}:00" for h in range(9, 17)]
    assert {s["status"] for s in body["slots"]} == {"available"}


def test_availability_on_closed_day(client, shop, next_monday):
    r = client.get(
        f"/businesses/{shop['business_id']}/availability",
        params={"on_date": (next_monday + timedelta(days=6)).isoformat(), "service_id": shop["service_id"]},
    )
    assert r.status_code == 200
    assert r.json()["slots"] == []


def test_open_dates(client, shop, next_monday):
    r = client.get(
        f"/businesses/{shop['business_id']}/open-dates",
        params={"start": next_monday.isoformat(), "days": 7},
    )
    assert r.status_code == 200
    assert len(r.json()["dates"]) == 6


def test_unknown_business(client):
    r = client.get("/businesses/999/open-dates")
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"


def test_booking_and_reschedule_flow(client, shop, next_monday):
    business_id = shop["business_id"]

    # book 10:00
    r = client.post(
        f"/businesses/{business_id}/appointments",
        json={"service_id": shop["service_id"], "starts_at": iso(next_monday, 10), "payment_method": "cash"},
        headers=shop["client"],
    )
    assert r.status_code == 201, r.text
    appt = r.json()
    assert appt["status"] == "pending"
    assert appt["payment_method"] == "cash"

    # the same hour is gone
    r = client.post(
        f"/businesses/{business_id}/appointments",
        json={"service_id": shop["service_id"], "starts_at": iso(next_monday, 10)},
        headers=shop["client"],
    )
    assert r.status_code == 409
    assert r.json() == {"detail": "This time is no longer available", "code": "slot_unavailable"}

    # merchant confirms
    r = client.patch(f"/appointments/{appt['id']}/confirm", headers=shop["merchant"])
    assert r.status_code == 200
    assert r.json()["status"] == "confirmed"

    # client proposes 14:00
    r = client.post(
        f"/appointments/{appt['id']}/reschedules",
        json={"starts_at": iso(next_monday, 14), "justification": "meeting moved"},
        headers=shop["client"],
    )
    assert r.status_code == 201, r.text
    request_id = r.json()["id"]
    assert r.json()["status"] == "pending"

    r = client.get(f"/appointments/{appt['id']}", headers=shop["merchant"])
    assert r.json()["status"] == "pending"
    assert r.json()["start_time"] == iso(next_monday, 10)
    assert r.json()["reschedule_justification"] == "meeting moved"

    # a second proposal is refused while the first is open
    r = client.post(
        f"/appointments/{appt['id']}/reschedules",
        json={"starts_at": iso(next_monday, 15)},
        headers=shop["merchant"],
    )
    assert r.status_code == 409
    assert r.json()["detail"] == "A reschedule is already in progress"

    # merchant rejects -> back to confirmed at 10:00
    r = client.post(f"/reschedules/{request_id}/reject", json={"reason": "no staff"}, headers=shop["merchant"])
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "confirmed"
    assert r.json()["start_time"] == iso(next_monday, 10)

    # answering again is refused
    r = client.post(f"/reschedules/{request_id}/accept", headers=shop["merchant"])
    assert r.status_code == 409
    assert r.json()["detail"] == "This request has already been handled"

    # merchant proposes 15:00, client accepts
    r = client.post(
        f"/appointments/{appt['id']}/reschedules",
        json={"starts_at": iso(next_monday, 15)},
        headers=shop["merchant"],
    )
    assert r.status_code == 201, r.text
    r = client.post(f"/reschedules/{r.json()['id']}/accept", headers=shop["client"])
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "confirmed"
    assert r.json()["start_time"] == iso(next_monday, 15)

    r = client.get(f"/appointments/{appt['id']}/reschedules", headers=shop["client"])
    assert [x["status"] for x in r.json()] == ["rejected", "accepted"]

    r = client.get(
        f"/businesses/{business_id}/availability",
        params={"on_date": next_monday.isoformat(), "service_id": shop["service_id"]},
    )
    statuses = {s["time"]: s["status"] for s in r.json()["slots"]}
    assert statuses["10:00"] == "available"
    assert statuses["15:00"] == "occupied"


def test_cancel_and_listings(client, shop, next_monday):
    r = client.post(
        f"/businesses/{shop['business_id']}/appointments",
        json={"service_id": shop["service_id"], "starts_at": iso(next_monday, 11)},
        headers=shop["client"],
    )
    appt_id = r.json()["id"]

    r = client.patch(f"/appointments/{appt_id}/cancel", headers=shop["client"])
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"

    r = client.patch(f"/appointments/{appt_id}/confirm", headers=shop["merchant"])
    assert r.status_code == 409
    assert r.json()["code"] == "invalid_transition"

    r = client.get("/clients/me/appointments", params={"status": "cancelled"}, headers=shop["client"])
    assert [a["id"] for a in r.json()] == [appt_id]

    r = client.get(
        "/businesses/me/appointments",
        params={"status": "active", "on_date": next_monday.isoformat()},
        headers=shop["merchant"],
    )
    assert r.json() == []


def test_other_client_cannot_see_appointment(client, shop, next_monday):
    r = client.post(
        f"/businesses/{shop['business_id']}/appointments",
        json={"service_id": shop["service_id"], "starts_at": iso(next_monday, 9)},
        headers=shop["client"],
    )
    appt_id = r.json()["id"]

    stranger = register(client, "bia@client.test", "client")
    r = client.get(f"/appointments/{appt_id}", headers=stranger)
    assert r.status_code == 403
