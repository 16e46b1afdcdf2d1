import pytest

from conftest import auth_headers, make_account, make_profile


def booking_payload(model_id, **overrides):
    data = {
        "modelId": model_id,
        "startAt": "2026-11-02T09:00:00Z",
        "duration": "HALF_DAY",
        "requesterName": "Nour",
        "requesterPhone": "+201001112223",
        "requesterBrand": "Nile Studio",
        "brandWebsite": "nilestudio.com",
        "offeredBudgetEgp": 2500,
    }
    data.update(overrides)
    return data


@pytest.mark.parametrize("duration,budget,status", [
    ("HALF_DAY", 2499, 400),
    ("HALF_DAY", 2500, 201),
    ("FULL_DAY", 3499, 400),
    ("FULL_DAY", 3500, 201),
])
def test_budget_floor(client, db, duration, budget, status):
    pid = make_profile()
    res = client.post("/api/booking/create", json=booking_payload(pid, duration=duration, offeredBudgetEgp=budget))
    assert res.status_code == status, res.text
    if status == 400:
        assert "Minimum budget" in res.json()["detail"]
        assert db["booking"].count_documents({}) == 0


def test_anonymous_booking_is_pending(client, db):
    pid = make_profile()
    res = client.post("/api/booking/create", json=booking_payload(pid))
    assert res.status_code == 201
    booking = db["booking"].find_one({})
    assert str(booking["_id"]) == res.json()["id"]
    assert booking["status"] == "PENDING"
    assert booking["created_by_id"] is None
    assert booking["brand_website"] == "https://nilestudio.com"
    assert (booking["end_at"] - booking["start_at"]).total_seconds() == 4 * 3600


def test_signed_in_booking_records_creator(client, db):
    pid = make_profile()
    brand = make_account("BRAND")
    res = client.post("/api/booking/create", json=booking_payload(pid), headers=auth_headers(brand))
    assert res.status_code == 201
    assert db["booking"].find_one({})["created_by_id"] == brand


def test_multiple_days_needs_end(client, db):
    pid = make_profile()
    res = client.post("/api/booking/create", json=booking_payload(pid, duration="MULTIPLE_DAYS", offeredBudgetEgp=9000))
    assert res.status_code == 400
    res = client.post("/api/booking/create", json=booking_payload(
        pid, duration="MULTIPLE_DAYS", offeredBudgetEgp=9000, endAt="2026-11-04T18:00:00Z"))
    assert res.status_code == 201


def test_schema_errors(client, db):
    pid = make_profile()
    res = client.post("/api/booking/create", json=booking_payload(pid, duration="WEEK", requesterPhone="call me"))
    assert res.status_code == 400
    assert {"duration", "requesterPhone"} <= set(res.json()["fields"])


def test_unapproved_or_unavailable_talent(client, db):
    hidden = make_profile(approved=False)
    assert client.post("/api/booking/create", json=booking_payload(hidden)).status_code == 404
    busy = make_profile(available=False)
    assert client.post("/api/booking/create", json=booking_payload(busy)).status_code == 400
    assert client.post("/api/booking/create", json=booking_payload("nope")).status_code == 404


def _book(client, pid, **overrides):
    res = client.post("/api/booking/create", json=booking_payload(pid, **overrides))
    assert res.status_code == 201
    return res.json()["id"]


def test_confirm_and_cancel_are_admin_only(client, db):
    pid = make_profile()
    bid = _book(client, pid)
    assert client.post("/api/admin/confirm-booking", json={"bookingId": bid}).status_code == 401
    brand = make_account("BRAND")
    res = client.post("/api/admin/confirm-booking", json={"bookingId": bid}, headers=auth_headers(brand))
    assert res.status_code == 403


def test_confirm_then_no_way_back(client, db, admin_headers):
    pid = make_profile()
    bid = _book(client, pid)
    res = client.post("/api/admin/confirm-booking", json={"bookingId": bid}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["booking"]["status"] == "CONFIRMED"

    again = client.post("/api/admin/cancel-booking", json={"bookingId": bid}, headers=admin_headers)
    assert again.status_code == 409


def test_cancel_appends_reason(client, db, admin_headers):
    pid = make_profile()
    bid = _book(client, pid, note="Beach shoot")
    res = client.post("/api/admin/cancel-booking", json={"bookingId": bid, "reason": "Talent ill"},
                      headers=admin_headers)
    assert res.status_code == 200
    booking = res.json()["booking"]
    assert booking["status"] == "CANCELLED"
    assert booking["note"] == "Beach shoot\n\nCancelled: Talent ill"


def test_overlapping_confirmation_is_refused(client, db, admin_headers):
    pid = make_profile()
    first = _book(client, pid, startAt="2026-11-02T09:00:00Z")
    overlapping = _book(client, pid, startAt="2026-11-02T11:00:00Z")
    later = _book(client, pid, startAt="2026-11-02T13:00:00Z")

    assert client.post("/api/admin/confirm-booking", json={"bookingId": first}, headers=admin_headers).status_code == 200
    assert client.post("/api/admin/confirm-booking", json={"bookingId": overlapping}, headers=admin_headers).status_code == 409
    assert client.post("/api/admin/confirm-booking", json={"bookingId": later}, headers=admin_headers).status_code == 200


def test_unknown_booking(client, db, admin_headers):
    res = client.post("/api/admin/confirm-booking", json={"bookingId": "64b7f0c2a1b2c3d4e5f60718"}, headers=admin_headers)
    assert res.status_code == 404


def test_admin_booking_list(client, db, admin_headers):
    pid = make_profile(display_name="Salma")
    _book(client, pid)
    res = client.get("/api/admin/bookings", headers=admin_headers)
    assert res.status_code == 200
    items = res.json()["items"]
    assert len(items) == 1
    assert items[0]["modelName"] == "Salma"
    assert items[0]["modelId"] == pid
    assert items[0]["offeredBudgetEgp"] == 2500


def test_budget_floor_checked_before_talent_lookup(client, db):
    missing = "64b7f0c2a1b2c3d4e5f60718"
    res = client.post("/api/booking/create", json=booking_payload(missing, offeredBudgetEgp=100))
    assert res.status_code == 400
    assert "Minimum budget" in res.json()["detail"]

    busy = make_profile(available=False)
    res = client.post("/api/booking/create", json=booking_payload(busy, offeredBudgetEgp=100))
    assert res.status_code == 400
    assert "Minimum budget" in res.json()["detail"]
    assert db["booking"].count_documents({}) == 0


def test_requester_email_must_be_valid(client, db):
    pid = make_profile()
    res = client.post("/api/booking/create", json=booking_payload(pid, requesterEmail="<x>@y.z"))
    assert res.status_code == 400
    assert "requesterEmail" in res.json()["fields"]
    res = client.post("/api/booking/create", json=booking_payload(pid, requesterEmail=" Nour@Studio.com "))
    assert res.status_code == 201
    assert db["booking"].find_one({})["requester_email"] == "nour@studio.com"
