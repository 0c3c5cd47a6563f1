import pytest

from app.services.status_query import StatusQueryError, check_payment_status

from conftest import user_headers

STATUS_URL = "/payments/status"


def test_owner_sees_current_status(client, make_booking):
    make_booking("B1", status="confirmed", payment_status="completed", payment_id="T1")

    res = client.post(STATUS_URL, json={"bookingId": "B1"}, headers=user_headers("user-1"))

    assert res.status_code == 200
    assert res.json() == {
        "success": True,
        "status": "confirmed",
        "paymentStatus": "completed",
        "paymentId": "T1",
    }


def test_unpaid_booking_has_no_payment_id(client, make_booking):
    make_booking("B1")

    body = client.post(STATUS_URL, json={"bookingId": "B1"}, headers=user_headers("user-1")).json()

    assert body["paymentStatus"] == "unpaid"
    assert body["paymentId"] is None


def test_coach_appointment_lookup(client, make_appointment):
    make_appointment("C1", payment_id="T7")

    res = client.post(
        STATUS_URL,
        json={"bookingId": "C1", "bookingType": "coach"},
        headers=user_headers("student-1"),
    )

    assert res.status_code == 200
    assert res.json()["paymentId"] == "T7"


def test_unauthenticated(client, make_booking):
    make_booking("B1")

    res = client.post(STATUS_URL, json={"bookingId": "B1"})

    assert res.status_code == 401
    assert res.json()["detail"]["code"] == "unauthenticated"


def test_admin_token_is_not_a_caller(client, admin_headers, make_booking):
    make_booking("B1")

    res = client.post(STATUS_URL, json={"bookingId": "B1"}, headers=admin_headers)

    assert res.status_code == 401


def test_missing_booking_id(client):
    res = client.post(STATUS_URL, json={}, headers=user_headers("user-1"))

    assert res.status_code == 400
    assert res.json()["detail"] == {"code": "invalid-argument", "message": "Booking ID is required"}


def test_unknown_booking(client, db):
    res = client.post(STATUS_URL, json={"bookingId": "nope"}, headers=user_headers("user-1"))

    assert res.status_code == 404
    assert res.json()["detail"]["code"] == "not-found"


def test_someone_elses_booking(client, make_booking):
    make_booking("B1")

    res = client.post(STATUS_URL, json={"bookingId": "B1"}, headers=user_headers("user-2"))

    assert res.status_code == 403
    assert res.json()["detail"]["code"] == "permission-denied"


def test_court_lookup_does_not_find_coach_records(db, make_appointment):
    make_appointment("C1")

    with pytest.raises(StatusQueryError) as exc:
        check_payment_status(db, "student-1", "C1", "court")

    assert exc.value.code == "not-found"
    assert exc.value.status_code == 404


def test_unexpected_failure_is_reported_as_internal(client, make_booking, monkeypatch):
    make_booking("B1")

    def unavailable(booking_type, db):
        raise RuntimeError("record store unavailable")

    monkeypatch.setattr("app.services.status_query.repository_for", unavailable)

    res = client.post(STATUS_URL, json={"bookingId": "B1"}, headers=user_headers("user-1"))

    assert res.status_code == 500
    assert res.json()["detail"] == {"code": "internal", "message": "record store unavailable"}
