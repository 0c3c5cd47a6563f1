import json
from decimal import Decimal

import pytest

from app.models.booking import Booking
from app.models.notification import Notification
from app.services import escrow
from app.services.errors import RefundWindowClosed, StaleRecord, TransitionNotAllowed


def _notifications(db, user_id):
    return db.query(Notification).filter(Notification.user_id == user_id).all()


# =====================================================================
# RELEASE
# =====================================================================
@pytest.mark.parametrize("held", ["completed", "paid", "held_by_admin"])
def test_release_from_any_held_status(client, db, admin_headers, make_booking, held):
    make_booking("B1", status="confirmed", payment_status=held)

    res = client.post("/admin/payments/B1/release", headers=admin_headers)

    assert res.status_code == 200
    body = res.json()
    assert body["notified"] is True
    assert body["booking"]["payment_status"] == "released_to_venue"

    db.expire_all()
    booking = db.get(Booking, "B1")
    assert booking.released_by == "admin-1"
    assert booking.released_at is not None

    sent = _notifications(db, "owner-1")
    assert len(sent) == 1
    assert sent[0].title == "Payment Released"
    assert "RM 80.00" in sent[0].message
    assert "Arena Bangsar" in sent[0].message


@pytest.mark.parametrize("status", ["unpaid", "failed", "refunded", "released_to_venue"])
def test_release_refused_outside_held(client, db, admin_headers, make_booking, status):
    make_booking("B1", payment_status=status)

    res = client.post("/admin/payments/B1/release", headers=admin_headers)

    assert res.status_code == 409
    db.expire_all()
    assert db.get(Booking, "B1").payment_status == status
    assert _notifications(db, "owner-1") == []


def test_release_happens_once(client, db, admin_headers, make_booking):
    make_booking("B1", status="confirmed", payment_status="completed")

    assert client.post("/admin/payments/B1/release", headers=admin_headers).status_code == 200
    assert client.post("/admin/payments/B1/release", headers=admin_headers).status_code == 409
    assert len(_notifications(db, "owner-1")) == 1


def test_release_without_venue_owner_uses_placeholder(db, make_booking):
    make_booking("B1", status="confirmed", payment_status="completed", venue_owner_id=None)

    escrow.release_to_venue(db, "B1")

    assert len(_notifications(db, "venue_owner")) == 1


def test_release_loses_race_to_concurrent_refund(db, make_booking, monkeypatch):
    make_booking("B1", status="confirmed", payment_status="completed")
    repo_cls = escrow.BookingRepository
    original = repo_cls.conditional_update

    def refund_first(self, record_id, expected, **fields):
        # another operator refunds between our read and our write
        original(self, record_id, {}, status="refunded", payment_status="refunded")
        return original(self, record_id, expected, **fields)

    monkeypatch.setattr(repo_cls, "conditional_update", refund_first)

    with pytest.raises(StaleRecord):
        escrow.release_to_venue(db, "B1")

    db.expire_all()
    assert db.get(Booking, "B1").payment_status == "refunded"
    assert _notifications(db, "owner-1") == []


def test_notification_failure_does_not_undo_release(client, db, admin_headers, make_booking, monkeypatch):
    from sqlalchemy.exc import OperationalError

    make_booking("B1", status="confirmed", payment_status="completed")

    def broken(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr("app.services.notifications.emit", broken)

    res = client.post("/admin/payments/B1/release", headers=admin_headers)

    assert res.status_code == 200
    assert res.json()["notified"] is False
    assert "notification could not be sent" in res.json()["message"]
    db.expire_all()
    assert db.get(Booking, "B1").payment_status == "released_to_venue"


# =====================================================================
# REFUND
# =====================================================================
def test_refund_more_than_24_hours_ahead(client, db, admin_headers, make_booking):
    make_booking("B1", hours_ahead=48, status="confirmed", payment_status="completed")

    res = client.post("/admin/payments/B1/refund", headers=admin_headers)

    assert res.status_code == 200
    db.expire_all()
    booking = db.get(Booking, "B1")
    assert booking.status == "refunded"
    assert booking.payment_status == "refunded"
    assert booking.refunded_by == "admin-1"

    sent = _notifications(db, "user-1")
    assert [n.title for n in sent] == ["Refund Successful"]
    assert "5-7 working days" in sent[0].message


def test_refund_inside_cutoff_is_refused_without_writing(client, db, admin_headers, make_booking):
    make_booking("B1", hours_ahead=10, status="confirmed", payment_status="completed")

    res = client.post("/admin/payments/B1/refund", headers=admin_headers)

    assert res.status_code == 422
    assert "Refund not allowed" in res.json()["detail"]
    db.expire_all()
    booking = db.get(Booking, "B1")
    assert booking.payment_status == "completed"
    assert booking.status == "confirmed"
    assert _notifications(db, "user-1") == []


def test_refund_window_closed_raised_by_service(db, make_booking):
    make_booking("B1", hours_ahead=10, status="confirmed", payment_status="completed")

    with pytest.raises(RefundWindowClosed):
        escrow.refund(db, "B1")


def test_refund_after_release_is_refused(db, make_booking):
    make_booking("B1", hours_ahead=72, status="confirmed", payment_status="released_to_venue")

    with pytest.raises(TransitionNotAllowed):
        escrow.refund(db, "B1")


# =====================================================================
# REFUND REQUESTS
# =====================================================================
def test_approve_refund_request(client, db, admin_headers, make_booking):
    make_booking("B1", hours_ahead=72, status="refund_requested", payment_status="completed")

    res = client.post("/admin/payments/B1/refund-request/approve", headers=admin_headers)

    assert res.status_code == 200
    db.expire_all()
    assert db.get(Booking, "B1").payment_status == "refunded"


def test_approve_requires_a_pending_request(client, admin_headers, make_booking):
    make_booking("B1", hours_ahead=72, status="confirmed", payment_status="completed")

    res = client.post("/admin/payments/B1/refund-request/approve", headers=admin_headers)

    assert res.status_code == 409


def test_reject_refund_request_keeps_booking_active(client, db, admin_headers, make_booking):
    make_booking("B1", status="refund_requested", payment_status="completed")

    res = client.post("/admin/payments/B1/refund-request/reject", headers=admin_headers)

    assert res.status_code == 200
    db.expire_all()
    booking = db.get(Booking, "B1")
    assert booking.status == "confirmed"
    assert booking.payment_status == "completed"
    assert booking.refund_request_rejected is True
    assert booking.refund_rejected_at is not None

    sent = _notifications(db, "user-1")
    assert [n.title for n in sent] == ["Refund Request Rejected"]
    assert "remains active" in sent[0].message


# =====================================================================
# VIEWS
# =====================================================================
def test_list_filters(client, admin_headers, make_booking):
    make_booking("held", payment_status="completed", status="confirmed")
    make_booking("released", payment_status="released_to_venue", status="confirmed")
    make_booking("refunded", payment_status="refunded", status="refunded")
    make_booking("request", payment_status="paid", status="refund_requested")
    make_booking("unpaid")

    def ids(status):
        res = client.get("/admin/payments/", params={"status": status}, headers=admin_headers)
        assert res.status_code == 200
        return {b["id"] for b in res.json()}

    assert ids("all") == {"held", "released", "refunded", "request"}
    assert ids("held") == {"held", "request"}
    assert ids("released") == {"released"}
    assert ids("refunded") == {"refunded"}

    res = client.get("/admin/payments/", params={"status": "bogus"}, headers=admin_headers)
    assert res.status_code == 400


def test_list_includes_labels_and_eligibility(client, admin_headers, make_booking):
    make_booking("B1", hours_ahead=10, payment_status="completed", status="confirmed")
    make_booking("B2", hours_ahead=72, payment_status="paid", status="refund_requested")

    rows = {b["id"]: b for b in client.get("/admin/payments/", headers=admin_headers).json()}

    assert rows["B1"]["payment_status_label"] == "Paid - Held by Admin"
    assert rows["B1"]["refund_eligible"] is False
    assert rows["B2"]["payment_status_label"] == "Refund Requested"
    assert rows["B2"]["refund_eligible"] is True


def test_summary_is_cached_and_invalidated(client, db, admin_headers, make_booking, fake_redis):
    make_booking("B1", payment_status="completed", status="confirmed")
    make_booking("B2", payment_status="released_to_venue", status="confirmed", total_price=Decimal("20.50"))

    summary = client.get("/admin/payments/summary", headers=admin_headers).json()
    assert summary["held_count"] == 1
    assert summary["held_amount"] == "80.00"
    assert summary["released_amount"] == "20.50"
    assert json.loads(fake_redis.store[escrow.PAYMENT_SUMMARY_CACHE_KEY]) == summary

    client.post("/admin/payments/B1/release", headers=admin_headers)
    assert escrow.PAYMENT_SUMMARY_CACHE_KEY not in fake_redis.store

    summary = client.get("/admin/payments/summary", headers=admin_headers).json()
    assert summary["held_count"] == 0
    assert summary["released_count"] == 2


def test_payment_routes_require_admin(client, make_booking):
    from conftest import user_headers

    make_booking("B1", payment_status="completed", status="confirmed")

    assert client.post("/admin/payments/B1/release").status_code == 401
    assert client.post("/admin/payments/B1/release", headers=user_headers("user-1")).status_code == 403


def test_inactive_admin_is_locked_out(client, db, admin, admin_headers, make_booking):
    make_booking("B1", payment_status="completed", status="confirmed")
    admin.is_active = False
    db.commit()

    res = client.post("/admin/payments/B1/release", headers=admin_headers)

    assert res.status_code == 403
    db.expire_all()
    assert db.get(Booking, "B1").payment_status == "completed"
