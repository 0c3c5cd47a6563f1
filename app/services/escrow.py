"""
Escrow ledger for court bookings.

Funds collected by the gateway stay held until an admin either releases them
to the venue owner or refunds the player. Every action re-checks the
transition table, then writes with a compare-and-swap on the state it read,
so two operators acting on the same booking cannot both succeed.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core import config
from app.core.logging_config import get_logger
from app.core.redis import get_cache, set_cache, delete_cache
from app.models.booking import Booking
from app.models.enums import (
    BookingStatus,
    BookingType,
    NotificationType,
    PaymentStatus,
    HELD_PAYMENT_STATUSES,
)
from app.repositories.records import BookingRepository, utcnow
from app.services.errors import RecordNotFound, RefundWindowClosed, StaleRecord, TransitionNotAllowed
from app.services.notifications import emit_best_effort
from app.services.transitions import ensure_transition, is_held
from app.utils.money import format_amount, to_money
from app.utils.scheduling import can_refund

logger = get_logger()

PAYMENT_SUMMARY_CACHE_KEY = "admin:payments:summary"
PAYMENT_SUMMARY_TTL = 60

PAYMENT_FILTERS = ("all", "held", "released", "refunded")

_STATUS_LABELS = {
    PaymentStatus.COMPLETED.value: "Paid - Held by Admin",
    PaymentStatus.PAID.value: "Paid - Held by Admin",
    PaymentStatus.HELD_BY_ADMIN.value: "Held by Admin",
    PaymentStatus.RELEASED_TO_VENUE.value: "Released to Venue",
    PaymentStatus.REFUNDED.value: "Refunded",
}


@dataclass
class LedgerResult:
    booking: Booking
    message: str
    notified: bool


def payment_status_label(payment_status, status=None) -> str:
    if (status or "").lower() == BookingStatus.REFUND_REQUESTED.value:
        return "Refund Requested"
    return _STATUS_LABELS.get((payment_status or "").lower(), payment_status or "")


def is_refund_eligible(booking: Booking, now: datetime | None = None) -> bool:
    return can_refund(booking.date, booking.time_slot, now)


def _load(repo: BookingRepository, booking_id: str) -> Booking:
    booking = repo.get(booking_id)
    if booking is None:
        raise RecordNotFound("Booking not found")
    return booking


def _stale(booking_id: str):
    logger.bind(log_type="payment").warning(f"Concurrent change on booking {booking_id}")
    return StaleRecord("Booking was changed by someone else. Reload and try again.")


# =====================================================================
# RELEASE TO VENUE
# =====================================================================
def release_to_venue(db: Session, booking_id: str, released_by: str = "admin") -> LedgerResult:
    repo = BookingRepository(db)
    booking = _load(repo, booking_id)

    observed = booking.payment_status
    ensure_transition("payment", observed, PaymentStatus.RELEASED_TO_VENUE)

    if not repo.conditional_update(
        booking_id,
        {"payment_status": observed},
        payment_status=PaymentStatus.RELEASED_TO_VENUE,
        released_at=utcnow(),
        released_by=released_by,
    ):
        raise _stale(booking_id)

    delete_cache(PAYMENT_SUMMARY_CACHE_KEY)
    amount = format_amount(booking.total_price)
    logger.bind(log_type="payment").info(
        f"Released {amount} to venue | booking={booking_id} | by={released_by}"
    )

    notified = emit_best_effort(
        db,
        booking.venue_owner_id or "venue_owner",
        NotificationType.PAYMENT,
        "Payment Released",
        f"{amount} has been released for booking at {booking.venue_name} on {booking.date}",
        metadata={
            "bookingId": booking.id,
            "amount": str(to_money(booking.total_price)),
            "action": "view_revenue",
        },
    )

    return LedgerResult(booking, "Payment released to venue owner successfully", notified)


# =====================================================================
# REFUND
# =====================================================================
def refund(
    db: Session,
    booking_id: str,
    refunded_by: str = "admin",
    now: datetime | None = None,
) -> LedgerResult:
    repo = BookingRepository(db)
    booking = _load(repo, booking_id)

    observed_payment = booking.payment_status
    observed_status = booking.status
    ensure_transition("payment", observed_payment, PaymentStatus.REFUNDED)
    ensure_transition("booking", observed_status, BookingStatus.REFUNDED)

    if not is_refund_eligible(booking, now):
        raise RefundWindowClosed(
            f"Refund not allowed. Bookings can only be refunded "
            f"{config.REFUND_CUTOFF_HOURS} hours before the scheduled time."
        )

    if not repo.conditional_update(
        booking_id,
        {"payment_status": observed_payment, "status": observed_status},
        status=BookingStatus.REFUNDED,
        payment_status=PaymentStatus.REFUNDED,
        refunded_at=utcnow(),
        refunded_by=refunded_by,
    ):
        raise _stale(booking_id)

    delete_cache(PAYMENT_SUMMARY_CACHE_KEY)
    amount = format_amount(booking.total_price)
    logger.bind(log_type="payment").info(
        f"Refunded {amount} | booking={booking_id} | user={booking.user_id} | by={refunded_by}"
    )

    notified = emit_best_effort(
        db,
        booking.user_id,
        NotificationType.PAYMENT,
        "Refund Successful",
        f"Your booking at {booking.venue_name} on {booking.date} has been refunded. "
        f"{amount} will be returned to your account within 5-7 working days.",
        metadata={
            "bookingId": booking.id,
            "amount": str(to_money(booking.total_price)),
            "action": "view_booking",
        },
    )

    return LedgerResult(booking, "Refund processed successfully", notified)


# =====================================================================
# USER REFUND REQUESTS
# =====================================================================
def _ensure_refund_requested(booking: Booking):
    if booking.status != BookingStatus.REFUND_REQUESTED.value:
        raise TransitionNotAllowed("Booking has no pending refund request")


def approve_refund_request(
    db: Session,
    booking_id: str,
    approved_by: str = "admin",
    now: datetime | None = None,
) -> LedgerResult:
    booking = _load(BookingRepository(db), booking_id)
    _ensure_refund_requested(booking)
    return refund(db, booking_id, refunded_by=approved_by, now=now)


def reject_refund_request(db: Session, booking_id: str, rejected_by: str = "admin") -> LedgerResult:
    repo = BookingRepository(db)
    booking = _load(repo, booking_id)
    _ensure_refund_requested(booking)
    ensure_transition("booking", booking.status, BookingStatus.CONFIRMED)

    if not repo.conditional_update(
        booking_id,
        {"status": BookingStatus.REFUND_REQUESTED},
        status=BookingStatus.CONFIRMED,
        refund_request_rejected=True,
        refund_rejected_at=utcnow(),
        refund_rejected_by=rejected_by,
    ):
        raise _stale(booking_id)

    delete_cache(PAYMENT_SUMMARY_CACHE_KEY)
    logger.bind(log_type="booking").info(f"Refund request rejected | booking={booking_id} | by={rejected_by}")

    notified = emit_best_effort(
        db,
        booking.user_id,
        NotificationType.PAYMENT,
        "Refund Request Rejected",
        f"Your refund request for booking at {booking.venue_name} on {booking.date} "
        f"has been rejected. The booking remains active.",
        metadata={"bookingId": booking.id, "action": "view_booking"},
    )

    return LedgerResult(booking, "Refund request rejected", notified)


# =====================================================================
# ADMIN VIEWS
# =====================================================================
def list_payments(db: Session, status_filter: str = "all") -> list[Booking]:
    repo = BookingRepository(db)
    court = BookingType.COURT

    if status_filter == "held":
        return repo.query_in("payment_status", HELD_PAYMENT_STATUSES, booking_type=court)
    if status_filter == "released":
        return repo.query(payment_status=PaymentStatus.RELEASED_TO_VENUE, booking_type=court)
    if status_filter == "refunded":
        return repo.query(payment_status=PaymentStatus.REFUNDED, booking_type=court)

    visible = [s.value for s in HELD_PAYMENT_STATUSES] + [
        PaymentStatus.RELEASED_TO_VENUE.value,
        PaymentStatus.REFUNDED.value,
    ]
    return (
        db.query(Booking)
        .filter(
            Booking.booking_type == court.value,
            or_(
                Booking.payment_status.in_(visible),
                Booking.status == BookingStatus.REFUND_REQUESTED.value,
            ),
        )
        .order_by(Booking.created_at.desc())
        .all()
    )


def payment_summary(db: Session) -> dict:
    cached = get_cache(PAYMENT_SUMMARY_CACHE_KEY)
    if cached is not None:
        return cached

    totals = {
        "held": [0, Decimal("0.00")],
        "released": [0, Decimal("0.00")],
        "refunded": [0, Decimal("0.00")],
    }
    refund_requests = 0

    for booking in list_payments(db, "all"):
        bucket = None
        if is_held(booking.payment_status):
            bucket = "held"
        elif booking.payment_status == PaymentStatus.RELEASED_TO_VENUE.value:
            bucket = "released"
        elif booking.payment_status == PaymentStatus.REFUNDED.value:
            bucket = "refunded"

        if bucket:
            totals[bucket][0] += 1
            totals[bucket][1] += to_money(booking.total_price or 0)
        if booking.status == BookingStatus.REFUND_REQUESTED.value:
            refund_requests += 1

    summary = {
        "held_count": totals["held"][0],
        "held_amount": str(totals["held"][1]),
        "released_count": totals["released"][0],
        "released_amount": str(totals["released"][1]),
        "refunded_count": totals["refunded"][0],
        "refunded_amount": str(totals["refunded"][1]),
        "refund_requests": refund_requests,
    }

    set_cache(PAYMENT_SUMMARY_CACHE_KEY, summary, ttl=PAYMENT_SUMMARY_TTL)
    return summary
