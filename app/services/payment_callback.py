"""
Gateway callback reconciliation.

A Billplz callback names the booking it belongs to through ``reference_1``
(record id) and ``reference_2`` (record type). The processor applies the
matching payment transition to that record and notifies the parties.

Delivery from the gateway is at-least-once. Each callback carries a dedupe
key, ``sha256(bill_id:booking_id)``, which is stored on the record with the
transition. A replay whose key matches skips the update and re-emits the
notifications under their deterministic ids, so every notification is
written exactly once even when the first attempt failed half-way.
"""
import hashlib

from sqlalchemy.orm import Session

from app.core import config
from app.core.logging_config import get_logger
from app.core.redis import delete_cache
from app.models.enums import (
    BookingType,
    BookingStatus,
    AppointmentStatus,
    NotificationType,
    PaymentStatus,
)
from app.repositories.records import repository_for, utcnow
from app.schemas.payment import BillplzCallback
from app.services import notifications
from app.services.errors import InvalidCallback, InvalidSignature, RecordNotFound, TransitionNotAllowed
from app.services.escrow import PAYMENT_SUMMARY_CACHE_KEY
from app.services.transitions import allowed_sources, coerce, ensure_transition
from app.utils.billplz import verify_signature
from app.utils.money import from_minor_units

logger = get_logger()

FAILED_STATES = {"deleted", "expired"}


def callback_key(bill_id, booking_id) -> str:
    return hashlib.sha256(f"{bill_id}:{booking_id}".encode("utf-8")).hexdigest()


def process_callback(db: Session, payload: dict) -> str:
    """Apply one gateway callback; returns the acknowledgement message."""
    log = logger.bind(log_type="payment")

    if not verify_signature(payload, config.BILLPLZ_X_SIGNATURE_KEY):
        log.error(f"Rejected callback with invalid signature | bill={payload.get('id')}")
        raise InvalidSignature("Invalid webhook signature")

    callback = BillplzCallback.model_validate(payload)
    log.info(
        f"Billplz callback | bill={callback.id} | paid={callback.paid} "
        f"| state={callback.state} | txn={callback.transaction_id}"
    )

    booking_id = callback.reference_1
    if not booking_id:
        log.error(f"Callback without booking reference | bill={callback.id}")
        raise InvalidCallback("Missing booking ID")

    repo = repository_for(callback.booking_type, db)
    record = repo.get(booking_id)
    if record is None:
        log.error(f"Callback for unknown {repo.collection} record | booking={booking_id} | bill={callback.id}")
        raise RecordNotFound("Booking not found")

    key = callback_key(callback.id, booking_id)

    if callback.is_paid and callback.state == "paid":
        return _confirm(repo, record, callback, key)

    if callback.state in FAILED_STATES:
        return _fail(repo, record, callback, key)

    log.info(f"No state change for state={callback.state} | booking={booking_id}")
    return "Callback acknowledged"


# ---------------------------------------------------------------------
# PAID
# ---------------------------------------------------------------------
def _confirm(repo, record, callback: BillplzCallback, key: str) -> str:
    log = logger.bind(log_type="payment")
    booking_id = record.id

    if record.callback_key == key and record.payment_status not in (
        PaymentStatus.UNPAID.value,
        PaymentStatus.FAILED.value,
    ):
        log.info(f"Duplicate paid callback | booking={booking_id} | bill={callback.id}")
        _notify_paid(repo.db, record, callback, key)
        return "Callback already processed"

    try:
        current, _ = ensure_transition("payment", record.payment_status, PaymentStatus.COMPLETED)
    except TransitionNotAllowed as e:
        log.warning(f"Paid callback ignored | booking={booking_id} | {e.message}")
        return "Callback acknowledged"

    if current == PaymentStatus.FAILED:
        log.warning(
            f"Paid callback after an earlier bill failed, reinstating | booking={booking_id} "
            f"| bill={callback.id} | previous_bill={record.billplz_bill_id}"
        )

    confirmed = (
        AppointmentStatus.CONFIRMED
        if repo.collection == "coach_appointments"
        else BookingStatus.CONFIRMED
    )
    paid_amount = from_minor_units(callback.paid_amount)

    changed = repo.conditional_update(
        booking_id,
        {"payment_status": allowed_sources("payment", PaymentStatus.COMPLETED)},
        status=confirmed,
        payment_status=PaymentStatus.COMPLETED,
        payment_id=callback.transaction_id or callback.id,
        billplz_bill_id=callback.id,
        paid_amount=paid_amount,
        paid_at=utcnow(),
        callback_key=key,
        transaction_details={
            "transactionId": callback.transaction_id,
            "transactionStatus": callback.transaction_status,
            "billId": callback.id,
            "state": callback.state,
            "paidAt": callback.paid_at,
        },
    )

    if not changed:
        # a concurrent delivery of the same callback got there first
        if record.callback_key == key:
            _notify_paid(repo.db, record, callback, key)
            return "Callback already processed"
        log.warning(f"Paid callback lost a race | booking={booking_id} | now={record.payment_status}")
        return "Callback acknowledged"

    delete_cache(PAYMENT_SUMMARY_CACHE_KEY)
    log.info(f"Payment confirmed for {repo.collection} {booking_id} | amount={paid_amount}")

    _notify_paid(repo.db, record, callback, key)
    return "Callback processed successfully"


def _notify_paid(db, record, callback: BillplzCallback, key: str):
    booking_type = callback.booking_type
    paid_amount = from_minor_units(callback.paid_amount)
    amount = str(paid_amount) if paid_amount is not None else None

    if booking_type == BookingType.COACH.value:
        message = (
            f"Your coaching session payment has been confirmed. "
            f"Session with {record.coach_name} on {record.date}."
        )
    else:
        message = (
            f"Your court booking payment has been confirmed. "
            f"{record.venue_name} on {record.date}."
        )

    notifications.emit(
        db,
        record.user_id,
        NotificationType.PAYMENT_SUCCESS,
        "Payment Successful",
        message,
        metadata={
            "bookingId": record.id,
            "bookingType": booking_type,
            "amount": amount,
            "transactionId": callback.transaction_id,
        },
        notification_id=notifications.deterministic_id(
            key, NotificationType.PAYMENT_SUCCESS.value, record.user_id
        ),
    )

    if booking_type == BookingType.COACH.value:
        notifications.emit(
            db,
            record.coach_id,
            NotificationType.BOOKING_CONFIRMED,
            "Booking Payment Confirmed",
            f"Payment confirmed for session with {record.student_name} on {record.date}.",
            metadata={
                "bookingId": record.id,
                "bookingType": booking_type,
                "amount": amount,
            },
            notification_id=notifications.deterministic_id(
                key, NotificationType.BOOKING_CONFIRMED.value, record.coach_id
            ),
        )


# ---------------------------------------------------------------------
# DELETED / EXPIRED
# ---------------------------------------------------------------------
def _fail(repo, record, callback: BillplzCallback, key: str) -> str:
    log = logger.bind(log_type="payment")
    booking_id = record.id

    if record.callback_key == key and coerce("payment", record.payment_status) == PaymentStatus.FAILED:
        log.info(f"Duplicate failure callback | booking={booking_id} | bill={callback.id}")
        _notify_failed(repo.db, record, callback, key)
        return "Callback already processed"

    try:
        ensure_transition("payment", record.payment_status, PaymentStatus.FAILED)
    except TransitionNotAllowed as e:
        log.warning(f"Failure callback ignored | booking={booking_id} | {e.message}")
        return "Callback acknowledged"

    cancelled = (
        AppointmentStatus.CANCELLED
        if repo.collection == "coach_appointments"
        else BookingStatus.CANCELLED
    )
    failed_at = utcnow()

    changed = repo.conditional_update(
        booking_id,
        {"payment_status": PaymentStatus.UNPAID},
        status=cancelled,
        payment_status=PaymentStatus.FAILED,
        billplz_bill_id=callback.id,
        failed_at=failed_at,
        callback_key=key,
        transaction_details={
            "billId": callback.id,
            "state": callback.state,
            "failedAt": failed_at.isoformat(),
        },
    )

    if not changed:
        if record.callback_key == key:
            _notify_failed(repo.db, record, callback, key)
            return "Callback already processed"
        log.warning(f"Failure callback lost a race | booking={booking_id} | now={record.payment_status}")
        return "Callback acknowledged"

    log.info(f"Payment failed for {repo.collection} {booking_id} | state={callback.state}")

    _notify_failed(repo.db, record, callback, key)
    return "Callback processed successfully"


def _notify_failed(db, record, callback: BillplzCallback, key: str):
    booking_type = callback.booking_type
    subject = "coaching session" if booking_type == BookingType.COACH.value else "court booking"

    notifications.emit(
        db,
        record.user_id,
        NotificationType.PAYMENT_FAILED,
        "Payment Failed",
        f"Your {subject} payment could not be processed. Please try again.",
        metadata={
            "bookingId": record.id,
            "bookingType": booking_type,
            "state": callback.state,
        },
        notification_id=notifications.deterministic_id(
            key, NotificationType.PAYMENT_FAILED.value, record.user_id
        ),
    )
