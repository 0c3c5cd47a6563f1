from app.models.enums import (
    AppointmentStatus,
    BookingStatus,
    PaymentStatus,
    HELD_PAYMENT_STATUSES,
)
from app.services.errors import TransitionNotAllowed

P = PaymentStatus
B = BookingStatus
A = AppointmentStatus

PAYMENT_TRANSITIONS = {
    P.UNPAID: {P.COMPLETED, P.FAILED},
    P.COMPLETED: {P.HELD_BY_ADMIN, P.RELEASED_TO_VENUE, P.REFUNDED},
    P.PAID: {P.HELD_BY_ADMIN, P.RELEASED_TO_VENUE, P.REFUNDED},
    P.HELD_BY_ADMIN: {P.RELEASED_TO_VENUE, P.REFUNDED},
    P.RELEASED_TO_VENUE: set(),
    P.REFUNDED: set(),
    # a fresh bill can still be paid after an earlier one expired
    P.FAILED: {P.COMPLETED},
}

BOOKING_TRANSITIONS = {
    B.PENDING: {B.CONFIRMED, B.CANCELLED},
    B.CONFIRMED: {B.REFUND_REQUESTED, B.REFUNDED},
    B.REFUND_REQUESTED: {B.CONFIRMED, B.REFUNDED},
    B.CANCELLED: {B.CONFIRMED},
    B.REFUNDED: set(),
}

APPOINTMENT_TRANSITIONS = {
    A.PENDING: {A.CONFIRMED, A.CANCELLED},
    A.CONFIRMED: {A.AWAITING_VERIFICATION},
    A.AWAITING_VERIFICATION: {A.VERIFIED, A.CONFIRMED},
    A.VERIFIED: {A.COMPLETED},
    A.COMPLETED: set(),
    A.CANCELLED: {A.CONFIRMED},
}

_TABLES = {
    "payment": (PaymentStatus, PAYMENT_TRANSITIONS),
    "booking": (BookingStatus, BOOKING_TRANSITIONS),
    "appointment": (AppointmentStatus, APPOINTMENT_TRANSITIONS),
}


def coerce(axis: str, value):
    """Stored string -> enum member; raises TransitionNotAllowed for unknown values."""
    enum_cls, _ = _TABLES[axis]
    try:
        return enum_cls(str(value.value if hasattr(value, "value") else value).lower())
    except ValueError:
        raise TransitionNotAllowed(f"Unknown {axis} status '{value}'")


def allowed_sources(axis: str, target) -> set:
    """Every state from which ``target`` may be reached."""
    _, table = _TABLES[axis]
    target = coerce(axis, target)
    return {source for source, targets in table.items() if target in targets}


def ensure_transition(axis: str, current, target):
    current = coerce(axis, current)
    target = coerce(axis, target)
    _, table = _TABLES[axis]
    if target not in table[current]:
        raise TransitionNotAllowed(
            f"Cannot move {axis} status from '{current.value}' to '{target.value}'"
        )
    return current, target


def is_held(payment_status) -> bool:
    try:
        return coerce("payment", payment_status) in HELD_PAYMENT_STATUSES
    except TransitionNotAllowed:
        return False
