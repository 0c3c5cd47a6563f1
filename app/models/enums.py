from enum import Enum


class BookingType(str, Enum):
    COURT = "court"
    COACH = "coach"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    REFUND_REQUESTED = "refund_requested"
    REFUNDED = "refunded"


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    AWAITING_VERIFICATION = "awaiting_verification"
    VERIFIED = "verified"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    COMPLETED = "completed"
    PAID = "paid"  # legacy synonym of COMPLETED
    HELD_BY_ADMIN = "held_by_admin"
    RELEASED_TO_VENUE = "released_to_venue"
    REFUNDED = "refunded"
    FAILED = "failed"


class VerificationStatus(str, Enum):
    NONE = "none"
    VERIFIED = "verified"
    REJECTED = "rejected"


class NotificationType(str, Enum):
    PAYMENT_SUCCESS = "payment_success"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT = "payment"
    BOOKING_CONFIRMED = "booking_confirmed"
    SYSTEM = "system"


# Funds collected and not yet disbursed
HELD_PAYMENT_STATUSES = frozenset({
    PaymentStatus.COMPLETED,
    PaymentStatus.PAID,
    PaymentStatus.HELD_BY_ADMIN,
})
