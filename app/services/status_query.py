from sqlalchemy.orm import Session

from app.core.logging_config import get_logger
from app.repositories.records import repository_for

logger = get_logger()


class StatusQueryError(Exception):
    """Error with a stable machine-readable code for the calling app."""

    STATUS_CODES = {
        "unauthenticated": 401,
        "invalid-argument": 400,
        "permission-denied": 403,
        "not-found": 404,
        "internal": 500,
    }

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    @property
    def status_code(self) -> int:
        return self.STATUS_CODES[self.code]


def check_payment_status(db: Session, caller_id: str | None, booking_id: str | None, booking_type: str = "court") -> dict:
    if not caller_id:
        raise StatusQueryError("unauthenticated", "User must be authenticated")

    if not booking_id:
        raise StatusQueryError("invalid-argument", "Booking ID is required")

    record = repository_for(booking_type, db).get(booking_id)
    if record is None:
        logger.bind(log_type="payment").warning(
            f"Status check for unknown booking | booking={booking_id} | type={booking_type}"
        )
        raise StatusQueryError("not-found", "Booking not found")

    if record.user_id != caller_id:
        raise StatusQueryError("permission-denied", "Not authorized to check this booking")

    return {
        "success": True,
        "status": record.status,
        "payment_status": record.payment_status,
        "payment_id": record.payment_id,
    }
