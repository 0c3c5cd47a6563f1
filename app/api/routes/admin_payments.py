from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.errors import http_error
from app.core.dependencies import get_db, get_current_admin
from app.core.logging_config import get_logger
from app.models.admin import Admin
from app.repositories.records import BookingRepository
from app.schemas.booking import BookingOut, LedgerActionOut, PaymentSummaryOut
from app.services import escrow
from app.services.errors import LedgerError

router = APIRouter(prefix="/admin/payments", tags=["Admin Payments"])
logger = get_logger()


def _action_response(result: escrow.LedgerResult) -> LedgerActionOut:
    message = result.message
    if not result.notified:
        message += " (notification could not be sent)"
    return LedgerActionOut(
        message=message,
        notified=result.notified,
        booking=BookingOut.model_validate(result.booking),
    )


# =====================================================================
# LIST / SUMMARY
# =====================================================================
@router.get("/", response_model=list[BookingOut])
def list_payments(
    status: str = "all",
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    if status not in escrow.PAYMENT_FILTERS:
        raise HTTPException(status_code=400, detail=f"Unknown filter '{status}'")
    return escrow.list_payments(db, status)


@router.get("/summary", response_model=PaymentSummaryOut)
def payment_summary(admin: Admin = Depends(get_current_admin), db: Session = Depends(get_db)):
    return escrow.payment_summary(db)


@router.get("/{booking_id}", response_model=BookingOut)
def get_payment(booking_id: str, admin: Admin = Depends(get_current_admin), db: Session = Depends(get_db)):
    booking = BookingRepository(db).get(booking_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


# =====================================================================
# RELEASE TO VENUE
# =====================================================================
@router.post("/{booking_id}/release", response_model=LedgerActionOut)
def release_to_venue(booking_id: str, admin: Admin = Depends(get_current_admin), db: Session = Depends(get_db)):
    try:
        result = escrow.release_to_venue(db, booking_id, released_by=admin.id)
    except LedgerError as e:
        logger.bind(log_type="admin").warning(f"Release refused | booking={booking_id} | {e.message}")
        raise http_error(e)

    logger.bind(log_type="admin").info(f"Admin {admin.email} released payment for booking {booking_id}")
    return _action_response(result)


# =====================================================================
# REFUND
# =====================================================================
@router.post("/{booking_id}/refund", response_model=LedgerActionOut)
def refund(booking_id: str, admin: Admin = Depends(get_current_admin), db: Session = Depends(get_db)):
    try:
        result = escrow.refund(db, booking_id, refunded_by=admin.id)
    except LedgerError as e:
        logger.bind(log_type="admin").warning(f"Refund refused | booking={booking_id} | {e.message}")
        raise http_error(e)

    logger.bind(log_type="admin").info(f"Admin {admin.email} refunded booking {booking_id}")
    return _action_response(result)


# =====================================================================
# REFUND REQUESTS
# =====================================================================
@router.post("/{booking_id}/refund-request/approve", response_model=LedgerActionOut)
def approve_refund_request(booking_id: str, admin: Admin = Depends(get_current_admin), db: Session = Depends(get_db)):
    try:
        result = escrow.approve_refund_request(db, booking_id, approved_by=admin.id)
    except LedgerError as e:
        logger.bind(log_type="admin").warning(f"Refund approval refused | booking={booking_id} | {e.message}")
        raise http_error(e)

    logger.bind(log_type="admin").info(f"Admin {admin.email} approved refund request {booking_id}")
    return _action_response(result)


@router.post("/{booking_id}/refund-request/reject", response_model=LedgerActionOut)
def reject_refund_request(booking_id: str, admin: Admin = Depends(get_current_admin), db: Session = Depends(get_db)):
    try:
        result = escrow.reject_refund_request(db, booking_id, rejected_by=admin.id)
    except LedgerError as e:
        raise http_error(e)

    logger.bind(log_type="admin").info(f"Admin {admin.email} rejected refund request {booking_id}")
    return _action_response(result)
