from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, computed_field

from app.services import escrow
from app.utils.scheduling import can_refund


class BookingOut(BaseModel):
    id: str
    booking_type: str
    user_id: str
    user_name: Optional[str] = None
    user_email: Optional[str] = None

    venue_name: Optional[str] = None
    venue_owner_id: Optional[str] = None
    court_name: Optional[str] = None
    court_number: Optional[str] = None

    date: date
    time_slot: str
    end_time: Optional[str] = None
    total_price: Decimal

    status: str
    payment_status: str
    payment_id: Optional[str] = None
    billplz_bill_id: Optional[str] = None
    paid_amount: Optional[Decimal] = None
    paid_at: Optional[datetime] = None

    released_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def payment_status_label(self) -> str:
        return escrow.payment_status_label(self.payment_status, self.status)

    @computed_field
    @property
    def refund_eligible(self) -> bool:
        return can_refund(self.date, self.time_slot)


class LedgerActionOut(BaseModel):
    """Outcome of an admin money action; ``notified`` is False when only the notification failed."""

    success: bool = True
    message: str
    notified: bool
    booking: BookingOut


class PaymentSummaryOut(BaseModel):
    held_count: int
    held_amount: Decimal
    released_count: int
    released_amount: Decimal
    refunded_count: int
    refunded_amount: Decimal
    refund_requests: int
