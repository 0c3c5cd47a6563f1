from sqlalchemy import Column, String, Date, DateTime, Numeric, JSON, Boolean, func
from app.db.session import Base
from app.models.enums import BookingStatus, PaymentStatus


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String, primary_key=True, index=True)
    booking_type = Column(String, default="court", nullable=False)

    user_id = Column(String, index=True, nullable=False)
    user_name = Column(String)
    user_email = Column(String)

    venue_name = Column(String)
    venue_owner_id = Column(String, index=True)
    court_name = Column(String)
    court_number = Column(String)

    date = Column(Date, nullable=False)
    time_slot = Column(String, nullable=False)  # "HH:MM" local time
    end_time = Column(String)

    total_price = Column(Numeric(10, 2), nullable=False)

    status = Column(String, default=BookingStatus.PENDING.value, nullable=False, index=True)
    payment_status = Column(String, default=PaymentStatus.UNPAID.value, nullable=False, index=True)

    # GATEWAY FIELDS
    payment_id = Column(String)
    billplz_bill_id = Column(String)
    paid_amount = Column(Numeric(10, 2))
    paid_at = Column(DateTime(timezone=True))
    failed_at = Column(DateTime(timezone=True))
    transaction_details = Column(JSON)
    callback_key = Column(String, index=True)

    # ESCROW FIELDS
    released_at = Column(DateTime(timezone=True))
    released_by = Column(String)
    refunded_at = Column(DateTime(timezone=True))
    refunded_by = Column(String)
    refund_request_rejected = Column(Boolean, default=False)
    refund_rejected_at = Column(DateTime(timezone=True))
    refund_rejected_by = Column(String)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
