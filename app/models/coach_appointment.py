from sqlalchemy import Column, String, Date, DateTime, Numeric, Integer, JSON, Boolean, Text, func
from app.db.session import Base
from app.models.enums import AppointmentStatus, PaymentStatus, VerificationStatus


class CoachAppointment(Base):
    __tablename__ = "coach_appointments"

    id = Column(String, primary_key=True, index=True)

    user_id = Column(String, index=True, nullable=False)  # the student
    student_name = Column(String)
    coach_id = Column(String, index=True, nullable=False)
    coach_name = Column(String)

    date = Column(Date, nullable=False)
    time_slot = Column(String, nullable=False)
    end_time = Column(String)
    duration = Column(Integer)  # minutes

    price = Column(Numeric(10, 2))
    payment_amount = Column(Numeric(10, 2))

    status = Column(String, default=AppointmentStatus.PENDING.value, nullable=False, index=True)
    payment_status = Column(String, default=PaymentStatus.UNPAID.value, nullable=False, index=True)

    # GATEWAY FIELDS
    payment_id = Column(String)
    billplz_bill_id = Column(String)
    paid_amount = Column(Numeric(10, 2))
    paid_at = Column(DateTime(timezone=True))
    failed_at = Column(DateTime(timezone=True))
    transaction_details = Column(JSON)
    callback_key = Column(String, index=True)

    # PROOF OF SESSION (uploaded by the coach)
    proof_photo_base64 = Column(Text)
    proof_notes = Column(Text)
    proof_uploaded_at = Column(DateTime(timezone=True))

    # VERIFICATION
    verification_status = Column(String, default=VerificationStatus.NONE.value, nullable=False)
    verified_at = Column(DateTime(timezone=True))
    verified_by = Column(String)
    verification_notes = Column(Text)

    # PAYOUT (set once, at release)
    payment_released_to_coach = Column(Boolean, default=False, nullable=False)
    payment_released_at = Column(DateTime(timezone=True))
    coach_earnings = Column(Numeric(10, 2))
    platform_fee = Column(Numeric(10, 2))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def charged_amount(self):
        if self.payment_amount is not None:
            return self.payment_amount
        return self.price
