from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel


class AppointmentOut(BaseModel):
    id: str
    user_id: str
    student_name: Optional[str] = None
    coach_id: str
    coach_name: Optional[str] = None

    date: date
    time_slot: str
    end_time: Optional[str] = None
    duration: Optional[int] = None
    price: Optional[Decimal] = None
    payment_amount: Optional[Decimal] = None

    status: str
    payment_status: str

    proof_photo_base64: Optional[str] = None
    proof_notes: Optional[str] = None
    proof_uploaded_at: Optional[datetime] = None

    verification_status: str
    verified_at: Optional[datetime] = None
    verified_by: Optional[str] = None
    verification_notes: Optional[str] = None

    payment_released_to_coach: bool = False
    payment_released_at: Optional[datetime] = None
    coach_earnings: Optional[Decimal] = None
    platform_fee: Optional[Decimal] = None

    model_config = {"from_attributes": True}


class VerifySessionRequest(BaseModel):
    approved: bool
    notes: Optional[str] = None


class SessionActionOut(BaseModel):
    success: bool = True
    message: str
    notified: bool
    session: AppointmentOut
