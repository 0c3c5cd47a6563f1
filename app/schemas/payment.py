from typing import Optional, Union
from pydantic import BaseModel, Field, field_validator


class BillplzCallback(BaseModel):
    """Fields posted by the gateway on a bill state change."""

    id: Optional[str] = None
    collection_id: Optional[str] = None
    paid: Union[bool, str, None] = None
    state: Optional[str] = None
    amount: Optional[str] = None
    paid_amount: Optional[str] = None
    due_at: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None
    name: Optional[str] = None
    url: Optional[str] = None
    paid_at: Optional[str] = None
    transaction_id: Optional[str] = None
    transaction_status: Optional[str] = None
    x_signature: Optional[str] = None

    # echoed back from bill creation
    reference_1: Optional[str] = None  # booking id
    reference_2: Optional[str] = None  # "court" | "coach"

    model_config = {"extra": "allow"}

    @field_validator("*", mode="before")
    @classmethod
    def numbers_as_text(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def is_paid(self) -> bool:
        if isinstance(self.paid, bool):
            return self.paid
        return str(self.paid).lower() == "true"

    @property
    def booking_type(self) -> str:
        return self.reference_2 or "court"


class CallbackAck(BaseModel):
    success: bool = True
    message: str


class StatusQuery(BaseModel):
    booking_id: Optional[str] = Field(default=None, alias="bookingId")
    booking_type: str = Field(default="court", alias="bookingType")

    model_config = {"populate_by_name": True}


class StatusQueryOut(BaseModel):
    success: bool = True
    status: Optional[str] = None
    payment_status: Optional[str] = Field(default=None, serialization_alias="paymentStatus")
    payment_id: Optional[str] = Field(default=None, serialization_alias="paymentId")
