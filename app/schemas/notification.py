from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class NotificationOut(BaseModel):
    id: str
    user_id: str
    type: str
    title: str
    message: str
    is_read: bool
    metadata: dict = Field(default_factory=dict, validation_alias="metadata_")
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
