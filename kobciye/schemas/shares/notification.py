import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from kobciye.core.enum import NotificationType


class NotificationCreateSchema(BaseModel):
    """
    Payload used by services to notify a learner about a state change
    (enrollment, completion, booking update, credits added).
    """

    user_id: uuid.UUID = Field(..., description="Recipient")

    title: str = Field(..., description="Short headline shown in the bell menu")

    message: str = Field(..., description="Body text")

    type: NotificationType = Field(default=NotificationType.INFO)

    link: Optional[str] = Field(
        default=None, description="Frontend route opened on click, e.g. /dashboard"
    )


class NotificationOut(BaseModel):
    id: uuid.UUID
    title: str
    message: str
    type: str
    link: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
