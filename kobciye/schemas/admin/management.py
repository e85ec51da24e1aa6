from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from kobciye.core.enum import AppRole, AppointmentStatus, EnrollmentStatus


class EnrollmentStatusUpdate(BaseModel):
    status: EnrollmentStatus


class CreditAdjust(BaseModel):
    delta: int = Field(..., description="Positive to grant, negative to revoke")
    reason: Optional[str] = None


class RolesUpdate(BaseModel):
    roles: list[AppRole] = Field(..., min_length=1)


class SettingUpdate(BaseModel):
    value: dict[str, Any]


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus
    note: Optional[str] = None


class AppointmentReschedule(BaseModel):
    scheduled_at: datetime
    note: Optional[str] = None
