import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ProfileOut(BaseModel):
    user_id: uuid.UUID
    credits: int
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    phone: Optional[str] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, max_length=120)
    avatar_url: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=32)


class RolesOut(BaseModel):
    roles: list[str]
    effective_role: str
