"""Request and result shapes of the remote procedures.

The backend returns these from `/api/v1/rpc/*` and the client SDK parses
responses with the same models, so both sides agree on one contract.
"""
import uuid
from typing import Optional

from pydantic import BaseModel, Field

from kobciye.core.enum import AccessReason


class CourseIdIn(BaseModel):
    course_id: uuid.UUID


class VideoIdIn(BaseModel):
    video_id: uuid.UUID


class VideoProgressIn(BaseModel):
    video_id: uuid.UUID
    watched_percentage: int = Field(..., description="0-100, values outside are clamped")
    last_position_seconds: int = Field(0, description="Resume point in whole seconds")


class AccessResult(BaseModel):
    allowed: bool
    reason: AccessReason
    required_credits: Optional[int] = None
    course_title: Optional[str] = None


class EnrollResult(BaseModel):
    success: bool
    error: Optional[str] = None
    enrollment_id: Optional[uuid.UUID] = None
    credits_remaining: Optional[int] = None
    required_credits: Optional[int] = None
    credits_available: Optional[int] = None


class ProgressUpdateResult(BaseModel):
    success: bool
    is_completed: bool = False
    watched_percentage: Optional[int] = None


class PlayRecordResult(BaseModel):
    success: bool
    play_count: int


class CourseProgress(BaseModel):
    total_videos: int
    completed_videos: int
    progress_percentage: int
    is_completed: bool


class CreditPurchaseIn(BaseModel):
    package_id: int
    payment_method: str = Field(..., min_length=1, max_length=30)
    phone_number: Optional[str] = Field(None, max_length=32)


class CreditPurchaseResult(BaseModel):
    success: bool
    purchase_id: Optional[uuid.UUID] = None
    credits_added: int = 0
    new_balance: Optional[int] = None
    error: Optional[str] = None
