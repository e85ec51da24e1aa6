import uuid
from typing import Optional

from pydantic import BaseModel, Field

from kobciye.core.enum import VideoSource


class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1)
    title_so: Optional[str] = None
    description: Optional[str] = None
    description_so: Optional[str] = None
    category: str = "general"
    category_so: Optional[str] = None
    level: Optional[str] = "beginner"
    level_so: Optional[str] = None
    instructor_name: str = ""
    image_url: Optional[str] = None
    price: int = Field(0, ge=0, description="Price in credits")
    is_published: bool = False
    is_playlist: bool = True


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    title_so: Optional[str] = None
    description: Optional[str] = None
    description_so: Optional[str] = None
    category: Optional[str] = None
    category_so: Optional[str] = None
    level: Optional[str] = None
    level_so: Optional[str] = None
    instructor_name: Optional[str] = None
    image_url: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    is_published: Optional[bool] = None
    is_playlist: Optional[bool] = None


class PlaylistCreate(BaseModel):
    course_id: uuid.UUID
    title: str = Field(..., min_length=1)
    title_so: Optional[str] = None
    description: Optional[str] = None
    description_so: Optional[str] = None
    order_index: int = 0


class PlaylistUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    title_so: Optional[str] = None
    description: Optional[str] = None
    description_so: Optional[str] = None
    order_index: Optional[int] = None


class VideoCreate(BaseModel):
    playlist_id: uuid.UUID
    title: str = Field(..., min_length=1)
    title_so: Optional[str] = None
    description: Optional[str] = None
    description_so: Optional[str] = None
    video_source: VideoSource = VideoSource.YOUTUBE
    video_url: str = Field(..., min_length=1)
    thumbnail_url: Optional[str] = None
    duration_seconds: Optional[int] = Field(None, ge=0)
    is_free: bool = False
    order_index: int = 0


class VideoUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    title_so: Optional[str] = None
    description: Optional[str] = None
    description_so: Optional[str] = None
    video_source: Optional[VideoSource] = None
    video_url: Optional[str] = Field(None, min_length=1)
    thumbnail_url: Optional[str] = None
    duration_seconds: Optional[int] = Field(None, ge=0)
    is_free: Optional[bool] = None
    order_index: Optional[int] = None
