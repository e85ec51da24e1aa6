import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class CourseOut(BaseModel):
    id: uuid.UUID
    title: str
    title_so: Optional[str] = None
    description: Optional[str] = None
    description_so: Optional[str] = None
    category: str
    category_so: Optional[str] = None
    level: Optional[str] = None
    level_so: Optional[str] = None
    instructor_name: str
    image_url: Optional[str] = None
    price: int
    is_published: bool
    is_playlist: bool
    students_count: int

    class Config:
        from_attributes = True


class SavedProgressOut(BaseModel):
    video_id: uuid.UUID
    watched_percentage: int
    last_position_seconds: int
    is_completed: bool
    play_count: int
    last_watched_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CurriculumVideo(BaseModel):
    id: uuid.UUID
    title: str
    title_so: Optional[str] = None
    video_source: str
    video_url: Optional[str] = None  # withheld while locked
    thumbnail_url: Optional[str] = None
    duration_seconds: Optional[int] = None
    is_free: bool
    is_locked: bool
    order_index: int
    progress: Optional[SavedProgressOut] = None


class CurriculumPlaylist(BaseModel):
    id: uuid.UUID
    title: str
    title_so: Optional[str] = None
    order_index: int
    videos: list[CurriculumVideo]


class Curriculum(BaseModel):
    course: CourseOut
    has_access: bool
    playlists: list[CurriculumPlaylist]


class EnrollmentOut(BaseModel):
    id: uuid.UUID
    course_id: uuid.UUID
    course_title: Optional[str] = None
    progress: int
    status: str
    enrolled_at: datetime
    completed_at: Optional[datetime] = None
