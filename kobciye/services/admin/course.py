import uuid
from typing import Optional

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from kobciye.core.exceptions import NotFoundException, ServerErrorException
from kobciye.db.models.database import Courses, Playlists, Videos
from kobciye.db.session import get_session
from kobciye.libs.formats.datetime import now as get_now
from kobciye.schemas.admin.course import (
    CourseCreate,
    CourseUpdate,
    PlaylistCreate,
    PlaylistUpdate,
    VideoCreate,
    VideoUpdate,
)
from kobciye.schemas.user.learning import CourseOut


def _playlist_dict(p: Playlists) -> dict:
    return {
        "id": p.id,
        "course_id": p.course_id,
        "title": p.title,
        "title_so": p.title_so,
        "description": p.description,
        "description_so": p.description_so,
        "order_index": p.order_index,
    }


def _video_dict(v: Videos) -> dict:
    return {
        "id": v.id,
        "playlist_id": v.playlist_id,
        "title": v.title,
        "title_so": v.title_so,
        "description": v.description,
        "description_so": v.description_so,
        "video_source": v.video_source,
        "video_url": v.video_url,
        "thumbnail_url": v.thumbnail_url,
        "duration_seconds": v.duration_seconds,
        "is_free": v.is_free,
        "order_index": v.order_index,
    }


class CourseAdminService:
    """Back-office CRUD over the course > playlist > video tree."""

    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def _commit(self, scope: str):
        try:
            await self.db.commit()
        except Exception as e:
            logger.exception(f"[Admin][{scope}] {e}")
            await self.db.rollback()
            raise ServerErrorException(f"{scope} failed")

    # ==========================================================================
    # Courses
    # ==========================================================================
    async def list_courses(
        self,
        is_published: Optional[bool] = None,
        search: Optional[str] = None,
        page: int = 1,
        size: int = 20,
    ):
        stmt = select(Courses)
        if is_published is not None:
            stmt = stmt.where(Courses.is_published.is_(is_published))
        if search:
            kw = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Courses.title).like(kw),
                    func.lower(Courses.instructor_name).like(kw),
                )
            )

        total = await self.db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
        rows = await self.db.scalars(
            stmt.order_by(Courses.created_at.desc()).offset((page - 1) * size).limit(size)
        )
        return {
            "page": page,
            "size": size,
            "total_items": total,
            "total_pages": (total + size - 1) // size,
            "items": [CourseOut.model_validate(c) for c in rows],
        }

    async def _get_course(self, course_id: uuid.UUID) -> Courses:
        course = await self.db.get(Courses, course_id)
        if not course:
            raise NotFoundException("Course", course_id)
        return course

    async def create_course(self, schema: CourseCreate) -> CourseOut:
        now = get_now()
        course = Courses(id=uuid.uuid4(), **schema.model_dump(), created_at=now, updated_at=now)
        self.db.add(course)
        await self._commit("CreateCourse")
        logger.info(f"[Admin] course {course.id} '{course.title}' created")
        return CourseOut.model_validate(course)

    async def update_course(self, course_id: uuid.UUID, schema: CourseUpdate) -> CourseOut:
        course = await self._get_course(course_id)
        for field, value in schema.model_dump(exclude_unset=True).items():
            setattr(course, field, value)
        course.updated_at = get_now()
        await self._commit("UpdateCourse")
        return CourseOut.model_validate(course)

    async def delete_course(self, course_id: uuid.UUID):
        course = await self._get_course(course_id)
        await self.db.delete(course)
        await self._commit("DeleteCourse")
        logger.info(f"[Admin] course {course_id} deleted")
        return {"message": "Course deleted"}

    # ==========================================================================
    # Playlists
    # ==========================================================================
    async def list_playlists(self, course_id: uuid.UUID):
        await self._get_course(course_id)
        rows = await self.db.scalars(
            select(Playlists)
            .where(Playlists.course_id == course_id)
            .order_by(Playlists.order_index)
        )
        return [_playlist_dict(p) for p in rows]

    async def _get_playlist(self, playlist_id: uuid.UUID) -> Playlists:
        playlist = await self.db.get(Playlists, playlist_id)
        if not playlist:
            raise NotFoundException("Playlist", playlist_id)
        return playlist

    async def create_playlist(self, schema: PlaylistCreate):
        await self._get_course(schema.course_id)
        now = get_now()
        playlist = Playlists(id=uuid.uuid4(), **schema.model_dump(), created_at=now, updated_at=now)
        self.db.add(playlist)
        await self._commit("CreatePlaylist")
        return _playlist_dict(playlist)

    async def update_playlist(self, playlist_id: uuid.UUID, schema: PlaylistUpdate):
        playlist = await self._get_playlist(playlist_id)
        for field, value in schema.model_dump(exclude_unset=True).items():
            setattr(playlist, field, value)
        playlist.updated_at = get_now()
        await self._commit("UpdatePlaylist")
        return _playlist_dict(playlist)

    async def delete_playlist(self, playlist_id: uuid.UUID):
        playlist = await self._get_playlist(playlist_id)
        await self.db.delete(playlist)
        await self._commit("DeletePlaylist")
        return {"message": "Playlist deleted"}

    # ==========================================================================
    # Videos
    # ==========================================================================
    async def list_videos(self, playlist_id: uuid.UUID):
        await self._get_playlist(playlist_id)
        rows = await self.db.scalars(
            select(Videos).where(Videos.playlist_id == playlist_id).order_by(Videos.order_index)
        )
        return [_video_dict(v) for v in rows]

    async def _get_video(self, video_id: uuid.UUID) -> Videos:
        video = await self.db.get(Videos, video_id)
        if not video:
            raise NotFoundException("Video", video_id)
        return video

    async def create_video(self, schema: VideoCreate):
        await self._get_playlist(schema.playlist_id)
        data = schema.model_dump()
        data["video_source"] = schema.video_source.value
        now = get_now()
        video = Videos(id=uuid.uuid4(), **data, created_at=now, updated_at=now)
        self.db.add(video)
        await self._commit("CreateVideo")
        return _video_dict(video)

    async def update_video(self, video_id: uuid.UUID, schema: VideoUpdate):
        video = await self._get_video(video_id)
        data = schema.model_dump(exclude_unset=True)
        if data.get("video_source") is not None:
            data["video_source"] = data["video_source"].value
        elif "video_source" in data:
            raise HTTPException(400, "video_source cannot be null")

        for field, value in data.items():
            setattr(video, field, value)
        video.updated_at = get_now()
        await self._commit("UpdateVideo")
        return _video_dict(video)

    async def delete_video(self, video_id: uuid.UUID):
        video = await self._get_video(video_id)
        await self.db.delete(video)
        await self._commit("DeleteVideo")
        return {"message": "Video deleted"}
