import uuid
from typing import Optional

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from kobciye.core.enum import EnrollmentStatus, NotificationType, is_admin
from kobciye.core.exceptions import (
    ForbiddenException,
    NotFoundException,
    ServerErrorException,
)
from kobciye.db.models.database import (
    Courses,
    Playlists,
    User,
    UserProgress,
    Videos,
)
from kobciye.db.session import get_session
from kobciye.libs.formats.datetime import now as get_now
from kobciye.libs.formats.number import percent
from kobciye.schemas.shares.notification import NotificationCreateSchema
from kobciye.schemas.shares.rpc import (
    CourseProgress,
    PlayRecordResult,
    ProgressUpdateResult,
)
from kobciye.schemas.user.learning import (
    CourseOut,
    Curriculum,
    CurriculumPlaylist,
    CurriculumVideo,
    SavedProgressOut,
)
from kobciye.services.admin.platform_settings import PlatformSettingsService
from kobciye.services.shares.notification import NotificationService
from kobciye.services.user.course_access import CourseAccessService, live_enrollment_stmt


class LearningService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db
        self.access = CourseAccessService(db)
        self.platform_settings = PlatformSettingsService(db)

    # ==========================================================================
    # Catalogue
    # ==========================================================================
    async def list_published_courses(
        self,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        category: Optional[str] = None,
    ):
        stmt = select(Courses).where(Courses.is_published.is_(True))
        if search:
            kw = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Courses.title).like(kw),
                    func.lower(func.coalesce(Courses.title_so, "")).like(kw),
                )
            )
        if category:
            stmt = stmt.where(Courses.category == category)

        total = await self.db.scalar(select(func.count()).select_from(stmt.subquery()))
        items = (
            await self.db.scalars(
                stmt.order_by(Courses.created_at.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
        ).all()

        return {
            "total": total or 0,
            "page": page,
            "limit": limit,
            "items": [CourseOut.model_validate(c) for c in items],
        }

    async def get_course(self, course_id: uuid.UUID, user: Optional[User] = None) -> CourseOut:
        course = await self._get_visible_course(course_id, user)
        return CourseOut.model_validate(course)

    async def _get_visible_course(self, course_id: uuid.UUID, user: Optional[User]) -> Courses:
        course = await self.db.get(Courses, course_id)
        if course is None:
            raise NotFoundException("Course", course_id)

        # drafts are only visible to the back-office
        if not course.is_published:
            roles = [ur.role for ur in user.user_roles] if user else []
            if not is_admin(roles):
                raise NotFoundException("Course", course_id)
        return course

    # ==========================================================================
    # Curriculum
    # ==========================================================================
    async def get_course_curriculum(
        self, course_id: uuid.UUID, user: Optional[User] = None
    ) -> Curriculum:
        course = await self._get_visible_course(course_id, user)

        access = await self.access.evaluate(user, course)
        free_preview = await self.platform_settings.is_enabled("courses", "free_preview_enabled")

        playlists = (
            await self.db.scalars(
                select(Playlists)
                .where(Playlists.course_id == course_id)
                .options(selectinload(Playlists.videos))
                .order_by(Playlists.order_index)
            )
        ).all()

        progress_by_video: dict[uuid.UUID, UserProgress] = {}
        if user is not None:
            video_ids = [v.id for p in playlists for v in p.videos]
            if video_ids:
                rows = await self.db.scalars(
                    select(UserProgress).where(
                        UserProgress.user_id == user.id,
                        UserProgress.video_id.in_(video_ids),
                    )
                )
                progress_by_video = {row.video_id: row for row in rows}

        out_playlists = []
        for playlist in playlists:
            videos = []
            for video in sorted(playlist.videos, key=lambda v: v.order_index):
                locked = not (access.allowed or (video.is_free and free_preview))
                progress = progress_by_video.get(video.id)
                videos.append(
                    CurriculumVideo(
                        id=video.id,
                        title=video.title,
                        title_so=video.title_so,
                        video_source=video.video_source,
                        video_url=None if locked else video.video_url,
                        thumbnail_url=video.thumbnail_url,
                        duration_seconds=video.duration_seconds,
                        is_free=video.is_free,
                        is_locked=locked,
                        order_index=video.order_index,
                        progress=SavedProgressOut.model_validate(progress) if progress else None,
                    )
                )
            out_playlists.append(
                CurriculumPlaylist(
                    id=playlist.id,
                    title=playlist.title,
                    title_so=playlist.title_so,
                    order_index=playlist.order_index,
                    videos=videos,
                )
            )

        return Curriculum(
            course=CourseOut.model_validate(course),
            has_access=access.allowed,
            playlists=out_playlists,
        )

    # ==========================================================================
    # Progress
    # ==========================================================================
    async def get_saved_progress(
        self, user_id: uuid.UUID, video_id: uuid.UUID
    ) -> Optional[SavedProgressOut]:
        row = await self.db.scalar(
            select(UserProgress).where(
                UserProgress.user_id == user_id,
                UserProgress.video_id == video_id,
            )
        )
        return SavedProgressOut.model_validate(row) if row else None

    async def _get_video_with_course(self, video_id: uuid.UUID) -> tuple[Videos, Courses]:
        row = (
            await self.db.execute(
                select(Videos, Courses)
                .select_from(Videos)
                .join(Playlists, Playlists.id == Videos.playlist_id)
                .join(Courses, Courses.id == Playlists.course_id)
                .where(Videos.id == video_id)
            )
        ).first()
        if row is None:
            raise NotFoundException("Video", video_id)
        return row[0], row[1]

    async def _ensure_can_watch(self, user: User, video: Videos, course: Courses) -> None:
        if video.is_free and await self.platform_settings.is_enabled(
            "courses", "free_preview_enabled"
        ):
            return
        access = await self.access.evaluate(user, course)
        if not access.allowed:
            raise ForbiddenException("You do not have access to this video")

    async def _compute_course_progress(
        self, user_id: uuid.UUID, course_id: uuid.UUID
    ) -> CourseProgress:
        total = await self.db.scalar(
            select(func.count(Videos.id))
            .select_from(Videos)
            .join(Playlists, Playlists.id == Videos.playlist_id)
            .where(Playlists.course_id == course_id)
        ) or 0
        completed = await self.db.scalar(
            select(func.count(UserProgress.id))
            .select_from(UserProgress)
            .join(Videos, Videos.id == UserProgress.video_id)
            .join(Playlists, Playlists.id == Videos.playlist_id)
            .where(
                Playlists.course_id == course_id,
                UserProgress.user_id == user_id,
                UserProgress.is_completed.is_(True),
            )
        ) or 0

        return CourseProgress(
            total_videos=total,
            completed_videos=completed,
            progress_percentage=percent(completed, total),
            is_completed=total > 0 and completed == total,
        )

    @staticmethod
    def _progress_row_stmt(user_id: uuid.UUID, video_id: uuid.UUID):
        return (
            select(UserProgress)
            .where(
                UserProgress.user_id == user_id,
                UserProgress.video_id == video_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )

    async def _lock_progress_row(
        self, user_id: uuid.UUID, video_id: uuid.UUID, now
    ) -> tuple[UserProgress, bool]:
        """Locked (user, video) progress row, inserted when missing. Returns (row, created).

        FOR UPDATE cannot lock a row that does not exist yet, so two first saves
        may both insert. The loser rolls back and continues on the winner's row.
        """
        stmt = self._progress_row_stmt(user_id, video_id)
        row = await self.db.scalar(stmt)
        if row is not None:
            return row, False

        row = UserProgress(
            id=uuid.uuid4(),
            user_id=user_id,
            video_id=video_id,
            watched_percentage=0,
            last_position_seconds=0,
            is_completed=False,
            play_count=1,
            created_at=now,
        )
        self.db.add(row)
        try:
            await self.db.flush()
            return row, True
        except IntegrityError:
            await self.db.rollback()
            logger.info(f"[Progress] row for user {user_id} video {video_id} created concurrently")

        row = await self.db.scalar(stmt)
        if row is None:
            raise ServerErrorException("Failed to save progress")
        return row, False

    async def update_video_progress(
        self,
        user: User,
        video_id: uuid.UUID,
        watched_percentage: int,
        last_position_seconds: int,
    ) -> ProgressUpdateResult:
        user_id = user.id
        video, course = await self._get_video_with_course(video_id)
        await self._ensure_can_watch(user, video, course)

        pct = max(0, min(100, int(watched_percentage)))
        position = max(0, int(last_position_seconds))
        threshold = await self.platform_settings.get_completion_threshold()
        completion_notifications = await self.platform_settings.is_enabled(
            "notifications", "completion_notifications"
        )
        course_id, course_title = course.id, course.title
        course_completed = False

        try:
            now = get_now()

            # 1) upsert the progress row
            row, _ = await self._lock_progress_row(user_id, video_id, now)

            # 2) percentage only grows, position always follows the latest save
            row.watched_percentage = max(row.watched_percentage or 0, pct)
            row.last_position_seconds = position
            row.last_watched_at = now
            row.updated_at = now

            # 3) completion latch
            if not row.is_completed and row.watched_percentage >= threshold:
                row.is_completed = True
                row.completed_at = now
                logger.info(f"[Progress] user {user_id} completed video {video_id}")

            await self.db.flush()
            is_completed = row.is_completed
            saved_pct = row.watched_percentage

            # 4) roll up into the live enrollment
            enrollment = await self.db.scalar(live_enrollment_stmt(user_id, course_id))
            if enrollment is not None:
                summary = await self._compute_course_progress(user_id, course_id)
                enrollment.progress = summary.progress_percentage
                if (
                    summary.progress_percentage >= 100
                    and enrollment.status == EnrollmentStatus.ACTIVE.value
                ):
                    enrollment.status = EnrollmentStatus.COMPLETED.value
                    enrollment.completed_at = now
                    course_completed = True
                    logger.info(f"[Progress] user {user_id} completed course {course_id}")

            await self.db.commit()

        except HTTPException:
            raise
        except Exception as e:
            logger.exception(f"[Progress] user={user_id} video={video_id}: {e}")
            await self.db.rollback()
            raise ServerErrorException("Failed to save progress")

        if course_completed and completion_notifications:
            await NotificationService(self.db).notify_quietly(
                NotificationCreateSchema(
                    user_id=user_id,
                    title="Course completed",
                    message=f"Congratulations! You completed {course_title}.",
                    type=NotificationType.SUCCESS,
                    link=f"/courses/{course_id}",
                )
            )

        return ProgressUpdateResult(
            success=True,
            is_completed=is_completed,
            watched_percentage=saved_pct,
        )

    async def record_video_play(self, user: User, video_id: uuid.UUID) -> PlayRecordResult:
        user_id = user.id
        video, course = await self._get_video_with_course(video_id)
        await self._ensure_can_watch(user, video, course)

        try:
            now = get_now()
            row, created = await self._lock_progress_row(user_id, video_id, now)
            if not created:
                row.play_count = (row.play_count or 0) + 1

            row.last_watched_at = now
            row.updated_at = now
            play_count = row.play_count
            await self.db.commit()
        except HTTPException:
            raise
        except Exception as e:
            logger.exception(f"[Progress][Play] user={user_id} video={video_id}: {e}")
            await self.db.rollback()
            raise ServerErrorException("Failed to record play")

        return PlayRecordResult(success=True, play_count=play_count)

    async def get_course_progress(self, user: User, course_id: uuid.UUID) -> CourseProgress:
        if await self.db.get(Courses, course_id) is None:
            raise NotFoundException("Course", course_id)
        return await self._compute_course_progress(user.id, course_id)
