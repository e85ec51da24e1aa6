import uuid
from typing import Optional

from loguru import logger

from kobciye.client.access import CourseAccessEvaluator
from kobciye.client.api import BackendError
from kobciye.client.progress import VideoProgressTracker
from kobciye.client.session import AppContext, Toast
from kobciye.libs.i18n import localized
from kobciye.schemas.shares.rpc import AccessResult, CourseProgress
from kobciye.schemas.user.learning import Curriculum, CurriculumVideo


class CoursePlayer:
    """Curriculum navigation for one course plus the per-video tracker wiring."""

    def __init__(self, context: AppContext):
        self.context = context
        self.access_evaluator = CourseAccessEvaluator(context)

        self.course_id: Optional[uuid.UUID] = None
        self.access: Optional[AccessResult] = None
        self.curriculum: Optional[Curriculum] = None
        self.progress: Optional[CourseProgress] = None
        self.videos: list[CurriculumVideo] = []
        self.current: Optional[CurriculumVideo] = None
        self._completed: set[uuid.UUID] = set()

    # ==============================
    # LOADING
    # ==============================
    async def open(self, course_id: uuid.UUID) -> AccessResult:
        self.course_id = course_id
        self.curriculum = None
        self.progress = None
        self.videos = []
        self.current = None
        self._completed = set()

        self.access = await self.access_evaluator.check_access(course_id)
        if not self.access.allowed:
            return self.access

        try:
            self.curriculum = await self.context.client.get_curriculum(course_id)
        except BackendError as e:
            logger.error(f"[Player] curriculum for {course_id} failed: {e.message}")
            return self.access

        self.videos = [v for p in self.curriculum.playlists for v in p.videos]
        self._completed = {
            v.id for v in self.videos if v.progress is not None and v.progress.is_completed
        }
        await self.refresh_progress()

        self.current = next(
            (v for v in self.videos if not v.is_locked and v.id not in self._completed),
            self.videos[0] if self.videos else None,
        )
        return self.access

    async def refresh_progress(self) -> Optional[CourseProgress]:
        if self.course_id is None:
            return None
        try:
            self.progress = await self.context.client.get_course_progress(self.course_id)
        except BackendError as e:
            logger.warning(f"[Player] progress for {self.course_id} failed: {e.message}")
        return self.progress

    # ==============================
    # NAVIGATION
    # ==============================
    def _index(self) -> int:
        if self.current is None:
            return -1
        return next(i for i, v in enumerate(self.videos) if v.id == self.current.id)

    def select(self, video_id: uuid.UUID) -> CurriculumVideo:
        for video in self.videos:
            if video.id == video_id:
                self.current = video
                return video
        raise KeyError(f"Video {video_id} is not part of this course")

    def next(self) -> Optional[CurriculumVideo]:
        i = self._index()
        if 0 <= i < len(self.videos) - 1:
            self.current = self.videos[i + 1]
            return self.current
        return None

    def previous(self) -> Optional[CurriculumVideo]:
        i = self._index()
        if i > 0:
            self.current = self.videos[i - 1]
            return self.current
        return None

    # ==============================
    # COMPLETION
    # ==============================
    def is_video_completed(self, video_id: uuid.UUID) -> bool:
        return video_id in self._completed

    @property
    def completed_count(self) -> int:
        return len(self._completed)

    async def mark_completed(self, video_id: uuid.UUID) -> None:
        # one-way: a repeat call changes nothing but the refreshed totals
        if video_id not in self._completed:
            self._completed.add(video_id)
            video = next((v for v in self.videos if v.id == video_id), None)
            if video is not None:
                self.context.notify(
                    Toast(
                        title=self.context.t("progress.completed.title"),
                        description=localized(self.context.language, video.title, video.title_so),
                    )
                )
        await self.refresh_progress()

    async def record_play(self) -> Optional[int]:
        """Counts a play of the current video when playback starts. Returns the new play count."""
        if self.current is None or self.current.is_locked or self.context.user is None:
            return None
        try:
            result = await self.context.client.record_video_play(self.current.id)
        except BackendError as e:
            logger.warning(f"[Player] play of {self.current.id} not recorded: {e.message}")
            return None
        return result.play_count

    def tracker_for_current(self) -> Optional[VideoProgressTracker]:
        if self.current is None or self.current.is_locked:
            return None

        video_id = self.current.id

        async def on_complete() -> None:
            await self.mark_completed(video_id)

        return VideoProgressTracker(
            self.context,
            video_id,
            duration_seconds=self.current.duration_seconds,
            on_complete=on_complete,
        )
