from __future__ import annotations

import inspect
import math
import uuid
from typing import Any, Awaitable, Callable, Optional, Union

from loguru import logger

from kobciye.client.api import BackendError
from kobciye.client.session import AppContext
from kobciye.core.scheduler import add_interval_job, remove_job
from kobciye.libs.formats.number import round_half_up
from kobciye.schemas.user.learning import SavedProgressOut

CompletionCallback = Callable[[], Union[None, Awaitable[None]]]
TimeAccessor = Callable[[], float]


class VideoProgressTracker:
    """
    Periodically persists how far the learner got into one video.

    - every `interval_seconds` the playback position is sampled and saved,
      unless the percentage moved less than `min_delta` points since the
      last *saved* value
    - pause and end-of-media always save
    - the backend decides completion; `on_complete` runs for every save
      that reports it
    - failures are logged and never reach the player
    """

    def __init__(
        self,
        context: AppContext,
        video_id: uuid.UUID,
        duration_seconds: Optional[float] = None,
        on_complete: Optional[CompletionCallback] = None,
        interval_seconds: Optional[float] = None,
        min_delta: Optional[int] = None,
    ):
        self.context = context
        self.video_id = video_id
        self.duration_seconds = duration_seconds
        self.on_complete = on_complete
        self.interval_seconds = interval_seconds or context.settings.PROGRESS_SAVE_INTERVAL_SECONDS
        self.min_delta = min_delta if min_delta is not None else context.settings.PROGRESS_MIN_DELTA

        self.last_saved: int = 0
        self.saved: Optional[SavedProgressOut] = None
        self._completed = False
        self._get_current_time: Optional[TimeAccessor] = None
        self._get_duration: Optional[TimeAccessor] = None
        self._job_id = f"video-progress-{video_id}-{uuid.uuid4().hex[:8]}"

    @property
    def is_completed(self) -> bool:
        return self._completed

    @property
    def is_tracking(self) -> bool:
        return self.context.scheduler.get_job(self._job_id) is not None

    @property
    def job_id(self) -> str:
        return self._job_id

    # ==============================
    # RESUME
    # ==============================
    async def load_progress(self) -> Optional[SavedProgressOut]:
        if self.context.session is None:
            return None

        try:
            self.saved = await self.context.client.get_saved_progress(self.video_id)
        except BackendError as e:
            logger.error(f"[Tracker] loading progress for {self.video_id} failed: {e.message}")
            return None

        if self.saved is not None and self.saved.is_completed:
            self._completed = True
        return self.saved

    def resume_position(self) -> Optional[int]:
        if self.saved is None or self.saved.last_position_seconds <= 0:
            return None
        return self.saved.last_position_seconds

    # ==============================
    # SAVING
    # ==============================
    def _duration(self) -> float:
        if self.duration_seconds:
            return float(self.duration_seconds)
        if self._get_duration is not None:
            return float(self._get_duration() or 0)
        return 0.0

    async def save_progress(self, current_time: float, duration: float, force: bool = False) -> bool:
        """Returns True when a remote save was issued."""
        if self.context.session is None or duration <= 0:
            return False

        watched_percentage = min(100, round_half_up(current_time / duration * 100))
        if not force and abs(watched_percentage - self.last_saved) < self.min_delta:
            return False

        # baseline moves even when the call below fails
        self.last_saved = watched_percentage

        try:
            result = await self.context.client.update_video_progress(
                self.video_id, watched_percentage, math.floor(max(0.0, current_time))
            )
        except BackendError as e:
            logger.error(f"[Tracker] saving {self.video_id} at {watched_percentage}% failed: {e.message}")
            return True

        if result.is_completed:
            self._completed = True
            await self._fire_complete()
        return True

    async def _fire_complete(self) -> None:
        if self.on_complete is None:
            return
        try:
            outcome: Any = self.on_complete()
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.exception(f"[Tracker] on_complete for {self.video_id} raised: {e}")

    async def tick(self) -> bool:
        """One polling sample, the body of the interval job."""
        if self._get_current_time is None:
            return False
        duration = self._duration()
        if duration <= 0:
            return False
        return await self.save_progress(self._get_current_time(), duration)

    async def _save_now(self) -> bool:
        if self._get_current_time is None:
            return False
        return await self.save_progress(self._get_current_time(), self._duration(), force=True)

    async def on_pause(self) -> bool:
        return await self._save_now()

    async def on_ended(self) -> bool:
        return await self._save_now()

    # ==============================
    # LIFECYCLE
    # ==============================
    def start(self, get_current_time: TimeAccessor, get_duration: TimeAccessor) -> None:
        self._get_current_time = get_current_time
        self._get_duration = get_duration
        if self.is_tracking:
            return
        add_interval_job(self.context.scheduler, self.tick, self.interval_seconds, self._job_id)
        logger.debug(f"[Tracker] started {self._job_id} every {self.interval_seconds}s")

    def stop(self) -> None:
        # no flush here; pause/end already saved the stop point
        remove_job(self.context.scheduler, self._job_id)
        logger.debug(f"[Tracker] stopped {self._job_id}")
