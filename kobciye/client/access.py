import uuid

from loguru import logger

from kobciye.client.api import BackendError
from kobciye.client.session import AppContext
from kobciye.core.enum import AccessReason
from kobciye.schemas.shares.rpc import AccessResult


class CourseAccessEvaluator:
    def __init__(self, context: AppContext):
        self.context = context

    async def check_access(self, course_id: uuid.UUID) -> AccessResult:
        # signed-out visitors never reach the backend
        if self.context.session is None:
            return AccessResult(allowed=False, reason=AccessReason.NOT_ENROLLED)

        try:
            return await self.context.client.check_course_access(course_id)
        except BackendError as e:
            logger.error(f"[Access] check failed for course {course_id}: {e.message}")
            return AccessResult(allowed=False, reason=AccessReason.COURSE_NOT_FOUND)
