import uuid
from typing import Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kobciye.core.enum import AccessReason, EnrollmentStatus, is_admin
from kobciye.db.models.database import Courses, Enrollments, User
from kobciye.db.session import get_session
from kobciye.schemas.shares.rpc import AccessResult


def live_enrollment_stmt(user_id: uuid.UUID, course_id: uuid.UUID):
    """Enrollment rows that still grant access (anything but cancelled)."""
    return select(Enrollments).where(
        Enrollments.user_id == user_id,
        Enrollments.course_id == course_id,
        Enrollments.status != EnrollmentStatus.CANCELLED.value,
    )


class CourseAccessService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def get_live_enrollment(
        self, user_id: uuid.UUID, course_id: uuid.UUID
    ) -> Optional[Enrollments]:
        return await self.db.scalar(live_enrollment_stmt(user_id, course_id))

    async def evaluate(self, user: Optional[User], course: Optional[Courses]) -> AccessResult:
        # order matters: unpublished wins over the admin bypass
        if course is None:
            return AccessResult(allowed=False, reason=AccessReason.COURSE_NOT_FOUND)

        if not course.is_published:
            return AccessResult(
                allowed=False,
                reason=AccessReason.COURSE_NOT_PUBLISHED,
                course_title=course.title,
            )

        if user is not None:
            if is_admin([ur.role for ur in user.user_roles]):
                return AccessResult(allowed=True, reason=AccessReason.ADMIN_ACCESS)

            if await self.get_live_enrollment(user.id, course.id):
                return AccessResult(allowed=True, reason=AccessReason.ENROLLED)

        return AccessResult(
            allowed=False,
            reason=AccessReason.NOT_ENROLLED,
            required_credits=course.price,
            course_title=course.title,
        )

    async def check_course_access(
        self, user: Optional[User], course_id: uuid.UUID
    ) -> AccessResult:
        course = await self.db.get(Courses, course_id)
        return await self.evaluate(user, course)
