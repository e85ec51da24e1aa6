import uuid
from typing import Optional

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from kobciye.core.enum import EnrollmentStatus, NotificationType
from kobciye.core.exceptions import (
    ConflictException,
    NotFoundException,
    ServerErrorException,
)
from kobciye.db.models.database import Courses, Enrollments, User
from kobciye.db.session import get_session
from kobciye.libs.formats.datetime import now as get_now
from kobciye.schemas.shares.notification import NotificationCreateSchema
from kobciye.services.shares.notification import NotificationService

_STATUS_MESSAGES = {
    EnrollmentStatus.ACTIVE: "Your enrollment in {course} is active again.",
    EnrollmentStatus.COMPLETED: "Your enrollment in {course} has been marked as completed.",
    EnrollmentStatus.CANCELLED: "Your enrollment in {course} has been cancelled.",
}


class EnrollmentAdminService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def list_enrollments(
        self,
        status: Optional[EnrollmentStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        size: int = 20,
    ):
        stmt = (
            select(Enrollments, Courses.title, User.email)
            .select_from(Enrollments)
            .join(Courses, Courses.id == Enrollments.course_id)
            .join(User, User.id == Enrollments.user_id)
        )
        if status:
            stmt = stmt.where(Enrollments.status == status.value)
        if search:
            kw = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(func.lower(Courses.title).like(kw), func.lower(User.email).like(kw))
            )

        total = await self.db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
        rows = (
            await self.db.execute(
                stmt.order_by(Enrollments.enrolled_at.desc())
                .offset((page - 1) * size)
                .limit(size)
            )
        ).all()

        return {
            "page": page,
            "size": size,
            "total_items": total,
            "total_pages": (total + size - 1) // size,
            "items": [
                {
                    "id": e.id,
                    "user_id": e.user_id,
                    "user_email": email,
                    "course_id": e.course_id,
                    "course_title": title,
                    "progress": e.progress,
                    "status": e.status,
                    "enrolled_at": e.enrolled_at,
                    "completed_at": e.completed_at,
                }
                for e, title, email in rows
            ],
        }

    async def update_status(self, enrollment_id: uuid.UUID, status: EnrollmentStatus):
        """Admin override of an enrollment's status.

        `completed_at` is stamped on entering `completed` and cleared on
        leaving it. Reviving a cancelled row fails when the learner already
        holds another live enrollment for the course.
        """
        enrollment = await self.db.get(Enrollments, enrollment_id)
        if not enrollment:
            raise NotFoundException("Enrollment", enrollment_id)

        previous = enrollment.status
        if previous == status.value:
            raise HTTPException(400, f"Enrollment is already {status.value}")

        course = await self.db.get(Courses, enrollment.course_id)
        course_title = course.title if course else "the course"
        user_id, course_id = enrollment.user_id, enrollment.course_id

        try:
            enrollment.status = status.value
            enrollment.completed_at = get_now() if status == EnrollmentStatus.COMPLETED else None
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException("Learner already has a live enrollment for this course")
        except Exception as e:
            logger.exception(f"[Admin][Enrollment] id={enrollment_id}: {e}")
            await self.db.rollback()
            raise ServerErrorException("Failed to update enrollment")

        result = {
            "id": enrollment.id,
            "status": enrollment.status,
            "progress": enrollment.progress,
            "completed_at": enrollment.completed_at,
        }
        logger.info(f"[Admin][Enrollment] {enrollment_id}: {previous} -> {status.value}")

        await NotificationService(self.db).notify_quietly(
            NotificationCreateSchema(
                user_id=user_id,
                title="Enrollment update",
                message=_STATUS_MESSAGES[status].format(course=course_title),
                type=NotificationType.ERROR
                if status == EnrollmentStatus.CANCELLED
                else NotificationType.COURSE,
                link=f"/courses/{course_id}",
            )
        )

        return result
