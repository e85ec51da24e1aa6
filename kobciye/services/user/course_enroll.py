import uuid
from typing import Optional

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from kobciye.core.enum import (
    ENROLL_ERROR_ALREADY_ENROLLED,
    ENROLL_ERROR_COURSE_NOT_FOUND,
    ENROLL_ERROR_COURSE_UNAVAILABLE,
    ENROLL_ERROR_INSUFFICIENT,
    ENROLL_ERROR_PROFILE_NOT_FOUND,
    EnrollmentStatus,
    NotificationType,
)
from kobciye.core.exceptions import ServerErrorException
from kobciye.db.models.database import Courses, Enrollments, Profiles, User
from kobciye.db.session import get_session
from kobciye.libs.formats.datetime import now as get_now
from kobciye.schemas.shares.notification import NotificationCreateSchema
from kobciye.schemas.shares.rpc import EnrollResult
from kobciye.schemas.user.learning import EnrollmentOut
from kobciye.services.admin.platform_settings import PlatformSettingsService
from kobciye.services.shares.notification import NotificationService
from kobciye.services.user.course_access import live_enrollment_stmt


class CourseEnrollService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def enroll_with_credits(self, user: User, course_id: uuid.UUID) -> EnrollResult:
        """Debit the course price and create the enrollment in one transaction.

        Business-rule rejections come back as `success=False` results. Only
        unexpected failures raise.
        """
        user_id = user.id
        try:
            # 1) lock the wallet row so concurrent enrolls queue up here
            profile = await self.db.scalar(
                select(Profiles)
                .where(Profiles.user_id == user_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            if profile is None:
                await self.db.rollback()
                return EnrollResult(success=False, error=ENROLL_ERROR_PROFILE_NOT_FOUND)

            # 2) course must exist and be published
            course = await self.db.get(Courses, course_id)
            if course is None:
                await self.db.rollback()
                return EnrollResult(success=False, error=ENROLL_ERROR_COURSE_NOT_FOUND)
            if not course.is_published:
                await self.db.rollback()
                return EnrollResult(success=False, error=ENROLL_ERROR_COURSE_UNAVAILABLE)

            # 3) one live enrollment per (user, course)
            if await self.db.scalar(live_enrollment_stmt(user_id, course_id)):
                await self.db.rollback()
                logger.warning(f"[Enroll] user {user_id} already enrolled in {course_id}")
                return EnrollResult(success=False, error=ENROLL_ERROR_ALREADY_ENROLLED)

            # 4) balance check
            price = course.price or 0
            if profile.credits < price:
                available = profile.credits
                await self.db.rollback()
                logger.warning(
                    f"[Enroll] user {user_id} has {available} credits, course {course_id} costs {price}"
                )
                return EnrollResult(
                    success=False,
                    error=ENROLL_ERROR_INSUFFICIENT,
                    required_credits=price,
                    credits_available=available,
                )

            # 5) guarded debit + enrollment + counter
            if price > 0:
                debited = await self.db.execute(
                    update(Profiles)
                    .where(Profiles.id == profile.id, Profiles.credits >= price)
                    .values(credits=Profiles.credits - price, updated_at=get_now())
                    .execution_options(synchronize_session=False)
                )
                if debited.rowcount != 1:
                    available = profile.credits
                    await self.db.rollback()
                    return EnrollResult(
                        success=False,
                        error=ENROLL_ERROR_INSUFFICIENT,
                        required_credits=price,
                        credits_available=available,
                    )

            enrollment = Enrollments(
                id=uuid.uuid4(),
                user_id=user_id,
                course_id=course_id,
                progress=0,
                status=EnrollmentStatus.ACTIVE.value,
                enrolled_at=get_now(),
            )
            self.db.add(enrollment)

            # flush before any other ORM statement so the unique index is hit here
            try:
                await self.db.flush()
            except IntegrityError:
                # lost the race on the live-enrollment unique index
                await self.db.rollback()
                logger.warning(f"[Enroll] concurrent enroll for user {user_id} course {course_id}")
                return EnrollResult(success=False, error=ENROLL_ERROR_ALREADY_ENROLLED)

            await self.db.execute(
                update(Courses)
                .where(Courses.id == course_id)
                .values(students_count=Courses.students_count + 1)
                .execution_options(synchronize_session=False)
            )

            credits_remaining = await self.db.scalar(
                select(Profiles.credits).where(Profiles.id == profile.id)
            )
            course_title, enrollment_id = course.title, enrollment.id

            # 6) commit
            await self.db.commit()

        except HTTPException:
            raise
        except Exception as e:
            logger.exception(f"[Enroll] user={user_id} course={course_id}: {e}")
            await self.db.rollback()
            raise ServerErrorException("Enrollment failed")

        logger.info(
            f"[Enroll] user {user_id} enrolled in {course_id}, {price} credits, {credits_remaining} left"
        )

        settings_service = PlatformSettingsService(self.db)
        if await settings_service.is_enabled("notifications", "enrollment_notifications"):
            await NotificationService(self.db).notify_quietly(
                NotificationCreateSchema(
                    user_id=user_id,
                    title="Enrollment confirmed",
                    message=f"You are now enrolled in {course_title}.",
                    type=NotificationType.COURSE,
                    link=f"/courses/{course_id}",
                )
            )

        return EnrollResult(
            success=True,
            enrollment_id=enrollment_id,
            credits_remaining=credits_remaining,
        )

    async def list_my_enrollments(
        self, user_id: uuid.UUID, status: Optional[EnrollmentStatus] = None
    ) -> list[EnrollmentOut]:
        stmt = (
            select(Enrollments, Courses.title)
            .join(Courses, Courses.id == Enrollments.course_id)
            .where(Enrollments.user_id == user_id)
            .order_by(Enrollments.enrolled_at.desc())
        )
        if status:
            stmt = stmt.where(Enrollments.status == status.value)

        rows = (await self.db.execute(stmt)).all()
        return [
            EnrollmentOut(
                id=e.id,
                course_id=e.course_id,
                course_title=title,
                progress=e.progress,
                status=e.status,
                enrolled_at=e.enrolled_at,
                completed_at=e.completed_at,
            )
            for e, title in rows
        ]

