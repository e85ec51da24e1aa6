import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from loguru import logger

from kobciye.client.api import BackendError
from kobciye.client.session import AppContext, Toast
from kobciye.core.enum import ENROLL_ERROR_ALREADY_ENROLLED, ENROLL_ERROR_INSUFFICIENT
from kobciye.libs.i18n import localized
from kobciye.schemas.user.learning import CourseOut


class EnrollmentFlowStatus(str, Enum):
    SUCCESS = "success"
    INSUFFICIENT = "insufficient"
    ALREADY_ENROLLED = "already_enrolled"
    FAILED = "failed"


@dataclass
class EnrollmentOutcome:
    status: EnrollmentFlowStatus
    enrollment_id: Optional[uuid.UUID] = None
    credits_remaining: Optional[int] = None
    credits_available: Optional[int] = None
    required_credits: Optional[int] = None
    error: Optional[str] = None

    @property
    def missing_credits(self) -> int:
        if self.required_credits is None or self.credits_available is None:
            return 0
        return max(0, self.required_credits - self.credits_available)


class EnrollmentFlow:
    """Balance pre-check, then the atomic enroll procedure, then user feedback."""

    def __init__(self, context: AppContext):
        self.context = context
        self.credits: Optional[int] = None

    async def refresh_credits(self) -> Optional[int]:
        try:
            profile = await self.context.client.get_profile()
        except BackendError as e:
            logger.error(f"[Enroll] could not load credits: {e.message}")
            return None
        self.credits = profile.credits
        return self.credits

    def _fail(self, message: Optional[str]) -> EnrollmentOutcome:
        t = self.context.t
        self.context.notify(
            Toast(
                title=t("error.title"),
                description=message or t("enroll.failed.body"),
                variant="destructive",
            )
        )
        return EnrollmentOutcome(status=EnrollmentFlowStatus.FAILED, error=message)

    async def enroll(self, course: CourseOut) -> EnrollmentOutcome:
        if self.context.session is None:
            return EnrollmentOutcome(status=EnrollmentFlowStatus.FAILED, error="Not signed in")

        t = self.context.t
        price = course.price or 0

        # 1) client-side pre-check; the procedure re-checks under a lock
        credits = await self.refresh_credits()
        if credits is not None and credits < price:
            return EnrollmentOutcome(
                status=EnrollmentFlowStatus.INSUFFICIENT,
                credits_available=credits,
                required_credits=price,
            )

        # 2) procedure
        try:
            result = await self.context.client.enroll_with_credits(course.id)
        except BackendError as e:
            logger.error(f"[Enroll] course {course.id}: {e.message}")
            return self._fail(None)

        # 3) map the result
        if result.success:
            self.credits = result.credits_remaining
            title = localized(self.context.language, course.title, course.title_so)
            self.context.notify(
                Toast(
                    title=t("enroll.success.title"),
                    description=t("enroll.success.body", course=title),
                )
            )
            return EnrollmentOutcome(
                status=EnrollmentFlowStatus.SUCCESS,
                enrollment_id=result.enrollment_id,
                credits_remaining=result.credits_remaining,
            )

        if result.error == ENROLL_ERROR_INSUFFICIENT:
            return EnrollmentOutcome(
                status=EnrollmentFlowStatus.INSUFFICIENT,
                credits_available=result.credits_available,
                required_credits=result.required_credits if result.required_credits is not None else price,
                error=result.error,
            )

        if result.error == ENROLL_ERROR_ALREADY_ENROLLED:
            self.context.notify(
                Toast(
                    title=t("enroll.already.title"),
                    description=t("enroll.already.body"),
                    variant="destructive",
                )
            )
            return EnrollmentOutcome(
                status=EnrollmentFlowStatus.ALREADY_ENROLLED, error=result.error
            )

        logger.warning(f"[Enroll] course {course.id} rejected: {result.error}")
        return self._fail(result.error)
