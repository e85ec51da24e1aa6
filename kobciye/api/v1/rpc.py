from fastapi import APIRouter, Body, Depends

from kobciye.core.deps import AuthorizationService
from kobciye.schemas.shares.rpc import (
    AccessResult,
    CourseIdIn,
    CourseProgress,
    CreditPurchaseIn,
    CreditPurchaseResult,
    EnrollResult,
    PlayRecordResult,
    ProgressUpdateResult,
    VideoIdIn,
    VideoProgressIn,
)
from kobciye.services.shares.credits import CreditService
from kobciye.services.user.course_access import CourseAccessService
from kobciye.services.user.course_enroll import CourseEnrollService
from kobciye.services.user.learning import LearningService

# The caller is always the token's user; bodies never carry a user id.
router = APIRouter(prefix="/rpc", tags=["Procedures"])


@router.post("/check_course_access", response_model=AccessResult)
async def check_course_access(
    schema: CourseIdIn = Body(),
    access_service: CourseAccessService = Depends(CourseAccessService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user_if_any()
    return await access_service.check_course_access(user, schema.course_id)


@router.post("/enroll_with_credits", response_model=EnrollResult)
async def enroll_with_credits(
    schema: CourseIdIn = Body(),
    enroll_service: CourseEnrollService = Depends(CourseEnrollService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await enroll_service.enroll_with_credits(user, schema.course_id)


@router.post("/update_video_progress", response_model=ProgressUpdateResult)
async def update_video_progress(
    schema: VideoProgressIn = Body(),
    learning_service: LearningService = Depends(LearningService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await learning_service.update_video_progress(
        user, schema.video_id, schema.watched_percentage, schema.last_position_seconds
    )


@router.post("/record_video_play", response_model=PlayRecordResult)
async def record_video_play(
    schema: VideoIdIn = Body(),
    learning_service: LearningService = Depends(LearningService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await learning_service.record_video_play(user, schema.video_id)


@router.post("/get_course_progress", response_model=CourseProgress)
async def get_course_progress(
    schema: CourseIdIn = Body(),
    learning_service: LearningService = Depends(LearningService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await learning_service.get_course_progress(user, schema.course_id)


@router.post("/process_credit_purchase", response_model=CreditPurchaseResult)
async def process_credit_purchase(
    schema: CreditPurchaseIn = Body(),
    credit_service: CreditService = Depends(CreditService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await credit_service.process_credit_purchase(user, schema)
