import uuid
from typing import Optional

from fastapi import APIRouter, Body, Depends

from kobciye.core.deps import AuthorizationService
from kobciye.core.enum import EnrollmentStatus
from kobciye.schemas.user.learning import EnrollmentOut, SavedProgressOut
from kobciye.schemas.user.profile import ProfileOut, ProfileUpdate, RolesOut
from kobciye.services.shares.credits import CreditService
from kobciye.services.user.course_enroll import CourseEnrollService
from kobciye.services.user.learning import LearningService
from kobciye.services.user.profile import ProfileService

router = APIRouter(prefix="/me", tags=["Me"])


@router.get("/profile", response_model=ProfileOut)
async def get_my_profile(
    profile_service: ProfileService = Depends(ProfileService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await profile_service.get_profile_by_user_id(user.id)


@router.patch("/profile", response_model=ProfileOut)
async def update_my_profile(
    schema: ProfileUpdate = Body(),
    profile_service: ProfileService = Depends(ProfileService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await profile_service.update_profile_by_user_id(user.id, schema)


@router.get("/roles", response_model=RolesOut)
async def get_my_roles(
    profile_service: ProfileService = Depends(ProfileService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await profile_service.get_roles(user.id)


@router.get("/enrollments", response_model=list[EnrollmentOut])
async def get_my_enrollments(
    status: Optional[EnrollmentStatus] = None,
    enroll_service: CourseEnrollService = Depends(CourseEnrollService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await enroll_service.list_my_enrollments(user.id, status)


@router.get("/progress/{video_id}", response_model=Optional[SavedProgressOut])
async def get_my_video_progress(
    video_id: uuid.UUID,
    learning_service: LearningService = Depends(LearningService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await learning_service.get_saved_progress(user.id, video_id)


@router.get("/credits/packages")
async def get_credit_packages():
    return CreditService.list_packages()


@router.get("/credits/purchases")
async def get_my_purchases(
    credit_service: CreditService = Depends(CreditService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await credit_service.list_my_purchases(user.id)
