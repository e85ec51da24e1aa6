import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from kobciye.core.deps import AuthorizationService
from kobciye.schemas.user.learning import CourseOut, Curriculum
from kobciye.services.user.learning import LearningService

router = APIRouter(prefix="/courses", tags=["Courses"])


@router.get("")
async def list_courses(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    category: Optional[str] = None,
    learning_service: LearningService = Depends(LearningService),
):
    return await learning_service.list_published_courses(page, limit, search, category)


@router.get("/{course_id}", response_model=CourseOut)
async def get_course(
    course_id: uuid.UUID,
    learning_service: LearningService = Depends(LearningService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user_if_any()
    return await learning_service.get_course(course_id, user)


@router.get("/{course_id}/curriculum", response_model=Curriculum)
async def get_course_curriculum(
    course_id: uuid.UUID,
    learning_service: LearningService = Depends(LearningService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user_if_any()
    return await learning_service.get_course_curriculum(course_id, user)
