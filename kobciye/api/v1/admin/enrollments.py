import uuid
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from kobciye.core.deps import AuthorizationService
from kobciye.core.enum import EnrollmentStatus
from kobciye.schemas.admin.management import EnrollmentStatusUpdate
from kobciye.services.admin.enrollment import EnrollmentAdminService

router = APIRouter(prefix="/admin/enrollments", tags=["Admin Enrollments"])


@router.get("")
async def list_enrollments(
    status: Optional[EnrollmentStatus] = None,
    search: Optional[str] = Query(None, description="Course title or learner email"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    service: EnrollmentAdminService = Depends(EnrollmentAdminService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.list_enrollments(status, search, page, size)


@router.patch("/{enrollment_id}/status")
async def update_enrollment_status(
    enrollment_id: uuid.UUID,
    schema: EnrollmentStatusUpdate = Body(),
    service: EnrollmentAdminService = Depends(EnrollmentAdminService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.update_status(enrollment_id, schema.status)
