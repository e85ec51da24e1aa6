from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from kobciye.core.deps import AuthorizationService
from kobciye.schemas.shares.notification import NotificationOut
from kobciye.services.shares.notification import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("")
async def get_user_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    is_read: Optional[bool] = None,
    service: NotificationService = Depends(NotificationService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization_service.get_current_user()
    result = await service.get_notifications_async(user.id, page, limit, is_read)
    result["items"] = [NotificationOut.model_validate(n) for n in result["items"]]
    return result


@router.post("/read-all")
async def mark_all_as_read(
    service: NotificationService = Depends(NotificationService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization_service.get_current_user()
    return await service.mark_all_as_read(user.id)


@router.post("/{notification_id}/read")
async def mark_as_read(
    notification_id: UUID,
    service: NotificationService = Depends(NotificationService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization_service.get_current_user()
    return await service.mark_as_read(notification_id, user.id)
