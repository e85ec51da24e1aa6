import uuid
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from kobciye.core.deps import AuthorizationService
from kobciye.core.enum import AppRole
from kobciye.schemas.admin.management import CreditAdjust, RolesUpdate
from kobciye.services.admin.user import UserAdminService

router = APIRouter(prefix="/admin/users", tags=["Admin Users"])


@router.get("")
async def get_users(
    search: Optional[str] = Query(None, description="Email or full name"),
    role: Optional[AppRole] = None,
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    user_service: UserAdminService = Depends(UserAdminService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await user_service.get_users_async(search, role, page, size)


@router.post("/{user_id}/credits")
async def adjust_user_credits(
    user_id: uuid.UUID,
    schema: CreditAdjust = Body(),
    user_service: UserAdminService = Depends(UserAdminService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    admin = await authorization.require_admin()
    return await user_service.adjust_credits(user_id, schema.delta, schema.reason, admin.id)


@router.put("/{user_id}/roles")
async def set_user_roles(
    user_id: uuid.UUID,
    schema: RolesUpdate = Body(),
    user_service: UserAdminService = Depends(UserAdminService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    admin = await authorization.require_role([AppRole.SUPER_ADMIN])
    return await user_service.set_roles(user_id, schema.roles, admin.id)
