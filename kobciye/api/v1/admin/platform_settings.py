from fastapi import APIRouter, Body, Depends

from kobciye.core.deps import AuthorizationService
from kobciye.schemas.admin.management import SettingUpdate
from kobciye.services.admin.platform_settings import PlatformSettingsService

router = APIRouter(prefix="/admin/settings", tags=["Admin Settings"])


@router.get("", status_code=200)
async def get_settings(
    service: PlatformSettingsService = Depends(PlatformSettingsService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.get_all()


@router.put("/{key}")
async def update_settings(
    key: str,
    body: SettingUpdate = Body(),
    authorization: AuthorizationService = Depends(AuthorizationService),
    service: PlatformSettingsService = Depends(PlatformSettingsService),
):
    admin = await authorization.require_admin()
    return await service.update_section(key, body.value, admin.id)
