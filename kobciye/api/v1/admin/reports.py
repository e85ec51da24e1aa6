from fastapi import APIRouter, Depends, Query

from kobciye.core.deps import AuthorizationService
from kobciye.services.admin.reports import ReportService

router = APIRouter(prefix="/admin/reports", tags=["Admin Reports"])


@router.get("/overview")
async def get_overview(
    service: ReportService = Depends(ReportService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.overview()


@router.get("/analytics")
async def get_analytics(
    days: int = Query(30, ge=1, le=365),
    service: ReportService = Depends(ReportService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.analytics(days=days)
