import uuid
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from kobciye.core.deps import AuthorizationService
from kobciye.core.enum import AppointmentStatus
from kobciye.schemas.admin.management import AppointmentReschedule, AppointmentStatusUpdate
from kobciye.schemas.shares.appointment import AppointmentOut
from kobciye.services.shares.appointments import AppointmentService

router = APIRouter(prefix="/admin/bookings", tags=["Admin Bookings"])


@router.get("")
async def list_bookings(
    status: Optional[AppointmentStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: AppointmentService = Depends(AppointmentService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.list_all(status, page, limit)


@router.patch("/{appointment_id}/status", response_model=AppointmentOut)
async def update_booking_status(
    appointment_id: uuid.UUID,
    schema: AppointmentStatusUpdate = Body(),
    service: AppointmentService = Depends(AppointmentService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.update_status(appointment_id, schema.status, schema.note)


@router.patch("/{appointment_id}/reschedule", response_model=AppointmentOut)
async def reschedule_booking(
    appointment_id: uuid.UUID,
    schema: AppointmentReschedule = Body(),
    service: AppointmentService = Depends(AppointmentService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.reschedule(appointment_id, schema.scheduled_at, schema.note)
