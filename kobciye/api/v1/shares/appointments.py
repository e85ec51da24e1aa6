from fastapi import APIRouter, Body, Depends, status

from kobciye.core.deps import AuthorizationService
from kobciye.schemas.shares.appointment import AppointmentCreate, AppointmentOut
from kobciye.services.shares.appointments import AppointmentService

router = APIRouter(prefix="/appointments", tags=["Appointments"])


@router.post("", response_model=AppointmentOut, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    schema: AppointmentCreate = Body(),
    service: AppointmentService = Depends(AppointmentService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.book_async(user, schema)


@router.get("", response_model=list[AppointmentOut])
async def list_my_appointments(
    service: AppointmentService = Depends(AppointmentService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.list_mine(user.id)
