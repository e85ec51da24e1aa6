import uuid
from datetime import datetime
from typing import Optional

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kobciye.core.enum import AppointmentStatus, NotificationType
from kobciye.core.exceptions import NotFoundException, ServerErrorException
from kobciye.db.models.database import Appointments, User
from kobciye.db.session import get_session
from kobciye.libs.formats.datetime import now as get_now, to_utc_naive
from kobciye.schemas.shares.appointment import AppointmentCreate, AppointmentOut
from kobciye.schemas.shares.notification import NotificationCreateSchema
from kobciye.services.shares.notification import NotificationService

_STATUS_MESSAGES = {
    AppointmentStatus.CONFIRMED: "Your booking has been confirmed!",
    AppointmentStatus.CANCELLED: "Your booking has been cancelled.",
}

_STATUS_TYPES = {
    AppointmentStatus.CONFIRMED: NotificationType.SUCCESS,
    AppointmentStatus.CANCELLED: NotificationType.ERROR,
}


class AppointmentService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db
        self.notifications = NotificationService(db)

    # ==========================================================================
    # Learner
    # ==========================================================================
    async def book_async(self, user: User, schema: AppointmentCreate) -> AppointmentOut:
        user_id = user.id
        scheduled_at = to_utc_naive(schema.scheduled_at)
        if scheduled_at <= get_now():
            raise HTTPException(400, "Appointment must be scheduled in the future")

        try:
            appointment = Appointments(
                id=uuid.uuid4(),
                user_id=user_id,
                title=schema.title,
                description=schema.description,
                scheduled_at=scheduled_at,
                status=AppointmentStatus.PENDING.value,
                created_at=get_now(),
            )
            self.db.add(appointment)
            await self.db.commit()
            await self.db.refresh(appointment)
        except Exception as e:
            logger.exception(f"[Bookings][Create] user={user_id}: {e}")
            await self.db.rollback()
            raise ServerErrorException("Failed to book appointment")

        out = AppointmentOut.model_validate(appointment)
        logger.info(f"[Bookings] user {user_id} booked {out.id} at {out.scheduled_at}")

        await self.notifications.notify_quietly(
            NotificationCreateSchema(
                user_id=user_id,
                title="Booking received",
                message=f"Your booking '{out.title}' is pending confirmation.",
                type=NotificationType.INFO,
                link="/dashboard",
            )
        )
        return out

    async def list_mine(self, user_id: uuid.UUID) -> list[AppointmentOut]:
        rows = await self.db.scalars(
            select(Appointments)
            .where(Appointments.user_id == user_id)
            .order_by(Appointments.scheduled_at.desc())
        )
        return [AppointmentOut.model_validate(a) for a in rows]

    # ==========================================================================
    # Back-office
    # ==========================================================================
    async def list_all(
        self,
        status: Optional[AppointmentStatus] = None,
        page: int = 1,
        limit: int = 20,
    ):
        stmt = select(Appointments)
        if status:
            stmt = stmt.where(Appointments.status == status.value)

        total = await self.db.scalar(select(func.count()).select_from(stmt.subquery()))
        counts = dict(
            (
                await self.db.execute(
                    select(Appointments.status, func.count()).group_by(Appointments.status)
                )
            ).all()
        )
        rows = await self.db.scalars(
            stmt.order_by(Appointments.scheduled_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return {
            "total": total or 0,
            "page": page,
            "limit": limit,
            "stats": {s.value: counts.get(s.value, 0) for s in AppointmentStatus},
            "items": [AppointmentOut.model_validate(a) for a in rows],
        }

    async def _get(self, appointment_id: uuid.UUID) -> Appointments:
        appointment = await self.db.get(Appointments, appointment_id)
        if appointment is None:
            raise NotFoundException("Appointment", appointment_id)
        return appointment

    async def update_status(
        self,
        appointment_id: uuid.UUID,
        status: AppointmentStatus,
        note: Optional[str] = None,
    ) -> AppointmentOut:
        if status == AppointmentStatus.PENDING:
            raise HTTPException(400, "Status can only move to confirmed or cancelled")

        appointment = await self._get(appointment_id)
        if appointment.status == AppointmentStatus.CANCELLED.value:
            raise HTTPException(400, "Cancelled appointments cannot be changed")

        try:
            appointment.status = status.value
            await self.db.commit()
        except Exception as e:
            logger.exception(f"[Bookings][Status] id={appointment_id}: {e}")
            await self.db.rollback()
            raise ServerErrorException("Failed to update booking")

        out = AppointmentOut.model_validate(appointment)
        logger.info(f"[Bookings] {appointment_id} -> {status.value}")

        await self.notifications.notify_quietly(
            NotificationCreateSchema(
                user_id=out.user_id,
                title="Booking Update",
                message=note or _STATUS_MESSAGES[status],
                type=_STATUS_TYPES[status],
                link="/dashboard",
            )
        )
        return out

    async def reschedule(
        self,
        appointment_id: uuid.UUID,
        scheduled_at: datetime,
        note: Optional[str] = None,
    ) -> AppointmentOut:
        appointment = await self._get(appointment_id)
        new_time = to_utc_naive(scheduled_at)

        try:
            # a reschedule doubles as a confirmation
            appointment.scheduled_at = new_time
            appointment.status = AppointmentStatus.CONFIRMED.value
            await self.db.commit()
        except Exception as e:
            logger.exception(f"[Bookings][Reschedule] id={appointment_id}: {e}")
            await self.db.rollback()
            raise ServerErrorException("Failed to reschedule booking")

        out = AppointmentOut.model_validate(appointment)
        logger.info(f"[Bookings] {appointment_id} rescheduled to {new_time}")

        await self.notifications.notify_quietly(
            NotificationCreateSchema(
                user_id=out.user_id,
                title="Booking Rescheduled",
                message=note
                or f"Your booking has been rescheduled to {new_time:%Y-%m-%d %H:%M} UTC",
                type=NotificationType.INFO,
                link="/dashboard",
            )
        )
        return out
