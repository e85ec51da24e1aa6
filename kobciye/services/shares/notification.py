import uuid
from typing import Optional

from fastapi import Depends
from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from kobciye.core.exceptions import NotFoundException, ServerErrorException
from kobciye.db.models.database import Notifications
from kobciye.db.session import get_session
from kobciye.libs.formats.datetime import now as get_now
from kobciye.schemas.shares.notification import NotificationCreateSchema


class NotificationService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    # ==========================================================================
    # List
    # ==========================================================================
    async def get_notifications_async(
        self,
        user_id: uuid.UUID,
        page: int = 1,
        limit: int = 20,
        is_read: Optional[bool] = None,
    ):
        try:
            base_stmt = select(Notifications).where(Notifications.user_id == user_id)
            if is_read is not None:
                base_stmt = base_stmt.where(Notifications.is_read.is_(is_read))

            total = await self.db.scalar(
                select(func.count()).select_from(base_stmt.subquery())
            )
            unread = await self.db.scalar(
                select(func.count())
                .select_from(Notifications)
                .where(
                    Notifications.user_id == user_id,
                    Notifications.is_read.is_(False),
                )
            )

            offset = (page - 1) * limit
            items = (
                await self.db.scalars(
                    base_stmt.order_by(Notifications.created_at.desc())
                    .limit(limit)
                    .offset(offset)
                )
            ).all()

            return {
                "total": total or 0,
                "page": page,
                "limit": limit,
                "unread": unread or 0,
                "items": items,
            }
        except Exception as e:
            logger.exception(f"[Notifications][Get] {e}")
            raise ServerErrorException("Failed to load notifications")

    # ==========================================================================
    # Create
    # ==========================================================================
    async def create_notification_async(
        self, schema: NotificationCreateSchema
    ) -> Notifications:
        try:
            notif = Notifications(
                id=uuid.uuid4(),
                user_id=schema.user_id,
                title=schema.title,
                message=schema.message,
                type=schema.type.value,
                link=schema.link,
                is_read=False,
                created_at=get_now(),
            )
            self.db.add(notif)
            await self.db.commit()
            await self.db.refresh(notif)
        except Exception as e:
            logger.exception(f"[Notifications][Create] {e}")
            await self.db.rollback()
            raise ServerErrorException("Failed to create notification")

        logger.info(f"[Notifications] '{notif.title}' -> user {notif.user_id}")
        return notif

    async def notify_quietly(self, schema: NotificationCreateSchema) -> None:
        """Side-effect notification: a failure is logged and never propagates."""
        try:
            await self.create_notification_async(schema)
        except Exception as e:
            logger.warning(f"[Notifications] dropped '{schema.title}': {e}")

    # ==========================================================================
    # Read state
    # ==========================================================================
    async def mark_all_as_read(self, user_id: uuid.UUID):
        try:
            result = await self.db.execute(
                update(Notifications)
                .where(
                    Notifications.user_id == user_id,
                    Notifications.is_read.is_(False),
                )
                .values(is_read=True, read_at=get_now())
            )
            await self.db.commit()
            return {"success": True, "updated": result.rowcount or 0}
        except Exception:
            await self.db.rollback()
            raise

    async def mark_as_read(self, notification_id: uuid.UUID, user_id: uuid.UUID):
        try:
            result = await self.db.execute(
                update(Notifications)
                .where(
                    Notifications.id == notification_id,
                    Notifications.user_id == user_id,
                    Notifications.is_read.is_(False),
                )
                .values(is_read=True, read_at=get_now())
            )
            if not result.rowcount:
                raise NotFoundException("Unread notification", notification_id)

            await self.db.commit()
            return {"success": True, "id": str(notification_id)}
        except Exception:
            await self.db.rollback()
            raise
