import uuid
from typing import Optional

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from kobciye.core.enum import AppRole, NotificationType
from kobciye.core.exceptions import NotFoundException, ServerErrorException
from kobciye.db.models.database import Enrollments, Profiles, User, UserRoles
from kobciye.db.session import get_session
from kobciye.libs.formats.datetime import now as get_now
from kobciye.schemas.shares.notification import NotificationCreateSchema
from kobciye.services.shares.notification import NotificationService


class UserAdminService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def get_users_async(
        self,
        search: Optional[str] = None,
        role: Optional[AppRole] = None,
        page: int = 1,
        size: int = 20,
    ):
        enroll_count = (
            select(func.count(Enrollments.id))
            .where(Enrollments.user_id == User.id)
            .correlate(User)
            .scalar_subquery()
        )
        stmt = (
            select(User, enroll_count.label("enroll_count"))
            .options(selectinload(User.user_roles), selectinload(User.profile))
        )

        # 1) filters
        if search:
            kw = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(User.email).like(kw),
                    User.id.in_(
                        select(Profiles.user_id).where(
                            func.lower(func.coalesce(Profiles.full_name, "")).like(kw)
                        )
                    ),
                )
            )
        if role:
            stmt = stmt.where(
                User.id.in_(select(UserRoles.user_id).where(UserRoles.role == role.value))
            )

        # 2) count
        total_items = await self.db.scalar(
            select(func.count()).select_from(stmt.subquery())
        ) or 0

        # 3) page
        rows = (
            await self.db.execute(
                stmt.order_by(User.created_at.desc()).offset((page - 1) * size).limit(size)
            )
        ).all()

        items = []
        for user, total_courses in rows:
            roles = [ur.role for ur in user.user_roles]
            items.append(
                {
                    "id": user.id,
                    "email": user.email,
                    "full_name": user.profile.full_name if user.profile else None,
                    "credits": user.profile.credits if user.profile else 0,
                    "roles": roles,
                    "effective_role": AppRole.effective(roles).value,
                    "total_courses": total_courses,
                    "created_at": user.created_at,
                    "last_login_at": user.last_login_at,
                }
            )

        total_pages = (total_items + size - 1) // size
        return {
            "page": page,
            "size": size,
            "total_items": total_items,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_previous": page > 1,
            "items": items,
        }

    async def adjust_credits(
        self,
        user_id: uuid.UUID,
        delta: int,
        reason: Optional[str] = None,
        admin_id: Optional[uuid.UUID] = None,
    ):
        if delta == 0:
            raise HTTPException(400, "Delta must not be zero")

        try:
            profile = await self.db.scalar(
                select(Profiles)
                .where(Profiles.user_id == user_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            if not profile:
                raise NotFoundException("Profile")

            # revoking more than the balance floors at zero
            previous = profile.credits
            profile.credits = max(0, previous + delta)
            profile.updated_at = get_now()
            new_balance = profile.credits
            await self.db.commit()
        except HTTPException:
            await self.db.rollback()
            raise
        except Exception as e:
            logger.exception(f"[Admin][Credits] user={user_id}: {e}")
            await self.db.rollback()
            raise ServerErrorException("Failed to adjust credits")

        logger.info(
            f"[Admin][Credits] {admin_id} adjusted {user_id}: {previous} -> {new_balance} ({reason or 'no reason'})"
        )

        if new_balance > previous:
            await NotificationService(self.db).notify_quietly(
                NotificationCreateSchema(
                    user_id=user_id,
                    title="Credits added",
                    message=f"{new_balance - previous} credits have been added to your account.",
                    type=NotificationType.CREDITS,
                    link="/dashboard",
                )
            )

        return {"user_id": user_id, "previous": previous, "credits": new_balance}

    async def set_roles(self, user_id: uuid.UUID, roles: list[AppRole], admin_id: uuid.UUID):
        user = await self.db.scalar(
            select(User).where(User.id == user_id).options(selectinload(User.user_roles))
        )
        if not user:
            raise NotFoundException("User", user_id)

        wanted = sorted({r.value for r in roles})
        if user_id == admin_id and AppRole.SUPER_ADMIN.value not in wanted:
            raise HTTPException(400, "You cannot remove your own super_admin role")

        try:
            # delete-orphan removes the dropped rows
            current = {ur.role for ur in user.user_roles}
            user.user_roles = [ur for ur in user.user_roles if ur.role in wanted] + [
                UserRoles(user_id=user_id, role=role) for role in wanted if role not in current
            ]
            await self.db.commit()
        except Exception as e:
            logger.exception(f"[Admin][Roles] user={user_id}: {e}")
            await self.db.rollback()
            raise ServerErrorException("Failed to update roles")

        logger.info(f"[Admin][Roles] {admin_id} set {user_id} roles to {wanted}")
        return {
            "user_id": user_id,
            "roles": wanted,
            "effective_role": AppRole.effective(wanted).value,
        }
