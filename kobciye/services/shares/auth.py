from typing import Any

from fastapi import Depends, HTTPException, Response, status
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kobciye.core.context import ACCESS_TOKEN_COOKIE
from kobciye.core.enum import AppRole
from kobciye.core.exceptions import ServerErrorException
from kobciye.core.security import SecurityService
from kobciye.core.settings import settings
from kobciye.db.models.database import Profiles, User, UserRoles
from kobciye.db.session import get_session
from kobciye.libs.formats.datetime import now as get_now
from kobciye.schemas.auth.user import ChangePassword, LoginUser, TokenOut, UserCreate
from kobciye.services.admin.platform_settings import PlatformSettingsService


class AuthService:
    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        security: SecurityService = Depends(SecurityService),
    ):
        self.db = db
        self.security = security

    async def login_async(self, schema: LoginUser, res: Response) -> TokenOut:
        try:
            user = await self.db.scalar(select(User).where(User.email == schema.email))

            # 1) unknown email or wrong password look the same to the caller
            if not user or not await self.security.verify_password(
                schema.password, user.password or ""
            ):
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Invalid email or password",
                )

            user.last_login_at = get_now()
            user_id = user.id
            await self.db.commit()

            # 2) bearer token for the SDK, cookie for the browser
            token = await self.security.create_access_token(user_id)
            res.set_cookie(
                key=ACCESS_TOKEN_COOKIE,
                value=token,
                httponly=True,
                secure=False,  # Dev = False, Prod = True
                samesite="lax",
                max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
                path="/",
            )
            return TokenOut(access_token=token, user_id=user_id)
        except Exception:
            await self.db.rollback()
            raise

    async def register_async(self, schema: UserCreate) -> dict[str, Any]:
        if not await PlatformSettingsService(self.db).is_enabled("general", "allow_registrations"):
            raise HTTPException(status.HTTP_403_FORBIDDEN, "Registrations are closed")

        try:
            existing_id = (
                await self.db.scalars(select(User.id).where(User.email == schema.email))
            ).first()
            if existing_id:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Email already registered",
                )

            now = get_now()
            new_user = User(
                email=schema.email,
                password=await self.security.hash_password(schema.password),
                created_at=now,
            )
            self.db.add(new_user)
            await self.db.flush()

            # every account starts as a student with an empty wallet
            self.db.add(UserRoles(user_id=new_user.id, role=AppRole.STUDENT.value))
            self.db.add(
                Profiles(
                    user_id=new_user.id,
                    credits=0,
                    full_name=schema.full_name,
                    phone=schema.phone,
                    created_at=now,
                    updated_at=now,
                )
            )
            user_id = new_user.id
            await self.db.commit()
            return {"message": "Registered", "user_id": str(user_id)}
        except Exception:
            await self.db.rollback()
            raise

    async def change_password_async(self, user: User, schema: ChangePassword) -> dict[str, Any]:
        user_id = user.id
        if not await self.security.verify_password(schema.current_password, user.password or ""):
            logger.warning(f"[Auth] user {user_id} sent a wrong current password")
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Current password is incorrect")

        try:
            user.password = await self.security.hash_password(schema.new_password)
            await self.db.commit()
        except Exception as e:
            logger.exception(f"[Auth][ChangePassword] user={user_id}: {e}")
            await self.db.rollback()
            raise ServerErrorException("Failed to change password")

        logger.info(f"[Auth] user {user_id} changed password")
        return {"message": "Password updated"}

    async def logout_async(self, res: Response):
        res.delete_cookie(
            key=ACCESS_TOKEN_COOKIE,
            httponly=True,
            secure=False,
            samesite="lax",
            path="/",
            domain=None,
        )
        return {"message": "Logout done"}
