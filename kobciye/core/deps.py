# kobciye/core/deps.py
import uuid
from typing import Iterable, Optional

from fastapi import Depends
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from kobciye.core.context import get_context
from kobciye.core.enum import AppRole, is_admin
from kobciye.core.exceptions import ForbiddenException, UnauthorizedException
from kobciye.core.security import SecurityService
from kobciye.db.models.database import User
from kobciye.db.session import get_session


class AuthorizationService:
    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        security: SecurityService = Depends(SecurityService),
    ):
        self.db = db
        self.security = security

    # ==============================
    # CORE AUTH CHECKS
    # ==============================

    @staticmethod
    def _extract_token() -> Optional[str]:
        return get_context().access_token

    async def _load_user(self, token: str) -> Optional[User]:
        try:
            payload = await self.security.decode_access_token(token)
        except ValueError:
            return None

        try:
            user_id = uuid.UUID(str(payload.get("sub")))
        except ValueError:
            return None

        stmt = (
            select(User)
            .where(User.id == user_id)
            .options(selectinload(User.user_roles), selectinload(User.profile))
        )
        return await self.db.scalar(stmt)

    async def get_current_user(self) -> User:
        token = self._extract_token()
        if not token:
            raise UnauthorizedException("Token not found")

        user = await self._load_user(token)
        if not user:
            raise UnauthorizedException("Invalid token")
        return user

    async def get_current_user_if_any(self) -> Optional[User]:
        token = self._extract_token()
        if not token:
            return None
        return await self._load_user(token)

    # ==============================
    # ROLE-BASED ACCESS CONTROL
    # ==============================

    async def require_role(self, required_roles: Optional[Iterable[AppRole]] = None) -> User:
        current_user = await self.get_current_user()

        if not required_roles:
            return current_user

        user_roles = self.get_list_role_in_user(current_user)
        if not any(role.value in user_roles for role in required_roles):
            logger.warning(
                f"[Auth] user {current_user.id} denied, needs one of {[r.value for r in required_roles]}"
            )
            raise ForbiddenException()

        return current_user

    async def require_admin(self) -> User:
        current_user = await self.get_current_user()
        if not is_admin(self.get_list_role_in_user(current_user)):
            raise ForbiddenException("Admin access required")
        return current_user

    @staticmethod
    def get_list_role_in_user(user: User) -> list[str]:
        return [ur.role for ur in user.user_roles]
