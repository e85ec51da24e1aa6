import uuid

from fastapi import Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kobciye.core.enum import AppRole
from kobciye.core.exceptions import NotFoundException
from kobciye.db.models.database import Profiles, UserRoles
from kobciye.db.session import get_session
from kobciye.libs.formats.datetime import now as get_now
from kobciye.schemas.user.profile import ProfileOut, ProfileUpdate, RolesOut


class ProfileService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def _get_profile(self, user_id: uuid.UUID) -> Profiles:
        profile = await self.db.scalar(select(Profiles).where(Profiles.user_id == user_id))
        if not profile:
            raise NotFoundException("Profile")
        return profile

    async def get_profile_by_user_id(self, user_id: uuid.UUID) -> ProfileOut:
        return ProfileOut.model_validate(await self._get_profile(user_id))

    async def update_profile_by_user_id(
        self, user_id: uuid.UUID, profile_data: ProfileUpdate
    ) -> ProfileOut:
        profile = await self._get_profile(user_id)

        # only the fields the caller sent
        for field, value in profile_data.model_dump(exclude_unset=True).items():
            setattr(profile, field, value)
        profile.updated_at = get_now()

        try:
            await self.db.commit()
            await self.db.refresh(profile)
        except Exception as e:
            await self.db.rollback()
            raise HTTPException(status_code=500, detail=f"Failed to update profile: {e}")

        return ProfileOut.model_validate(profile)

    async def get_roles(self, user_id: uuid.UUID) -> RolesOut:
        roles = (
            await self.db.scalars(select(UserRoles.role).where(UserRoles.user_id == user_id))
        ).all()
        return RolesOut(roles=list(roles), effective_role=AppRole.effective(roles).value)
