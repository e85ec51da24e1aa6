import uuid
from copy import deepcopy
from typing import Any

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kobciye.core.exceptions import NotFoundException, ServerErrorException
from kobciye.core.settings import settings
from kobciye.db.models.database import AppSettings
from kobciye.db.session import get_session
from kobciye.libs.formats.datetime import now as get_now

DEFAULT_SETTINGS: dict[str, dict[str, Any]] = {
    "general": {
        "site_name": "Kobciye",
        "maintenance_mode": False,
        "allow_registrations": True,
    },
    "courses": {
        "require_enrollment": True,
        "free_preview_enabled": True,
        "auto_complete_threshold": settings.DEFAULT_COMPLETION_THRESHOLD,
    },
    "notifications": {
        "email_notifications": True,
        "enrollment_notifications": True,
        "completion_notifications": True,
    },
}


class PlatformSettingsService:
    """Key/value settings stored as JSON rows, merged over DEFAULT_SETTINGS."""

    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def get_section(self, key: str) -> dict[str, Any]:
        if key not in DEFAULT_SETTINGS:
            raise NotFoundException("Setting", key)

        merged = deepcopy(DEFAULT_SETTINGS[key])
        row = await self.db.scalar(select(AppSettings).where(AppSettings.key == key))
        if row and isinstance(row.value, dict):
            merged.update(row.value)
        return merged

    async def get_all(self) -> dict[str, dict[str, Any]]:
        return {key: await self.get_section(key) for key in DEFAULT_SETTINGS}

    async def get_completion_threshold(self) -> int:
        courses = await self.get_section("courses")
        try:
            threshold = int(courses.get("auto_complete_threshold"))
        except (TypeError, ValueError):
            return settings.DEFAULT_COMPLETION_THRESHOLD
        return min(100, max(1, threshold))

    async def is_enabled(self, key: str, flag: str) -> bool:
        return bool((await self.get_section(key)).get(flag, False))

    async def update_section(
        self, key: str, value: dict[str, Any], admin_id: uuid.UUID
    ) -> dict[str, Any]:
        if key not in DEFAULT_SETTINGS:
            raise NotFoundException("Setting", key)

        unknown = set(value) - set(DEFAULT_SETTINGS[key])
        if unknown:
            raise HTTPException(400, f"Unknown setting fields: {sorted(unknown)}")

        try:
            row = await self.db.scalar(
                select(AppSettings).where(AppSettings.key == key)
            )
            if row is None:
                row = AppSettings(key=key, value={})
                self.db.add(row)

            # reassign so the JSON column is flagged dirty
            row.value = {**(row.value or {}), **value}
            row.updated_by = admin_id
            row.updated_at = get_now()
            await self.db.commit()
        except Exception as e:
            logger.exception(f"[Settings][Update] key={key}: {e}")
            await self.db.rollback()
            raise ServerErrorException("Failed to update settings")

        logger.info(f"[Settings] {key} updated by {admin_id}")
        return await self.get_section(key)
