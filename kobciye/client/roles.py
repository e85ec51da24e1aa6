from loguru import logger

from kobciye.client.api import BackendError, KobciyeClient
from kobciye.core.enum import AppRole


class RoleResolver:
    """Reads the signed-in user's roles; any failure degrades to `student`."""

    def __init__(self, client: KobciyeClient):
        self.client = client

    async def resolve_roles(self) -> list[AppRole]:
        try:
            result = await self.client.get_roles()
        except BackendError as e:
            logger.warning(f"[Roles] lookup failed, assuming student: {e.message}")
            return [AppRole.STUDENT]

        roles = AppRole.parse_many(result.roles)
        return roles or [AppRole.STUDENT]

    async def resolve(self) -> AppRole:
        return AppRole.effective(await self.resolve_roles())
