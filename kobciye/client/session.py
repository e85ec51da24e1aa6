from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from kobciye.client.api import BackendError, KobciyeClient
from kobciye.client.roles import RoleResolver
from kobciye.core.enum import AppRole
from kobciye.core.scheduler import create_scheduler
from kobciye.core.settings import Settings, settings as default_settings
from kobciye.libs.i18n import normalize_language, translate


@dataclass(frozen=True)
class Toast:
    title: str
    description: str = ""
    variant: str = "default"  # "default" | "destructive"


@dataclass
class UserSession:
    user_id: uuid.UUID
    email: str
    roles: list[AppRole] = field(default_factory=lambda: [AppRole.STUDENT])

    @property
    def effective_role(self) -> AppRole:
        return AppRole.effective(self.roles)


def _log_toast(toast: Toast) -> None:
    logger.info(f"[Toast] {toast.title}: {toast.description}")


class AppContext:
    """
    Everything a client screen needs, created once at application start:
    - settings, UI language and message lookup
    - the remote client and the scheduler driving periodic saves
    - the `session` slice, the only part that changes (sign-in / sign-out)
    """

    def __init__(
        self,
        client: Optional[KobciyeClient] = None,
        language: Optional[str] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
        notifier: Optional[Callable[[Toast], None]] = None,
        config: Settings = default_settings,
    ):
        self.settings = config
        self.language = normalize_language(language or config.DEFAULT_LANGUAGE)
        self.client = client or KobciyeClient(
            base_url=config.CLIENT_BASE_URL,
            timeout=config.CLIENT_REQUEST_TIMEOUT_SECONDS,
        )
        self.scheduler = scheduler or create_scheduler()
        self.notifier = notifier or _log_toast
        self.session: Optional[UserSession] = None

    # ==============================
    # MESSAGES
    # ==============================
    def t(self, key: str, **kwargs) -> str:
        return translate(self.language, key, **kwargs)

    def set_language(self, language: str) -> None:
        self.language = normalize_language(language)

    def notify(self, toast: Toast) -> None:
        self.notifier(toast)

    # ==============================
    # SESSION SLICE
    # ==============================
    @property
    def user(self) -> Optional[UserSession]:
        return self.session

    async def sign_in(self, email: str, password: str) -> UserSession:
        token = await self.client.login(email, password)
        roles = await RoleResolver(self.client).resolve_roles()
        self.session = UserSession(user_id=token.user_id, email=email, roles=roles)
        logger.info(f"[Session] signed in {email} as {self.session.effective_role.value}")
        return self.session

    async def sign_out(self) -> None:
        # stop every periodic save before the token goes away
        self.scheduler.remove_all_jobs()
        try:
            await self.client.logout()
        except BackendError as e:
            logger.warning(f"[Session] logout call failed: {e.message}")
        self.session = None

    async def aclose(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        await self.client.aclose()
