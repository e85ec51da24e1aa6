from __future__ import annotations

import uuid
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from kobciye.core.settings import settings
from kobciye.schemas.auth.user import TokenOut
from kobciye.schemas.shares.rpc import (
    AccessResult,
    CourseProgress,
    CreditPurchaseResult,
    EnrollResult,
    PlayRecordResult,
    ProgressUpdateResult,
)
from kobciye.schemas.user.learning import Curriculum, SavedProgressOut
from kobciye.schemas.user.profile import ProfileOut, RolesOut

ModelT = TypeVar("ModelT", bound=BaseModel)


class BackendError(RuntimeError):
    """Transport failure, timeout, non-2xx status or a malformed payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class KobciyeClient:
    """
    Remote data client for the Kobciye backend:
    - typed wrappers for the `/rpc/*` procedures
    - REST reads the learner screens need (profile, roles, curriculum)
    - a bearer token set after sign-in
    Every failure surfaces as BackendError.
    """

    def __init__(
        self,
        http: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        token: Optional[str] = None,
    ):
        self.base_url = (base_url or settings.CLIENT_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.CLIENT_REQUEST_TIMEOUT_SECONDS
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(timeout=self.timeout)
        self._token = token

    async def __aenter__(self) -> "KobciyeClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    # =========================================================
    # INTERNAL
    # =========================================================
    def set_token(self, token: Optional[str]) -> None:
        self._token = token

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            resp = await self.http.request(
                method,
                f"{self.base_url}/api/v1{path}",
                json=json,
                params=params,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise BackendError(f"Request timed out: {method} {path}") from e
        except httpx.HTTPError as e:
            raise BackendError(f"Request failed: {method} {path}: {e}") from e

        if resp.status_code >= 400:
            detail: Any = resp.text
            try:
                detail = resp.json().get("detail", detail)
            except (ValueError, AttributeError):
                pass
            raise BackendError(str(detail), status_code=resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            raise BackendError(f"Malformed response from {path}") from e

    @staticmethod
    def _parse(model: Type[ModelT], data: Any) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise BackendError(f"Malformed {model.__name__} payload") from e

    async def rpc(self, name: str, payload: Dict[str, Any]) -> Any:
        return await self.request("POST", f"/rpc/{name}", json=payload)

    # =========================================================
    # AUTH
    # =========================================================
    async def login(self, email: str, password: str) -> TokenOut:
        data = await self.request("POST", "/auth/login", json={"email": email, "password": password})
        token = self._parse(TokenOut, data)
        self.set_token(token.access_token)
        return token

    async def logout(self) -> None:
        try:
            await self.request("POST", "/auth/logout")
        finally:
            self.set_token(None)

    # =========================================================
    # PROCEDURES
    # =========================================================
    async def check_course_access(self, course_id: uuid.UUID) -> AccessResult:
        data = await self.rpc("check_course_access", {"course_id": str(course_id)})
        return self._parse(AccessResult, data)

    async def enroll_with_credits(self, course_id: uuid.UUID) -> EnrollResult:
        data = await self.rpc("enroll_with_credits", {"course_id": str(course_id)})
        return self._parse(EnrollResult, data)

    async def update_video_progress(
        self, video_id: uuid.UUID, watched_percentage: int, last_position_seconds: int
    ) -> ProgressUpdateResult:
        data = await self.rpc(
            "update_video_progress",
            {
                "video_id": str(video_id),
                "watched_percentage": watched_percentage,
                "last_position_seconds": last_position_seconds,
            },
        )
        return self._parse(ProgressUpdateResult, data)

    async def record_video_play(self, video_id: uuid.UUID) -> PlayRecordResult:
        data = await self.rpc("record_video_play", {"video_id": str(video_id)})
        return self._parse(PlayRecordResult, data)

    async def get_course_progress(self, course_id: uuid.UUID) -> CourseProgress:
        data = await self.rpc("get_course_progress", {"course_id": str(course_id)})
        return self._parse(CourseProgress, data)

    async def process_credit_purchase(
        self, package_id: int, payment_method: str, phone_number: Optional[str] = None
    ) -> CreditPurchaseResult:
        data = await self.rpc(
            "process_credit_purchase",
            {
                "package_id": package_id,
                "payment_method": payment_method,
                "phone_number": phone_number,
            },
        )
        return self._parse(CreditPurchaseResult, data)

    # =========================================================
    # READS
    # =========================================================
    async def get_profile(self) -> ProfileOut:
        return self._parse(ProfileOut, await self.request("GET", "/me/profile"))

    async def get_roles(self) -> RolesOut:
        return self._parse(RolesOut, await self.request("GET", "/me/roles"))

    async def get_saved_progress(self, video_id: uuid.UUID) -> Optional[SavedProgressOut]:
        data = await self.request("GET", f"/me/progress/{video_id}")
        if data is None:
            return None
        return self._parse(SavedProgressOut, data)

    async def get_curriculum(self, course_id: uuid.UUID) -> Curriculum:
        return self._parse(Curriculum, await self.request("GET", f"/courses/{course_id}/curriculum"))
