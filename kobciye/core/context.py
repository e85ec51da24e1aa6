import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Request

ACCESS_TOKEN_COOKIE = "access_token"


@dataclass
class RequestContext:
    request: Request
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    @property
    def access_token(self) -> Optional[str]:
        """Bearer header first (SDK), then the access_token cookie (browser)."""
        header = self.request.headers.get("authorization")
        if header and header.lower().startswith("bearer "):
            return header.split(" ", 1)[1].strip() or None
        return self.request.cookies.get(ACCESS_TOKEN_COOKIE)


current_context: ContextVar[Optional[RequestContext]] = ContextVar("current_context", default=None)


def get_context() -> RequestContext:
    ctx = current_context.get()
    if ctx is None:
        raise RuntimeError("No request context: RequestContextMiddleware is not installed")
    return ctx
