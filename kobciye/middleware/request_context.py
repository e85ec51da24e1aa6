from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from kobciye.core.context import RequestContext, current_context


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds a RequestContext for the services and tags log lines with its id."""

    async def dispatch(self, request, call_next):
        incoming = request.headers.get("x-request-id")
        ctx = RequestContext(request, request_id=incoming) if incoming else RequestContext(request)
        token = current_context.set(ctx)
        try:
            with logger.contextualize(request_id=ctx.request_id):
                response = await call_next(request)
        finally:
            current_context.reset(token)
        response.headers["X-Request-ID"] = ctx.request_id
        return response
