"""Request logging middleware."""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from webex_mcp.core.credentials import redact
from webex_mcp.core.logging import request_id_ctx

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag each request with a short id and log it with its outcome.

    The Authorization header is logged as a truncated prefix only.
    """

    async def dispatch(self, request: Request, call_next):
        reset = request_id_ctx.set(uuid.uuid4().hex[:8])
        start_time = time.monotonic()

        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            auth_desc = f"Bearer {redact(auth_header[len('Bearer '):])}"
        else:
            auth_desc = "(none)" if not auth_header else "(non-bearer)"
        logger.info("%s %s auth=%s", request.method, request.url.path, auth_desc)

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("%s %s raised", request.method, request.url.path)
            raise
        else:
            logger.info(
                "%s %s -> %d in %.3fs",
                request.method,
                request.url.path,
                response.status_code,
                time.monotonic() - start_time,
            )
            return response
        finally:
            request_id_ctx.reset(reset)
