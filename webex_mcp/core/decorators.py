"""Decorators for the Webex MCP server."""

import functools
import time
import uuid
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from fastmcp.exceptions import ToolError

from .exceptions import WebexMCPError
from .logging import logger, request_id_ctx

P = ParamSpec("P")
R = TypeVar("R")


def track_request(
    tool_name: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator to track MCP tool requests with timing and error handling.

    Domain errors are re-raised as ``ToolError`` so the MCP client sees a
    tool failure with our message instead of a generic internal error.

    Args:
        tool_name: Name of the tool being tracked

    Returns:
        Decorated function with request tracking
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            # Keep the HTTP request id when the tool runs inside one
            reset = None
            if request_id_ctx.get() is None:
                reset = request_id_ctx.set(uuid.uuid4().hex[:8])
            start_time = time.monotonic()

            logger.info("Starting %s request", tool_name)
            try:
                result = await func(*args, **kwargs)
            except WebexMCPError as e:
                duration = time.monotonic() - start_time
                logger.error("Failed %s after %.2fs: %s", tool_name, duration, e)
                raise ToolError(f"{tool_name} failed: {e}") from e
            else:
                duration = time.monotonic() - start_time
                logger.info("Completed %s in %.2fs", tool_name, duration)
            finally:
                if reset is not None:
                    request_id_ctx.reset(reset)

            return result

        return wrapper

    return decorator
