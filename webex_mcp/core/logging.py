"""Logging configuration for the Webex MCP server."""

import logging
import os
import sys
from contextvars import ContextVar

# Context variable to store request_id across async calls
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


class RequestIdFilter(logging.Filter):
    """Logging filter that adds request_id to log records."""

    def filter(self, record):
        """Add request_id to the log record if available."""
        request_id = request_id_ctx.get()
        record.request_id = f"[{request_id}] " if request_id else ""
        return True


def configure_logging() -> logging.Logger:
    """Configure and return the logger for the application."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] [%(name)s] %(request_id)s%(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    logger = logging.getLogger("webex-mcp")

    request_filter = RequestIdFilter()
    for handler in logger.handlers:
        handler.addFilter(request_filter)

    # Module loggers propagate to the root handlers
    for handler in logging.root.handlers:
        handler.addFilter(request_filter)

    if os.getenv("MCP_DEBUG", "").lower() in ("true", "1", "yes"):
        logger.setLevel(logging.DEBUG)
        logging.getLogger("webex_mcp").setLevel(logging.DEBUG)
        logger.debug("Debug mode enabled")

    return logger


# Initialize logger
logger = configure_logging()
