"""HTTP middleware for the Webex MCP server."""

from .logging import RequestLoggingMiddleware
from .setup import setup_middleware

__all__ = ["RequestLoggingMiddleware", "setup_middleware"]
