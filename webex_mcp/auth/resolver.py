"""
Resolution of the Webex client that serves the current request.

Tool handlers never look at tokens. They await a ``ClientResolver`` and
get back a ``WebexClient``:

- stdio mode: one client built from a configured access token
- HTTP mode: the per-request client placed there by ``BearerAuthMiddleware``
"""

from collections.abc import Awaitable, Callable
from contextvars import ContextVar, Token

from fastmcp.server.dependencies import get_http_request

from webex_mcp.core.exceptions import ClientResolutionError
from webex_mcp.webex.client import WebexClient

ClientResolver = Callable[[], Awaitable[WebexClient]]

current_webex_client: ContextVar[WebexClient | None] = ContextVar(
    "webex_client", default=None
)
current_webex_token: ContextVar[str | None] = ContextVar("webex_token", default=None)


def bind_request_client(client: WebexClient, access_token: str) -> tuple[Token, Token]:
    """Make ``client`` the current request's client. Returns reset tokens."""
    return current_webex_client.set(client), current_webex_token.set(access_token)


def unbind_request_client(tokens: tuple[Token, Token]) -> None:
    client_token, access_token = tokens
    current_webex_client.reset(client_token)
    current_webex_token.reset(access_token)


def static_client_resolver(client: WebexClient) -> ClientResolver:
    """Resolver that always returns ``client`` (stdio mode)."""

    async def resolve() -> WebexClient:
        return client

    return resolve


def http_client_resolver() -> ClientResolver:
    """Resolver that returns the client the auth middleware bound to the request."""

    async def resolve() -> WebexClient:
        client = current_webex_client.get()
        if client is not None:
            return client

        # MCP tool calls may run outside the middleware's task; the client
        # is also kept on the HTTP request state.
        try:
            request = get_http_request()
        except RuntimeError as e:
            msg = "No authenticated Webex client in context"
            raise ClientResolutionError(msg) from e

        client = getattr(request.state, "webex_client", None)
        if client is None:
            msg = "No authenticated Webex client in context"
            raise ClientResolutionError(msg)
        return client

    return resolve
