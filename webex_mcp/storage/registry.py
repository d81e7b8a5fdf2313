"""Client registration rules shared by every token store backend."""

import time

from webex_mcp.core.constants import (
    CLIENT_ID_BYTES,
    CLIENT_SECRET_BYTES,
    SECRET_AUTH_METHODS,
)
from webex_mcp.core.credentials import generate_secure_token

from .models import RegisteredClient, RegistrationRequest


def build_registered_client(request: RegistrationRequest) -> RegisteredClient:
    """
    Create a new client record from a registration request.

    MCP clients are public by default (``token_endpoint_auth_method=none``);
    a secret is only minted for the secret-based auth methods.

    Args:
        request: Validated registration request

    Returns:
        Client record with a fresh client_id (not yet persisted)
    """
    auth_method = request.token_endpoint_auth_method or "none"
    client_secret = None
    if auth_method in SECRET_AUTH_METHODS:
        client_secret = generate_secure_token(CLIENT_SECRET_BYTES)

    return RegisteredClient(
        client_id=generate_secure_token(CLIENT_ID_BYTES),
        client_secret=client_secret,
        redirect_uris=list(request.redirect_uris),
        client_name=request.client_name,
        token_endpoint_auth_method=auth_method,
        grant_types=request.grant_types or ["authorization_code"],
        response_types=request.response_types or ["code"],
        created_at=time.time(),
    )


def build_static_client(client_id: str, redirect_uri: str) -> RegisteredClient:
    """Client record for a known client_id registered without DCR."""
    return RegisteredClient(client_id=client_id, redirect_uris=[redirect_uri])
