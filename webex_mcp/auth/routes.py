"""
OAuth2 endpoints for the MCP server using Starlette.

Implements:
- Protected Resource Metadata (RFC 9728)
- Authorization Server Metadata (RFC 8414)
- Dynamic Client Registration (RFC 7591)
- Authorization endpoint (redirects to Webex)
- Webex callback endpoint
- Token endpoint (authorization_code and refresh_token grants)
- Token revocation (RFC 7009)
"""

import logging

from pydantic import BaseModel, ValidationError
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from webex_mcp.core.constants import GRANT_AUTHORIZATION_CODE, GRANT_REFRESH_TOKEN
from webex_mcp.core.exceptions import (
    InvalidClientMetadataError,
    InvalidRequestError,
    OAuthError,
    OAuthServerError,
    StorageError,
    UnsupportedGrantTypeError,
    UpstreamError,
)
from webex_mcp.storage.models import RegistrationRequest

from .discovery import DiscoveryPublisher
from .oauth2_server import OAuthProxyServer

logger = logging.getLogger(__name__)

NO_STORE_HEADERS = {"Cache-Control": "no-store", "Pragma": "no-cache"}
DISCOVERY_CACHE_HEADERS = {"Cache-Control": "public, max-age=3600"}


class ClientRegistrationResponse(BaseModel):
    """Dynamic Client Registration response."""

    client_id: str
    client_secret: str | None = None
    client_id_issued_at: int
    client_name: str | None = None
    redirect_uris: list[str]
    token_endpoint_auth_method: str
    grant_types: list[str]
    response_types: list[str]


def oauth_error_response(error: OAuthError) -> JSONResponse:
    """Render an OAuth error as JSON with no-store caching directives."""
    return JSONResponse(error.to_dict(), status_code=error.status_code, headers=NO_STORE_HEADERS)


def _server_error(operation: str, exc: Exception) -> JSONResponse:
    logger.error("%s failed: %s", operation, exc)
    return oauth_error_response(OAuthServerError(f"{operation} failed"))


async def _read_form(request: Request) -> dict[str, str]:
    try:
        form = await request.form()
    except (HTTPException, MultiPartException) as e:
        msg = "Failed to parse request body"
        raise InvalidRequestError(msg) from e
    return {k: v for k, v in form.items() if isinstance(v, str)}


# Discovery endpoints
async def protected_resource_metadata(request: Request, discovery: DiscoveryPublisher):
    """Protected Resource Metadata (RFC 9728)."""
    return JSONResponse(discovery.protected_resource_metadata(), headers=DISCOVERY_CACHE_HEADERS)


async def authorization_server_metadata(request: Request, discovery: DiscoveryPublisher):
    """OAuth 2.0 Authorization Server Metadata (RFC 8414)."""
    return JSONResponse(discovery.authorization_server_metadata(), headers=DISCOVERY_CACHE_HEADERS)


# OAuth2 endpoint handlers
async def register_client(request: Request, oauth_server: OAuthProxyServer):
    """Dynamic Client Registration (RFC 7591)."""
    try:
        try:
            body = await request.json()
            req = RegistrationRequest.model_validate(body)
        except (ValueError, ValidationError) as e:  # JSONDecodeError, UnicodeDecodeError
            msg = "Invalid request body"
            raise InvalidClientMetadataError(msg) from e

        client = await oauth_server.register_client(req)

        response = ClientRegistrationResponse(
            client_id=client.client_id,
            client_secret=client.client_secret,
            client_id_issued_at=int(client.created_at),
            client_name=client.client_name,
            redirect_uris=client.redirect_uris,
            token_endpoint_auth_method=client.token_endpoint_auth_method,
            grant_types=client.grant_types,
            response_types=client.response_types,
        )
        return JSONResponse(
            response.model_dump(exclude_none=True),
            status_code=201,
            headers=NO_STORE_HEADERS,
        )
    except OAuthError as e:
        return oauth_error_response(e)
    except StorageError as e:
        return _server_error("Client registration", e)


async def authorize(request: Request, oauth_server: OAuthProxyServer):
    """Authorization endpoint - redirects the user agent to Webex."""
    params = request.query_params
    try:
        upstream_url = await oauth_server.begin_authorization(
            response_type=params.get("response_type"),
            client_id=params.get("client_id"),
            redirect_uri=params.get("redirect_uri"),
            state=params.get("state"),
            code_challenge=params.get("code_challenge"),
            code_challenge_method=params.get("code_challenge_method"),
        )
    except OAuthError as e:
        return oauth_error_response(e)
    except StorageError as e:
        return _server_error("Authorization", e)

    return RedirectResponse(url=upstream_url, status_code=302)


async def callback(request: Request, oauth_server: OAuthProxyServer):
    """Webex redirect target - issues our code and redirects to the client."""
    params = request.query_params
    try:
        client_url = await oauth_server.complete_callback(
            code=params.get("code"),
            state=params.get("state"),
            error=params.get("error"),
            error_description=params.get("error_description"),
        )
    except OAuthError as e:
        return oauth_error_response(e)
    except UpstreamError as e:
        logger.error("Webex code exchange failed: %s", e)
        return oauth_error_response(
            OAuthServerError("Failed to exchange authorization code with Webex")
        )
    except StorageError as e:
        return _server_error("Callback", e)

    return RedirectResponse(url=client_url, status_code=302)


async def token_endpoint(request: Request, oauth_server: OAuthProxyServer):
    """Token endpoint - exchanges a code, or refreshes an opaque token."""
    try:
        form = await _read_form(request)
        grant_type = form.get("grant_type")

        if grant_type == GRANT_AUTHORIZATION_CODE:
            token = await oauth_server.exchange_authorization_code(
                code=form.get("code"),
                client_id=form.get("client_id"),
                redirect_uri=form.get("redirect_uri"),
                code_verifier=form.get("code_verifier"),
            )
        elif grant_type == GRANT_REFRESH_TOKEN:
            token = await oauth_server.exchange_refresh_token(form.get("refresh_token"))
        elif not grant_type:
            msg = "grant_type is required"
            raise InvalidRequestError(msg)
        else:
            msg = "Only authorization_code and refresh_token are supported"
            raise UnsupportedGrantTypeError(msg)

        return JSONResponse(token.model_dump(exclude_none=True), headers=NO_STORE_HEADERS)
    except OAuthError as e:
        return oauth_error_response(e)
    except StorageError as e:
        return _server_error("Token issuance", e)


async def revoke_endpoint(request: Request, oauth_server: OAuthProxyServer):
    """Token revocation (RFC 7009)."""
    try:
        form = await _read_form(request)
        await oauth_server.revoke(form.get("token"))
    except OAuthError as e:
        return oauth_error_response(e)
    except StorageError as e:
        return _server_error("Revocation", e)

    return Response(status_code=200, headers=NO_STORE_HEADERS)
