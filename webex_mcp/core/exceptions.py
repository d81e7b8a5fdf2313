"""Custom exceptions for the Webex MCP server."""


# ========================================
# Base Exceptions
# ========================================


class WebexMCPError(Exception):
    """Base exception for all Webex MCP errors."""


# ========================================
# Storage Exceptions
# ========================================


class StorageError(WebexMCPError):
    """Token store operation failed (I/O, driver or schema error)."""


# ========================================
# Network Exceptions
# ========================================


class NetworkError(WebexMCPError):
    """Base exception for network-related errors."""


class UpstreamError(NetworkError):
    """Call to the upstream identity provider failed.

    Only the status code is kept. The upstream response body is never
    attached so it cannot leak into client-facing error messages.
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


# ========================================
# Validation Exceptions
# ========================================


class ValidationError(WebexMCPError):
    """Base exception for validation errors."""


class ConfigurationError(ValidationError):
    """Configuration validation failed."""


class ClientResolutionError(WebexMCPError):
    """No authenticated Webex client is available for the current request."""


# ========================================
# OAuth Protocol Exceptions
# ========================================


class OAuthError(WebexMCPError):
    """Error returned to OAuth clients as a structured JSON body.

    ``error`` is the RFC 6749 / RFC 7591 error code, ``description`` the
    human readable ``error_description``.
    """

    error = "server_error"
    status_code = 400

    def __init__(self, description: str, status_code: int | None = None):
        self.description = description
        if status_code is not None:
            self.status_code = status_code
        super().__init__(f"{self.error}: {description}")

    def to_dict(self) -> dict[str, str]:
        return {"error": self.error, "error_description": self.description}


class InvalidRequestError(OAuthError):
    error = "invalid_request"


class InvalidClientMetadataError(OAuthError):
    error = "invalid_client_metadata"


class InvalidGrantError(OAuthError):
    error = "invalid_grant"


class InvalidTokenError(OAuthError):
    error = "invalid_token"
    status_code = 401


class UnsupportedGrantTypeError(OAuthError):
    error = "unsupported_grant_type"


class UnsupportedResponseTypeError(OAuthError):
    error = "unsupported_response_type"


class OAuthServerError(OAuthError):
    error = "server_error"
    status_code = 500
