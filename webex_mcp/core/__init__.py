"""Core infrastructure: logging, exceptions, constants and credentials."""

from .exceptions import (
    ClientResolutionError,
    ConfigurationError,
    InvalidClientMetadataError,
    InvalidGrantError,
    InvalidRequestError,
    InvalidTokenError,
    NetworkError,
    OAuthError,
    OAuthServerError,
    StorageError,
    UnsupportedGrantTypeError,
    UnsupportedResponseTypeError,
    UpstreamError,
    ValidationError,
    WebexMCPError,
)
from .logging import configure_logging, logger, request_id_ctx

__all__ = [
    "ClientResolutionError",
    "ConfigurationError",
    "InvalidClientMetadataError",
    "InvalidGrantError",
    "InvalidRequestError",
    "InvalidTokenError",
    "NetworkError",
    "OAuthError",
    "OAuthServerError",
    "StorageError",
    "UnsupportedGrantTypeError",
    "UnsupportedResponseTypeError",
    "UpstreamError",
    "ValidationError",
    "WebexMCPError",
    "configure_logging",
    "logger",
    "request_id_ctx",
]
