"""Credential generation for the OAuth proxy.

Every secret this server mints (opaque tokens, authorization codes, state
values, client ids and secrets, PKCE verifiers) comes from ``secrets`` and
is hex encoded, so none of them carries structure or can be mapped back to
an upstream credential without a store lookup.
"""

import base64
import hashlib
import hmac
import secrets

from webex_mcp.core.constants import (
    AUTH_CODE_BYTES,
    CODE_VERIFIER_BYTES,
    LOG_TOKEN_PREFIX,
    OPAQUE_TOKEN_BYTES,
    STATE_BYTES,
)


def generate_secure_token(n_bytes: int = OPAQUE_TOKEN_BYTES) -> str:
    """Return ``n_bytes`` of CSPRNG output as a hex string (2 * n_bytes chars)."""
    return secrets.token_hex(n_bytes)


def generate_auth_code() -> str:
    """Generate a downstream authorization code."""
    return generate_secure_token(AUTH_CODE_BYTES)


def generate_state() -> str:
    """Generate the internal state used to correlate the upstream callback."""
    return generate_secure_token(STATE_BYTES)


def generate_code_verifier() -> str:
    """Generate a PKCE code verifier (64 hex chars, within RFC 7636's 43-128)."""
    return generate_secure_token(CODE_VERIFIER_BYTES)


def generate_s256_challenge(verifier: str) -> str:
    """Derive the S256 PKCE challenge: BASE64URL(SHA256(verifier)) without padding."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def verify_code_challenge(verifier: str, challenge: str, method: str | None) -> bool:
    """
    Check a PKCE code verifier against the challenge sent at /authorize.

    Args:
        verifier: code_verifier presented at the token endpoint
        challenge: code_challenge recorded at /authorize
        method: code_challenge_method ("S256", "plain" or empty for plain)

    Returns:
        True if the verifier matches
    """
    if not verifier or not challenge:
        return False
    method = (method or "plain").upper()
    if method == "S256":
        expected = generate_s256_challenge(verifier)
    elif method == "PLAIN":
        expected = verifier
    else:
        return False
    return hmac.compare_digest(expected, challenge)


def token_hash(token: str) -> str:
    """Hex SHA-256 of a token, used as a cache key instead of the token itself."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def redact(token: str | None) -> str:
    """Shorten a secret for log output."""
    if not token:
        return "(none)"
    return f"{token[:LOG_TOKEN_PREFIX]}..."
