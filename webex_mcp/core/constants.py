"""Application-wide constants for the Webex MCP server.

Lifetimes are in seconds unless the name says otherwise.
"""

# ========================================
# OAuth Lifetimes
# ========================================

PENDING_AUTH_TTL = 10 * 60  # /authorize -> /callback round trip
AUTH_CODE_TTL = 5 * 60  # downstream authorization code
TOKEN_REFRESH_WINDOW = 5 * 60  # refresh upstream token this close to expiry

# ========================================
# Background Sweepers
# ========================================

STORE_CLEANUP_INTERVAL_DEFAULT = 60
CLIENT_CACHE_TTL_DEFAULT = 15 * 60
CLIENT_CACHE_CLEANUP_INTERVAL_DEFAULT = 60

# ========================================
# Credential Sizes (random bytes before hex encoding)
# ========================================

OPAQUE_TOKEN_BYTES = 32  # 64 hex chars
AUTH_CODE_BYTES = 16
STATE_BYTES = 16
CLIENT_ID_BYTES = 16
CLIENT_SECRET_BYTES = 32
CODE_VERIFIER_BYTES = 32

# Number of characters of a secret that may appear in logs
LOG_TOKEN_PREFIX = 8

# ========================================
# Protocol Vocabulary
# ========================================

GRANT_AUTHORIZATION_CODE = "authorization_code"
GRANT_REFRESH_TOKEN = "refresh_token"
SUPPORTED_GRANT_TYPES = [GRANT_AUTHORIZATION_CODE, GRANT_REFRESH_TOKEN]
SUPPORTED_RESPONSE_TYPES = ["code"]
CODE_CHALLENGE_METHODS = ["S256", "plain"]
TOKEN_ENDPOINT_AUTH_METHODS = ["none", "client_secret_post", "client_secret_basic"]
SECRET_AUTH_METHODS = ("client_secret_post", "client_secret_basic")

# Paths that never require a bearer token
PUBLIC_PATHS = (
    "/.well-known/oauth-authorization-server",
    "/.well-known/oauth-protected-resource",
    "/authorize",
    "/callback",
    "/token",
    "/register",
    "/revoke",
)
HEALTH_PATHS = ("/health", "/ping", "/healthz")

# ========================================
# Store Backends
# ========================================

STORE_MEMORY = "memory"
STORE_SQLITE = "sqlite"
STORE_POSTGRES = "postgres"
