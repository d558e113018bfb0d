"""Package-wide constants and default configuration values.

This module centralizes masking tokens, header lists, timeouts and EC2 signing
defaults so they are not scattered throughout the codebase.
"""

# ===== Masking =====

MASK = "***"
"""Replacement for any sensitive value that would otherwise reach the logs"""

DEFAULT_SENSITIVE_HEADERS: frozenset[str] = frozenset(
    {
        "x-auth-token",
        "x-auth-key",
        "x-service-token",
        "x-storage-token",
        "x-account-meta-temp-url-key",
        "x-account-meta-temp-url-key-2",
        "x-container-meta-temp-url-key",
        "x-container-meta-temp-url-key-2",
        "set-cookie",
        "x-subject-token",
        "authorization",
    }
)
"""Lower-cased header names whose values are masked in traffic logs"""


# ===== Traffic Log =====


class LogPrefix:
    """Direction markers for HTTP traffic log lines."""

    REQUEST = "->"
    """Outgoing (client to server) lines"""

    RESPONSE = "<-"
    """Incoming (server to client) lines"""


# ===== Transport =====


class TransportDefaults:
    """Underlying HTTP transport configuration."""

    MAX_RETRIES = 0
    """Connection retries after the first failed attempt"""

    CONNECT_TIMEOUT_SECONDS = 5.0
    """TCP connect timeout"""

    READ_TIMEOUT_SECONDS = 9.0
    """Time allowed for the response headers to arrive"""

    WRITE_TIMEOUT_SECONDS = 9.0
    """Time allowed to send the request body"""

    POOL_TIMEOUT_SECONDS = 1.0
    """Time allowed to wait for a free pooled connection"""

    KEEPALIVE_EXPIRY_SECONDS = 30.0
    """Idle keep-alive connection lifetime"""


# ===== Keystone =====


class Keystone:
    """Identity service protocol constants."""

    EC2_TOKENS_PATH = "ec2tokens"
    """Path of the EC2 token exchange below the v3 identity root"""

    SUBJECT_TOKEN_HEADER = "X-Subject-Token"
    """Response header carrying the issued token id"""

    API_VERSION = "v3"


# ===== EC2 Signing =====


class EC2SignatureDefaults:
    """Defaults applied when building EC2 credentials for the token exchange."""

    VERB = "POST"
    PATH = "/"
    HOST = ""
    REGION = "us-east-1"
    SERVICE = "s3"

    ALGORITHM_V4 = "AWS4-HMAC-SHA256"
    AWS_REQUEST_V4 = "aws4_request"
    DATE_FORMAT_V4 = "%Y%m%d"
    TIMESTAMP_FORMAT_V4 = "%Y%m%dT%H%M%SZ"


# ===== Environment =====


class EnvVar:
    """Environment variables consulted when a CLI flag is not given."""

    AUTH_URL = "OS_AUTH_URL"
    ACCESS = "AWS_ACCESS_KEY_ID"
    SECRET = "AWS_SECRET_ACCESS_KEY"  # noqa: S105


# ===== Reporting =====


class Reporting:
    """Load harness statistics reporting."""

    INTERVAL_SECONDS = 1.0
    """Length of one statistics window"""
