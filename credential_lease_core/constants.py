"""
Constants and enums for the credential lease engine.

Centralizes magic strings (storage keys, metadata keys, environment variables)
so the storage layout and the lease metadata contract stay consistent.
"""

from enum import Enum

SECRET_TYPE = "RemoteAPIKey"

# Remote API marks a stack that cannot accept key requests yet with this phrase
INSTANCE_STARTING_MARKER = "Your instance is starting"


class StorageKey(str, Enum):
    """Fixed keys and prefixes in the host storage."""

    CONFIG = "config"
    ROLES_PREFIX = "roles/"


class LeaseMetadataKey(str, Enum):
    """Keys of the lease-internal metadata stored by the host at issuance."""

    REMOTE_KEY_NAME = "name"
    ROLE_NAME = "role"


class LeaseOperation(str, Enum):
    """Host callbacks on a previously issued secret."""

    RENEW = "renew"
    REVOKE = "revoke"


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    AZURE_STORAGE_CONNECTION = "AzureWebJobsStorage"
    STORAGE_URL = "STORAGE_URL"
    LOG_LEVEL = "LOG_LEVEL"
    HTTP_DEBUG = "HTTP_DEBUG"
    USER_AGENT = "REMOTE_API_USER_AGENT"
    ENABLE_LOGS_QUEUE = "ENABLE_LOGS_QUEUE"


class LogContextKey(str, Enum):
    """Standard keys for logging context."""

    OPERATION_ID = "operation_id"
    CORRELATION_ID = "correlation_id"
    DURATION_MS = "duration_ms"
    STATUS = "status"
    ERROR_CODE = "error_code"
    OPERATION = "operation"
    ROLE_NAME = "role_name"
    REMOTE_KEY_NAME = "remote_key_name"
