"""
credential_lease_core: dynamic credential lifecycle engine.

Mints short-lived, role-scoped API keys on a remote API-key service and hands
them to a host platform as leased secrets with renew and revoke callbacks.
"""

from .backend import CredentialBackend
from .clients import RemoteAPIClient
from .config import AppConfig, get_config, reset_config, set_config
from .context import RequestContext
from .enums import RemoteRole
from .exceptions import (
    BaseError,
    CredentialIssueError,
    ErrorCode,
    MissingMetadataError,
    NotFoundError,
    OperationCancelledError,
    RemoteAPIError,
    StorageError,
    TransportError,
    ValidationError,
)
from .schemas import (
    IssuedCredential,
    LeaseBounds,
    LeasedSecret,
    LeaseRequest,
    RemoteAPIKey,
    RemoteConfig,
    RoleEntry,
)
from .storage import InMemoryStorage, SQLStorage, Storage

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "BaseError",
    "CredentialBackend",
    "CredentialIssueError",
    "ErrorCode",
    "get_config",
    "InMemoryStorage",
    "IssuedCredential",
    "LeaseBounds",
    "LeasedSecret",
    "LeaseRequest",
    "MissingMetadataError",
    "NotFoundError",
    "OperationCancelledError",
    "RemoteAPIClient",
    "RemoteAPIError",
    "RemoteAPIKey",
    "RemoteConfig",
    "RemoteRole",
    "RequestContext",
    "reset_config",
    "RoleEntry",
    "set_config",
    "SQLStorage",
    "Storage",
    "StorageError",
    "TransportError",
    "ValidationError",
]
