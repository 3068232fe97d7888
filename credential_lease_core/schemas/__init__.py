from .config_schema import RemoteConfig, is_absolute_url
from .credential_schema import (
    IssuedCredential,
    LeaseBounds,
    LeasedSecret,
    LeaseRequest,
    RemoteAPIKey,
)
from .role_schema import RoleEntry

__all__ = [
    "IssuedCredential",
    "is_absolute_url",
    "LeaseBounds",
    "LeasedSecret",
    "LeaseRequest",
    "RemoteAPIKey",
    "RemoteConfig",
    "RoleEntry",
]
