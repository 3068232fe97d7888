"""
Services implementing the credential lifecycle.
"""

from .config_service import ConfigService
from .credential_service import CredentialService, generate_key_name
from .lease_service import LeaseService
from .role_service import RoleService, parse_remote_role

__all__ = [
    "ConfigService",
    "CredentialService",
    "generate_key_name",
    "LeaseService",
    "parse_remote_role",
    "RoleService",
]
