"""
Service for issuing credentials.

Issuance resolves the role, the cached client and the configuration, creates a
uniquely named key on the remote service and packages it as a leased secret.
The engine never stores the credential; the host's lease subsystem owns it from
the moment it is returned.
"""

import uuid
from typing import Optional

from ..context.operation_context import operation
from ..context.request_context import RequestContext
from ..exceptions import (
    CredentialIssueError,
    NotFoundError,
    OperationCancelledError,
    RemoteAPIError,
    TransportError,
    not_found,
)
from ..schemas.credential_schema import IssuedCredential, LeasedSecret
from ..utils.logger import get_logger
from .config_service import ConfigService
from .role_service import RoleService


def generate_key_name(role_name: str) -> str:
    """Remote key name: the role name plus a random UUID4."""
    return f"{role_name}_{uuid.uuid4()}"


class CredentialService:
    """Mints remote API keys for roles."""

    def __init__(self, config_service: ConfigService, role_service: RoleService):
        self.config_service = config_service
        self.role_service = role_service
        self.logger = get_logger()

    @operation()
    def issue(self, role_name: str, ctx: Optional[RequestContext] = None) -> LeasedSecret:
        """
        Issue a credential for a role.

        Args:
            role_name: Role to issue under; matched case-insensitively (lower-cased)
            ctx: Request context carrying cancellation and deadline

        Returns:
            LeasedSecret with the token, lease-internal metadata and the role's TTL bounds

        Raises:
            NotFoundError: If the role or the configuration does not exist
            CredentialIssueError: If the remote service rejects or cannot be reached;
                `cause` holds the RemoteAPIError or TransportError
            OperationCancelledError: If the request context is cancelled
            StorageError: On storage failures
        """
        role_name = (role_name or "").lower()

        role = self.role_service.get(role_name)
        if role is None:
            raise not_found("Role", role_name=role_name)

        client = self.config_service.get_or_build_client()

        config = self.config_service.get()
        if config is None:
            raise NotFoundError(
                "configuration not found, cannot issue credentials",
                resource_type="Config",
                role_name=role_name,
            )

        key_name = generate_key_name(role_name)

        try:
            api_key = client.create_key(config.organisation, key_name, role.gc_role.value, ctx=ctx)
        except OperationCancelledError:
            raise
        except (RemoteAPIError, TransportError) as e:
            raise CredentialIssueError(
                f"error creating remote API key: {e.message}",
                cause=e,
                role_name=role_name,
                remote_key_name=key_name,
            )

        credential = IssuedCredential(
            remote_key_name=api_key.name or key_name,
            token=api_key.token,
            bound_user=config.user,
            source_role_name=role_name,
        )

        self.logger.info(
            "Credential issued",
            extra={
                "role_name": role_name,
                "remote_key_name": credential.remote_key_name,
                "gc_role": role.gc_role.value,
            },
        )
        return LeasedSecret.from_credential(credential, role)
