"""
Service for renew and revoke callbacks on issued credentials.

The host calls back with the lease-internal metadata stored at issuance. Renew
re-reads the role so TTL policy is live; revoke deletes the remote key by name.
Neither operation retries on its own; failures go back to the host.
"""

from typing import Mapping, Optional

from ..config import FeatureFlags, get_config
from ..constants import LeaseMetadataKey, LeaseOperation
from ..context.operation_context import operation
from ..context.request_context import RequestContext
from ..exceptions import (
    ErrorCode,
    MissingMetadataError,
    NotFoundError,
    RemoteAPIError,
    ValidationError,
    not_found,
)
from ..schemas.credential_schema import LeaseBounds, LeaseRequest
from ..utils.logger import get_logger
from .config_service import ConfigService
from .role_service import RoleService


def _require(metadata: Mapping[str, str], key: LeaseMetadataKey, op: LeaseOperation) -> str:
    value = metadata.get(key.value)
    if not value:
        raise MissingMetadataError(key.value, op.value)
    return value


class LeaseService:
    """Lease state machine: Issued -> Renewed (repeatable) -> Revoked."""

    def __init__(
        self,
        config_service: ConfigService,
        role_service: RoleService,
        features: Optional[FeatureFlags] = None,
    ):
        self.config_service = config_service
        self.role_service = role_service
        self.features = features or get_config().features
        self.logger = get_logger()

    @operation()
    def renew(self, metadata: Mapping[str, str]) -> LeaseBounds:
        """
        Refresh lease bounds from the role's current configuration.

        Raises:
            MissingMetadataError: If the role name is not in the metadata
            NotFoundError: If the role was deleted since issuance
        """
        role_name = _require(metadata, LeaseMetadataKey.ROLE_NAME, LeaseOperation.RENEW)

        role = self.role_service.get(role_name)
        if role is None:
            raise not_found("Role", role_name=role_name)

        bounds = LeaseBounds.from_role(role)
        self.logger.info(
            "Lease renewed",
            extra={"role_name": role_name, "ttl": bounds.ttl, "max_ttl": bounds.max_ttl},
        )
        return bounds

    @operation()
    def revoke(self, metadata: Mapping[str, str], ctx: Optional[RequestContext] = None) -> None:
        """
        Delete the remote key recorded at issuance.

        Raises:
            MissingMetadataError: If the remote key name is not in the metadata
            NotFoundError: If no configuration exists
            RemoteAPIError: If the remote service rejects the delete
            TransportError: On network failure, timeout or cancellation
        """
        key_name = _require(metadata, LeaseMetadataKey.REMOTE_KEY_NAME, LeaseOperation.REVOKE)

        client = self.config_service.get_or_build_client()

        config = self.config_service.get()
        if config is None:
            raise NotFoundError(
                "configuration not found, cannot revoke credential",
                resource_type="Config",
                remote_key_name=key_name,
            )

        try:
            client.delete_key(config.organisation, key_name, ctx=ctx)
        except RemoteAPIError as e:
            if e.remote_status_code == 404 and self.features.treat_missing_key_as_revoked:
                self.logger.warning(
                    "Remote key already absent, treating as revoked",
                    extra={"remote_key_name": key_name},
                )
                return
            raise e.add_context(remote_key_name=key_name)

        self.logger.info("Lease revoked", extra={"remote_key_name": key_name})

    def handle(self, request: LeaseRequest, ctx: Optional[RequestContext] = None) -> Optional[LeaseBounds]:
        """Dispatch a host lease callback; renew returns bounds, revoke returns None."""
        if request.operation == LeaseOperation.RENEW:
            return self.renew(request.lease_metadata)
        elif request.operation == LeaseOperation.REVOKE:
            self.revoke(request.lease_metadata, ctx=ctx)
            return None
        raise ValidationError(
            f"Unsupported lease operation: {request.operation}",
            field="operation",
            error_code=ErrorCode.INVALID_FORMAT,
        )
