"""
Host-facing facade over the credential lifecycle services.

The host's router maps its paths and verbs onto these methods; its lease
subsystem calls back into `handle_lease_request` (or `renew_lease` /
`revoke_lease`) with the metadata stored at issuance.
"""

from typing import Any, Dict, List, Mapping, Optional, Union

import httpx
from pydantic import ValidationError as PydanticValidationError

from .clients.remote_api_client import RemoteAPIClient
from .config import AppConfig, get_config
from .constants import StorageKey
from .context.request_context import RequestContext
from .exceptions import ErrorCode, ValidationError
from .schemas.config_schema import RemoteConfig
from .schemas.credential_schema import LeaseBounds, LeasedSecret, LeaseRequest
from .services.config_service import ClientFactory, ConfigService
from .services.credential_service import CredentialService
from .services.lease_service import LeaseService
from .services.role_service import RoleService
from .storage.base import Storage
from .storage.sql_storage import SQLStorage
from .utils.logger import get_logger


class CredentialBackend:
    """Dynamic credential engine: configuration, roles, issuance and lease callbacks."""

    def __init__(
        self,
        storage: Optional[Storage] = None,
        config: Optional[AppConfig] = None,
        client_factory: Optional[ClientFactory] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Args:
            storage: Storage collaborator (default: SQLStorage from the app config)
            config: Application config (default: global config)
            client_factory: Builds a RemoteAPIClient from a RemoteConfig
            transport: httpx transport for the default client factory
        """
        self.app_config = config or get_config()
        self.storage = storage if storage is not None else SQLStorage()
        self.logger = get_logger()

        if client_factory is None:
            client_factory = self._client_factory(transport)

        self.config_service = ConfigService(
            self.storage, client_factory=client_factory, settings=self.app_config.remote_api
        )
        self.role_service = RoleService(self.storage, defaults=self.app_config.roles)
        self.credential_service = CredentialService(self.config_service, self.role_service)
        self.lease_service = LeaseService(
            self.config_service, self.role_service, features=self.app_config.features
        )

    def _client_factory(self, transport: Optional[httpx.BaseTransport]) -> ClientFactory:
        settings = self.app_config.remote_api

        def build(remote_config: RemoteConfig) -> RemoteAPIClient:
            return RemoteAPIClient(
                remote_config.url, remote_config.key, settings=settings, transport=transport
            )

        return build

    # Configuration

    def read_config(self, include_secret: bool = False) -> Optional[Dict[str, Any]]:
        config = self.config_service.get()
        if config is None:
            return None
        return config.to_response_data(include_secret=include_secret)

    def write_config(
        self, fields: Mapping[str, Any], is_create: Optional[bool] = None
    ) -> Dict[str, Any]:
        """Create or update the config; without `is_create`, create when none exists."""
        if is_create is None:
            is_create = not self.config_service.exists()
        return self.config_service.put(fields, is_create).to_response_data()

    def delete_config(self) -> None:
        self.config_service.delete()

    def config_exists(self) -> bool:
        return self.config_service.exists()

    # Roles

    def read_role(self, name: str) -> Optional[Dict[str, Any]]:
        role = self.role_service.get(name)
        if role is None:
            return None
        return role.to_response_data()

    def write_role(
        self, name: str, fields: Mapping[str, Any], is_create: Optional[bool] = None
    ) -> Dict[str, Any]:
        """Create or update a role; without `is_create`, create when the role does not exist."""
        if is_create is None:
            is_create = self.role_service.get(name) is None if name else True
        return self.role_service.upsert(name, fields, is_create).to_response_data()

    def delete_role(self, name: str) -> None:
        self.role_service.delete(name)

    def list_roles(self) -> List[str]:
        return self.role_service.list()

    # Credentials and leases

    def issue_credential(self, role_name: str, ctx: Optional[RequestContext] = None) -> LeasedSecret:
        return self.credential_service.issue(role_name, ctx=ctx)

    def renew_lease(self, metadata: Mapping[str, str]) -> LeaseBounds:
        return self.lease_service.renew(metadata)

    def revoke_lease(self, metadata: Mapping[str, str], ctx: Optional[RequestContext] = None) -> None:
        self.lease_service.revoke(metadata, ctx=ctx)

    def handle_lease_request(
        self,
        request: Union[LeaseRequest, Mapping[str, Any]],
        ctx: Optional[RequestContext] = None,
    ) -> Optional[LeaseBounds]:
        if not isinstance(request, LeaseRequest):
            try:
                request = LeaseRequest.model_validate(dict(request))
            except PydanticValidationError as e:
                raise ValidationError(
                    f"Invalid lease request: {str(e)}",
                    field="operation",
                    error_code=ErrorCode.INVALID_FORMAT,
                    validation_errors=e.errors(include_url=False),
                ) from e
        return self.lease_service.handle(request, ctx=ctx)

    # Host notifications

    def invalidate(self, key: str) -> None:
        """Host notification that a storage key changed outside this process."""
        if key == StorageKey.CONFIG.value:
            self.config_service.invalidate()
