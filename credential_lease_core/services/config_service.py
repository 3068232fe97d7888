"""
Service owning the durable remote-API configuration and the cached client built from it.

The cached client is process-wide state guarded by a read-preferring
reader/writer lock. Cache hits only take the shared side. Builds are
serialized, run outside the exclusive lock and are stamped with the
configuration generation they started under; a build that finishes after an
invalidation is handed to its caller but never cached.
"""

import threading
from typing import Any, Callable, Dict, Mapping, Optional

from ..clients.remote_api_client import RemoteAPIClient
from ..config import RemoteAPISettings, get_config
from ..constants import StorageKey
from ..context.operation_context import operation
from ..exceptions import ErrorCode, NotFoundError, ValidationError, validation_failed
from ..schemas.config_schema import RemoteConfig, is_absolute_url
from ..storage.base import Storage
from ..utils.rw_lock import ReadWriteLock
from .base_service import BaseService

ClientFactory = Callable[[RemoteConfig], RemoteAPIClient]

CONFIG_FIELDS = ("organisation", "key", "url", "user")


class ConfigService(BaseService):
    """Reads and writes the `config` record and hands out the cached RemoteAPIClient."""

    def __init__(
        self,
        storage: Storage,
        client_factory: Optional[ClientFactory] = None,
        settings: Optional[RemoteAPISettings] = None,
    ):
        super().__init__(storage)
        self.settings = settings or get_config().remote_api
        self.client_factory = client_factory or self._build_client

        self._lock = ReadWriteLock()
        self._build_lock = threading.Lock()
        self._client: Optional[RemoteAPIClient] = None
        self._generation = 0

    def _build_client(self, config: RemoteConfig) -> RemoteAPIClient:
        return RemoteAPIClient(config.url, config.key, settings=self.settings)

    @property
    def generation(self) -> int:
        with self._lock.read_locked():
            return self._generation

    @operation()
    def get(self) -> Optional[RemoteConfig]:
        """
        Load the stored configuration.

        Returns:
            The config, or None if none has been written

        Raises:
            StorageError: If the read fails or the stored record cannot be decoded
        """
        return self._read_record(StorageKey.CONFIG.value, RemoteConfig)

    @operation()
    def exists(self) -> bool:
        return self._storage_call("get", self.storage.get, StorageKey.CONFIG.value) is not None

    @operation()
    def put(self, fields: Mapping[str, Any], is_create: bool) -> RemoteConfig:
        """
        Merge the provided fields into the stored configuration and persist it.

        Args:
            fields: Any of organisation, key, url, user. None values count as absent.
            is_create: Create semantics (organisation, key and url required) vs update

        Returns:
            The configuration as persisted

        Raises:
            ValidationError: Unknown, missing or malformed fields; nothing is written
            NotFoundError: Update requested but no configuration exists
            StorageError: Persistence failed
        """
        provided = self._provided_fields(fields)

        config = self.get()
        if config is None:
            if not is_create:
                raise NotFoundError(
                    "config not found during update operation", resource_type="Config"
                )
            config = RemoteConfig()

        data = config.model_dump()

        if "organisation" in provided:
            data["organisation"] = provided["organisation"]
        if not data["organisation"] and is_create:
            raise ValidationError(
                "missing organisation in configuration",
                field="organisation",
                error_code=ErrorCode.MISSING_REQUIRED,
            )

        if "key" in provided:
            data["key"] = provided["key"]
        if not data["key"] and is_create:
            raise ValidationError(
                "missing key in configuration", field="key", error_code=ErrorCode.MISSING_REQUIRED
            )

        if "url" in provided:
            data["url"] = provided["url"]
            if not is_absolute_url(data["url"]):
                raise ValidationError(
                    "invalid url in configuration",
                    field="url",
                    error_code=ErrorCode.INVALID_FORMAT,
                    value=data["url"],
                )
        elif is_create:
            raise ValidationError(
                "missing url in configuration", field="url", error_code=ErrorCode.MISSING_REQUIRED
            )

        if "user" in provided:
            data["user"] = provided["user"]

        updated = RemoteConfig(**data)
        self._write_record(StorageKey.CONFIG.value, updated)
        self.invalidate()

        self.logger.info(
            "Remote API configuration written",
            extra={"organisation": updated.organisation, "url": updated.url, "is_create": is_create},
        )
        return updated

    @operation()
    def delete(self) -> None:
        """Remove the configuration and drop the cached client. Idempotent."""
        self._delete_record(StorageKey.CONFIG.value)
        self.invalidate()

        self.logger.info("Remote API configuration deleted")

    def invalidate(self) -> None:
        """
        Bump the configuration generation and drop the cached client.

        Callers already holding the old client keep using it until their
        request completes; it is not closed here.
        """
        with self._lock.write_locked():
            self._generation += 1
            self._client = None

        self.logger.debug("Remote API client cache invalidated")

    @operation()
    def get_or_build_client(self) -> RemoteAPIClient:
        """
        Return the cached client, building it from the stored config on a miss.

        A missing config is tolerated: the client is built from an empty one.

        Raises:
            StorageError: If the stored config cannot be read
        """
        with self._lock.read_locked():
            if self._client is not None:
                return self._client

        with self._build_lock:
            with self._lock.read_locked():
                if self._client is not None:
                    return self._client
                generation = self._generation

            config = self.get()
            if config is None:
                self.logger.warning(
                    "No configuration stored, building remote API client from an empty configuration"
                )
                config = RemoteConfig()

            client = self.client_factory(config)

            with self._lock.write_locked():
                cached = self._generation == generation
                if cached:
                    self._client = client

        if cached:
            self.logger.debug("Remote API client built", extra={"generation": generation})
        else:
            self.logger.warning(
                "Configuration changed while building remote API client, not caching it",
                extra={"build_generation": generation},
            )

        return client

    def _provided_fields(self, fields: Mapping[str, Any]) -> Dict[str, str]:
        unknown = sorted(set(fields) - set(CONFIG_FIELDS))
        if unknown:
            raise ValidationError(
                f"unknown configuration fields: {', '.join(unknown)}",
                field=unknown[0],
                error_code=ErrorCode.INVALID_FORMAT,
            )

        provided: Dict[str, str] = {}
        for name, value in fields.items():
            if value is None:
                continue
            if not isinstance(value, str):
                raise validation_failed(
                    name, type(value).__name__, "must be a string", ErrorCode.TYPE_MISMATCH
                )
            provided[name] = value
        return provided
