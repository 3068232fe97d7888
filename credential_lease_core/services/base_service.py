"""
Base service implementation with common functionality for all services.

This module provides a base class with shared storage access so every
service reads, writes and decodes records the same way.
"""

from typing import Any, Callable, List, NoReturn, Optional, Type, TypeVar

from pydantic import BaseModel

from ..exceptions import BaseError, StorageError
from ..storage.base import Storage
from ..utils.json_utils import dumps_bytes, loads
from ..utils.logger import get_logger

TRecord = TypeVar("TRecord", bound=BaseModel)


class BaseService:
    """Base service with common functionality for storage-backed services."""

    def __init__(self, storage: Storage, logger=None):
        """
        Initialize the base service.

        Args:
            storage: Key/value storage collaborator
            logger: Optional logger instance
        """
        self.storage = storage
        self.logger = logger or get_logger()

    def _handle_storage_exception(self, operation: str, key: str, exception: Exception) -> NoReturn:
        """
        Wrap a storage failure in StorageError.

        Engine errors raised by the storage itself pass through untouched.
        """
        if isinstance(exception, BaseError):
            raise exception

        self.logger.error(
            f"Storage {operation} failed",
            extra={"operation": operation, "key": key, "error_type": type(exception).__name__},
        )
        raise StorageError(
            f"Storage {operation} failed for key '{key}'",
            operation=operation,
            cause=exception,
            key=key,
        )

    def _storage_call(self, operation: str, func: Callable, key: str, *args: Any) -> Any:
        try:
            return func(key, *args)
        except Exception as e:
            self._handle_storage_exception(operation, key, e)

    def _read_record(self, key: str, schema_class: Type[TRecord]) -> Optional[TRecord]:
        """
        Load and decode the record stored at `key`.

        Raises:
            StorageError: If the read fails or the record does not match the schema
        """
        raw = self._storage_call("get", self.storage.get, key)
        if raw is None:
            return None

        try:
            return schema_class.model_validate(loads(raw))
        except ValueError as e:
            raise StorageError(
                f"error decoding stored record '{key}'",
                operation="decode",
                cause=e,
                key=key,
            )

    def _write_record(self, key: str, record: BaseModel) -> None:
        self._storage_call("put", self.storage.put, key, dumps_bytes(record.model_dump(mode="json")))

    def _delete_record(self, key: str) -> None:
        self._storage_call("delete", self.storage.delete, key)

    def _list_keys(self, prefix: str) -> List[str]:
        return list(self._storage_call("list", self.storage.list, prefix))
