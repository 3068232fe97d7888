"""
SQLAlchemy-backed storage.

Each storage key is one row of `storage_records`; values are stored as the
UTF-8 JSON text the engine hands over. Every SQLAlchemy failure is surfaced as
StorageError, never retried here.
"""

import threading
from contextlib import contextmanager, nullcontext
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ..db.db_config import DatabaseConfig, DatabaseManager, get_default_config, init_db
from ..db.db_storage_models import StorageRecord
from ..exceptions import StorageError
from ..utils.logger import get_logger
from .base import Storage, collapse_suffixes


class SQLStorage(Storage):
    """Storage on any SQLAlchemy database; sqlite access is serialized."""

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        config: Optional[DatabaseConfig] = None,
    ):
        self.db_manager = db_manager or DatabaseManager(config or get_default_config())
        self.logger = get_logger()
        self._lock = threading.Lock() if self.db_manager.config.is_sqlite else None

        try:
            init_db(self.db_manager)
        except SQLAlchemyError as e:
            raise StorageError("Failed to initialize storage tables", operation="init", cause=e)

    @contextmanager
    def _session(self, operation: str, key: str):
        guard = self._lock if self._lock is not None else nullcontext()
        with guard:
            session = self.db_manager.get_session()
            try:
                yield session
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise StorageError(
                    f"Storage {operation} failed for key '{key}'",
                    operation=operation,
                    cause=e,
                    key=key,
                )
            finally:
                self.db_manager.close_session()

    def get(self, key: str) -> Optional[bytes]:
        with self._session("get", key) as session:
            record = session.get(StorageRecord, key)
            if record is None:
                return None
            return record.value.encode("utf-8")

    def put(self, key: str, value: bytes) -> None:
        text = value.decode("utf-8") if isinstance(value, (bytes, bytearray)) else str(value)
        with self._session("put", key) as session:
            record = session.get(StorageRecord, key)
            if record is None:
                session.add(StorageRecord(key=key, value=text))
            else:
                record.value = text

        self.logger.debug("Storage record written", extra={"key": key})

    def delete(self, key: str) -> None:
        with self._session("delete", key) as session:
            record = session.get(StorageRecord, key)
            if record is not None:
                session.delete(record)

    def list(self, prefix: str) -> List[str]:
        with self._session("list", prefix) as session:
            keys = session.scalars(
                select(StorageRecord.key).where(StorageRecord.key.startswith(prefix, autoescape=True))
            ).all()
        return collapse_suffixes(prefix, list(keys))

    def close(self) -> None:
        self.db_manager.close()
