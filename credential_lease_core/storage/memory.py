import threading
from typing import Dict, List, Optional

from .base import Storage, collapse_suffixes


class InMemoryStorage(Storage):
    """Thread-safe dict-backed storage, for tests and embedded use."""

    def __init__(self):
        self._data: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def list(self, prefix: str) -> List[str]:
        with self._lock:
            keys = list(self._data.keys())
        return collapse_suffixes(prefix, keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
