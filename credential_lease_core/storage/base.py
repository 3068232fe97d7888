"""
Key/value storage interface consumed by the engine.

The host owns durability; the engine only needs per-key get/put/delete and a
one-level listing under a prefix. Values are JSON-encoded bytes.
"""

from abc import ABC, abstractmethod
from typing import List, Optional


class Storage(ABC):
    """Durable, per-key consistent key/value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return the stored value, or None when the key is absent."""

    @abstractmethod
    def put(self, key: str, value: bytes) -> None:
        """Create or overwrite the value at `key`."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove `key`. Deleting an absent key is not an error."""

    @abstractmethod
    def list(self, prefix: str) -> List[str]:
        """
        List key suffixes directly under `prefix`.

        Deeper levels are collapsed to their first segment with a trailing "/".
        """


def collapse_suffixes(prefix: str, keys: List[str]) -> List[str]:
    """Turn full keys under `prefix` into sorted, de-duplicated one-level suffixes."""
    suffixes = set()
    for key in keys:
        if not key.startswith(prefix):
            continue
        suffix = key[len(prefix) :]
        if not suffix:
            continue
        if "/" in suffix:
            suffix = suffix.split("/", 1)[0] + "/"
        suffixes.add(suffix)
    return sorted(suffixes)
