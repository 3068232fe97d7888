"""
Storage collaborators for the credential lease engine.
"""

from .base import Storage
from .memory import InMemoryStorage
from .sql_storage import SQLStorage

__all__ = [
    "InMemoryStorage",
    "SQLStorage",
    "Storage",
]
