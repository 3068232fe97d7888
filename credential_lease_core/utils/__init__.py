"""
Utility modules for the credential lease engine.
"""

from .duration_utils import parse_duration_seconds
from .logger import configure_logging, get_logger
from .rw_lock import ReadWriteLock

__all__ = [
    "configure_logging",
    "get_logger",
    "parse_duration_seconds",
    "ReadWriteLock",
]
