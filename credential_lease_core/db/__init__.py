from .db_config import Base, DatabaseConfig, DatabaseManager, get_default_config, init_db
from .db_storage_models import StorageRecord

__all__ = [
    "Base",
    "DatabaseConfig",
    "DatabaseManager",
    "get_default_config",
    "init_db",
    "StorageRecord",
]
