from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from ..exceptions import ErrorCode, ValidationError
from ..utils import get_logger

# Base class for all SQLAlchemy models
Base: Any = declarative_base()


class DatabaseConfig(BaseModel):
    connection_string: str
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    echo: bool = False

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def is_sqlite(self) -> bool:
        return self.connection_string.lower().startswith("sqlite")

    def get_connection_string(self) -> str:
        if not self.connection_string:
            raise ValidationError(
                "Missing storage connection string",
                error_code=ErrorCode.MISSING_REQUIRED,
                field="connection_string",
            )
        return self.connection_string

    def __repr__(self) -> str:
        """String representation with credentials masked."""
        scheme = self.connection_string.split("://", 1)[0] if self.connection_string else ""
        return f"DatabaseConfig(scheme='{scheme}', echo={self.echo})"


class DatabaseManager:
    """
    Database connection manager that uses a Pydantic DatabaseConfig.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.engine = self._create_engine()
        self.session_factory = sessionmaker(bind=self.engine)
        self.scoped_session = scoped_session(self.session_factory)

    def _create_engine(self):
        connection_string = self.config.get_connection_string()
        if self.config.is_sqlite:
            connect_args = {"check_same_thread": False}
            if ":memory:" in connection_string or connection_string.rstrip("/") == "sqlite:":
                # One shared connection, otherwise every thread sees its own empty database
                return create_engine(
                    connection_string,
                    echo=self.config.echo,
                    connect_args=connect_args,
                    poolclass=StaticPool,
                )
            return create_engine(
                connection_string, echo=self.config.echo, connect_args=connect_args
            )
        return create_engine(
            connection_string,
            echo=self.config.echo,
            pool_size=self.config.pool_size,
            max_overflow=self.config.max_overflow,
            pool_timeout=self.config.pool_timeout,
        )

    def create_tables(self) -> None:
        Base.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        return self.scoped_session()

    def close_session(self, session: Optional[Session] = None) -> None:
        if session:
            session.close()
        else:
            self.scoped_session.remove()

    def close(self) -> None:
        self.scoped_session.remove()
        self.engine.dispose()


def get_default_config() -> DatabaseConfig:
    """Build the database config from the application storage settings."""
    settings = get_config().storage
    return DatabaseConfig(connection_string=settings.connection_string, echo=settings.echo)


def import_all_models():
    """Import all models to ensure they're registered with SQLAlchemy metadata."""
    from .db_storage_models import StorageRecord  # noqa


def init_db(db_manager: DatabaseManager) -> None:
    """
    Initialize the database, creating all tables.

    Args:
        db_manager: DatabaseManager instance to use for table creation
    """
    get_logger().info("Initializing storage tables")
    import_all_models()
    db_manager.create_tables()
