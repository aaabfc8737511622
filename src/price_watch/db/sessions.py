"""Database engine creation and table setup."""
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from price_watch.db.models import (  # noqa: F401  # pylint: disable=unused-import
    NotificationRecord, Watcher)


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Create the engine; SQLite connections may be used from worker threads."""
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


def init_db(engine: Engine) -> None:
    """Create all tables. Safe to call on startup (idempotent for existing tables)."""
    SQLModel.metadata.create_all(engine)
