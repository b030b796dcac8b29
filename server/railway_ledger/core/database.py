"""Database configuration and session management."""

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool


# Create declarative base for models
Base = declarative_base()


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create the engine backing the snapshot store.

    Args:
        database_url: SQLAlchemy database URL
        echo: Log emitted SQL

    Returns:
        Engine: Configured engine
    """
    in_memory = database_url.startswith("sqlite") and ":memory:" in database_url
    return create_engine(
        database_url,
        echo=echo,
        future=True,
        pool_pre_ping=True,
        # StaticPool keeps a single connection so an in-memory database survives between sessions
        poolclass=StaticPool if in_memory else None,
        connect_args={"check_same_thread": False} if database_url.startswith("sqlite") else {},
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to the engine."""
    return sessionmaker(
        engine,
        expire_on_commit=False,
        autoflush=False,
    )


def init_db(engine: Engine) -> None:
    """Initialize the database by creating all tables."""
    # Models must be imported so their tables are registered on the metadata
    from .. import models  # noqa: F401

    Base.metadata.create_all(engine)


def close_db(engine: Engine) -> None:
    """Close database connections."""
    engine.dispose()
