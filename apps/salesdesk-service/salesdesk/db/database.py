"""
Database engine construction for the relational adapter.

Builds the SQLAlchemy engine for the configured database URL. SQLite URLs
get the thread and pooling settings the test suite and local development
rely on.
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool


def is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def is_memory_sqlite(url: str) -> bool:
    return is_sqlite(url) and (":memory:" in url or url.rstrip("/").endswith(":"))


def create_db_engine(url: str, **kwargs) -> Engine:
    """Create an engine for ``url``.

    In-memory SQLite uses StaticPool so every connection sees the same schema.
    """
    if is_sqlite(url):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        if is_memory_sqlite(url):
            kwargs.setdefault("poolclass", StaticPool)
    else:
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(url, **kwargs)


def init_schema(engine: Engine) -> None:
    """Create all tables directly; deployments on Postgres use Alembic instead."""
    from salesdesk.db import models  # local import to avoid circular import at module load
    models.Base.metadata.create_all(bind=engine)
