"""SQLite backend adapter for SQLAlchemy.

Provides a unified API: get_engine, get_connection.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.pool import QueuePool, StaticPool
from contextlib import contextmanager
from typing import Optional


def get_engine(db_path: Optional[str] = None, memory: bool = False, echo: bool = False):
    if memory:
        # a single shared connection keeps the in-memory database alive
        engine = create_engine(
            "sqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo,
        )
    else:
        path = db_path or "vaidya_chat.db"
        engine = create_engine(
            f"sqlite:///{path}",
            connect_args={"check_same_thread": False},
            poolclass=QueuePool,
            pool_size=5,
            max_overflow=10,
            echo=echo,
        )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        if not memory:
            cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.close()

    return engine


@contextmanager
def get_connection(engine):
    """Yield a connection (SQLAlchemy Connection) borrowed from the engine pool."""
    conn = engine.connect()
    try:
        yield conn
    finally:
        conn.close()
