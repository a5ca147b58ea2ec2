"""Unified database factory.

Selects backend adapter (sqlite, postgresql) based on config and exposes
the pooled engine and a get_connection helper. The returned
handle is created once at startup and passed explicitly to the storage
classes.
"""
import logging
from typing import Any, Dict

from sqlalchemy import text

from . import sqlite as sqlite_adapter
from . import postgresql as postgresql_adapter

logger = logging.getLogger(__name__)

SUPPORTED_BACKENDS = ("sqlite", "postgresql")


def create_backend(config: dict) -> Dict[str, Any]:
    """Create the pooled engine based on config.

    Expected config shape:
      {"backend": "sqlite"|"postgresql", "url": "...", ...}

    A ``url`` (usually coming from DATABASE_URL) wins over discrete fields.
    """
    url = config.get("url")
    backend = (config.get("backend") or "sqlite").lower()
    if url and url.startswith(("postgres://", "postgresql")):
        backend = "postgresql"

    if backend == "sqlite":
        engine = sqlite_adapter.get_engine(
            db_path=config.get("path"),
            memory=config.get("memory", False),
            echo=config.get("echo", False),
        )
        get_connection = sqlite_adapter.get_connection
    elif backend == "postgresql":
        if not url:
            required = ("user", "password", "host", "dbname")
            for k in required:
                if not config.get(k):
                    raise ValueError(f"postgresql config requires '{k}' or 'url'")
        engine = postgresql_adapter.get_engine(
            url=url,
            echo=config.get("echo", False),
            pool_size=int(config.get("pool_size", 10)),
            max_overflow=int(config.get("max_overflow", 20)),
            user=config.get("user"),
            password=config.get("password"),
            host=config.get("host"),
            port=int(config.get("port", 5432)),
            db=config.get("dbname"),
        )
        get_connection = postgresql_adapter.get_connection
    else:
        raise ValueError(f"Unsupported backend: {backend}")

    logger.info(f"Database backend '{backend}' configured")
    return {
        "backend": backend,
        "engine": engine,
        "get_connection": get_connection,
    }


def check_connection(engine) -> bool:
    """Run a trivial query against the pool.

    Returns True when ``SELECT 1`` succeeds. Any failure is logged and
    reported as False; nothing is raised to the caller.
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection successful")
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


def dispose_backend(backend: Dict[str, Any]) -> None:
    engine = backend.get("engine")
    if engine is not None:
        engine.dispose()
        logger.info("Database engine disposed")


__all__ = ["create_backend", "check_connection", "dispose_backend", "SUPPORTED_BACKENDS"]
