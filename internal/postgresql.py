"""PostgreSQL backend adapter for SQLAlchemy."""
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from contextlib import contextmanager
from typing import Optional


def build_url(user: str, password: str, host: str, port: int, db: str) -> str:
    return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{db}"


def normalize_url(url: str) -> str:
    """Force the psycopg2 driver on bare ``postgres://`` / ``postgresql://`` URLs."""
    parsed = make_url(url.replace("postgres://", "postgresql://", 1) if url.startswith("postgres://") else url)
    if parsed.drivername == "postgresql":
        parsed = parsed.set(drivername="postgresql+psycopg2")
    return parsed.render_as_string(hide_password=False)


def get_engine(url: Optional[str] = None, echo: bool = False, pool_size: int = 10, max_overflow: int = 20, **fields):
    if url is None:
        url = build_url(fields["user"], fields["password"], fields["host"], int(fields.get("port", 5432)), fields["db"])
    engine = create_engine(
        normalize_url(url),
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=30,
        pool_pre_ping=True,
        echo=echo,
    )
    return engine


@contextmanager
def get_connection(engine):
    conn = engine.connect()
    try:
        yield conn
    finally:
        conn.close()
