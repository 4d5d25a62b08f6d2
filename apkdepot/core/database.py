"""
Engine, session factory and declarative base.
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from apkdepot.core.config import get_settings


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL.

    SQLite connections are shared across the request threadpool, so the
    same-thread check is off; pre-ping only matters for networked servers.
    """
    is_sqlite = database_url.startswith("sqlite")
    return create_engine(
        database_url,
        pool_pre_ping=not is_sqlite,
        echo=echo,
        connect_args={"check_same_thread": False} if is_sqlite else {},
    )


_settings = get_settings()
engine = build_engine(_settings.sqlalchemy_database_uri, echo=_settings.DEBUG)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db():
    """Request-scoped session; closed when the response is done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
