import logging
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from chatforge.db.base import Base

logger = logging.getLogger(__name__)

_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:"}


class Database:
    """Engine and session factory owned by one application instance.

    Created explicitly (normally in the app lifespan) and handed to request
    handlers through ``app.state.db``; nothing is opened at import time.
    """

    def __init__(self, url: str, echo: bool = False):
        if not url:
            raise RuntimeError("DATABASE_URL is not configured. Set the DATABASE_URL env var.")

        kwargs = {"echo": echo}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if url in _MEMORY_URLS:
                # one shared connection, otherwise every checkout sees an empty db
                kwargs["poolclass"] = StaticPool
        else:
            # enable pool_pre_ping to avoid stale/closed connections
            kwargs["pool_pre_ping"] = True

        self.url = url
        self.engine = create_engine(url, **kwargs)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_all(self) -> None:
        # Import all models to ensure they're registered with Base
        import chatforge.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("Database schema ready (%s)", self.engine.url.get_backend_name())

    def session(self) -> Session:
        return self.SessionLocal()

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database connections closed")


def get_database(request: Request) -> Database:
    return request.app.state.db


def get_db(request: Request) -> Iterator[Session]:
    db = get_database(request).session()
    try:
        yield db
    finally:
        db.close()
