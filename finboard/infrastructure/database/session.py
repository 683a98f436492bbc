"""Database handle and per-request session management"""

from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from finboard.infrastructure.database.models import Base


class Database:
    """
    Engine plus session factory, built once at startup and disposed at shutdown.

    The instance is attached to ``app.state.database`` by the application
    factory; handlers receive sessions through ``get_db``.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine = self._create_engine(url, echo)
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    @staticmethod
    def _create_engine(url: str, echo: bool) -> Engine:
        if url.startswith("sqlite"):
            # In-memory SQLite must share a single connection across threads
            kwargs = {"connect_args": {"check_same_thread": False}}
            if url in ("sqlite://", "sqlite:///:memory:"):
                kwargs["poolclass"] = StaticPool
            return create_engine(url, echo=echo, **kwargs)

        # Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
        return create_engine(
            url,
            echo=echo,
            pool_pre_ping=True,  # Verify connections before using
            pool_size=10,
            max_overflow=10,
            pool_recycle=3600,
        )

    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def session(self) -> Session:
        return self.session_factory()

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Generator[Session, None, None]:
    """Dependency injection for database sessions"""
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
