from __future__ import annotations

from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from portfolio_api.core.exceptions import UpstreamUnavailable
from portfolio_api.core.logger import init_logger
from portfolio_api.db.base import Base

import portfolio_api.models  # noqa: F401

db_logger = init_logger("database")


class Database:
    """
    Owns the process-wide engine and session factory.

    The engine is created on first use and reused afterwards. ``is_connected``
    records whether the last connection check succeeded; while it is unset the
    next caller makes a single connection attempt bounded by
    ``connect_timeout`` and fails fast with UpstreamUnavailable.
    """

    def __init__(self, url: Optional[str], *, connect_timeout: float = 5.0, echo: bool = False):
        self.url = url
        self.connect_timeout = connect_timeout
        self.echo = echo
        self.is_connected = False
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker[Session]] = None

    def _create_engine(self) -> Engine:
        backend = make_url(self.url).get_backend_name()
        if backend == "sqlite":
            connect_args = {"check_same_thread": False, "timeout": self.connect_timeout}
        elif backend in ("postgresql", "mysql", "mariadb"):
            connect_args = {"connect_timeout": int(self.connect_timeout)}
        else:
            connect_args = {}
        return create_engine(self.url, echo=self.echo, pool_pre_ping=True, connect_args=connect_args)

    @property
    def engine(self) -> Engine:
        if not self.url:
            raise UpstreamUnavailable(detail="DATABASE_URL is not defined")
        if self._engine is None:
            self._engine = self._create_engine()
            self._session_factory = sessionmaker(bind=self._engine, autoflush=False, expire_on_commit=False)
        return self._engine

    def connect(self) -> Engine:
        if self.is_connected:
            return self.engine

        engine = self.engine
        db_logger.info("Connecting to database...")
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            Base.metadata.create_all(bind=engine)
        except SQLAlchemyError as e:
            self.is_connected = False
            db_logger.error(f"Database connection error: {e}")
            raise UpstreamUnavailable(detail=str(e)) from e

        self.is_connected = True
        db_logger.info("Connected to database")
        return engine

    def mark_unavailable(self) -> None:
        self.is_connected = False

    def session(self) -> Session:
        self.connect()
        return self._session_factory()

    def ping(self) -> bool:
        try:
            if not self.is_connected:
                self.connect()
                return True
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except (UpstreamUnavailable, SQLAlchemyError):
            self.is_connected = False
            return False

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None
        self.is_connected = False


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(request: Request) -> Iterator[Session]:
    database = get_database(request)
    db = database.session()
    try:
        yield db
    except UpstreamUnavailable:
        # force a fresh connection check on the next request
        database.mark_unavailable()
        raise
    finally:
        db.close()
