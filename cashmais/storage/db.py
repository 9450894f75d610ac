"""SQLAlchemy engine/session primitives and health checks."""

from __future__ import annotations

from functools import cached_property
from typing import Generator, Optional, Tuple

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker


Base = declarative_base()


class Database:
    """Engine and session factory owned by the process entry point.

    The engine is created on first use so building the application does not
    require the database driver to be importable.
    """

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url

    @cached_property
    def engine(self) -> Engine:
        kwargs: dict[str, object] = {"pool_pre_ping": True, "future": True}
        if self.database_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
        return create_engine(self.database_url, **kwargs)

    @cached_property
    def session_factory(self) -> sessionmaker:
        return sessionmaker(bind=self.engine, autoflush=False, autocommit=False, expire_on_commit=False)

    def session(self) -> Generator[Session, None, None]:
        session = self.session_factory()
        try:
            yield session
        finally:
            session.close()

    def test_connection(self) -> Tuple[bool, Optional[str]]:
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True, None
        except Exception as exc:
            return False, str(exc)

    def dispose(self) -> None:
        if "engine" in self.__dict__:
            self.engine.dispose()


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_session(request: Request) -> Generator[Session, None, None]:
    yield from get_database(request).session()


def load_models() -> None:
    """Import ORM models so Base metadata contains all mapped tables."""

    # Import side effect is intentional here.
    import cashmais.storage.models  # noqa: F401
