from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


def build_engine(db_url: str) -> Engine:
    """
    Create the engine for `db_url`.

    SQLite (the local fallback) needs cross-thread access since FastAPI runs sync
    handlers in a worker pool; an in-memory SQLite URL also needs one shared
    connection or every checkout would see an empty database.
    """

    if not db_url.startswith("sqlite"):
        return create_engine(db_url, pool_pre_ping=True)

    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if db_url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(db_url, **kwargs)


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False, class_=Session)


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Main DB dependency: one Session per request from the factory built at startup.

    Row filters granted by the authorization core are attached to `Session.info`
    and applied transparently by hms.db.filters.
    """

    factory = getattr(request.app.state, "session_factory", None)
    if factory is None:
        raise RuntimeError("Session factory not configured. Did app startup run?")

    db = factory()
    try:
        yield db
    finally:
        db.close()
