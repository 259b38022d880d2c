from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from wishlist.settings import get_settings


_settings = get_settings()

engine = create_engine(
    _settings.resolved_db_url(),
    connect_args={"check_same_thread": False} if _settings.resolved_db_url().startswith("sqlite") else {},
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session)


def bind_request_context(db: Session, request: Request) -> Session:
    """Attach the request's authorization context (if any) to the session."""

    authz = getattr(getattr(request, "state", None), "authz", None)
    if authz is not None:
        db.info["authz"] = authz
    return db


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Main DB dependency.

    Route code keeps writing plain `select(Kudos)` statements; the
    `do_orm_execute` listener in wishlist.db.filters reads `Session.info["authz"]`
    and scopes them. The security dependency shares this session (FastAPI
    caches it per request) and attaches the context once the user is known.
    """

    db = SessionLocal()
    try:
        yield bind_request_context(db, request)
    finally:
        db.close()
