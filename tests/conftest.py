"""
Pytest fixtures for the test suite.

Data-layer tests use an in-memory SQLite engine and a session that rolls back
after each test, so tests do not affect each other. API tests reuse that
session through a `get_db` dependency override.
"""
from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from wishlist.security.permissions import Actor
from wishlist.security.scope import AdminLevel, OwnerScope


TEST_DB_URL = "sqlite:///:memory:"
REPO_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test."""
    return create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        echo=False,
    )


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    from wishlist.db import filters  # noqa: F401  (register SQLAlchemy filters)
    from wishlist.db.base import Base
    from wishlist.models import kudos, org  # noqa: F401
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(tables):
    """
    Provide a Session bound to the test DB; roll back after each test.

    The transaction is rolled back so the next test gets a clean state.
    """
    connection = tables.connect()
    transaction = connection.begin()
    TestSession = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        class_=Session,
    )
    session = TestSession()
    yield session
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def seeded(db_session):
    """
    Two domains, three departments, one admin of each level and a mix of
    hidden and visible kudos posts.
    """
    from wishlist.db.init_db import seed_demo_data

    seed_demo_data(db_session)
    return db_session


class FakeDirectory:
    """In-memory `UserDirectory`."""

    def __init__(self):
        self.users: dict[str, Actor] = {}
        self.kudos_owners: dict[str, str] = {}
        self.department_domains: dict[str, str] = {}
        self.lookups: list[tuple[str, str]] = []

    def add_user(
        self,
        user_id: str,
        level: str = "USER",
        scope: str | None = None,
        domain: str | None = None,
        department_id: str | None = None,
    ) -> Actor:
        actor = Actor.from_record(
            id=user_id,
            admin_level=level,
            admin_scope=scope,
            domain=domain,
            department_id=department_id,
        )
        self.users[user_id] = actor
        return actor

    def get_user(self, user_id: str) -> Actor | None:
        self.lookups.append(("user", user_id))
        return self.users.get(user_id)

    def get_content_owner_scope(self, kudos_id: str) -> OwnerScope | None:
        self.lookups.append(("kudos", kudos_id))
        owner = self.users.get(self.kudos_owners.get(kudos_id, ""))
        return owner.own_scope if owner else None

    def get_department_domain(self, department_id: str) -> str | None:
        self.lookups.append(("department", department_id))
        return self.department_domains.get(department_id)


@pytest.fixture
def directory():
    d = FakeDirectory()
    d.department_domains.update({"dept-eng": "company.com", "dept-mkt": "company.com", "dept-sales": "other.com"})
    d.add_user("site", "SITE")
    d.add_user("domain", "DOMAIN", "company.com", "company.com", "dept-eng")
    d.add_user("dept", "DEPARTMENT", "dept-eng", "company.com", "dept-eng")
    d.add_user("eng", domain="company.com", department_id="dept-eng")
    d.add_user("mkt", domain="company.com", department_id="dept-mkt")
    d.add_user("ext", domain="other.com", department_id="dept-sales")
    d.add_user("nowhere")
    d.kudos_owners.update({"k-eng": "eng", "k-mkt": "mkt", "k-ext": "ext", "k-orphan": "deleted-user"})
    return d


def make_actor(level: AdminLevel | str, scope: str | None = None, **kwargs) -> Actor:
    return Actor.from_record(
        id=kwargs.pop("id", "actor"),
        admin_level=level,
        admin_scope=scope,
        domain=kwargs.pop("domain", None),
        department_id=kwargs.pop("department_id", None),
    )


class RecordingMediaStore:
    def __init__(self, failing: set[str] | None = None):
        self.deleted: list[str] = []
        self.failing = failing or set()

    def delete(self, key: str) -> None:
        if key in self.failing:
            raise OSError(f"storage unavailable for {key}")
        self.deleted.append(key)


@pytest.fixture
def media_store():
    return RecordingMediaStore()


@pytest.fixture
def client(seeded, media_store):
    """
    TestClient over the real app (no lifespan): seeded in-memory DB, repo security
    config, recording media store.
    """
    from fastapi.testclient import TestClient

    from wishlist.db.session import get_db
    from wishlist.main import create_app
    from wishlist.security.config import load_security_config

    app = create_app()
    app.state.security_config = load_security_config(REPO_ROOT / "config" / "security_config.yaml")
    app.state.media_store = media_store

    def _get_db():
        seeded.info.pop("authz", None)
        try:
            yield seeded
        finally:
            seeded.info.pop("authz", None)

    app.dependency_overrides[get_db] = _get_db
    return TestClient(app)


def auth(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {user_id}"}

