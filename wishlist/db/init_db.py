from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from wishlist.db.base import Base
from wishlist.db.session import SessionLocal, engine
from wishlist.models.kudos import Kudos
from wishlist.models.org import Department, Domain, User


def init_db(seed: bool = True) -> None:
    """
    Create tables + seed demo data.

    The demo users have readable ids so they can be used directly as bearer
    tokens, e.g. `Authorization: Bearer domain-admin`.
    """

    Base.metadata.create_all(bind=engine)

    if not seed:
        return

    with SessionLocal() as db:
        if _has_seed_data(db):
            return
        seed_demo_data(db)


def _has_seed_data(db: Session) -> bool:
    return db.execute(select(Domain.id).limit(1)).first() is not None


def _seed_time(hour: int) -> datetime:
    return datetime(2025, 12, 1, hour, 0, tzinfo=timezone.utc)


def seed_demo_data(db: Session) -> None:
    # Domains
    company = Domain(name="company.com", description="Main tenant", enabled=True)
    other = Domain(name="other.com", description="Second tenant", enabled=True)
    db.add_all([company, other])
    db.flush()

    # Departments
    eng = Department(id="dept-eng", name="Engineering", domain="company.com")
    mkt = Department(id="dept-mkt", name="Marketing", domain="company.com")
    sales = Department(id="dept-sales", name="Sales", domain="other.com")
    db.add_all([eng, mkt, sales])
    db.flush()

    # Users
    site_admin = User(
        id="site-admin",
        email="site.admin@company.com",
        first_name="Site",
        last_name="Admin",
        domain="company.com",
        department_id=eng.id,
        admin_level="SITE",
        profile_completed=True,
    )
    domain_admin = User(
        id="domain-admin",
        email="domain.admin@company.com",
        first_name="Domain",
        last_name="Admin",
        domain="company.com",
        department_id=eng.id,
        admin_level="DOMAIN",
        admin_scope="company.com",
        profile_completed=True,
    )
    dept_admin = User(
        id="dept-admin",
        email="dept.admin@company.com",
        first_name="Department",
        last_name="Admin",
        domain="company.com",
        department_id=eng.id,
        admin_level="DEPARTMENT",
        admin_scope=eng.id,
        profile_completed=True,
    )
    eng_user = User(
        id="user-eng",
        email="user1@company.com",
        first_name="User",
        last_name="One",
        domain="company.com",
        department_id=eng.id,
        profile_completed=True,
    )
    mkt_user = User(
        id="user-mkt",
        email="user2@company.com",
        first_name="User",
        last_name="Two",
        domain="company.com",
        department_id=mkt.id,
        profile_completed=True,
    )
    external = User(
        id="user-external",
        email="external@other.com",
        first_name="External",
        last_name="User",
        domain="other.com",
        department_id=sales.id,
        profile_completed=True,
    )
    db.add_all([site_admin, domain_admin, dept_admin, eng_user, mkt_user, external])
    db.flush()

    # Kudos (a mix of visible and hidden posts across scopes)
    moderated_at = _seed_time(12)
    db.add_all(
        [
            Kudos(user_id=eng_user.id, message="Public post from Engineering", created_at=_seed_time(9)),
            Kudos(
                user_id=eng_user.id,
                message="Hidden post from Engineering",
                hidden=True,
                moderated_by=site_admin.id,
                moderated_at=moderated_at,
                created_at=_seed_time(10),
            ),
            Kudos(
                user_id=mkt_user.id,
                message="Hidden post from Marketing",
                hidden=True,
                moderated_by=site_admin.id,
                moderated_at=moderated_at,
                created_at=_seed_time(11),
            ),
            Kudos(
                user_id=external.id,
                message="Hidden post from other.com",
                hidden=True,
                moderated_by=site_admin.id,
                moderated_at=moderated_at,
                created_at=_seed_time(12),
            ),
            Kudos(user_id=mkt_user.id, message="Public post from Marketing", created_at=_seed_time(13)),
        ]
    )

    db.commit()
