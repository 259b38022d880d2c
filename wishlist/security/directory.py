from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from wishlist.models.kudos import Kudos
from wishlist.models.org import Department, User
from wishlist.security.permissions import Actor
from wishlist.security.scope import OwnerScope


class SqlUserDirectory:
    """
    `UserDirectory` backed by the application database.

    Each lookup is a single round-trip. Owner scopes are always read from the
    owning user row, never from the content row.
    """

    def __init__(self, db: Session):
        self._db = db

    def get_user(self, user_id: str) -> Actor | None:
        row = self._db.execute(
            select(User.id, User.admin_level, User.admin_scope, User.domain, User.department_id).where(
                User.id == user_id
            )
        ).first()
        if row is None:
            return None
        return Actor.from_record(
            id=row.id,
            admin_level=row.admin_level,
            admin_scope=row.admin_scope,
            domain=row.domain,
            department_id=row.department_id,
        )

    def get_content_owner_scope(self, kudos_id: str) -> OwnerScope | None:
        row = self._db.execute(
            select(User.domain, User.department_id).join(Kudos, Kudos.user_id == User.id).where(Kudos.id == kudos_id)
        ).first()
        if row is None:
            return None
        return OwnerScope(domain=row.domain, department_id=row.department_id)

    def get_department_domain(self, department_id: str) -> str | None:
        return self._db.execute(select(Department.domain).where(Department.id == department_id)).scalar_one_or_none()
