"""
Admin levels and organizational scopes.

An admin's `admin_scope` column is a plain string whose meaning depends on
`admin_level` (a domain name for DOMAIN, a department id for DEPARTMENT).
Everything outside the persistence layer works with the tagged `Scope`
variants below instead, so a DOMAIN admin can never be compared against a
department id by accident.

Every parser here fails closed: unknown levels become USER and missing scope
values become `NoScope`, which contains nothing.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Union

logger = logging.getLogger(__name__)


class AdminLevel(str, enum.Enum):
    """Ordered by increasing authority."""

    USER = "USER"
    DEPARTMENT = "DEPARTMENT"
    DOMAIN = "DOMAIN"
    SITE = "SITE"

    @property
    def rank(self) -> int:
        return _RANK[self]

    def at_least(self, other: AdminLevel) -> bool:
        return self.rank >= other.rank


_RANK = {
    AdminLevel.USER: 0,
    AdminLevel.DEPARTMENT: 1,
    AdminLevel.DOMAIN: 2,
    AdminLevel.SITE: 3,
}


def parse_admin_level(raw: object) -> AdminLevel:
    """
    Parse a stored admin level. Anything unrecognized is USER.
    """

    if isinstance(raw, AdminLevel):
        return raw
    if not isinstance(raw, str):
        return AdminLevel.USER
    try:
        return AdminLevel(raw.strip().upper())
    except ValueError:
        logger.warning("Unknown admin level %r treated as USER", raw)
        return AdminLevel.USER


@dataclass(frozen=True)
class OwnerScope:
    """Organizational position of a user (or of the user owning some content)."""

    domain: str | None
    department_id: str | None


UNRESOLVED_OWNER = OwnerScope(domain=None, department_id=None)


@dataclass(frozen=True)
class SiteScope:
    def contains(self, owner: OwnerScope) -> bool:
        return True

    @property
    def label(self) -> str:
        return "site"


@dataclass(frozen=True)
class DomainScope:
    name: str

    def contains(self, owner: OwnerScope) -> bool:
        return owner.domain is not None and owner.domain == self.name

    @property
    def label(self) -> str:
        return self.name


@dataclass(frozen=True)
class DepartmentScope:
    department_id: str

    def contains(self, owner: OwnerScope) -> bool:
        return owner.department_id is not None and owner.department_id == self.department_id

    @property
    def label(self) -> str:
        return self.department_id


@dataclass(frozen=True)
class NoScope:
    def contains(self, owner: OwnerScope) -> bool:
        return False

    @property
    def label(self) -> None:
        return None


Scope = Union[SiteScope, DomainScope, DepartmentScope, NoScope]


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def authority_scope(level: AdminLevel, raw_scope: str | None) -> Scope:
    """
    The set of owners an admin of `level` with stored scope `raw_scope` has authority over.
    """

    if level is AdminLevel.SITE:
        return SiteScope()

    value = _clean(raw_scope)
    if value is None:
        return NoScope()
    if level is AdminLevel.DOMAIN:
        return DomainScope(value)
    if level is AdminLevel.DEPARTMENT:
        return DepartmentScope(value)
    return NoScope()


def domain_scope(domain: str | None) -> Scope:
    value = _clean(domain)
    return DomainScope(value) if value else NoScope()


def department_scope(department_id: str | None) -> Scope:
    value = _clean(department_id)
    return DepartmentScope(value) if value else NoScope()
