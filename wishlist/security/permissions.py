"""
Moderation permission checks.

`can_moderate` is a pure function over an already-loaded `Actor` and an
optional target `OwnerScope`. `check_admin_permissions` wraps it with the two
lookups a request handler usually needs (the acting user, the target user) via
an injected `UserDirectory`.

Denials are ordinary return values. The decision never says *why* an admin was
denied; callers surface every denial the same way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from wishlist.security.scope import (
    UNRESOLVED_OWNER,
    AdminLevel,
    DepartmentScope,
    DomainScope,
    NoScope,
    OwnerScope,
    Scope,
    authority_scope,
    parse_admin_level,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """Admin profile of the acting user."""

    id: str
    admin_level: AdminLevel
    admin_scope: str | None
    domain: str | None
    department_id: str | None

    @classmethod
    def from_record(
        cls,
        id: str,
        admin_level: object,
        admin_scope: str | None,
        domain: str | None,
        department_id: str | None,
    ) -> Actor:
        return cls(
            id=id,
            admin_level=parse_admin_level(admin_level),
            admin_scope=admin_scope,
            domain=domain,
            department_id=department_id,
        )

    @property
    def authority(self) -> Scope:
        return authority_scope(self.admin_level, self.admin_scope)

    @property
    def own_scope(self) -> OwnerScope:
        return OwnerScope(domain=self.domain, department_id=self.department_id)


@dataclass(frozen=True)
class ModerationDecision:
    allowed: bool
    level: AdminLevel
    scope: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {"allowed": self.allowed, "level": self.level.value, "scope": self.scope}


class UserDirectory(Protocol):
    """Read-only lookups the checks depend on."""

    def get_user(self, user_id: str) -> Actor | None: ...

    def get_content_owner_scope(self, kudos_id: str) -> OwnerScope | None: ...

    def get_department_domain(self, department_id: str) -> str | None: ...


def can_moderate(actor: Actor | None, target: OwnerScope | None = None) -> ModerationDecision:
    """
    Decide whether `actor` may moderate content owned by `target`.

    `target=None` asks whether the actor has any admin capability at all (used to
    decide whether to show moderation affordances). A target whose owner could
    not be resolved should be passed as `UNRESOLVED_OWNER`, which never matches a
    DOMAIN or DEPARTMENT scope.
    """

    if actor is None or actor.admin_level is AdminLevel.USER:
        return ModerationDecision(allowed=False, level=AdminLevel.USER)

    level = actor.admin_level
    if level is AdminLevel.SITE:
        return ModerationDecision(allowed=True, level=level, scope="site")

    if target is None:
        return ModerationDecision(allowed=True, level=level, scope=actor.admin_scope)

    authority = actor.authority
    if isinstance(authority, (DomainScope, DepartmentScope)):
        allowed = authority.contains(target)
    else:
        allowed = False

    if not allowed:
        logger.debug("Moderation denied actor=%s level=%s", actor.id, level.value)
    return ModerationDecision(allowed=allowed, level=level, scope=actor.admin_scope)


def can_see_admin_actions(level: AdminLevel | None) -> bool:
    return level in (AdminLevel.DEPARTMENT, AdminLevel.DOMAIN, AdminLevel.SITE)


def resolve_owner_scope(directory: UserDirectory, user_id: str | None) -> OwnerScope:
    """
    Organizational scope of a user. A missing user resolves to an owner scope
    that no DOMAIN or DEPARTMENT admin contains.
    """

    if not user_id:
        return UNRESOLVED_OWNER
    user = directory.get_user(user_id)
    if user is None:
        return UNRESOLVED_OWNER
    return user.own_scope


def resolve_department_domain(directory: UserDirectory, department_id: str | None) -> str | None:
    if not department_id:
        return None
    return directory.get_department_domain(department_id)


def check_admin_permissions(
    directory: UserDirectory,
    actor_id: str,
    target_user_id: str | None = None,
) -> ModerationDecision:
    actor = directory.get_user(actor_id)
    if actor is None:
        logger.info("Permission check for unknown actor id=%s", actor_id)
        return can_moderate(None)

    if target_user_id is None:
        return can_moderate(actor)
    if actor.admin_level in (AdminLevel.USER, AdminLevel.SITE):
        # Terminal levels; skip the target lookup.
        return can_moderate(actor, UNRESOLVED_OWNER)
    return can_moderate(actor, resolve_owner_scope(directory, target_user_id))


def check_content_permissions(directory: UserDirectory, actor: Actor | None, kudos_id: str) -> ModerationDecision:
    """Permission to hide, unhide or delete a specific kudos post."""

    if actor is None or actor.admin_level in (AdminLevel.USER, AdminLevel.SITE):
        return can_moderate(actor, UNRESOLVED_OWNER)
    owner = directory.get_content_owner_scope(kudos_id)
    return can_moderate(actor, owner if owner is not None else UNRESOLVED_OWNER)


def can_manage_user(directory: UserDirectory, actor: Actor | None, target_user_id: str) -> bool:
    """
    Whether `actor` may change or delete the account `target_user_id`.

    The target must sit inside the actor's authority and hold a strictly lower
    admin level. SITE admins may manage anyone but themselves. Missing targets
    are denied like out-of-scope ones.
    """

    if actor is None or actor.admin_level is AdminLevel.USER:
        return False
    if actor.id == target_user_id:
        return False

    target = directory.get_user(target_user_id)
    if target is None:
        return False
    if actor.admin_level is AdminLevel.SITE:
        return True

    if target.admin_level.at_least(actor.admin_level):
        logger.info(
            "User management denied actor=%s level=%s target=%s target_level=%s",
            actor.id,
            actor.admin_level.value,
            target.id,
            target.admin_level.value,
        )
        return False
    return can_moderate(actor, target.own_scope).allowed


def can_assign_department(
    directory: UserDirectory,
    actor: Actor | None,
    target_user_id: str,
    department_id: str | None,
) -> bool:
    """
    Whether `actor` may move `target_user_id` into `department_id`.

    `None` removes the user from their department. Otherwise the department,
    located through its parent domain, must lie inside the actor's authority.
    """

    if not can_manage_user(directory, actor, target_user_id):
        return False
    if department_id is None:
        return True

    parent = resolve_department_domain(directory, department_id)
    if parent is None:
        return False
    return actor.authority.contains(OwnerScope(domain=parent, department_id=department_id))


ASSIGNABLE_LEVELS = frozenset({AdminLevel.USER, AdminLevel.DEPARTMENT, AdminLevel.DOMAIN})


def can_assign_admin_level(
    directory: UserDirectory,
    actor: Actor | None,
    target_user_id: str,
    level: AdminLevel,
    scope_value: str | None,
) -> bool:
    """
    Whether `actor` may set `target_user_id` to `level` with `scope_value`.

    The new scope must sit inside the actor's own authority, and the target
    user must be someone the actor can manage (see `can_manage_user`).
    """

    if actor is None or level not in ASSIGNABLE_LEVELS:
        return False
    if not can_manage_user(directory, actor, target_user_id):
        return False

    if level is AdminLevel.USER:
        return True

    granted = authority_scope(level, scope_value)
    if isinstance(granted, NoScope):
        return False

    if actor.admin_level is AdminLevel.DEPARTMENT and level is AdminLevel.DOMAIN:
        return False

    authority = actor.authority
    if isinstance(authority, NoScope):
        return False
    if actor.admin_level is AdminLevel.SITE:
        return True

    if isinstance(granted, DomainScope):
        return isinstance(authority, DomainScope) and authority.name == granted.name

    # DepartmentScope grant: the department must belong to the actor's authority.
    if isinstance(authority, DepartmentScope):
        return authority.department_id == granted.department_id
    parent = resolve_department_domain(directory, granted.department_id)
    return authority.contains(OwnerScope(domain=parent, department_id=granted.department_id))
