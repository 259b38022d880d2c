"""
Which kudos posts an actor may see.

The predicate is built once per request from the actor's admin profile:

- `hidden_scope`: owners whose *hidden* posts the actor may still see
  (the actor's authority; `NoScope` for regular users).
- `narrowing`: optional feed-scope restriction chosen by the caller
  ("my domain", "my department"). It is AND-ed with everything else and can
  only shrink the visible set.

`allows()` evaluates the predicate in memory; `wishlist.db.filters` renders
the same predicate as SQL.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from wishlist.security.permissions import Actor
from wishlist.security.scope import (
    AdminLevel,
    NoScope,
    OwnerScope,
    Scope,
    SiteScope,
    department_scope,
    domain_scope,
)


class FeedScope(str, enum.Enum):
    SITE = "site"
    DOMAIN = "domain"
    DEPARTMENT = "department"


@dataclass(frozen=True)
class VisibilityPredicate:
    hidden_scope: Scope
    narrowing: Scope = field(default_factory=SiteScope)

    def allows(self, hidden: bool, owner: OwnerScope) -> bool:
        if not self.narrowing.contains(owner):
            return False
        if not hidden:
            return True
        return self.hidden_scope.contains(owner)

    def narrowed(self, scope: Scope) -> VisibilityPredicate:
        if not isinstance(self.narrowing, SiteScope):
            # Already narrowed once; nested narrowing would need an intersection type.
            raise ValueError("Visibility predicate is already narrowed")
        return VisibilityPredicate(hidden_scope=self.hidden_scope, narrowing=scope)


def build_visibility_predicate(actor: Actor | None) -> VisibilityPredicate:
    """
    Rule table (first match wins):

        SITE        -> every row
        DOMAIN      -> non-hidden rows + hidden rows owned inside admin_scope (a domain)
        DEPARTMENT  -> non-hidden rows + hidden rows owned inside admin_scope (a department)
        otherwise   -> non-hidden rows only
    """

    if actor is None:
        return VisibilityPredicate(hidden_scope=NoScope())
    if actor.admin_level in (AdminLevel.SITE, AdminLevel.DOMAIN, AdminLevel.DEPARTMENT):
        return VisibilityPredicate(hidden_scope=actor.authority)
    return VisibilityPredicate(hidden_scope=NoScope())


def feed_scope_narrowing(actor: Actor | None, requested: FeedScope) -> Scope:
    """
    Narrow a feed to the actor's own domain or department.

    An actor without a domain (or department) asking for that view gets nothing
    rather than the whole site.
    """

    if requested is FeedScope.SITE:
        return SiteScope()
    if actor is None:
        return NoScope()
    if requested is FeedScope.DOMAIN:
        return domain_scope(actor.domain)
    return department_scope(actor.department_id)


def predicate_for_feed(actor: Actor | None, requested: FeedScope = FeedScope.SITE) -> VisibilityPredicate:
    return build_visibility_predicate(actor).narrowed(feed_scope_narrowing(actor, requested))


def is_visible(actor: Actor | None, hidden: bool, owner: OwnerScope, requested: FeedScope = FeedScope.SITE) -> bool:
    return predicate_for_feed(actor, requested).allows(hidden, owner)
