from __future__ import annotations

from dataclasses import dataclass

from wishlist.security.permissions import Actor
from wishlist.security.visibility import VisibilityPredicate


@dataclass(frozen=True)
class AuthzContext:
    """
    Per-request authorization context.

    Attached to:
    - request.state (FastAPI request lifetime)
    - Session.info (SQLAlchemy session lifetime)
    """

    actor: Actor

    # Scope decisions (driven by config / decorators)
    filter_hidden_content: bool

    # Derived from the actor's admin profile
    visibility: VisibilityPredicate
    can_see_admin_actions: bool

    @property
    def user_id(self) -> str:
        return self.actor.id
