from __future__ import annotations

from sqlalchemy import and_, event, false, or_, true
from sqlalchemy.orm import Session, with_loader_criteria
from sqlalchemy.sql.elements import ColumnElement

from wishlist.security.scope import DepartmentScope, DomainScope, Scope, SiteScope
from wishlist.security.visibility import VisibilityPredicate


def scope_clause(scope: Scope, domain_col, department_col) -> ColumnElement[bool]:
    """
    Render a `Scope` as SQL against a (domain, department id) column pair.
    """

    if isinstance(scope, SiteScope):
        return true()
    if isinstance(scope, DomainScope):
        return domain_col == scope.name
    if isinstance(scope, DepartmentScope):
        return department_col == scope.department_id
    return false()


def owner_scope_clause(scope: Scope) -> ColumnElement[bool]:
    """`scope` applied to the owner of a kudos post."""

    from wishlist.models.kudos import Kudos  # noqa: WPS433 (local import)
    from wishlist.models.org import User  # noqa: WPS433 (local import)

    if isinstance(scope, SiteScope):
        return true()
    if not isinstance(scope, (DomainScope, DepartmentScope)):
        return false()
    return Kudos.owner.has(scope_clause(scope, User.domain, User.department_id))


def visibility_clause(predicate: VisibilityPredicate) -> ColumnElement[bool]:
    from wishlist.models.kudos import Kudos  # noqa: WPS433 (local import)

    visible = or_(
        Kudos.hidden.is_(False),
        and_(Kudos.hidden.is_(True), owner_scope_clause(predicate.hidden_scope)),
    )
    if isinstance(predicate.narrowing, SiteScope):
        return visible
    return and_(owner_scope_clause(predicate.narrowing), visible)


@event.listens_for(Session, "do_orm_execute")
def _apply_visibility_filters(execute_state) -> None:
    """
    Transparent content visibility.

    Route code keeps writing plain `select(Kudos)` statements; when the request's
    security rule asks for it, hidden posts outside the actor's authority are
    filtered here.
    """

    if not execute_state.is_select:
        return

    authz = execute_state.session.info.get("authz")
    if authz is None or not authz.filter_hidden_content:
        return

    from wishlist.models.kudos import Kudos  # noqa: WPS433 (local import)

    execute_state.statement = execute_state.statement.options(
        with_loader_criteria(Kudos, visibility_clause(authz.visibility), include_aliases=True),
    )
