from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from wishlist.db.session import get_db
from wishlist.models.org import User
from wishlist.security.auth import extract_user_id, load_user
from wishlist.security.config import SecurityConfig
from wishlist.security.context import AuthzContext
from wishlist.security.directory import SqlUserDirectory
from wishlist.security.permissions import Actor, can_see_admin_actions
from wishlist.security.scope import AdminLevel
from wishlist.security.visibility import build_visibility_predicate

logger = logging.getLogger(__name__)


def get_security_config(request: Request) -> SecurityConfig:
    config = getattr(request.app.state, "security_config", None)
    if config is None:
        raise RuntimeError("Security config not loaded. Did app startup run?")
    return config


def get_current_user(request: Request) -> User:
    user = getattr(request.state, "user", None)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user


def get_authz(request: Request) -> AuthzContext:
    authz = getattr(request.state, "authz", None)
    if authz is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return authz


def get_directory(db: Session = Depends(get_db)) -> SqlUserDirectory:
    return SqlUserDirectory(db)


def actor_from_user(user: User) -> Actor:
    return Actor.from_record(
        id=user.id,
        admin_level=user.admin_level,
        admin_scope=user.admin_scope,
        domain=user.domain,
        department_id=user.department_id,
    )


def enforce_security(
    request: Request,
    config: SecurityConfig = Depends(get_security_config),
    db: Session = Depends(get_db),
) -> None:
    """
    Global security dependency (PRIMARY, configuration-driven).

    Runs after routing, so endpoint decorator metadata is available too. The
    resulting context is attached to the request and to the request's DB session,
    where wishlist.db.filters picks it up.
    """

    path = request.url.path
    method = request.method.upper()

    rule = config.match(path, method)

    endpoint = request.scope.get("endpoint")
    decorator_level = getattr(endpoint, "__security_min_admin_level__", AdminLevel.USER) if endpoint else AdminLevel.USER
    decorator_filter = bool(getattr(endpoint, "__security_filter_hidden_content__", False)) if endpoint else False

    min_admin_level = decorator_level if decorator_level.at_least(rule.min_admin_level) else rule.min_admin_level
    filter_hidden_content = rule.filter_hidden_content or decorator_filter

    auth_required = rule.auth_required or min_admin_level is not AdminLevel.USER or filter_hidden_content
    if not auth_required:
        return

    user_id = extract_user_id(request, config)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing user id")

    user = load_user(db, user_id)
    request.state.user = user

    actor = actor_from_user(user)
    if not actor.admin_level.at_least(min_admin_level):
        logger.info(
            "Admin level too low user=%s level=%s required=%s path=%s",
            actor.id,
            actor.admin_level.value,
            min_admin_level.value,
            path,
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not permitted")

    authz = AuthzContext(
        actor=actor,
        filter_hidden_content=filter_hidden_content,
        visibility=build_visibility_predicate(actor),
        can_see_admin_actions=can_see_admin_actions(actor.admin_level),
    )
    request.state.authz = authz
    db.info["authz"] = authz
