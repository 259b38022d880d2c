from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session, selectinload

from wishlist.db.filters import owner_scope_clause
from wishlist.db.session import get_db
from wishlist.models.kudos import Kudos
from wishlist.models.org import User
from wishlist.schemas.kudos import DeleteOut, KudosIn, KudosOut, KudosPage, ModerationDecisionOut, VisibilityIn
from wishlist.security.context import AuthzContext
from wishlist.security.decorators import filter_hidden_content
from wishlist.security.dependencies import get_authz, get_current_user, get_directory
from wishlist.security.directory import SqlUserDirectory
from wishlist.security.permissions import check_admin_permissions, check_content_permissions
from wishlist.security.visibility import FeedScope, feed_scope_narrowing
from wishlist.services.media import LocalMediaStore, MediaStore
from wishlist.services.moderation import delete_kudos, set_hidden
from wishlist.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/kudos", tags=["kudos"])

NOT_PERMITTED = "Not permitted"


def get_media_store(request: Request) -> MediaStore:
    store = getattr(request.app.state, "media_store", None)
    if store is None:
        store = LocalMediaStore(get_settings().resolved_media_root())
    return store


@router.get("/feed", response_model=KudosPage)
@filter_hidden_content()
def feed(
    scope: FeedScope = FeedScope.SITE,
    limit: int = Query(default=10, ge=1, le=50),
    cursor: str | None = None,
    db: Session = Depends(get_db),
    authz: AuthzContext = Depends(get_authz),
) -> KudosPage:
    # Hidden-post visibility is applied by wishlist/db/filters.py; the requested
    # scope can only narrow it further.
    narrowing = feed_scope_narrowing(authz.actor, scope)
    stmt = (
        select(Kudos)
        .where(owner_scope_clause(narrowing))
        .options(selectinload(Kudos.owner))
        .order_by(Kudos.created_at.desc(), Kudos.id.desc())
        .limit(limit + 1)
    )

    if cursor:
        anchor = db.execute(select(Kudos.created_at, Kudos.id).where(Kudos.id == cursor)).first()
        if anchor is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown cursor")
        stmt = stmt.where(
            or_(
                Kudos.created_at < anchor.created_at,
                and_(Kudos.created_at == anchor.created_at, Kudos.id < anchor.id),
            )
        )

    rows = list(db.scalars(stmt).all())
    next_cursor = rows[limit - 1].id if len(rows) > limit else None
    return KudosPage(items=[KudosOut.model_validate(k) for k in rows[:limit]], next_cursor=next_cursor)


@router.post("", response_model=KudosOut, status_code=status.HTTP_201_CREATED)
def create_kudos(body: KudosIn, db: Session = Depends(get_db), user: User = Depends(get_current_user)) -> Kudos:
    kudos = Kudos(user_id=user.id, message=body.message, images=list(body.images))
    db.add(kudos)
    db.commit()
    db.refresh(kudos)
    logger.info("Kudos created kudos=%s user=%s images=%d", kudos.id, user.id, len(body.images))
    return kudos


@router.get("/permissions", response_model=ModerationDecisionOut)
def permissions(
    target_user_id: str | None = None,
    authz: AuthzContext = Depends(get_authz),
    directory: SqlUserDirectory = Depends(get_directory),
) -> ModerationDecisionOut:
    decision = check_admin_permissions(directory, authz.user_id, target_user_id)
    return ModerationDecisionOut(**decision.to_dict())


def _load_for_moderation(kudos_id: str, db: Session, authz: AuthzContext, directory: SqlUserDirectory) -> Kudos:
    decision = check_content_permissions(directory, authz.actor, kudos_id)
    if not decision.allowed:
        # Missing posts and out-of-scope posts look the same.
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=NOT_PERMITTED)

    kudos = db.get(Kudos, kudos_id)
    if kudos is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Kudos not found")
    return kudos


@router.post("/{kudos_id}/visibility", response_model=KudosOut)
def set_visibility(
    kudos_id: str,
    body: VisibilityIn,
    db: Session = Depends(get_db),
    authz: AuthzContext = Depends(get_authz),
    directory: SqlUserDirectory = Depends(get_directory),
) -> Kudos:
    kudos = _load_for_moderation(kudos_id, db, authz, directory)
    return set_hidden(db, kudos, body.hidden, moderator_id=authz.user_id)


@router.delete("/{kudos_id}", response_model=DeleteOut)
def remove_kudos(
    kudos_id: str,
    db: Session = Depends(get_db),
    authz: AuthzContext = Depends(get_authz),
    directory: SqlUserDirectory = Depends(get_directory),
    media_store: MediaStore = Depends(get_media_store),
) -> DeleteOut:
    kudos = _load_for_moderation(kudos_id, db, authz, directory)
    result = delete_kudos(db, kudos, media_store)
    return DeleteOut(id=result.kudos_id, media_cleanup_failures=len(result.media_failures))
