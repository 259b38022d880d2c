"""
Moderation writes.

Callers must have obtained an allowing permission decision first; nothing in
here re-checks permissions.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from wishlist.db.base import utcnow
from wishlist.models.kudos import Kudos
from wishlist.models.org import User
from wishlist.services.media import MediaStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeleteResult:
    kudos_id: str
    media_failures: tuple[str, ...] = ()


def set_hidden(db: Session, kudos: Kudos, hidden: bool, moderator_id: str, at: datetime | None = None) -> Kudos:
    """Single-row update of the moderation record; last write wins."""

    kudos.hidden = hidden
    kudos.moderated_by = moderator_id
    kudos.moderated_at = at or utcnow()
    db.commit()
    db.refresh(kudos)

    logger.info("Kudos %s kudos=%s moderator=%s", "hidden" if hidden else "unhidden", kudos.id, moderator_id)
    return kudos


def _cleanup_media(kudos_id: str, media_keys: Iterable[str], media_store: MediaStore) -> DeleteResult:
    failures: list[str] = []
    for key in media_keys:
        try:
            media_store.delete(key)
        except Exception:  # noqa: BLE001 (any storage fault must not fail the delete)
            logger.warning("Media cleanup failed kudos=%s key=%s", kudos_id, key, exc_info=True)
            failures.append(key)
    return DeleteResult(kudos_id=kudos_id, media_failures=tuple(failures))


def delete_kudos(db: Session, kudos: Kudos, media_store: MediaStore) -> DeleteResult:
    """
    Delete a post, then remove its media.

    The row delete is authoritative. Media cleanup is best-effort: failures are
    logged and reported back, never raised.
    """

    kudos_id = kudos.id
    media_keys = list(kudos.images or [])

    db.delete(kudos)
    db.commit()
    logger.info("Kudos deleted kudos=%s media=%d", kudos_id, len(media_keys))

    return _cleanup_media(kudos_id, media_keys, media_store)


def delete_user(db: Session, user: User, media_store: MediaStore) -> list[DeleteResult]:
    """
    Delete a user together with their posts.

    The posts and the account go in a single commit; media of the removed
    posts is only cleaned up once that commit has succeeded.
    """

    user_id = user.id
    posts = db.scalars(select(Kudos).where(Kudos.user_id == user_id)).all()
    pending = [(kudos.id, list(kudos.images or [])) for kudos in posts]

    for kudos in posts:
        db.delete(kudos)
    db.delete(user)
    db.commit()
    logger.info("User deleted user=%s kudos=%d", user_id, len(pending))

    return [_cleanup_media(kudos_id, keys, media_store) for kudos_id, keys in pending]
