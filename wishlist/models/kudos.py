from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wishlist.db.base import Base, new_id, utcnow
from wishlist.models.org import User


class Kudos(Base):
    __tablename__ = "kudos"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)

    message: Mapped[str] = mapped_column(Text, nullable=False)
    # Media keys in the configured media store.
    images: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    # Moderation record: moderated_by/moderated_at always change together with `hidden`.
    hidden: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    # Plain id, not a foreign key: attribution outlives the moderator's account.
    moderated_by: Mapped[str | None] = mapped_column(String(32), nullable=True)
    moderated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    # The post's organizational scope is always read through its owner.
    owner: Mapped[User] = relationship()
