from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class KudosOwnerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    first_name: str | None
    last_name: str | None
    domain: str | None
    department_id: str | None


class KudosOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    message: str
    images: list[str]
    hidden: bool
    moderated_by: str | None
    moderated_at: datetime | None
    created_at: datetime
    owner: KudosOwnerOut


class KudosPage(BaseModel):
    items: list[KudosOut]
    next_cursor: str | None = None


class KudosIn(BaseModel):
    message: str = Field(min_length=1, max_length=500)
    images: list[str] = Field(default_factory=list, max_length=5)


class VisibilityIn(BaseModel):
    hidden: bool


class ModerationDecisionOut(BaseModel):
    allowed: bool
    level: str
    scope: str | None = None


class DeleteOut(BaseModel):
    id: str
    deleted: bool = True
    media_cleanup_failures: int = 0
