from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from wishlist.security.scope import AdminLevel


class DomainOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None
    enabled: bool


class DomainIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    enabled: bool = False


class DepartmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    domain: str


class DepartmentIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    domain: str = Field(min_length=1, max_length=255)


class DomainUpdateIn(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    enabled: bool | None = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str | None
    first_name: str | None
    last_name: str | None
    domain: str | None
    department_id: str | None
    department: DepartmentOut | None
    admin_level: str
    admin_scope: str | None
    is_active: bool
    profile_completed: bool
    profile_completed_at: datetime | None
    created_at: datetime


class MeOut(UserOut):
    can_see_admin_actions: bool


class UserDepartmentIn(BaseModel):
    department_id: str | None


class ProfileCompletedIn(BaseModel):
    completed: bool


class AdminLevelIn(BaseModel):
    admin_level: AdminLevel
    admin_scope: str | None = None

    @model_validator(mode="after")
    def _check_scope(self) -> AdminLevelIn:
        if self.admin_level is AdminLevel.SITE:
            raise ValueError("SITE admin level cannot be assigned")
        if self.admin_level is AdminLevel.USER:
            self.admin_scope = None
            return self
        scope = (self.admin_scope or "").strip()
        if not scope:
            raise ValueError("Admin scope is required for domain and department admin levels")
        self.admin_scope = scope
        return self


class DepartmentStat(BaseModel):
    department_id: str | None
    department_name: str | None
    users: int
    kudos: int


class DomainStat(BaseModel):
    domain: str
    departments: list[DepartmentStat]
