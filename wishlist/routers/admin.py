from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.sql.elements import ColumnElement

from wishlist.db.base import utcnow
from wishlist.db.filters import scope_clause
from wishlist.db.session import get_db
from wishlist.models.kudos import Kudos
from wishlist.models.org import Department, Domain, User
from wishlist.routers.kudos import NOT_PERMITTED, get_media_store
from wishlist.schemas.org import (
    AdminLevelIn,
    DepartmentIn,
    DepartmentOut,
    DepartmentStat,
    DomainIn,
    DomainOut,
    DomainStat,
    DomainUpdateIn,
    ProfileCompletedIn,
    UserDepartmentIn,
    UserOut,
)
from wishlist.security.context import AuthzContext
from wishlist.security.decorators import require_admin_level
from wishlist.security.dependencies import get_authz, get_directory
from wishlist.security.directory import SqlUserDirectory
from wishlist.security.permissions import (
    can_assign_admin_level,
    can_assign_department,
    can_manage_user,
    resolve_department_domain,
)
from wishlist.security.scope import AdminLevel, DepartmentScope, DomainScope, OwnerScope, Scope, SiteScope
from wishlist.services import moderation
from wishlist.services.media import MediaStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _forbidden() -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=NOT_PERMITTED)


def _user_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")


def _load_user(db: Session, user_id: str) -> User:
    user = db.execute(
        select(User).where(User.id == user_id).options(selectinload(User.department))
    ).scalar_one_or_none()
    if user is None:
        raise _user_not_found()
    return user


# ---- Users ------------------------------------------------------------------------


@router.get("/users", response_model=list[UserOut])
def list_users(db: Session = Depends(get_db), authz: AuthzContext = Depends(get_authz)) -> list[User]:
    stmt = (
        select(User)
        .where(scope_clause(authz.actor.authority, User.domain, User.department_id))
        .options(selectinload(User.department))
        .order_by(User.profile_completed, User.last_name, User.first_name, User.id)
    )
    return list(db.scalars(stmt).all())


@router.put("/users/{user_id}/admin-level", response_model=UserOut)
def update_admin_level(
    user_id: str,
    body: AdminLevelIn,
    db: Session = Depends(get_db),
    authz: AuthzContext = Depends(get_authz),
    directory: SqlUserDirectory = Depends(get_directory),
) -> User:
    if not can_assign_admin_level(directory, authz.actor, user_id, body.admin_level, body.admin_scope):
        raise _forbidden()

    user = _load_user(db, user_id)
    user.admin_level = body.admin_level.value
    user.admin_scope = None if body.admin_level is AdminLevel.USER else body.admin_scope
    db.commit()
    db.refresh(user)

    logger.info(
        "Admin level changed user=%s level=%s scope=%s by=%s",
        user.id,
        user.admin_level,
        user.admin_scope,
        authz.user_id,
    )
    return user


@router.put("/users/{user_id}/department", response_model=UserOut)
def update_department(
    user_id: str,
    body: UserDepartmentIn,
    db: Session = Depends(get_db),
    authz: AuthzContext = Depends(get_authz),
    directory: SqlUserDirectory = Depends(get_directory),
) -> User:
    if not can_manage_user(directory, authz.actor, user_id):
        raise _forbidden()

    department = None
    if body.department_id is not None:
        department = db.get(Department, body.department_id)
        if department is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Department not found")

    if not can_assign_department(directory, authz.actor, user_id, body.department_id):
        raise _forbidden()

    user = _load_user(db, user_id)
    # Departments never span domains; moving a user across domains is a different operation.
    if department is not None and department.domain != user.domain:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Department belongs to another domain",
        )

    user.department_id = body.department_id
    db.commit()
    db.refresh(user)

    logger.info("Department changed user=%s department=%s by=%s", user.id, user.department_id, authz.user_id)
    return user


@router.put("/users/{user_id}/profile-completed", response_model=UserOut)
def update_profile_completed(
    user_id: str,
    body: ProfileCompletedIn,
    db: Session = Depends(get_db),
    authz: AuthzContext = Depends(get_authz),
    directory: SqlUserDirectory = Depends(get_directory),
) -> User:
    if not can_manage_user(directory, authz.actor, user_id):
        raise _forbidden()

    user = _load_user(db, user_id)
    user.profile_completed = body.completed
    user.profile_completed_at = utcnow() if body.completed else None
    db.commit()
    db.refresh(user)
    return user


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    authz: AuthzContext = Depends(get_authz),
    directory: SqlUserDirectory = Depends(get_directory),
    media_store: MediaStore = Depends(get_media_store),
) -> Response:
    if user_id == authz.user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account")

    if not can_manage_user(directory, authz.actor, user_id):
        raise _forbidden()

    user = db.get(User, user_id)
    if user is None:
        raise _user_not_found()

    results = moderation.delete_user(db, user, media_store)
    logger.info(
        "User deleted user=%s by=%s media_failures=%d",
        user_id,
        authz.user_id,
        sum(len(r.media_failures) for r in results),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---- Domains ----------------------------------------------------------------------


def _visible_domains(authority: Scope, directory: SqlUserDirectory) -> ColumnElement[bool] | None:
    """
    Filter on `Domain.name` for the domains an admin may see, or None when
    the admin sees no domain at all.
    """

    if isinstance(authority, SiteScope):
        return Domain.name.is_not(None)
    if isinstance(authority, DomainScope):
        return Domain.name == authority.name
    if isinstance(authority, DepartmentScope):
        parent = resolve_department_domain(directory, authority.department_id)
        return None if parent is None else Domain.name == parent
    return None


@router.get("/domains", response_model=list[DomainOut])
def list_domains(
    db: Session = Depends(get_db),
    authz: AuthzContext = Depends(get_authz),
    directory: SqlUserDirectory = Depends(get_directory),
) -> list[Domain]:
    visible = _visible_domains(authz.actor.authority, directory)
    if visible is None:
        return []
    return list(db.scalars(select(Domain).where(visible).order_by(Domain.name)).all())


@router.get("/domains/by-name/{name}", response_model=DomainOut)
def get_domain_by_name(
    name: str,
    db: Session = Depends(get_db),
    authz: AuthzContext = Depends(get_authz),
    directory: SqlUserDirectory = Depends(get_directory),
) -> Domain:
    visible = _visible_domains(authz.actor.authority, directory)
    domain = None
    if visible is not None:
        domain = db.scalars(select(Domain).where(visible, Domain.name == name.strip().lower())).first()
    if domain is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Domain not found")
    return domain


@router.post("/domains", response_model=DomainOut, status_code=status.HTTP_201_CREATED)
@require_admin_level(AdminLevel.SITE)
def create_domain(body: DomainIn, db: Session = Depends(get_db)) -> Domain:
    name = body.name.strip().lower()
    if db.scalars(select(Domain).where(Domain.name == name)).first() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Domain already exists")

    domain = Domain(name=name, description=body.description, enabled=body.enabled)
    db.add(domain)
    db.commit()
    db.refresh(domain)
    logger.info("Domain created name=%s", name)
    return domain


@router.put("/domains/{domain_id}", response_model=DomainOut)
@require_admin_level(AdminLevel.SITE)
def update_domain(domain_id: str, body: DomainUpdateIn, db: Session = Depends(get_db)) -> Domain:
    domain = db.get(Domain, domain_id)
    if domain is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Domain not found")

    if body.description is not None:
        domain.description = body.description
    if body.enabled is not None:
        domain.enabled = body.enabled

    new_name = body.name.strip().lower() if body.name is not None else None
    if new_name and new_name != domain.name:
        taken = db.scalars(select(Domain.id).where(Domain.name == new_name)).first()
        if taken is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Domain already exists")

        # Domains are referenced by name; carry every reference over in the same commit.
        old_name = domain.name
        db.execute(update(Department).where(Department.domain == old_name).values(domain=new_name))
        db.execute(update(User).where(User.domain == old_name).values(domain=new_name))
        db.execute(
            update(User)
            .where(User.admin_level == AdminLevel.DOMAIN.value, User.admin_scope == old_name)
            .values(admin_scope=new_name)
        )
        domain.name = new_name
        logger.info("Domain renamed old=%s new=%s", old_name, new_name)

    db.commit()
    db.refresh(domain)
    return domain


@router.post("/domains/{domain_id}/toggle", response_model=DomainOut)
@require_admin_level(AdminLevel.SITE)
def toggle_domain(domain_id: str, db: Session = Depends(get_db)) -> Domain:
    domain = db.get(Domain, domain_id)
    if domain is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Domain not found")

    domain.enabled = not domain.enabled
    db.commit()
    db.refresh(domain)
    return domain


@router.delete("/domains/{domain_id}", status_code=status.HTTP_204_NO_CONTENT)
@require_admin_level(AdminLevel.SITE)
def delete_domain(domain_id: str, db: Session = Depends(get_db)) -> Response:
    domain = db.get(Domain, domain_id)
    if domain is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Domain not found")

    departments = db.scalar(select(func.count(Department.id)).where(Department.domain == domain.name))
    if departments:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Cannot delete domain with existing departments",
        )

    name = domain.name
    db.delete(domain)
    db.commit()
    logger.info("Domain deleted name=%s", name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---- Departments ------------------------------------------------------------------


@router.get("/departments", response_model=list[DepartmentOut])
def list_departments(db: Session = Depends(get_db), authz: AuthzContext = Depends(get_authz)) -> list[Department]:
    stmt = (
        select(Department)
        .where(scope_clause(authz.actor.authority, Department.domain, Department.id))
        .order_by(Department.domain, Department.name)
    )
    return list(db.scalars(stmt).all())


@router.post("/departments", response_model=DepartmentOut, status_code=status.HTTP_201_CREATED)
@require_admin_level(AdminLevel.DOMAIN)
def create_department(
    body: DepartmentIn,
    db: Session = Depends(get_db),
    authz: AuthzContext = Depends(get_authz),
) -> Department:
    domain_name = body.domain.strip().lower()
    if not authz.actor.authority.contains(OwnerScope(domain=domain_name, department_id=None)):
        raise _forbidden()

    if db.scalars(select(Domain).where(Domain.name == domain_name)).first() is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Domain not found")

    name = body.name.strip()
    existing = db.scalars(select(Department).where(Department.name == name, Department.domain == domain_name)).first()
    if existing is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Department already exists")

    department = Department(name=name, domain=domain_name)
    db.add(department)
    db.commit()
    db.refresh(department)
    logger.info("Department created name=%s domain=%s by=%s", name, domain_name, authz.user_id)
    return department


# ---- Stats ------------------------------------------------------------------------


@router.get("/stats", response_model=list[DomainStat])
@require_admin_level(AdminLevel.SITE)
def domain_department_stats(db: Session = Depends(get_db)) -> list[DomainStat]:
    user_rows = db.execute(
        select(User.domain, User.department_id, Department.name, func.count(User.id))
        .outerjoin(Department, Department.id == User.department_id)
        .group_by(User.domain, User.department_id, Department.name)
    ).all()

    kudos_counts: dict[tuple[str | None, str | None], int] = {
        (domain, department_id): count
        for domain, department_id, count in db.execute(
            select(User.domain, User.department_id, func.count(Kudos.id))
            .join(Kudos, Kudos.user_id == User.id)
            .group_by(User.domain, User.department_id)
        ).all()
    }

    by_domain: dict[str, DomainStat] = {}
    for domain, department_id, department_name, users in user_rows:
        key = domain or "(no domain)"
        stat = by_domain.setdefault(key, DomainStat(domain=key, departments=[]))
        stat.departments.append(
            DepartmentStat(
                department_id=department_id,
                department_name=department_name,
                users=users,
                kudos=kudos_counts.get((domain, department_id), 0),
            )
        )

    result = sorted(by_domain.values(), key=lambda s: s.domain)
    for stat in result:
        stat.departments.sort(key=lambda d: d.department_name or "")
    return result
