from __future__ import annotations

from fastapi import APIRouter, Depends

from wishlist.models.org import User
from wishlist.schemas.org import MeOut, UserOut
from wishlist.security.context import AuthzContext
from wishlist.security.dependencies import get_authz, get_current_user

router = APIRouter(tags=["profile"])


@router.get("/me", response_model=MeOut)
def me(user: User = Depends(get_current_user), authz: AuthzContext = Depends(get_authz)) -> MeOut:
    return MeOut(
        **UserOut.model_validate(user).model_dump(),
        can_see_admin_actions=authz.can_see_admin_actions,
    )
