from __future__ import annotations

from fastapi import APIRouter, Depends

from hms.authz.decision import Decision
from hms.authz.types import Operation, ResourceType
from hms.models.users import User
from hms.repositories.base import Repositories
from hms.schemas.users import UserOut
from hms.security.dependencies import authorized, authorized_row, get_repositories, not_found

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=list[UserOut])
def list_users(
    _: Decision = Depends(authorized(Operation.READ_LIST, ResourceType.USER)),
    repos: Repositories = Depends(get_repositories),
) -> list[User]:
    return list(repos.users.list())


@router.get("/{id}", response_model=UserOut)
def get_user(
    id: int,
    _: Decision = Depends(authorized_row(Operation.READ, ResourceType.USER)),
    repos: Repositories = Depends(get_repositories),
) -> User:
    user = repos.users.get(id)
    if user is None:
        raise not_found(ResourceType.USER)
    return user
