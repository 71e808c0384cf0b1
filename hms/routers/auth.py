from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from hms.authz.decision import Decision
from hms.authz.types import Identity, Operation, ResourceType
from hms.models.users import User
from hms.repositories.base import Repositories
from hms.routers.common import bad_request
from hms.schemas.clinical import MessageOut
from hms.schemas.users import IdentityOut, LoginRequest, LoginResponse, RegisterResponse, UserCreate, UserOut
from hms.security.auth import identity_for
from hms.security.config import SecurityConfig
from hms.security.dependencies import (
    authorized,
    get_app_settings,
    get_current_identity,
    get_repositories,
    get_security_config,
    get_token_issuer,
)
from hms.security.passwords import hash_password, verify_password
from hms.security.tokens import TokenIssuer
from hms.settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _invalid_credentials() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid email or password",
        headers={"WWW-Authenticate": "Bearer"},
    )


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    response: Response,
    repos: Repositories = Depends(get_repositories),
    issuer: TokenIssuer = Depends(get_token_issuer),
    config: SecurityConfig = Depends(get_security_config),
) -> LoginResponse:
    user = repos.users.find_by_email(payload.email)
    if user is None or not verify_password(payload.password, user.password_hash):
        logger.info("Login failed email=%s", payload.email)
        raise _invalid_credentials()

    identity = identity_for(user)
    if identity is None:
        logger.info("Login refused for inactive or unsupported account user_id=%s", user.id)
        raise _invalid_credentials()

    issued = issuer.issue(user)
    response.set_cookie(
        key=config.auth.session_cookie,
        value=issued.access_token,
        max_age=issued.expires_in,
        httponly=True,
        samesite="lax",
    )
    logger.info("Login succeeded user_id=%s role=%s", identity.id, identity.role.value)
    return LoginResponse(
        access_token=issued.access_token,
        token_type=issued.token_type,
        expires_in=issued.expires_in,
        user=IdentityOut(**identity.to_dict()),
    )


@router.post("/logout", response_model=MessageOut)
def logout(response: Response, config: SecurityConfig = Depends(get_security_config)) -> MessageOut:
    response.delete_cookie(key=config.auth.session_cookie)
    return MessageOut(message="Logged out successfully")


@router.get("/me", response_model=IdentityOut)
def me(identity: Identity = Depends(get_current_identity)) -> IdentityOut:
    return IdentityOut(**identity.to_dict())


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: UserCreate,
    _: Decision = Depends(authorized(Operation.CREATE, ResourceType.USER)),
    repos: Repositories = Depends(get_repositories),
    settings: Settings = Depends(get_app_settings),
) -> RegisterResponse:
    if repos.users.find_by_email(payload.email) is not None:
        raise bad_request("User already exists")

    user = repos.users.add(
        User(
            name=payload.name,
            email=payload.email,
            password_hash=hash_password(payload.password, rounds=settings.bcrypt_rounds),
            role=payload.role.value,
            is_active=True,
        )
    )
    logger.info("User registered user_id=%s role=%s", user.id, user.role)
    return RegisterResponse(message="User registered successfully", user=UserOut.model_validate(user))
