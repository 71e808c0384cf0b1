from __future__ import annotations

import logging

from fastapi import Request

from hms.authz.types import Identity, Role
from hms.models.users import User
from hms.repositories.base import UserRepository
from hms.security.config import SecurityConfig
from hms.security.tokens import TokenError, TokenIssuer

logger = logging.getLogger(__name__)


def extract_token(request: Request, config: SecurityConfig) -> str | None:
    """
    Find the caller's credential.

    - Preferred: `Authorization: Bearer <token>`
    - Fallback: the session cookie set by /api/auth/login
    - Anything malformed counts as "no credential" (the caller gets a 401, never a guess)
    """

    header_name = config.auth.authorization_header
    bearer_prefix = config.auth.bearer_prefix

    raw = request.headers.get(header_name)
    if raw:
        prefix = f"{bearer_prefix} "
        if not raw.startswith(prefix):
            logger.warning("Invalid Authorization header format path=%s method=%s", request.url.path, request.method)
            return None
        token = raw[len(prefix) :].strip()
        if not token:
            logger.warning("Empty bearer token path=%s method=%s", request.url.path, request.method)
            return None
        return token

    cookie = request.cookies.get(config.auth.session_cookie)
    if cookie:
        return cookie.strip() or None

    logger.debug("No credential presented path=%s method=%s", request.url.path, request.method)
    return None


def identity_for(user: User) -> Identity | None:
    """Build the per-request Identity; an inactive account or unknown role has none."""
    if not user.is_active:
        return None
    role = Role.parse(user.role)
    if role is None:
        logger.warning("User has unsupported role user_id=%s role=%r", user.id, user.role)
        return None
    return Identity(id=user.id, email=user.email, role=role, display_name=user.name)


def load_identity(users: UserRepository, issuer: TokenIssuer, token: str | None) -> Identity | None:
    if not token:
        return None

    try:
        user_id = issuer.user_id(token)
    except TokenError:
        return None

    user = users.get(user_id)
    if user is None:
        logger.info("Token subject not found user_id=%s", user_id)
        return None
    return identity_for(user)
