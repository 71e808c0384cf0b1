"""
Issue and verify the API's bearer tokens.

Tokens are HS256 JWTs signed with `HMS_JWT_SECRET`. Claims:

* **sub**: user id (string, per RFC 7519)
* **email**, **role**, **name**: informational copies for clients; the
  server re-reads role from the credential store on every request.
* **iat** / **exp**: issue and expiry times.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from hms.models.users import User

logger = logging.getLogger(__name__)


class TokenError(Exception):
    """Raised when a token cannot be trusted. Do not log the token."""


@dataclass(frozen=True)
class IssuedToken:
    access_token: str
    expires_in: int
    token_type: str = "bearer"


class TokenIssuer:
    def __init__(self, secret: str, algorithm: str = "HS256", ttl_minutes: int = 60) -> None:
        if not secret:
            raise ValueError("A signing secret is required")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = timedelta(minutes=ttl_minutes)

    def issue(self, user: User, now: datetime | None = None) -> IssuedToken:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role,
            "name": user.name,
            "iat": issued_at,
            "exp": issued_at + self._ttl,
        }
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return IssuedToken(access_token=token, expires_in=int(self._ttl.total_seconds()))

    def verify(self, token: str) -> dict[str, Any]:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as e:
            logger.info("Token expired")
            raise TokenError("Token expired") from e
        except jwt.InvalidTokenError as e:
            logger.info("Token invalid: %s", type(e).__name__)
            raise TokenError("Invalid token") from e
        return payload

    def user_id(self, token: str) -> int:
        """Verify `token` and return the user id it was issued for."""
        payload = self.verify(token)
        try:
            return int(payload["sub"])
        except (TypeError, ValueError) as e:
            raise TokenError("Invalid token: subject") from e
