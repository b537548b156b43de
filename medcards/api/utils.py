"""
Bearer tokens for the MedCards API.

Tokens are stateless HS256 JWTs carrying `sub` (user id), `email` and `exp`.
Nothing is stored server-side: logout only means the client forgets its
token, and a token stays valid until it expires.

Functions
---------
create_access_token(data: dict) -> str
    Sign `data` with an `exp` claim ACCESS_TOKEN_EXPIRE_MINUTES ahead.
verify_token(token: str) -> dict | None
    Claims of a well-signed, unexpired token that names a subject.
get_current_user_id(credentials) -> str
    Dependency placed on every `/api/*` route except register and login.

Settings used: SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError

from medcards.database.config.config import settings

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)
"""Reads `Authorization: Bearer <token>`; missing headers are reported by the dependency."""


def create_access_token(data: dict) -> str:
    """
    Sign `data` as an HS256 token valid for ACCESS_TOKEN_EXPIRE_MINUTES.

    `data` usually carries `sub` (the user id) and `email`; an `exp` claim in
    epoch seconds is added on a copy, so the caller's dict is left alone.
    """
    claims = dict(data)
    # NumericDate: whole seconds since the epoch
    expires = int(datetime.now(timezone.utc).timestamp()) + int(settings.ACCESS_TOKEN_EXPIRE_MINUTES) * 60
    claims["exp"] = expires
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str) -> Optional[dict]:
    """
    Verify a JWT and return its claims.

    Returns
    ----------
    dict | None
        The decoded payload if the signature and expiration are valid and a
        `sub` claim is present, otherwise None.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.info("Rejected token: %s", e)
        return None
    if not payload.get("sub"):
        return None
    return payload


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    Resolve the caller's user id from the bearer token.

    Raises
    ------
    HTTPException
        401 "Not authenticated" when no token is sent,
        401 "Invalid token" when it fails verification.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")
    payload = verify_token(credentials.credentials)
    if payload is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    return str(payload["sub"])
