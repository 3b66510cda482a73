"""
Request-integrity (anti-forgery) tokens.

A token is an HS256 JWT bound to one principal. Mutating routes require it
in the ``X-Request-Token`` header before any domain logic runs.
"""
from datetime import datetime, timedelta, timezone

import jwt

from app.core import config
from app.core.errors import PermissionDeniedError

REQUEST_TOKEN_PURPOSE = "request-integrity"
REQUEST_TOKEN_HEADER = "X-Request-Token"
_ALGORITHM = "HS256"


def issue_request_token(principal_id: str, ttl: int | None = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": principal_id,
        "purpose": REQUEST_TOKEN_PURPOSE,
        "iat": now,
        "exp": now + timedelta(seconds=ttl or config.REQUEST_TOKEN_TTL),
    }
    return jwt.encode(payload, config.REQUEST_TOKEN_SECRET, algorithm=_ALGORITHM)


def verify_request_token(token: str | None, principal_id: str) -> None:
    """
    Raises:
        PermissionDeniedError: missing, expired, forged or issued to someone else
    """
    if not token:
        raise PermissionDeniedError("Missing request token")
    try:
        payload = jwt.decode(token, config.REQUEST_TOKEN_SECRET, algorithms=[_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise PermissionDeniedError("Request token has expired")
    except jwt.InvalidTokenError:
        raise PermissionDeniedError("Invalid request token")
    if payload.get("purpose") != REQUEST_TOKEN_PURPOSE or payload.get("sub") != principal_id:
        raise PermissionDeniedError("Invalid request token")
