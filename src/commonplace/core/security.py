"""Bearer token helpers carrying the caller-supplied actor id."""
from __future__ import annotations

from datetime import timedelta

from jose import JWTError, jwt

from commonplace.core.settings import settings
from commonplace.db.time import utcnow


def create_access_token(actor_id: str, expires_delta: timedelta | None = None) -> str:
    """Return a signed JWT whose subject is ``actor_id``."""
    expire = utcnow() + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=settings.access_token_expire_minutes)
    )
    return jwt.encode(
        {"sub": actor_id, "exp": expire},
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_subject(token: str) -> str | None:
    """Return the subject claim of a valid token, or None when it is invalid."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    subject = payload.get("sub")
    return subject if isinstance(subject, str) else None
