from __future__ import annotations

import datetime as dt
import secrets
from dataclasses import dataclass

import bcrypt
from jose import jwt

from app.core.config import settings

MIN_PASSWORD_LENGTH = 8


def hash_password(plain: str) -> str:
    if len(plain or "") < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    # Microsoft SSO users have no local password.
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Not a bcrypt hash (e.g. restored from a foreign archive).
        return False


def new_csrf_token() -> str:
    return secrets.token_urlsafe(32)


def tokens_match(expected: str | None, given: str | None) -> bool:
    """Constant-time comparison; a missing value on either side never matches."""
    if not expected or not given:
        return False
    return secrets.compare_digest(expected.encode("utf-8"), given.encode("utf-8"))


@dataclass(frozen=True)
class SessionClaims:
    user_id: str
    expires_at: dt.datetime


def issue_session_token(user_id: str, *, now: dt.datetime | None = None) -> str:
    now = now or dt.datetime.now(dt.timezone.utc)
    expires_at = now + dt.timedelta(minutes=settings.jwt_expires_minutes)
    claims = {"sub": user_id, "iat": int(now.timestamp()), "exp": int(expires_at.timestamp())}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def read_session_token(token: str) -> SessionClaims:
    """Raises jose.JWTError on a bad signature or an expired token, KeyError on missing claims."""
    claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    return SessionClaims(
        user_id=str(claims["sub"]),
        expires_at=dt.datetime.fromtimestamp(int(claims["exp"]), tz=dt.timezone.utc),
    )
