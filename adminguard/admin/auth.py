"""Admin credentials — argon2 password hashes and HS256 bearer tokens.

Token verification attaches the claimed identity to ``request.state.identity``;
the role gate then resolves it to an AdminPrincipal on ``request.state.admin``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from functools import lru_cache

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from adminguard.config import AuthSettings
from adminguard.errors import Unauthenticated

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Identity claimed by a verified token."""

    id: str
    role: str | None = None


# ── Passwords ────────────────────────────────────────────────────────


@lru_cache(maxsize=1)
def _hasher() -> PasswordHasher:
    return PasswordHasher()


def hash_password(password: str) -> str:
    return _hasher().hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against an argon2 hash; malformed hashes never match."""
    try:
        return _hasher().verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


# ── Tokens ───────────────────────────────────────────────────────────


def create_access_token(
    admin_id: uuid.UUID | str,
    role: str,
    auth: AuthSettings,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign a bearer token for an administrator."""
    if not auth.jwt_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="JWT_SECRET not configured",
        )
    now = datetime.now(UTC)
    expire = now + (expires_delta or timedelta(minutes=auth.access_token_expire_minutes))
    payload = {
        "sub": str(admin_id),
        "role": role,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, auth.jwt_secret, algorithm=auth.jwt_algorithm)


def decode_access_token(token: str, auth: AuthSettings) -> Identity:
    """Validate a bearer token. Raises Unauthenticated on any failure."""
    if not auth.jwt_secret:
        raise Unauthenticated("Invalid or expired token")
    try:
        payload = jwt.decode(token, auth.jwt_secret, algorithms=[auth.jwt_algorithm])
    except ExpiredSignatureError:
        raise Unauthenticated("Token expired") from None
    except JWTError:
        raise Unauthenticated("Invalid or expired token") from None

    subject = payload.get("sub")
    if not subject:
        raise Unauthenticated("Invalid or expired token")
    return Identity(id=str(subject), role=payload.get("role"))


async def get_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),  # noqa: B008
) -> Identity | None:
    """FastAPI dependency — verify the bearer token if one was presented.

    No token yields None; a bad token raises 401. The identity is attached
    to ``request.state.identity`` for the role gate and the bulk limiter.
    """
    if credentials is None:
        return None

    auth: AuthSettings = request.app.state.settings.auth
    identity = decode_access_token(credentials.credentials, auth)
    request.state.identity = identity
    return identity
