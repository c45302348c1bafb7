"""Authentication and authorization helpers.

This module covers three things:
1. Password hashing with bcrypt.
2. Issuing and verifying HS256 JWT bearer tokens carrying the user id,
   email and role.
3. The authorization gate: ``authorize`` decides whether an identity may
   perform an operation of a given ``Access`` level, and ``require`` wraps it
   as a FastAPI dependency.

A missing ``Authorization: Bearer <token>`` header is reported as 401; a
token that is present but fails verification is reported as 403.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Annotated, Optional

import bcrypt
import structlog
from fastapi import Depends, Request
from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

import errors
from models import Role, User
from settings import Settings

logger = structlog.get_logger(__name__)


class TokenPayload(BaseModel):
    sub: str
    email: str
    role: Role
    exp: int


class Identity(BaseModel):
    """The decoded, authenticated caller attached to a request."""

    id: str
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


class Access(str, Enum):
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    ADMIN = "admin"


# --- Passwords ---
def hash_password(password: str, rounds: int = 10) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# --- Tokens ---
def create_access_token(user: User, settings: Settings) -> str:
    expire = datetime.now(timezone.utc) + timedelta(days=settings.access_token_expire_days)
    claims = {
        "sub": user.id,
        "email": user.email,
        "role": user.role.value,
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str, settings: Settings) -> Identity:
    """Verify a bearer token and return the identity it encodes.

    Raises InvalidTokenError on a bad signature, expiry or malformed claims.
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
        claims = TokenPayload.model_validate(payload)
    except (JWTError, ValidationError) as exc:
        logger.warning("JWT verification failed", exc=str(exc))
        raise errors.InvalidTokenError()
    return Identity(id=claims.sub, email=claims.email, role=claims.role)


# --- Authorization gate ---
def authorize(identity: Optional[Identity], access: Access) -> Optional[Identity]:
    """Return the identity when allowed, raise when denied.

    Public operations never need an identity. Authenticated operations only
    need one to exist; callers scope personal data by ``identity.id``. Admin
    operations additionally need the admin role.
    """
    if access is Access.PUBLIC:
        return identity
    if identity is None:
        raise errors.UnauthenticatedError()
    if access is Access.ADMIN and not identity.is_admin:
        logger.info("Admin access denied", user_id=identity.id)
        raise errors.ForbiddenError()
    return identity


# --- FastAPI dependencies ---
def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


# Helper to extract Authorization header (works with FastAPI DI)
def _get_authorization_header(request: Request) -> Optional[str]:
    return request.headers.get("Authorization")


def get_optional_identity(
    authorization: Annotated[Optional[str], Depends(_get_authorization_header)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> Optional[Identity]:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    token = parts[1].strip() if len(parts) == 2 else ""
    if not token:
        return None
    return verify_token(token, settings)


def require(access: Access):
    """Build a dependency enforcing ``access`` and yielding the identity."""

    def dependency(
        identity: Annotated[Optional[Identity], Depends(get_optional_identity)],
    ) -> Optional[Identity]:
        return authorize(identity, access)

    return dependency


get_current_user = require(Access.AUTHENTICATED)
get_current_admin = require(Access.ADMIN)
