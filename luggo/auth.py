"""Bearer-credential verification for identity-provider tokens.

Credentials are issued by the external identity service; this module only
verifies them and keeps a local ``users`` row per subject (``uid``).
"""

import jwt
from fastapi import Depends, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from luggo.config import get_settings
from luggo.database import get_db
from luggo.errors import AuthRequiredError, ForbiddenError
from luggo.logging_config import bind_request_context, get_logger
from luggo.models import User

logger = get_logger(__name__)


def decode_identity_token(token: str) -> dict:
    """Decode and validate an identity token. Raises AuthRequiredError on failure."""
    settings = get_settings()
    options = {"require": ["sub", "exp"], "verify_aud": settings.jwt_audience is not None}
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        raise AuthRequiredError("Token expired", "token_expired")
    except jwt.InvalidTokenError:
        raise AuthRequiredError("Invalid token", "invalid_token")


def extract_bearer(request: Request) -> str | None:
    """Return the bearer token, or None when the header is absent."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None
    if not auth_header.startswith("Bearer "):
        raise AuthRequiredError("Missing or invalid Authorization header", "invalid_token")
    token = auth_header.removeprefix("Bearer ").strip()
    if not token:
        raise AuthRequiredError("Empty token", "invalid_token")
    return token


def display_name_from_claims(claims: dict) -> str:
    name = (claims.get("name") or "").strip()
    if name:
        return name
    email = (claims.get("email") or "").strip()
    if email:
        return email.split("@", 1)[0]
    return "Usuario"


async def _insert_user(db: AsyncSession, uid: str, display_name: str, email: str | None) -> User | None:
    """Insert the local row; returns None when a concurrent request created it first."""
    user = User(uid=uid, display_name=display_name, email=email)
    try:
        async with db.begin_nested():
            db.add(user)
    except IntegrityError:
        logger.warning("user_insert_race", uid=uid)
        return None
    logger.info("user_created", uid=uid)
    return user


async def ensure_user(db: AsyncSession, claims: dict) -> User:
    """Load the user for ``claims['sub']``, creating or refreshing the local row."""
    uid = str(claims["sub"])
    display_name = display_name_from_claims(claims)
    email = claims.get("email")

    user = await db.get(User, uid)
    if user is None:
        user = await _insert_user(db, uid, display_name, email)
        if user is not None:
            return user
        user = await db.get(User, uid, populate_existing=True)

    if user.display_name != display_name or (email and user.email != email):
        user.display_name = display_name
        if email:
            user.email = email
        await db.flush()
    return user


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    FastAPI dependency: extract and validate the bearer credential.

    Returns the User ORM object or raises AuthRequiredError (401).
    """
    token = extract_bearer(request)
    if token is None:
        raise AuthRequiredError("Missing or invalid Authorization header", "auth_required")
    claims = decode_identity_token(token)
    user = await ensure_user(db, claims)
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        bind_request_context(request_id, uid=user.uid)
    return user


async def get_current_user_optional(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """Optional auth — returns User or None when no valid credential is sent."""
    if not request.headers.get("Authorization"):
        return None
    try:
        return await get_current_user(request, db)
    except AuthRequiredError:
        return None


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.uid not in get_settings().admin_uid_set:
        raise ForbiddenError("Administrator privileges required", "admin_required")
    return user
