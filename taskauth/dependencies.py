"""
FastAPI dependencies: service construction and the bearer-token gate.

``get_current_user`` is the per-request check every protected route
depends on. It hands the route an ``AuthenticatedUser`` value instead of
stashing identity on the request object.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache

from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from taskauth.auth import AuthService
from taskauth.config import Settings, get_settings
from taskauth.database import get_db
from taskauth.errors import Unauthorized
from taskauth.passwords import PasswordHasher
from taskauth.session_service import SessionService
from taskauth.sessions import SessionRegistry, touch_session
from taskauth.tokens import ExpiredToken, InvalidToken, TokenCodec

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

MISSING_TOKEN = "Missing or invalid token"
INVALID_TOKEN = "Invalid or expired token"
SESSION_REVOKED = "Session has been revoked. Please sign in again."


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity of the caller, as established by get_current_user."""
    user_id: str
    email: str
    username: str
    token: str
    session_id: str


@lru_cache
def _token_codec(settings: Settings) -> TokenCodec:
    return TokenCodec.from_settings(settings)


@lru_cache
def _password_hasher(settings: Settings) -> PasswordHasher:
    return PasswordHasher.from_settings(settings)


def get_token_codec(settings: Settings = Depends(get_settings)) -> TokenCodec:
    return _token_codec(settings)


def get_password_hasher(settings: Settings = Depends(get_settings)) -> PasswordHasher:
    return _password_hasher(settings)


def get_auth_service(
    db: Session = Depends(get_db),
    tokens: TokenCodec = Depends(get_token_codec),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> AuthService:
    return AuthService(db, tokens, hasher)


def get_session_service(db: Session = Depends(get_db)) -> SessionService:
    return SessionService(SessionRegistry(db))


def extract_bearer_token(request: Request):
    """
    Token from "Authorization: Bearer <token>", or None.
    """
    header = request.headers.get("Authorization")
    if not header or not header.startswith(BEARER_PREFIX):
        return None

    token = header[len(BEARER_PREFIX):].strip()
    return token or None


async def get_current_user(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    tokens: TokenCodec = Depends(get_token_codec),
) -> AuthenticatedUser:
    """
    Authenticate the request.

    1. Bearer token must be present
    2. Signature and expiry must check out
    3. A session row must still exist for this exact token and user

    Every rejection is a 401. Expired and malformed tokens get the same
    response body; only the logs tell them apart.
    A valid token with no session row is always rejected.
    """
    token = extract_bearer_token(request)
    if not token:
        raise Unauthorized(MISSING_TOKEN)

    try:
        claims = tokens.verify(token)
    except ExpiredToken:
        logger.info("Rejected token", extra={"reason": "expired"})
        raise Unauthorized(INVALID_TOKEN)
    except InvalidToken as e:
        logger.info("Rejected token", extra={"reason": "invalid", "error": str(e)})
        raise Unauthorized(INVALID_TOKEN)

    session = SessionRegistry(db).find_live(token, claims.user_id)
    if session is None:
        logger.info("Rejected token", extra={"reason": "revoked", "user_id": claims.user_id})
        raise Unauthorized(SESSION_REVOKED)

    # Runs after the response; a failure here never fails the request
    background_tasks.add_task(touch_session, session.id)

    return AuthenticatedUser(
        user_id=claims.user_id,
        email=claims.email,
        username=claims.username,
        token=token,
        session_id=session.id,
    )
