"""Signed, time-bound bearer tokens."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from taskauth.config import Settings


class TokenError(Exception):
    """Base class for token verification failures."""


class InvalidToken(TokenError):
    """Signature mismatch, malformed token, or missing claims."""


class ExpiredToken(TokenError):
    """Signature is fine but the token is past its expiry."""


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried inside a token."""

    user_id: str
    email: str
    username: str
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class TokenCodec:
    """
    Issues and verifies HS256 JWTs.

    The secret and default lifetime are fixed at construction; nothing
    here reads process configuration on its own.
    """

    def __init__(self, secret: str, ttl: timedelta, algorithm: str = "HS256"):
        if not secret:
            raise ValueError("Token signing secret is required")
        self._secret = secret
        self._algorithm = algorithm
        self.ttl = ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenCodec":
        return cls(
            secret=settings.jwt_secret,
            ttl=settings.jwt_expires_in,
            algorithm=settings.jwt_algorithm,
        )

    def issue(self, claims: TokenClaims, ttl: Optional[timedelta] = None) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": claims.user_id,
            "email": claims.email,
            "username": claims.username,
            "iat": now,
            "exp": now + (ttl if ttl is not None else self.ttl),
            # Keeps two tokens minted in the same second distinct
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Decode and validate a token.

        Raises:
            ExpiredToken: valid signature, past expiry
            InvalidToken: anything else
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise ExpiredToken("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidToken(f"Invalid token: {e}") from e

        email = payload.get("email")
        username = payload.get("username")
        if not isinstance(email, str) or not isinstance(username, str):
            raise InvalidToken("Invalid token: missing identity claims")

        return TokenClaims(
            user_id=str(payload["sub"]),
            email=email,
            username=username,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
