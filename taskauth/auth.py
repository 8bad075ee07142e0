import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from taskauth.device import DeviceInfo, detect_device
from taskauth.errors import Conflict, NotFound, Unauthorized
from taskauth.models import User
from taskauth.passwords import PasswordHasher
from taskauth.schemas import ChangePasswordRequest, LoginRequest, RegisterRequest, UpdateProfileRequest
from taskauth.sessions import SessionRegistry
from taskauth.tokens import TokenClaims, TokenCodec

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
USERNAME_TAKEN = "Username already in use"
EMAIL_TAKEN = "Email already in use"


@dataclass
class AuthResult:
    token: str
    user: User


def normalize_email(email: str) -> str:
    return email.strip().lower()


def conflict_from_integrity_error(error: IntegrityError) -> Conflict:
    """
    Translate a unique-constraint violation into the same Conflict the
    pre-check would have raised.

    The pre-check is only advisory: two concurrent registrations can both
    pass it, and the database constraint decides which one wins.
    """
    detail = str(error.orig).lower()
    for field, message in (("username", USERNAME_TAKEN), ("email", EMAIL_TAKEN)):
        # SQLite names the column, Postgres the key and the index
        markers = (f"users.{field}", f"({field})", f"ix_users_{field}")
        if any(marker in detail for marker in markers):
            return Conflict(message, field=field)
    return Conflict("Account already exists")


class AuthService:
    """
    Registration, login and profile operations.

    Token codec and password hasher are built from settings by the caller;
    the service never reads configuration itself.
    """

    def __init__(self, db: Session, tokens: TokenCodec, hasher: PasswordHasher):
        self.db = db
        self.tokens = tokens
        self.hasher = hasher
        self.sessions = SessionRegistry(db)

    def register(self, data: RegisterRequest, device: Optional[DeviceInfo] = None) -> AuthResult:
        """
        Create new user account.

        Process:
        1. Reject taken username (exact) or email (normalized)
        2. Hash password
        3. Insert user; a unique violation here is the authoritative check
        4. Issue token
        5. Record session, best-effort

        Error cases:
        - Conflict: username or email already exists
        """
        # Normalize email to prevent duplicate accounts with different casing
        email = normalize_email(data.email)

        if self._find_by_username(data.username):
            raise Conflict(USERNAME_TAKEN, field="username")
        if self._find_by_email(email):
            raise Conflict(EMAIL_TAKEN, field="email")

        # Never store plaintext passwords
        user = User(
            username=data.username,
            email=email,
            password_hash=self.hasher.hash(data.password),
        )

        try:
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        except IntegrityError as e:
            self.db.rollback()
            raise conflict_from_integrity_error(e)

        logger.info("User registered", extra={"user_id": user.id})
        return AuthResult(token=self._start_session(user, device), user=user)

    def login(self, data: LoginRequest, device: Optional[DeviceInfo] = None) -> AuthResult:
        """
        Authenticate user and issue a token.

        Security notes:
        - Same error for unknown email and wrong password
        - Unknown emails are checked against a dummy hash, so both
          failures cost one argon2 verification

        Rate limiting is not implemented.
        """
        email = normalize_email(data.email)
        user = self._find_by_email(email)
        stored_hash = user.password_hash if user else self.hasher.dummy_hash

        if not self.hasher.verify(data.password, stored_hash) or not user:
            logger.warning("Login failed", extra={"email": email})
            raise Unauthorized(INVALID_CREDENTIALS)

        if self.hasher.needs_rehash(user.password_hash):
            self._rehash(user, data.password)

        logger.info("User logged in", extra={"user_id": user.id})
        return AuthResult(token=self._start_session(user, device), user=user)

    def get_profile(self, user_id: str) -> User:
        return self._get_user(user_id)

    def update_profile(self, user_id: str, data: UpdateProfileRequest) -> User:
        """
        Change username and/or email.

        A value already held by a different user is a Conflict; keeping
        your own current value is fine.
        """
        user = self._get_user(user_id)

        if data.username:
            existing = self._find_by_username(data.username)
            if existing and existing.id != user_id:
                raise Conflict(USERNAME_TAKEN, field="username")
            user.username = data.username

        if data.email:
            email = normalize_email(data.email)
            existing = self._find_by_email(email)
            if existing and existing.id != user_id:
                raise Conflict(EMAIL_TAKEN, field="email")
            user.email = email

        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise conflict_from_integrity_error(e)

        self.db.refresh(user)
        return user

    def change_password(self, user_id: str, data: ChangePasswordRequest) -> str:
        """
        Replace the stored password hash.

        The new password may equal the old one; reuse is allowed.
        Existing sessions stay valid.
        """
        user = self._get_user(user_id)

        if not self.hasher.verify(data.current_password, user.password_hash):
            raise Unauthorized("Current password is incorrect")

        user.password_hash = self.hasher.hash(data.new_password)
        self.db.commit()

        logger.info("Password changed", extra={"user_id": user_id})
        return "Password updated successfully"

    def _start_session(self, user: User, device: Optional[DeviceInfo]) -> str:
        """Issue a token and record its session. The session is best-effort."""
        token = self.tokens.issue(
            TokenClaims(user_id=user.id, email=user.email, username=user.username)
        )

        # A token without a session row never authenticates
        result = self.sessions.create(user.id, token, device or detect_device(None))
        if not result.ok:
            logger.warning(
                "Failed to create session",
                extra={"user_id": user.id, "error": str(result.error)},
            )

        return token

    def _rehash(self, user: User, password: str) -> None:
        try:
            user.password_hash = self.hasher.hash(password)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("Failed to upgrade password hash", extra={"user_id": user.id, "error": str(e)})

    def _get_user(self, user_id: str) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFound("User not found")
        return user

    def _find_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def _find_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()
