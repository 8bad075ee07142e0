import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskauth.database import SessionLocal
from taskauth.device import DeviceInfo
from taskauth.models import UserSession, utcnow

logger = logging.getLogger(__name__)


@dataclass
class SessionCreateResult:
    """
    Outcome of a best-effort session insert.

    Callers inspect ``ok`` and log ``error``; a failed insert never
    fails the login or registration that triggered it.
    """
    session: Optional[UserSession] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.session is not None


class SessionRegistry:
    """
    Persistent store of active sessions, one row per issued token.

    A row's existence is what keeps its token usable. Deleting rows is
    idempotent: removing something already gone is a no-op.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(self, user_id: str, token: str, device: DeviceInfo) -> SessionCreateResult:
        """
        Record a session for a freshly issued token.

        Store failures are rolled back and returned, never raised.
        """
        session = UserSession(
            user_id=user_id,
            token=token,
            device=device.device,
            browser=device.browser,
            os=device.os,
            ip_address=device.ip_address,
            location=device.location,
        )
        try:
            self.db.add(session)
            self.db.commit()
            self.db.refresh(session)
        except SQLAlchemyError as e:
            self.db.rollback()
            return SessionCreateResult(error=e)

        return SessionCreateResult(session=session)

    def list_by_user(self, user_id: str) -> List[UserSession]:
        """All sessions for a user, most recently active first."""
        return (
            self.db.query(UserSession)
            .filter(UserSession.user_id == user_id)
            .order_by(UserSession.last_active.desc(), UserSession.created_at.desc())
            .all()
        )

    def find_live(self, token: str, user_id: str) -> Optional[UserSession]:
        """
        Session matching this exact token for this user.

        Runs on every authenticated request; the token column is indexed.
        """
        return (
            self.db.query(UserSession)
            .filter(
                UserSession.token == token,
                UserSession.user_id == user_id,
            )
            .first()
        )

    def touch(self, session_id: str) -> None:
        """
        Mark a session as active now.

        Non-critical: failures are logged and swallowed.
        """
        try:
            self.db.query(UserSession).filter(
                UserSession.id == session_id
            ).update({UserSession.last_active: utcnow()}, synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("Failed to refresh session activity", extra={"session_id": session_id, "error": str(e)})

    def revoke_one(self, session_id: str, user_id: str) -> bool:
        """
        Delete a session owned by user_id.

        Returns False when the session doesn't exist or belongs to
        someone else; the two cases are indistinguishable on purpose.
        """
        result = self.db.query(UserSession).filter(
            UserSession.id == session_id,
            UserSession.user_id == user_id
        ).delete(synchronize_session=False)

        self.db.commit()
        return result > 0

    def revoke_all_except(self, user_id: str, current_token: str) -> int:
        """
        Delete every session of the user except the one for current_token.

        Returns number of sessions deleted.
        """
        result = self.db.query(UserSession).filter(
            UserSession.user_id == user_id,
            UserSession.token != current_token
        ).delete(synchronize_session=False)

        self.db.commit()
        return result

    def sweep_expired(self, retention: timedelta) -> int:
        """
        Remove sessions idle for longer than retention.

        Background maintenance only; never called on a request path.
        Returns number of sessions cleaned up.
        """
        cutoff = utcnow() - retention
        result = self.db.query(UserSession).filter(
            UserSession.last_active < cutoff
        ).delete(synchronize_session=False)

        self.db.commit()
        return result


def touch_session(session_id: str) -> None:
    """
    Background-task entry point for SessionRegistry.touch.

    Runs after the response is produced, so it opens its own database
    session instead of borrowing the request's.
    """
    db = SessionLocal()
    try:
        SessionRegistry(db).touch(session_id)
    finally:
        db.close()


def sweep_expired_sessions(retention: timedelta) -> int:
    """Periodic sweep entry point with its own database session."""
    db = SessionLocal()
    try:
        removed = SessionRegistry(db).sweep_expired(retention)
    finally:
        db.close()

    if removed:
        logger.info("Swept expired sessions", extra={"count": removed})
    return removed
