"""User-facing session management: list, revoke one, revoke all others."""

import logging
from typing import List, Optional, Tuple

from taskauth.errors import NotFound, Unauthorized
from taskauth.schemas import SessionResponse
from taskauth.sessions import SessionRegistry

logger = logging.getLogger(__name__)


class SessionService:

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    def list_sessions(self, user_id: str, current_token: Optional[str]) -> List[SessionResponse]:
        """Sessions for the user, flagging the one behind current_token."""
        return [
            SessionResponse.model_validate(session).model_copy(
                update={"current": current_token is not None and session.token == current_token}
            )
            for session in self.registry.list_by_user(user_id)
        ]

    def revoke(self, session_id: str, user_id: str) -> str:
        if not self.registry.revoke_one(session_id, user_id):
            raise NotFound("Session not found")

        logger.info("Session revoked", extra={"user_id": user_id, "session_id": session_id})
        return "Session revoked successfully"

    def revoke_others(self, user_id: str, current_token: Optional[str]) -> Tuple[str, int]:
        """
        Log out everywhere else.

        Without the presenting token there is no way to tell which session
        to keep, so the request is refused rather than wiping them all.
        """
        if not current_token:
            raise Unauthorized("Missing token")

        count = self.registry.revoke_all_except(user_id, current_token)
        logger.info("Revoked other sessions", extra={"user_id": user_id, "count": count})
        return f"{count} session(s) revoked successfully", count
