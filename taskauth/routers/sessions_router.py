from fastapi import APIRouter, Depends

from taskauth.dependencies import AuthenticatedUser, get_current_user, get_session_service
from taskauth.schemas import MessageResponse, RevokeAllResponse, SessionListResponse
from taskauth.session_service import SessionService

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    current: AuthenticatedUser = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service)
):
    """
    Active sessions, most recently used first.
    The one making this request is marked current.
    """
    return SessionListResponse(sessions=sessions.list_sessions(current.user_id, current.token))


@router.post("/revoke-all", response_model=RevokeAllResponse)
async def revoke_all_other_sessions(
    current: AuthenticatedUser = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service)
):
    """
    Sign out every other device. The calling session survives.
    """
    message, count = sessions.revoke_others(current.user_id, current.token)
    return RevokeAllResponse(message=message, count=count)


@router.delete("/{session_id}", response_model=MessageResponse)
async def revoke_session(
    session_id: str,
    current: AuthenticatedUser = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service)
):
    """
    Revoke one of the caller's sessions.

    Someone else's session id gets the same 404 as a missing one.
    """
    return MessageResponse(message=sessions.revoke(session_id, current.user_id))
