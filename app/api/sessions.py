"""Study sessions router."""
from fastapi import APIRouter
from pydantic import BaseModel

from app.api.dependencies import CurrentUser, DbSession
from app.services.session_service import SessionService

router = APIRouter(prefix="/api/sessions", tags=["Sessions"])


class SessionCancelResponse(BaseModel):
    message: str
    session_id: int
    status: str
    notified: int


@router.put("/{session_id}/cancel", response_model=SessionCancelResponse)
def cancel_session(session_id: int, db: DbSession, current_user: CurrentUser):
    """Cancel a session (organizer only) and notify everyone who signed up."""
    study_session, notified = SessionService(db).cancel_session(session_id, current_user.id)
    return SessionCancelResponse(
        message="Session cancelled",
        session_id=study_session.id,
        status=study_session.status,
        notified=notified,
    )
