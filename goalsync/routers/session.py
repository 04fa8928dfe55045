"""Session router - switches goal reconciliation on and off."""
from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel

from goalsync.config import settings
from goalsync.runtime import get_reconciler, get_session, get_store
from goalsync.services.goal_store import GoalStore
from goalsync.services.progress_reconciler import ProgressReconciler
from goalsync.utils.session import SessionCredential


router = APIRouter(prefix="/session", tags=["session"])


class SessionRequest(BaseModel):
    """Session start request model."""

    token: str


class SessionStatus(BaseModel):
    """Session status response model."""

    authenticated: bool
    user_id: str
    reconciler: str
    goals_loaded: int


async def session_from_request(
    request: Request,
    session: SessionCredential = Depends(get_session),
) -> SessionCredential:
    """
    Dependency returning the session, adopting the auth cookie if sent.

    A request carrying the backend's auth cookie starts the session the
    same way POST /session does.
    """
    session.set_from_cookies(request.cookies, settings.auth_cookie_name)
    return session


def _status(
    session: SessionCredential, store: GoalStore, reconciler: ProgressReconciler
) -> SessionStatus:
    return SessionStatus(
        authenticated=session.is_authenticated,
        user_id=session.user_id,
        reconciler=reconciler.state.value,
        goals_loaded=len(store.goals),
    )


@router.post("", response_model=SessionStatus, status_code=status.HTTP_201_CREATED)
async def start_session(
    body: SessionRequest,
    session: SessionCredential = Depends(get_session),
    store: GoalStore = Depends(get_store),
    reconciler: ProgressReconciler = Depends(get_reconciler),
):
    """
    Start a session with a backend token.

    - Loads the session's goals
    - Activates progress reconciliation
    """
    session.set(body.token)
    await store.load()
    return _status(session, store, reconciler)


@router.get("", response_model=SessionStatus)
async def get_session_status(
    session: SessionCredential = Depends(session_from_request),
    store: GoalStore = Depends(get_store),
    reconciler: ProgressReconciler = Depends(get_reconciler),
):
    """Report whether a session is active and what the reconciler is doing."""
    return _status(session, store, reconciler)


@router.delete("", response_model=SessionStatus)
async def end_session(
    session: SessionCredential = Depends(get_session),
    store: GoalStore = Depends(get_store),
    reconciler: ProgressReconciler = Depends(get_reconciler),
):
    """
    End the session.

    - Stops reconciliation immediately
    - Keeps the loaded goals until the next load
    """
    session.clear()
    return _status(session, store, reconciler)
